import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional

logger = logging.getLogger(__name__)


class FailurePolicy(str, Enum):
    # 한 단위가 실패해도 나머지는 끝까지 진행합니다.
    BEST_EFFORT = "best_effort"
    # 첫 실패에서 취소 이벤트를 설정하고, 아직 시작하지 않은 단위는 건너뜁니다.
    FAIL_FAST = "fail_fast"


@dataclass
class TaskResult:
    """이름 하나에 대한 작업 결과. 성공하면 error가 빈 문자열입니다."""
    name: str
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.error == ""


class TaskGroup:
    """
    이름 목록마다 하나씩 작업을 동시에 실행하고, 모두 끝날 때까지 기다린 뒤 결과를 모읍니다.

    형제 작업끼리는 상태를 공유하지 않습니다. 결과는 입력 순서대로 반환됩니다.
    deadline(초)이 주어지면 그 시간이 지난 뒤 cancel_event를 설정하며, 진행 중인 작업은
    이 이벤트를 보고 스스로 멈춰야 합니다.
    """

    def __init__(
        self,
        policy: FailurePolicy = FailurePolicy.BEST_EFFORT,
        max_workers: int = 16,
        deadline: Optional[float] = None,
    ):
        self.policy = policy
        self.max_workers = max_workers
        self.deadline = deadline
        self.cancel_event = threading.Event()

    def run(self, func: Callable[[str], Any], names: Iterable[str]) -> List[TaskResult]:
        names = list(names)
        if not names:
            return []

        timer = None
        if self.deadline is not None:
            timer = threading.Timer(self.deadline, self.cancel_event.set)
            timer.daemon = True
            timer.start()

        try:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(names))) as executor:
                futures = [executor.submit(self._run_unit, func, name) for name in names]
                return [future.result() for future in futures]
        finally:
            if timer is not None:
                timer.cancel()

    def _run_unit(self, func: Callable[[str], Any], name: str) -> TaskResult:
        if self.cancel_event.is_set():
            return TaskResult(name, error=f"{name}: skipped, operation was cancelled.")
        try:
            func(name)
            return TaskResult(name)
        except Exception as e:
            logger.warning("Operation on '%s' failed: %s", name, e)
            if self.policy == FailurePolicy.FAIL_FAST:
                self.cancel_event.set()
            return TaskResult(name, error=str(e))


def collect_errors(results: List[TaskResult]) -> List[str]:
    """비어 있지 않은 오류 메시지만 골라냅니다."""
    return [result.error for result in results if result.error]
