import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, Optional

from tenantplane.services.exceptions import GatewayError, ObjectNotFoundError, RemovalNotConfirmedError

logger = logging.getLogger(__name__)


class DeletionState(str, Enum):
    REQUESTED = "requested"
    DELETE_ISSUED = "delete_issued"
    POLLING = "polling"
    CONFIRMED = "confirmed"
    TIMED_OUT = "timed_out"
    UNREACHABLE = "unreachable"
    CANCELLED = "cancelled"


class RemovalWatcher:
    """
    삭제된 객체가 더 이상 조회되지 않을 때까지 일정 간격으로 Get을 반복합니다.

    404(ObjectNotFoundError)만 삭제 확인으로 간주합니다. 그 밖의 API 오류는 "객체 없음"이
    아니라 UNREACHABLE로 보고합니다. timeout이 None이면 확인될 때까지 무한정 기다립니다.
    """

    def __init__(self, poll_interval: float = 0.25, timeout: Optional[float] = None):
        self.poll_interval = poll_interval
        self.timeout = timeout

    def wait_for_removal(
        self,
        get_object: Callable[[], Any],
        description: str,
        cancel_event: Optional[threading.Event] = None,
    ) -> DeletionState:
        """
        객체가 사라질 때까지 기다립니다.

        Args:
            get_object: 객체를 조회하는 호출. 객체가 없으면 ObjectNotFoundError를 발생시켜야 합니다.
            description: 로그와 오류 메시지에 쓸 객체 설명 (예: "pod acme-n1/p1").
            cancel_event: 설정되면 대기를 중단합니다.

        Returns:
            DeletionState.CONFIRMED

        Raises:
            RemovalNotConfirmedError: 시간 초과, API 불통, 취소로 확인하지 못했을 때.
        """
        deadline = time.monotonic() + self.timeout if self.timeout is not None else None

        while True:
            try:
                get_object()
            except ObjectNotFoundError:
                return DeletionState.CONFIRMED
            except GatewayError as e:
                raise RemovalNotConfirmedError(
                    f"Could not confirm removal of {description}: cluster API unreachable ({e})",
                    outcome=DeletionState.UNREACHABLE,
                ) from e

            if cancel_event is not None and cancel_event.is_set():
                raise RemovalNotConfirmedError(
                    f"Waiting for removal of {description} was cancelled.",
                    outcome=DeletionState.CANCELLED,
                )
            if deadline is not None and time.monotonic() >= deadline:
                raise RemovalNotConfirmedError(
                    f"Timed out after {self.timeout}s waiting for removal of {description}.",
                    outcome=DeletionState.TIMED_OUT,
                )

            if cancel_event is not None:
                cancel_event.wait(self.poll_interval)
            else:
                time.sleep(self.poll_interval)


def delete_and_confirm(
    delete_object: Callable[[], Any],
    get_object: Callable[[], Any],
    watcher: RemovalWatcher,
    description: str,
    cancel_event: Optional[threading.Event] = None,
) -> DeletionState:
    """
    삭제 한 단위를 REQUESTED → DELETE_ISSUED → POLLING → 결과 순서로 진행합니다.

    삭제 요청이 실패하면 폴링 없이 그 오류를 그대로 발생시킵니다.
    """
    logger.debug("%s: %s", description, DeletionState.REQUESTED.value)
    delete_object()
    logger.debug("%s: %s", description, DeletionState.DELETE_ISSUED.value)

    logger.debug("%s: %s", description, DeletionState.POLLING.value)
    state = watcher.wait_for_removal(get_object, description, cancel_event)
    logger.info("%s: %s", description, state.value)
    return state
