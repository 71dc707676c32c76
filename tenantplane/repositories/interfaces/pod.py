from abc import ABC, abstractmethod
from typing import List, Optional
from kubernetes.client import V1Pod


class IPodRepository(ABC):
    @abstractmethod
    def get_pod(self, namespace: str, name: str) -> V1Pod:
        """파드를 조회합니다. 없으면 ObjectNotFoundError를 발생시킵니다."""
        pass

    @abstractmethod
    def list_pods(self, namespace: str, label_selector: Optional[str] = None) -> List[V1Pod]:
        pass

    @abstractmethod
    def create_pod(self, namespace: str, pod: V1Pod) -> V1Pod:
        pass

    @abstractmethod
    def delete_pod(self, namespace: str, name: str) -> None:
        pass

    @abstractmethod
    def read_pod_log(self, namespace: str, name: str) -> str:
        """파드의 컨테이너 로그를 문자열로 반환합니다."""
        pass
