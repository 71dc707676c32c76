from abc import ABC, abstractmethod
from typing import List
from kubernetes.client import V1Secret


class ISecretRepository(ABC):
    @abstractmethod
    def get_secret(self, namespace: str, name: str) -> V1Secret:
        """시크릿을 조회합니다. 없으면 ObjectNotFoundError를 발생시킵니다."""
        pass

    @abstractmethod
    def list_secrets(self, namespace: str) -> List[V1Secret]:
        pass

    @abstractmethod
    def create_secret(self, namespace: str, secret: V1Secret) -> V1Secret:
        pass

    @abstractmethod
    def delete_secret(self, namespace: str, name: str) -> None:
        pass
