from abc import ABC, abstractmethod
from typing import List, Optional
from kubernetes.client import (
    V1Namespace, V1ResourceQuota, V1Role, V1RoleBinding, V1NetworkPolicy, V1ServiceAccount
)


class ITenantTargetRepository(ABC):
    """테넌트 타겟 네임스페이스와 그 안에 종속된 객체들을 다룹니다."""

    @abstractmethod
    def get_namespace(self, name: str) -> V1Namespace:
        """네임스페이스를 조회합니다. 없으면 ObjectNotFoundError를 발생시킵니다."""
        pass

    @abstractmethod
    def list_namespaces(self, label_selector: Optional[str] = None) -> List[V1Namespace]:
        """라벨 셀렉터에 맞는 네임스페이스 목록을 조회합니다."""
        pass

    @abstractmethod
    def create_namespace(self, namespace: V1Namespace) -> V1Namespace:
        pass

    @abstractmethod
    def update_namespace(self, namespace: V1Namespace) -> V1Namespace:
        pass

    @abstractmethod
    def delete_namespace(self, name: str) -> None:
        """
        네임스페이스 삭제를 요청합니다.

        삭제는 비동기로 진행되며, 호출이 반환된 뒤에도 한동안 조회될 수 있습니다.
        """
        pass

    @abstractmethod
    def get_resource_quota(self, namespace: str, name: str) -> V1ResourceQuota:
        pass

    @abstractmethod
    def create_resource_quota(self, namespace: str, quota: V1ResourceQuota) -> V1ResourceQuota:
        pass

    @abstractmethod
    def update_resource_quota(self, namespace: str, quota: V1ResourceQuota) -> V1ResourceQuota:
        pass

    @abstractmethod
    def create_role(self, namespace: str, role: V1Role) -> V1Role:
        pass

    @abstractmethod
    def update_role(self, namespace: str, role: V1Role) -> V1Role:
        pass

    @abstractmethod
    def create_role_binding(self, namespace: str, role_binding: V1RoleBinding) -> V1RoleBinding:
        pass

    @abstractmethod
    def list_network_policies(self, namespace: str) -> List[V1NetworkPolicy]:
        pass

    @abstractmethod
    def create_network_policy(self, namespace: str, policy: V1NetworkPolicy) -> V1NetworkPolicy:
        pass

    @abstractmethod
    def update_network_policy(self, namespace: str, policy: V1NetworkPolicy) -> V1NetworkPolicy:
        pass

    @abstractmethod
    def create_service_account(self, namespace: str, service_account: V1ServiceAccount) -> V1ServiceAccount:
        pass
