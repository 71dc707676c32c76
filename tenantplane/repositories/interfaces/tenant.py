from abc import ABC, abstractmethod
from kubernetes.client import V1ServiceAccount, V1Role, V1RoleBinding


class ITenantRepository(ABC):
    """테넌트 신원 객체(ServiceAccount)와 기본 역할/바인딩을 다룹니다. 모두 테넌트 네임스페이스에 놓입니다."""

    @abstractmethod
    def get_service_account(self, name: str) -> V1ServiceAccount:
        """이름으로 ServiceAccount를 조회합니다. 없으면 ObjectNotFoundError를 발생시킵니다."""
        pass

    @abstractmethod
    def create_service_account(self, service_account: V1ServiceAccount) -> V1ServiceAccount:
        """새로운 ServiceAccount를 생성합니다."""
        pass

    @abstractmethod
    def update_service_account(self, service_account: V1ServiceAccount) -> V1ServiceAccount:
        """
        ServiceAccount 전체를 교체합니다.

        객체에 담긴 resourceVersion이 서버의 값과 다르면 ConflictError를 발생시킵니다.
        필드 단위 패치는 지원하지 않습니다.
        """
        pass

    @abstractmethod
    def delete_service_account(self, name: str) -> None:
        """ServiceAccount를 삭제합니다."""
        pass

    @abstractmethod
    def create_role(self, role: V1Role) -> V1Role:
        """테넌트 기본 역할을 생성합니다."""
        pass

    @abstractmethod
    def delete_role(self, name: str) -> None:
        """테넌트 기본 역할을 삭제합니다."""
        pass

    @abstractmethod
    def create_role_binding(self, role_binding: V1RoleBinding) -> V1RoleBinding:
        """테넌트 기본 역할 바인딩을 생성합니다."""
        pass

    @abstractmethod
    def delete_role_binding(self, name: str) -> None:
        """테넌트 기본 역할 바인딩을 삭제합니다."""
        pass
