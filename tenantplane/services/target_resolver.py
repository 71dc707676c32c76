import logging
from dataclasses import dataclass
from typing import Callable, Optional

from tenantplane.cluster import labels
from tenantplane.services.access_service import AccessService
from tenantplane.services.exceptions import NoTargetResolvedError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedTarget:
    tenant: str
    target: str

    @property
    def namespace(self) -> str:
        return labels.tenant_target_name(self.tenant, self.target)


class TargetResolver:
    """명령이 적용될 테넌트와 타겟을 결정합니다. 명시된 값이 저장된 값보다 항상 우선합니다."""

    def __init__(self, access_service: AccessService, namespace_provider: Callable[[], str]):
        """
        Args:
            access_service: 기본 타겟을 읽어올 권한 서비스.
            namespace_provider: 호출자 자신의 네임스페이스를 돌려주는 함수 (kubeconfig 컨텍스트 등).
        """
        self.access_service = access_service
        self.namespace_provider = namespace_provider

    def resolve_tenant(self, explicit_tenant: Optional[str] = None) -> str:
        if explicit_tenant:
            return explicit_tenant
        tenant = labels.tenant_from_namespace(self.namespace_provider() or "")
        if not tenant:
            raise ValidationError("No tenant given and none could be derived from the current namespace.")
        return tenant

    def resolve_target(self, tenant_name: str, explicit_target: Optional[str] = None) -> str:
        """
        타겟 이름을 결정합니다.

        명시된 타겟이 없으면 테넌트의 기본 타겟을 씁니다. 기본 타겟이 더 이상 부여되어 있지 않으면
        (권한 회수 후 남은 값) 기본 타겟이 없는 것으로 취급합니다.

        Raises:
            NoTargetResolvedError: 사용할 타겟이 없을 때.
        """
        if explicit_target:
            return explicit_target

        default_target = self.access_service.get_default_target(tenant_name)
        if default_target and self.access_service.is_valid_target(default_target, tenant_name):
            return default_target
        if default_target:
            logger.warning("Default target '%s' of tenant '%s' is no longer granted.", default_target, tenant_name)
        raise NoTargetResolvedError(f"No target given and tenant '{tenant_name}' has no valid default target.")

    def resolve(self, tenant: Optional[str] = None, target: Optional[str] = None) -> ResolvedTarget:
        tenant_name = self.resolve_tenant(tenant)
        return ResolvedTarget(tenant_name, self.resolve_target(tenant_name, target))

    def resolve_tenant_target(self, tenant: Optional[str] = None, target: Optional[str] = None) -> str:
        """명령이 적용될 테넌트 타겟의 네임스페이스 이름('<tenant>-<target>')을 반환합니다."""
        return self.resolve(tenant, target).namespace
