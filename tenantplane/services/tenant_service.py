import logging
import re
import time
from typing import Any, Dict, List

from tenantplane.cluster import labels
from tenantplane.config import Settings, get_settings
from tenantplane.repositories.interfaces import ISecretRepository, ITenantRepository
from tenantplane.services.access_service import AccessService
from tenantplane.services.exceptions import GatewayError, TenantNotReadyError, ValidationError
from tenantplane.services.tenant_target_service import TenantTargetService
from tenantplane.utils import manifest_builder
from tenantplane.utils.task_group import FailurePolicy, TaskResult, collect_errors

logger = logging.getLogger(__name__)

# 네임스페이스 이름에서 테넌트를 되찾을 수 있도록 '-'와 '_'는 허용하지 않습니다.
TENANT_NAME_PATTERN = re.compile(r"^[a-z0-9]+$")


class TenantService:
    """테넌트 신원 객체의 생성과, 테넌트 타겟까지 포함한 단계적 삭제를 담당합니다."""

    # 하위 계층(테넌트 타겟)은 실패가 있어도 끝까지 진행하고,
    # 상위 계층(테넌트)은 하위에 실패가 하나라도 있으면 삭제하지 않습니다.
    child_policy = FailurePolicy.BEST_EFFORT
    parent_policy = FailurePolicy.FAIL_FAST

    def __init__(
        self,
        tenant_repo: ITenantRepository,
        secret_repo: ISecretRepository,
        access_service: AccessService,
        tenant_target_service: TenantTargetService,
        settings: Settings = None,
    ):
        self.tenant_repo = tenant_repo
        self.secret_repo = secret_repo
        self.access_service = access_service
        self.tenant_target_service = tenant_target_service
        self.settings = settings or get_settings()

    def create_tenant(self, tenant_name: str) -> Dict[str, Any]:
        """
        새로운 테넌트를 생성하고 자격증명이 준비될 때까지 기다립니다.

        ServiceAccount, 기본 역할, 기본 역할 바인딩을 순서대로 생성합니다. 중간에 실패하면 바로
        중단하며 이미 생성된 객체는 되돌리지 않습니다. 그 뒤 ServiceAccount에 토큰 시크릿이
        연결될 때까지 TENANT_READY_INTERVAL 간격으로 최대 TENANT_READY_ATTEMPTS번 조회합니다.

        Args:
            tenant_name: 생성할 테넌트의 이름.

        Returns:
            생성된 테넌트의 이름을 담은 딕셔너리.

        Raises:
            ValidationError: 테넌트 이름이 소문자 영숫자가 아닐 때.
            GatewayError: 객체 생성이나 준비 상태 조회가 실패했을 때.
            TenantNotReadyError: 대기 횟수 안에 준비되지 않았을 때. 테넌트는 삭제되지 않고 남아 있습니다.
        """
        if not tenant_name or not TENANT_NAME_PATTERN.match(tenant_name):
            raise ValidationError(f"Invalid tenant name: '{tenant_name}'. Use lowercase letters and digits only.")
        namespace = self.settings.TENANT_NAMESPACE

        # 1. 테넌트 신원 객체와 기본 권한 생성
        self.tenant_repo.create_service_account(manifest_builder.new_tenant_user(tenant_name, namespace))
        self.tenant_repo.create_role(manifest_builder.new_tenant_default_role(tenant_name, namespace))
        self.tenant_repo.create_role_binding(manifest_builder.new_tenant_default_role_binding(tenant_name, namespace))
        logger.info("Tenant '%s' created, waiting for its credentials.", tenant_name)

        # 2. 토큰 시크릿이 연결될 때까지 대기
        user_name = labels.tenant_user_name(tenant_name)
        for _ in range(self.settings.TENANT_READY_ATTEMPTS):
            service_account = self.tenant_repo.get_service_account(user_name)
            if service_account.secrets:
                logger.info("Tenant '%s' is ready.", tenant_name)
                return {"name": tenant_name}
            time.sleep(self.settings.TENANT_READY_INTERVAL)

        raise TenantNotReadyError(
            f"Operation timeout. Tenant '{tenant_name}' has been initialized but it is not ready yet. "
            "Please ensure it is fully initialized and fetch its credentials later."
        )

    def get_tenant(self, tenant_name: str) -> Dict[str, Any]:
        """테넌트의 기본 타겟과 부여된 타겟 목록을 조회합니다."""
        grants = self.access_service.list_grants(tenant_name)
        return {
            "name": tenant_name,
            "default_target": self.access_service.get_default_target(tenant_name),
            "targets": [{"name": g.target, "access_type": g.access_type.value} for g in grants],
        }

    def delete_tenant(self, tenant_name: str) -> bool:
        """
        테넌트 신원 객체(ServiceAccount, 기본 역할, 기본 역할 바인딩)를 삭제합니다.

        테넌트 타겟은 건드리지 않으므로, 보통은 delete_tenants()를 사용해야 합니다.
        """
        self.tenant_repo.delete_service_account(labels.tenant_user_name(tenant_name))
        self.tenant_repo.delete_role(labels.tenant_role_name(tenant_name))
        self.tenant_repo.delete_role_binding(labels.tenant_role_binding_name(tenant_name))
        logger.info("Tenant '%s' deleted.", tenant_name)
        return True

    def delete_tenants(self, tenant_names: List[str]) -> List[TaskResult]:
        """
        테넌트를 소유한 테넌트 타겟부터 단계적으로 삭제합니다.

        테넌트마다 부여된 모든 타겟의 테넌트 타겟을 동시에 삭제하고, 모두 끝나 삭제가 확인된 뒤에야
        테넌트 자체를 삭제합니다. 테넌트 타겟 삭제 중 하나라도 오류가 있으면 그 테넌트의 삭제는
        건너뛰고 다음 테넌트로 넘어갑니다.

        Returns:
            테넌트마다 하나씩 TaskResult. 건너뛴 테넌트의 error에는 하위 오류가 모두 담깁니다.
        """
        results = []
        for tenant_name in tenant_names:
            try:
                targets = self.access_service.list_grants(tenant_name)
                child_results = self.tenant_target_service.delete_tenant_targets(
                    tenant_name, [g.target for g in targets], policy=self.child_policy
                )
            except GatewayError as e:
                logger.warning("Could not list targets of tenant '%s': %s", tenant_name, e)
                results.append(TaskResult(tenant_name, error=str(e)))
                continue

            child_errors = collect_errors(child_results)
            if child_errors and self.parent_policy == FailurePolicy.FAIL_FAST:
                logger.warning("Tenant '%s' was not deleted because its tenant targets failed.", tenant_name)
                results.append(TaskResult(tenant_name, error="\n".join(child_errors)))
                continue

            try:
                self.delete_tenant(tenant_name)
                results.append(TaskResult(tenant_name, error="\n".join(child_errors)))
            except GatewayError as e:
                results.append(TaskResult(tenant_name, error=str(e)))
        return results

    def get_user_credentials(self, tenant_name: str) -> Dict[str, Any]:
        """
        테넌트의 접속 자격증명(토큰, CA 인증서, 기본 네임스페이스)을 조회합니다.

        파일로 저장하는 일은 호출자의 몫입니다.

        Raises:
            TenantNotReadyError: 아직 토큰 시크릿이 연결되지 않았을 때.
        """
        service_account = self.tenant_repo.get_service_account(labels.tenant_user_name(tenant_name))
        if not service_account.secrets:
            raise TenantNotReadyError(f"Tenant '{tenant_name}' has no credentials yet.")

        secret = self.secret_repo.get_secret(self.settings.TENANT_NAMESPACE, service_account.secrets[0].name)
        default_target = (service_account.metadata.labels or {}).get(labels.DEFAULT_TARGET_LABEL)
        return {
            "tenant": tenant_name,
            "namespace": labels.tenant_target_name(tenant_name, default_target) if default_target else None,
            "token": manifest_builder.decode_secret_value(secret, "token"),
            "ca_crt": manifest_builder.decode_secret_value(secret, "ca.crt"),
        }
