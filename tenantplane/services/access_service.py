import logging
from typing import Callable, Dict, List, Optional

from kubernetes.client import V1ServiceAccount

from tenantplane.cluster import labels
from tenantplane.cluster.models import AccessGrant, AccessType, Target
from tenantplane.config import Settings, get_settings
from tenantplane.repositories.interfaces import ITenantRepository
from tenantplane.services.exceptions import ConflictError, GatewayError, InvalidTargetError, TargetNotGrantedError
from tenantplane.services.target_service import TargetService, targets_from_tenant_labels

logger = logging.getLogger(__name__)


def _access_label(target: Target) -> str:
    prefix = labels.NODE_ACCESS_PREFIX if target.access_type == AccessType.NODE else labels.GROUP_ACCESS_PREFIX
    return prefix + target.name


class AccessService:
    """
    테넌트와 타겟 사이의 권한 관계(AccessGrant)와 기본 타겟을 관리합니다.

    별도 저장소 없이 테넌트 ServiceAccount의 라벨에 상태를 저장합니다. 권한 하나가 라벨 키 하나
    ('<접근 접두사><타겟 이름>' = "true")이므로 같은 (테넌트, 타겟) 쌍은 최대 한 번만 존재합니다.
    """

    def __init__(self, tenant_repo: ITenantRepository, target_service: TargetService, settings: Settings = None):
        self.tenant_repo = tenant_repo
        self.target_service = target_service
        self.settings = settings or get_settings()

    def is_valid_target(self, target_name: str, tenant_name: Optional[str] = None) -> bool:
        """
        타겟 이름이 유효한지 확인합니다. 판단할 수 없으면 False를 반환합니다.

        이름에 구분자('_')가 들어 있으면 카탈로그와 상관없이 False입니다.

        Args:
            target_name: 확인할 타겟 이름.
            tenant_name: 주어지면 이 테넌트에게 부여된 타겟 중에서, 없으면 클러스터 전체에서 찾습니다.
        """
        if not target_name or labels.GRANT_LIST_DELIMITER in target_name:
            return False
        try:
            targets = self.target_service.list_targets(tenant_name)
        except GatewayError as e:
            logger.warning("Could not list targets to validate '%s': %s", target_name, e)
            return False
        return any(t.name == target_name for t in targets)

    def list_grants(self, tenant_name: str) -> List[AccessGrant]:
        """테넌트에게 부여된 모든 권한을 조회합니다."""
        return [
            AccessGrant(tenant_name, target.name, target.access_type)
            for target in self.target_service.list_targets(tenant_name)
        ]

    def find_grant(self, tenant_name: str, target_name: str) -> AccessGrant:
        """
        테넌트의 특정 타겟 권한을 조회합니다.

        Raises:
            TargetNotGrantedError: 타겟이 이 테넌트에게 부여되지 않았을 때.
            ObjectNotFoundError: 테넌트가 없을 때.
            GatewayError: 권한을 조회하지 못했을 때. 거부로 바꾸지 않고 그대로 올립니다.
        """
        if target_name and labels.GRANT_LIST_DELIMITER not in target_name:
            for grant in self.list_grants(tenant_name):
                if grant.target == target_name:
                    return grant
        raise TargetNotGrantedError(f"Not a valid target for this tenant: {target_name}")

    def grant_target(self, tenant_name: str, target_name: str) -> AccessGrant:
        """
        테넌트에게 타겟 권한을 부여합니다. 이미 부여된 타겟이면 아무것도 바뀌지 않습니다.

        테넌트에게 기본 타겟이 아직 없으면 이 타겟을 기본 타겟으로 설정합니다.

        Raises:
            InvalidTargetError: 클러스터에 없는 타겟이거나 이름에 구분자가 들어 있을 때.
            ConflictError: 동시 수정 때문에 재시도 횟수 안에 갱신하지 못했을 때.
        """
        if not self.is_valid_target(target_name):
            raise InvalidTargetError(f"Invalid target: {target_name}")
        target = self.target_service.find_target(target_name)

        def grant(tenant_labels: Dict[str, str]) -> None:
            tenant_labels[_access_label(target)] = labels.GRANTED
            if not tenant_labels.get(labels.DEFAULT_TARGET_LABEL):
                tenant_labels[labels.DEFAULT_TARGET_LABEL] = target.name

        self._update_tenant_labels(tenant_name, grant)
        logger.info("Granted %s target '%s' to tenant '%s'.", target.access_type.value, target.name, tenant_name)
        return AccessGrant(tenant_name, target.name, target.access_type)

    def revoke_target(self, tenant_name: str, target_name: str) -> None:
        """
        테넌트의 타겟 권한을 회수합니다.

        회수한 타겟이 기본 타겟이었다면 남은 타겟 중 이름순으로 첫 번째를 새 기본 타겟으로 삼고,
        남은 타겟이 없으면 기본 타겟 라벨을 지웁니다.

        Raises:
            TargetNotGrantedError: 이 테넌트에게 부여된 적이 없는 타겟일 때. 이때 라벨은 바뀌지 않습니다.
        """
        self.revoke_targets(tenant_name, [target_name])

    def revoke_targets(self, tenant_name: str, target_names: List[str]) -> None:
        """
        여러 타겟 권한을 한 번의 라벨 갱신으로 회수합니다.

        기본 타겟 재지정 규칙은 revoke_target과 같고, 모든 회수가 끝난 뒤 한 번만 적용됩니다.

        Raises:
            TargetNotGrantedError: 부여되지 않은 타겟이 하나라도 있을 때. 이때 라벨은 바뀌지 않습니다.
        """
        if not target_names:
            return
        grants = {grant.target: grant for grant in self.list_grants(tenant_name)}
        missing = [name for name in target_names if name not in grants]
        if missing:
            raise TargetNotGrantedError(f"Not a valid target for this tenant: {', '.join(map(str, missing))}")
        targets = [Target(name, grants[name].access_type) for name in target_names]
        revoked_names = {t.name for t in targets}

        def revoke(tenant_labels: Dict[str, str]) -> None:
            for target in targets:
                tenant_labels.pop(_access_label(target), None)
            if tenant_labels.get(labels.DEFAULT_TARGET_LABEL) in revoked_names:
                remaining = sorted(t.name for t in targets_from_tenant_labels(tenant_labels))
                if remaining:
                    tenant_labels[labels.DEFAULT_TARGET_LABEL] = remaining[0]
                else:
                    tenant_labels.pop(labels.DEFAULT_TARGET_LABEL, None)

        self._update_tenant_labels(tenant_name, revoke)
        logger.info("Revoked targets %s from tenant '%s'.", sorted(revoked_names), tenant_name)

    def get_default_target(self, tenant_name: str) -> Optional[str]:
        """테넌트의 기본 타겟 이름을 반환합니다. 설정되지 않았으면 None."""
        service_account = self.tenant_repo.get_service_account(labels.tenant_user_name(tenant_name))
        return (service_account.metadata.labels or {}).get(labels.DEFAULT_TARGET_LABEL) or None

    def set_default_target(self, tenant_name: str, target_name: str) -> None:
        """기본 타겟을 바꿉니다. 부여된 타겟인지는 호출자가 확인해야 합니다."""

        def set_default(tenant_labels: Dict[str, str]) -> None:
            tenant_labels[labels.DEFAULT_TARGET_LABEL] = target_name

        self._update_tenant_labels(tenant_name, set_default)
        logger.info("Default target of tenant '%s' set to '%s'.", tenant_name, target_name)

    def _update_tenant_labels(self, tenant_name: str, mutate: Callable[[Dict[str, str]], None]) -> V1ServiceAccount:
        # 읽은 객체의 resourceVersion으로 교체하므로, 그 사이 다른 쓰기가 있었다면 409가 돌아옵니다.
        # 그때는 다시 읽어서 같은 변경을 다시 적용합니다.
        user_name = labels.tenant_user_name(tenant_name)
        retries = self.settings.GRANT_UPDATE_RETRIES

        for attempt in range(1, retries + 1):
            service_account = self.tenant_repo.get_service_account(user_name)
            current = dict(service_account.metadata.labels or {})
            updated = dict(current)
            mutate(updated)
            if updated == current:
                return service_account

            service_account.metadata.labels = updated
            try:
                return self.tenant_repo.update_service_account(service_account)
            except ConflictError:
                logger.info("Tenant '%s' changed concurrently, retrying (%d/%d).", tenant_name, attempt, retries)

        raise ConflictError(
            f"Could not update tenant '{tenant_name}' after {retries} attempts due to concurrent changes.",
            status=409,
        )
