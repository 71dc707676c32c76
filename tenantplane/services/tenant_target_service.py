import logging
from typing import Any, Dict, List, Optional

from tenantplane.cluster import labels
from tenantplane.cluster.models import ResourceLimits, Target
from tenantplane.config import Settings, get_settings
from tenantplane.repositories.interfaces import IPodRepository, ITenantTargetRepository
from tenantplane.services.access_service import AccessService
from tenantplane.services.exceptions import AuthorizationError, GatewayError, ObjectNotFoundError, TargetNotGrantedError
from tenantplane.utils import manifest_builder
from tenantplane.utils.removal_watcher import RemovalWatcher, delete_and_confirm
from tenantplane.utils.task_group import FailurePolicy, TaskGroup, TaskResult

logger = logging.getLogger(__name__)

QUOTA_KEYS = {
    "cpu": ("limits.cpu", "requests.cpu"),
    "memory": ("limits.memory", "requests.memory"),
    "storage": ("limits.ephemeral-storage", "requests.ephemeral-storage"),
}


class TenantTargetService:
    """테넌트 타겟(타겟 하나에 대한 테넌트 전용 네임스페이스)의 생성, 조회, 수정, 삭제를 담당합니다."""

    def __init__(
        self,
        tenant_target_repo: ITenantTargetRepository,
        pod_repo: IPodRepository,
        access_service: AccessService,
        settings: Settings = None,
        watcher: RemovalWatcher = None,
    ):
        self.tenant_target_repo = tenant_target_repo
        self.pod_repo = pod_repo
        self.access_service = access_service
        self.settings = settings or get_settings()
        self.watcher = watcher or RemovalWatcher(self.settings.REMOVAL_POLL_INTERVAL, self.settings.REMOVAL_TIMEOUT)

    def create_tenant_target(
        self,
        tenant_name: str,
        target_name: str,
        cpu: Optional[str] = None,
        memory: Optional[str] = None,
        storage: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        테넌트에게 부여된 타겟 위에 테넌트 타겟을 생성합니다.

        네임스페이스, 리소스 쿼터, 역할, 역할 바인딩, 네트워크 정책, 네임스페이스 전용 ServiceAccount를
        순서대로 생성합니다. 중간에 실패하면 그 자리에서 중단하며, 이미 만든 객체는 되돌리지 않습니다.

        Args:
            tenant_name: 테넌트 이름.
            target_name: 부여된 타겟 이름.
            cpu, memory, storage: 쿼터 값. 생략하면 설정의 기본값을 사용합니다.

        Returns:
            생성된 테넌트 타겟의 이름과 쿼터를 담은 딕셔너리.

        Raises:
            TargetNotGrantedError: 타겟이 테넌트에게 부여되지 않았을 때.
            InvalidQuantityError: 쿼터 값 형식이 잘못되었을 때.
            GatewayError: 객체 생성 중 클러스터 API 호출이 실패했을 때.
        """
        grant = self.access_service.find_grant(tenant_name, target_name)
        target = Target(grant.target, grant.access_type)
        limits = ResourceLimits(
            cpu=cpu or self.settings.DEFAULT_CPU,
            memory=memory or self.settings.DEFAULT_MEMORY,
            storage=storage or self.settings.DEFAULT_STORAGE,
        )

        # 객체를 만들기 전에 쿼터 값부터 검증
        namespace = labels.tenant_target_name(tenant_name, target.name)
        quota = manifest_builder.new_resource_quota(namespace, limits)

        self.tenant_target_repo.create_namespace(manifest_builder.new_tenant_target_namespace(tenant_name, target))
        self.tenant_target_repo.create_resource_quota(namespace, quota)
        self.tenant_target_repo.create_role(namespace, manifest_builder.new_tenant_target_role(namespace))
        self.tenant_target_repo.create_role_binding(
            namespace,
            manifest_builder.new_tenant_target_role_binding(namespace, tenant_name, self.settings.TENANT_NAMESPACE),
        )
        self.tenant_target_repo.create_network_policy(namespace, manifest_builder.new_network_policy(namespace))
        self.tenant_target_repo.create_service_account(namespace, manifest_builder.new_tenant_target_user(namespace))

        logger.info("Tenant target '%s' created.", namespace)
        return {"name": namespace, "target": target.to_dict(), "cpu": limits.cpu, "memory": limits.memory, "storage": limits.storage}

    def get_tenant_target(self, tenant_name: str, target_name: str) -> Dict[str, Any]:
        """
        테넌트 타겟의 상태, 쿼터 한도와 사용량, 파드 수를 조회합니다.

        Raises:
            ObjectNotFoundError: 네임스페이스나 쿼터가 없을 때.
        """
        namespace_name = labels.tenant_target_name(tenant_name, target_name)
        namespace = self.tenant_target_repo.get_namespace(namespace_name)
        quota = self.tenant_target_repo.get_resource_quota(namespace_name, labels.quota_name(namespace_name))
        pods = self.pod_repo.list_pods(namespace_name)

        hard = quota.spec.hard or {}
        used = (quota.status.used if quota.status else None) or {}
        return {
            "name": namespace.metadata.name,
            "status": namespace.status.phase if namespace.status else None,
            "limits": {
                resource: {"limit": hard.get(limit_key), "request": hard.get(request_key)}
                for resource, (limit_key, request_key) in QUOTA_KEYS.items()
            },
            "used": {resource: used.get(limit_key) for resource, (limit_key, _) in QUOTA_KEYS.items()},
            "pods": len(pods),
        }

    def list_tenant_targets(self, tenant_name: str) -> List[Dict[str, Any]]:
        """테넌트 소유의 모든 테넌트 타겟과 각 쿼터 한도를 조회합니다."""
        namespaces = self.tenant_target_repo.list_namespaces(label_selector=f"{labels.TENANT_LABEL}={tenant_name}")

        results = []
        for namespace in namespaces:
            name = namespace.metadata.name
            try:
                hard = self.tenant_target_repo.get_resource_quota(name, labels.quota_name(name)).spec.hard or {}
            except ObjectNotFoundError:
                hard = {}
            results.append({
                "name": name,
                "status": namespace.status.phase if namespace.status else None,
                "cpu": hard.get("limits.cpu", "None"),
                "memory": hard.get("limits.memory", "None"),
                "storage": hard.get("requests.ephemeral-storage", "None"),
            })
        return results

    def update_tenant_target(
        self,
        tenant_name: str,
        target_name: str,
        cpu: Optional[str] = None,
        memory: Optional[str] = None,
        storage: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        테넌트 타겟의 쿼터를 바꾸고, 스케줄링 어노테이션, 역할, 네트워크 정책을 현재 규칙으로 다시 맞춥니다.

        네트워크 정책이 없으면 만들고, 하나면 교체하며, 둘 이상이면 손대지 않습니다.

        Raises:
            TargetNotGrantedError: 타겟이 테넌트에게 부여되지 않았을 때.
            ObjectNotFoundError: 테넌트 타겟이 없을 때.
        """
        grant = self.access_service.find_grant(tenant_name, target_name)
        target = Target(grant.target, grant.access_type)
        namespace_name = labels.tenant_target_name(tenant_name, target.name)

        namespace = self.tenant_target_repo.get_namespace(namespace_name)
        quota = self.tenant_target_repo.get_resource_quota(namespace_name, labels.quota_name(namespace_name))
        policies = self.tenant_target_repo.list_network_policies(namespace_name)

        hard = dict(quota.spec.hard or {})
        hard.update(manifest_builder.quota_hard_limits(ResourceLimits(cpu=cpu, memory=memory, storage=storage)))
        quota.spec.hard = hard

        annotations = dict(namespace.metadata.annotations or {})
        annotations[labels.NODE_SELECTOR_ANNOTATION] = manifest_builder.node_selector_for(target)
        namespace.metadata.annotations = annotations

        policy = manifest_builder.new_network_policy(namespace_name)
        if len(policies) == 0:
            self.tenant_target_repo.create_network_policy(namespace_name, policy)
        elif len(policies) == 1:
            policy.metadata.name = policies[0].metadata.name
            policy.metadata.resource_version = policies[0].metadata.resource_version
            self.tenant_target_repo.update_network_policy(namespace_name, policy)
        else:
            logger.warning("More than one network policy in '%s', leaving them unchanged.", namespace_name)

        self.tenant_target_repo.update_resource_quota(namespace_name, quota)
        self.tenant_target_repo.update_role(namespace_name, manifest_builder.new_tenant_target_role(namespace_name))
        self.tenant_target_repo.update_namespace(namespace)

        logger.info("Tenant target '%s' updated.", namespace_name)
        return {"name": namespace_name, "limits": hard}

    def delete_tenant_targets(
        self,
        tenant_name: str,
        target_names: List[str],
        policy: FailurePolicy = FailurePolicy.BEST_EFFORT,
    ) -> List[TaskResult]:
        """
        여러 테넌트 타겟을 동시에 삭제합니다.

        타겟마다 네임스페이스 삭제를 요청하고 네임스페이스가 더 이상 조회되지 않는 것을 확인합니다.
        이미 없는 네임스페이스는 삭제된 것으로 봅니다. 모든 작업이 끝난 뒤, 삭제가 확인된 타겟의 권한을
        한 번의 라벨 갱신으로 회수합니다. 부여되지 않은 타겟은 아무것도 삭제하지 않고 실패로 기록합니다.

        Args:
            tenant_name: 테넌트 이름.
            target_names: 삭제할 타겟 이름 목록.
            policy: BEST_EFFORT면 실패와 상관없이 모든 타겟을 처리하고, FAIL_FAST면 첫 실패 후 나머지를 멈춥니다.

        Returns:
            타겟마다 하나씩, 입력 순서대로 TaskResult. 성공한 항목의 error는 빈 문자열입니다.

        Raises:
            GatewayError: 테넌트의 권한 목록을 읽지 못했을 때. 이때는 아무것도 삭제하지 않습니다.
        """
        granted = {grant.target for grant in self.access_service.list_grants(tenant_name)}
        group = TaskGroup(policy=policy, max_workers=self.settings.MAX_WORKERS)

        def delete_one(target_name: str) -> None:
            if target_name not in granted:
                raise TargetNotGrantedError(f"Not a valid target for this tenant: {target_name}")
            namespace_name = labels.tenant_target_name(tenant_name, target_name)
            try:
                delete_and_confirm(
                    lambda: self.tenant_target_repo.delete_namespace(namespace_name),
                    lambda: self.tenant_target_repo.get_namespace(namespace_name),
                    self.watcher,
                    f"tenant target {namespace_name}",
                    group.cancel_event,
                )
            except ObjectNotFoundError:
                logger.info("Tenant target '%s' does not exist, revoking the grant only.", namespace_name)

        results = group.run(delete_one, target_names)
        removed = list(dict.fromkeys(result.name for result in results if result.ok))
        if not removed:
            return results
        try:
            self.access_service.revoke_targets(tenant_name, removed)
        except (GatewayError, AuthorizationError) as e:
            logger.warning("Tenant targets %s were removed but their grants were not revoked: %s", removed, e)
            return [
                TaskResult(result.name, error=f"{result.name}: removed but grant not revoked: {e}")
                if result.ok else result
                for result in results
            ]
        return results
