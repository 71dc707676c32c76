import logging
from typing import Any, Dict, List

from kubernetes.client import V1Pod, V1Secret

from tenantplane.cluster import labels
from tenantplane.cluster.models import PodSpec
from tenantplane.config import Settings, get_settings
from tenantplane.repositories.interfaces import IPodRepository, ISecretRepository
from tenantplane.services.access_service import AccessService
from tenantplane.services.exceptions import NotADeploySecretError
from tenantplane.utils import manifest_builder
from tenantplane.utils.removal_watcher import RemovalWatcher, delete_and_confirm
from tenantplane.utils.task_group import FailurePolicy, TaskGroup, TaskResult

logger = logging.getLogger(__name__)


def _pod_summary(pod: V1Pod) -> Dict[str, Any]:
    containers = pod.spec.containers if pod.spec else []
    return {
        "name": pod.metadata.name,
        "namespace": pod.metadata.namespace,
        "status": pod.status.phase if pod.status else None,
        "node": pod.spec.node_name if pod.spec else None,
        "image": containers[0].image if containers else None,
        "created_at": pod.metadata.creation_timestamp.isoformat() if pod.metadata.creation_timestamp else None,
    }


def _secret_summary(secret: V1Secret) -> Dict[str, Any]:
    return {
        "name": secret.metadata.name,
        "namespace": secret.metadata.namespace,
        "type": secret.type,
    }


class WorkloadService:
    """테넌트 타겟 안의 파드와 시크릿을 관리합니다. 모든 메서드는 이미 결정된 네임스페이스를 받습니다."""

    def __init__(
        self,
        pod_repo: IPodRepository,
        secret_repo: ISecretRepository,
        access_service: AccessService,
        settings: Settings = None,
        watcher: RemovalWatcher = None,
    ):
        self.pod_repo = pod_repo
        self.secret_repo = secret_repo
        self.access_service = access_service
        self.settings = settings or get_settings()
        self.watcher = watcher or RemovalWatcher(self.settings.REMOVAL_POLL_INTERVAL, self.settings.REMOVAL_TIMEOUT)

    def _tenant_namespaces(self, tenant_name: str) -> List[str]:
        return [labels.tenant_target_name(tenant_name, g.target) for g in self.access_service.list_grants(tenant_name)]

    def _delete_many(self, names: List[str], delete_one) -> List[TaskResult]:
        group = TaskGroup(policy=FailurePolicy.BEST_EFFORT, max_workers=self.settings.MAX_WORKERS)
        return group.run(lambda name: delete_one(name, group.cancel_event), names)

    # --------------------------------------------------------------------------
    ## 파드
    # --------------------------------------------------------------------------

    def create_pod(self, namespace: str, spec: PodSpec) -> Dict[str, Any]:
        """
        테넌트 타겟에 파드를 생성합니다.

        Raises:
            InvalidQuantityError: 리소스 값 형식이 잘못되었을 때.
            GatewayError: 생성 요청이 실패했을 때.
        """
        pod = self.pod_repo.create_pod(namespace, manifest_builder.new_pod(spec, namespace))
        logger.info("Pod '%s' created in '%s'.", spec.name, namespace)
        return _pod_summary(pod)

    def get_pod(self, namespace: str, pod_name: str) -> Dict[str, Any]:
        return _pod_summary(self.pod_repo.get_pod(namespace, pod_name))

    def list_pods(self, tenant_name: str) -> List[Dict[str, Any]]:
        """테넌트에게 부여된 모든 타겟의 파드를 조회합니다."""
        pods = []
        for namespace in self._tenant_namespaces(tenant_name):
            pods.extend(_pod_summary(pod) for pod in self.pod_repo.list_pods(namespace))
        return pods

    def get_pod_logs(self, namespace: str, pod_name: str) -> str:
        return self.pod_repo.read_pod_log(namespace, pod_name)

    def delete_pods(self, namespace: str, pod_names: List[str]) -> List[TaskResult]:
        """
        여러 파드를 동시에 삭제하고, 각 파드가 더 이상 조회되지 않을 때까지 기다립니다.

        한 파드의 실패가 다른 파드의 삭제를 멈추지 않습니다.

        Returns:
            파드마다 하나씩, 입력 순서대로 TaskResult. 성공한 항목의 error는 빈 문자열입니다.
        """
        def delete_one(pod_name, cancel_event):
            delete_and_confirm(
                lambda: self.pod_repo.delete_pod(namespace, pod_name),
                lambda: self.pod_repo.get_pod(namespace, pod_name),
                self.watcher,
                f"pod {namespace}/{pod_name}",
                cancel_event,
            )

        return self._delete_many(pod_names, delete_one)

    # --------------------------------------------------------------------------
    ## 시크릿
    # --------------------------------------------------------------------------

    def create_secret(self, namespace: str, secret_name: str, secret_data: str) -> Dict[str, Any]:
        secret = self.secret_repo.create_secret(
            namespace, manifest_builder.new_secret(namespace, secret_name, secret_data)
        )
        logger.info("Secret '%s' created in '%s'.", secret_name, namespace)
        return _secret_summary(secret)

    def create_deploy_secret(self, namespace: str, secret_name: str, docker_config: bytes) -> Dict[str, Any]:
        """
        프라이빗 레지스트리용 deploy-secret을 생성합니다.

        Args:
            namespace: 테넌트 타겟 네임스페이스.
            secret_name: 시크릿 이름.
            docker_config: dockerconfigjson 파일 내용 (원본 바이트).
        """
        secret = self.secret_repo.create_secret(
            namespace, manifest_builder.new_deploy_secret(namespace, secret_name, docker_config)
        )
        logger.info("Deploy secret '%s' created in '%s'.", secret_name, namespace)
        return _secret_summary(secret)

    def get_secret(self, namespace: str, secret_name: str) -> Dict[str, Any]:
        return _secret_summary(self.secret_repo.get_secret(namespace, secret_name))

    def get_deploy_secret(self, namespace: str, secret_name: str) -> Dict[str, Any]:
        """
        deploy-secret을 조회하고 레지스트리 자격증명 내용을 함께 반환합니다.

        Raises:
            NotADeploySecretError: dockerconfigjson 데이터가 없는 일반 시크릿일 때.
        """
        secret = self.secret_repo.get_secret(namespace, secret_name)
        docker_config = manifest_builder.decode_secret_value(secret, labels.DOCKER_CONFIG_KEY)
        if docker_config is None:
            raise NotADeploySecretError(f"Secret '{secret_name}' is not a deploy-secret.")
        return {**_secret_summary(secret), "data": docker_config}

    def list_secrets(self, tenant_name: str) -> List[Dict[str, Any]]:
        """테넌트에게 부여된 모든 타겟의 시크릿을 조회합니다."""
        secrets = []
        for namespace in self._tenant_namespaces(tenant_name):
            secrets.extend(_secret_summary(secret) for secret in self.secret_repo.list_secrets(namespace))
        return secrets

    def delete_secrets(self, namespace: str, secret_names: List[str]) -> List[TaskResult]:
        """여러 시크릿을 동시에 삭제하고 삭제가 확인될 때까지 기다립니다."""
        def delete_one(secret_name, cancel_event):
            delete_and_confirm(
                lambda: self.secret_repo.delete_secret(namespace, secret_name),
                lambda: self.secret_repo.get_secret(namespace, secret_name),
                self.watcher,
                f"secret {namespace}/{secret_name}",
                cancel_event,
            )

        return self._delete_many(secret_names, delete_one)
