# tests/services/test_workload_service.py
import base64
import json
import pytest
from unittest.mock import MagicMock
from kubernetes.client import V1Container, V1ObjectMeta, V1Pod, V1PodSpec, V1PodStatus, V1Secret

from tenantplane.cluster import labels
from tenantplane.cluster.models import AccessGrant, AccessType, PodSpec
from tenantplane.repositories.interfaces import IPodRepository, ISecretRepository
from tenantplane.services.access_service import AccessService
from tenantplane.services.exceptions import *
from tenantplane.services.workload_service import WorkloadService
from tenantplane.utils.removal_watcher import RemovalWatcher

# ===================================================================
#  Fixture 설정
# ===================================================================

def make_pod(name, namespace, phase="Running"):
    return V1Pod(
        metadata=V1ObjectMeta(name=name, namespace=namespace),
        spec=V1PodSpec(containers=[V1Container(name=name, image="nginx:1.25")], node_name="n1"),
        status=V1PodStatus(phase=phase),
    )

@pytest.fixture
def mock_pod_repo() -> MagicMock:
    """IPodRepository에 대한 모의 객체를 생성합니다."""
    return MagicMock(spec=IPodRepository)

@pytest.fixture
def mock_secret_repo() -> MagicMock:
    return MagicMock(spec=ISecretRepository)

@pytest.fixture
def mock_access_service() -> MagicMock:
    service = MagicMock(spec=AccessService)
    service.list_grants.return_value = [
        AccessGrant("acme", "n1", AccessType.NODE),
        AccessGrant("acme", "gpu", AccessType.GROUP),
    ]
    return service

@pytest.fixture
def workload_service(mock_pod_repo, mock_secret_repo, mock_access_service, settings) -> WorkloadService:
    watcher = RemovalWatcher(poll_interval=0, timeout=0.05)
    return WorkloadService(mock_pod_repo, mock_secret_repo, mock_access_service, settings, watcher)

# ===================================================================
#  파드 테스트 스위트
# ===================================================================
class TestPods:
    def test_create_pod(self, workload_service, mock_pod_repo):
        # === Arrange ===
        spec = PodSpec(name="web", image="nginx:1.25", secrets=["db-password"], deploy_secret="registry", cpu="1")
        mock_pod_repo.create_pod.side_effect = lambda namespace, pod: pod

        # === Act ===
        result = workload_service.create_pod("acme-n1", spec)

        # === Assert ===
        pod = mock_pod_repo.create_pod.call_args.args[1]
        assert pod.metadata.labels == {labels.NETWORK_LABEL: "acme-n1"}
        assert pod.spec.image_pull_secrets[0].name == "registry"
        assert result["name"] == "web"
        assert result["image"] == "nginx:1.25"

    def test_list_pods_spans_every_granted_target(self, workload_service, mock_pod_repo):
        """테넌트에게 부여된 모든 타겟의 네임스페이스에서 파드를 모으는지 테스트합니다."""
        mock_pod_repo.list_pods.side_effect = lambda namespace: [make_pod(f"p-{namespace}", namespace)]

        pods = workload_service.list_pods("acme")

        assert [p["namespace"] for p in pods] == ["acme-n1", "acme-gpu"]
        assert pods[0]["status"] == "Running"

    def test_delete_pods_reports_per_pod_errors(self, workload_service, mock_pod_repo):
        """
        p1은 정상 삭제되고 p2는 삭제 요청이 거부되는 상황입니다.
        p2의 실패가 p1을 막지 않고, 결과는 입력 순서대로 ["", "<오류>"]여야 합니다.
        """
        # === Arrange ===
        def delete_pod(namespace, name):
            if name == "p2":
                raise GatewayError('pods "p2" is forbidden', status=403)
        mock_pod_repo.delete_pod.side_effect = delete_pod
        mock_pod_repo.get_pod.side_effect = ObjectNotFoundError("not found", status=404)

        # === Act ===
        results = workload_service.delete_pods("acme-n1", ["p1", "p2"])

        # === Assert ===
        assert [r.error for r in results] == ["", 'pods "p2" is forbidden']
        mock_pod_repo.get_pod.assert_called_once_with("acme-n1", "p1")

    def test_delete_pods_waits_for_disappearance(self, workload_service, mock_pod_repo):
        mock_pod_repo.get_pod.side_effect = [
            make_pod("p1", "acme-n1", phase="Running"),
            make_pod("p1", "acme-n1", phase="Succeeded"),
            ObjectNotFoundError("not found", status=404),
        ]

        results = workload_service.delete_pods("acme-n1", ["p1"])

        assert results[0].ok
        assert mock_pod_repo.get_pod.call_count == 3

    def test_unreachable_api_is_not_success(self, workload_service, mock_pod_repo):
        """조회가 404가 아닌 오류로 실패하면 삭제 성공으로 보지 않는지 테스트합니다."""
        mock_pod_repo.get_pod.side_effect = GatewayError("Cluster API unreachable: connection refused")

        results = workload_service.delete_pods("acme-n1", ["p1"])

        assert "unreachable" in results[0].error

# ===================================================================
#  시크릿 테스트 스위트
# ===================================================================
class TestSecrets:
    def test_create_secret_stores_value_under_secret_key(self, workload_service, mock_secret_repo):
        mock_secret_repo.create_secret.side_effect = lambda namespace, secret: secret

        workload_service.create_secret("acme-n1", "db-password", "hunter2")

        secret = mock_secret_repo.create_secret.call_args.args[1]
        assert secret.string_data == {"secret": "hunter2"}
        assert secret.type == "Opaque"

    def test_deploy_secret_round_trip(self, workload_service, mock_secret_repo):
        """deploy-secret을 만들고 다시 조회하면 원래 dockerconfigjson 내용이 나오는지 테스트합니다."""
        # === Arrange ===
        docker_config = json.dumps({"auths": {"registry.example.com": {"auth": "dXNlcjpwYXNz"}}}).encode()
        mock_secret_repo.create_secret.side_effect = lambda namespace, secret: secret

        # === Act ===
        workload_service.create_deploy_secret("acme-n1", "registry", docker_config)
        stored = mock_secret_repo.create_secret.call_args.args[1]
        mock_secret_repo.get_secret.return_value = stored
        result = workload_service.get_deploy_secret("acme-n1", "registry")

        # === Assert ===
        assert stored.type == "kubernetes.io/dockerconfigjson"
        assert base64.b64decode(stored.data[".dockerconfigjson"]) == docker_config
        assert result["data"] == docker_config.decode()

    def test_plain_secret_is_not_a_deploy_secret(self, workload_service, mock_secret_repo):
        mock_secret_repo.get_secret.return_value = V1Secret(
            metadata=V1ObjectMeta(name="db-password", namespace="acme-n1"),
            data={"secret": base64.b64encode(b"hunter2").decode()},
            type="Opaque",
        )

        with pytest.raises(NotADeploySecretError):
            workload_service.get_deploy_secret("acme-n1", "db-password")

    def test_delete_secrets(self, workload_service, mock_secret_repo):
        mock_secret_repo.get_secret.side_effect = ObjectNotFoundError("not found", status=404)

        results = workload_service.delete_secrets("acme-n1", ["a", "b"])

        assert [r.name for r in results] == ["a", "b"]
        assert all(r.ok for r in results)
        assert mock_secret_repo.delete_secret.call_count == 2
