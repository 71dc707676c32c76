# tests/utils/test_manifest_builder.py
import base64
import pytest

from tenantplane.cluster import labels
from tenantplane.cluster.models import AccessType, PodSpec, ResourceLimits, Target
from tenantplane.services.exceptions import InvalidQuantityError
from tenantplane.utils import manifest_builder


class TestTenantTargetObjects:
    @pytest.mark.parametrize("target, expected", [
        (Target("n1", AccessType.NODE), "kubernetes.io/hostname=n1"),
        (Target("gpu", AccessType.GROUP), "group.tenantplane.io/gpu=true"),
    ])
    def test_node_selector_for(self, target, expected):
        """타겟 종류에 따라 올바른 노드 셀렉터 문자열을 만드는지 테스트합니다."""
        assert manifest_builder.node_selector_for(target) == expected

    def test_quota_hard_limits_skips_missing_values(self):
        hard = manifest_builder.quota_hard_limits(ResourceLimits(cpu="500m", storage="10Gi"))

        assert hard == {
            "limits.cpu": "500m",
            "requests.cpu": "500m",
            "limits.ephemeral-storage": "10Gi",
            "requests.ephemeral-storage": "10Gi",
        }

    def test_invalid_quantity(self):
        with pytest.raises(InvalidQuantityError):
            manifest_builder.new_resource_quota("acme-n1", ResourceLimits(cpu="two"))

    def test_role_binding_covers_tenant_and_namespace_user(self):
        binding = manifest_builder.new_tenant_target_role_binding("acme-n1", "acme", "default")

        assert [(s.name, s.namespace) for s in binding.subjects] == [
            ("acme-user", "default"),
            ("acme-n1-user", "acme-n1"),
        ]
        assert binding.role_ref.name == "acme-n1-role"

    def test_network_policy_allows_only_same_namespace_pods(self):
        policy = manifest_builder.new_network_policy("acme-n1")

        peer = policy.spec.ingress[0]._from[0]
        assert peer.pod_selector.match_labels == {labels.NETWORK_LABEL: "acme-n1"}


class TestWorkloadObjects:
    def test_new_pod(self):
        """시크릿은 환경 변수로, deploy-secret은 imagePullSecrets로 연결되는지 테스트합니다."""
        # === Arrange ===
        spec = PodSpec(
            name="web", image="registry.example.com/web:1", secrets=["db-password"],
            deploy_secret="registry", memory="256Mi", always_restart=True, ports=[8080],
        )

        # === Act ===
        pod = manifest_builder.new_pod(spec, "acme-n1")

        # === Assert ===
        container = pod.spec.containers[0]
        assert container.env[0].name == "db-password"
        assert container.env[0].value_from.secret_key_ref.key == "secret"
        assert container.resources.limits == container.resources.requests == {"memory": "256Mi"}
        assert container.ports[0].container_port == 8080
        assert pod.spec.restart_policy == "Always"
        assert pod.spec.image_pull_secrets[0].name == "registry"
        assert pod.metadata.labels == {"network": "acme-n1"}

    def test_pod_without_optional_fields(self):
        pod = manifest_builder.new_pod(PodSpec(name="job", image="busybox"), "acme-n1")

        assert pod.spec.restart_policy is None
        assert pod.spec.image_pull_secrets is None
        assert pod.spec.containers[0].command is None

    def test_decode_secret_value(self):
        secret = manifest_builder.new_deploy_secret("acme-n1", "registry", b'{"auths": {}}')

        assert secret.data[".dockerconfigjson"] == base64.b64encode(b'{"auths": {}}').decode()
        assert manifest_builder.decode_secret_value(secret, ".dockerconfigjson") == '{"auths": {}}'
        assert manifest_builder.decode_secret_value(secret, "token") is None
