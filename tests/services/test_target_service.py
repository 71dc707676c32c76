# tests/services/test_target_service.py
import pytest
from unittest.mock import MagicMock
from kubernetes.client import V1Node, V1ObjectMeta

from tenantplane.cluster import labels
from tenantplane.cluster.models import AccessType, Target
from tenantplane.repositories.interfaces import INodeRepository
from tenantplane.services.exceptions import *
from tenantplane.services.target_service import TargetService, targets_from_tenant_labels

# ===================================================================
#  Fixture 설정
# ===================================================================

def make_node(name, **groups):
    """hostname 라벨과 그룹 라벨(group=값)을 가진 V1Node를 만듭니다."""
    node_labels = {labels.NODE_HOSTNAME_LABEL: name}
    node_labels.update({labels.NODE_GROUP_PREFIX + g: v for g, v in groups.items()})
    return V1Node(metadata=V1ObjectMeta(name=name, labels=node_labels))

@pytest.fixture
def mock_node_repo() -> MagicMock:
    """INodeRepository에 대한 모의 객체를 생성합니다."""
    return MagicMock(spec=INodeRepository)

@pytest.fixture
def target_service(mock_node_repo, fake_tenant_repo) -> TargetService:
    return TargetService(mock_node_repo, fake_tenant_repo)

# ===================================================================
#  list_targets 테스트 스위트
# ===================================================================
class TestListTargets:
    def test_cluster_wide_discovers_nodes_and_groups(self, target_service, mock_node_repo):
        """노드마다 NODE 타겟 하나, "false"가 아닌 그룹 라벨마다 GROUP 타겟 하나를 만드는지 테스트합니다."""
        # === Arrange ===
        # 시나리오: n1은 gpu 그룹에 속하고, n2는 gpu 라벨이 "false"
        mock_node_repo.list_nodes.return_value = [make_node("n1", gpu="true"), make_node("n2", gpu="false")]

        # === Act ===
        targets = target_service.list_targets()

        # === Assert ===
        assert set(targets) == {
            Target("n1", AccessType.NODE),
            Target("n2", AccessType.NODE),
            Target("gpu", AccessType.GROUP),
        }

    def test_group_is_listed_once(self, target_service, mock_node_repo):
        """여러 노드가 같은 그룹에 속해도 GROUP 타겟은 한 번만 나오는지 테스트합니다."""
        mock_node_repo.list_nodes.return_value = [make_node("n1", gpu="true"), make_node("n2", gpu="true")]

        targets = target_service.list_targets()

        assert [t for t in targets if t.access_type == AccessType.GROUP] == [Target("gpu", AccessType.GROUP)]

    def test_group_with_only_false_labels_is_not_a_target(self, target_service, mock_node_repo):
        mock_node_repo.list_nodes.return_value = [make_node("n1", ssd="false")]

        assert target_service.list_targets() == [Target("n1", AccessType.NODE)]

    def test_tenant_scope_reads_grant_labels(self, target_service, fake_tenant_repo, mock_node_repo):
        """테넌트가 주어지면 노드를 조회하지 않고 권한 라벨만 읽는지 테스트합니다."""
        # === Arrange ===
        fake_tenant_repo.add_tenant("acme", {
            labels.NODE_ACCESS_PREFIX + "n1": "true",
            labels.GROUP_ACCESS_PREFIX + "gpu": "true",
            labels.DEFAULT_TARGET_LABEL: "n1",
        })

        # === Act ===
        targets = target_service.list_targets("acme")

        # === Assert ===
        assert set(targets) == {Target("n1", AccessType.NODE), Target("gpu", AccessType.GROUP)}
        mock_node_repo.list_nodes.assert_not_called()

    def test_gateway_error_propagates(self, target_service, mock_node_repo):
        """클러스터 조회 실패 시 부분 결과 없이 GatewayError가 전파되는지 테스트합니다."""
        mock_node_repo.list_nodes.side_effect = GatewayError("connection refused")

        with pytest.raises(GatewayError):
            target_service.list_targets()


def test_targets_from_tenant_labels_ignores_non_grant_values():
    tenant_labels = {
        labels.NODE_ACCESS_PREFIX + "n1": "true",
        labels.NODE_ACCESS_PREFIX + "n2": "false",
        "app": "tenant",
    }
    assert targets_from_tenant_labels(tenant_labels) == [Target("n1", AccessType.NODE)]

# ===================================================================
#  find_target 테스트 스위트
# ===================================================================
class TestFindTarget:
    def test_find_existing(self, target_service, mock_node_repo):
        mock_node_repo.list_nodes.return_value = [make_node("n1", gpu="true")]

        assert target_service.find_target("gpu") == Target("gpu", AccessType.GROUP)

    def test_find_missing_raises(self, target_service, mock_node_repo):
        mock_node_repo.list_nodes.return_value = [make_node("n1")]

        with pytest.raises(InvalidTargetError):
            target_service.find_target("n9")

# ===================================================================
#  타겟 그룹 관리 테스트 스위트
# ===================================================================
class TestTargetGroups:
    def test_create_group_labels_every_node(self, target_service, mock_node_repo):
        """목록의 노드는 "true", 나머지 노드는 "false"로 라벨링하는지 테스트합니다."""
        # === Arrange ===
        n1, n2 = make_node("n1"), make_node("n2")
        mock_node_repo.list_nodes.return_value = [n1, n2]

        # === Act ===
        created = target_service.create_target_group("fast", ["n1"])

        # === Assert ===
        assert created is True
        assert mock_node_repo.update_node.call_count == 2
        assert n1.metadata.labels[labels.NODE_GROUP_PREFIX + "fast"] == "true"
        assert n2.metadata.labels[labels.NODE_GROUP_PREFIX + "fast"] == "false"

    def test_create_existing_target_is_noop(self, target_service, mock_node_repo):
        """같은 이름의 타겟이 이미 있으면 노드 라벨을 건드리지 않고 False를 반환하는지 테스트합니다."""
        mock_node_repo.list_nodes.return_value = [make_node("n1", gpu="true")]

        assert target_service.create_target_group("gpu", ["n1"]) is False
        mock_node_repo.update_node.assert_not_called()

    @pytest.mark.parametrize("group_name", ["", "my_group"])
    def test_create_rejects_invalid_name(self, target_service, mock_node_repo, group_name):
        with pytest.raises(InvalidTargetError):
            target_service.create_target_group(group_name, ["n1"])
        mock_node_repo.update_node.assert_not_called()

    def test_delete_group_removes_label_only_where_present(self, target_service, mock_node_repo):
        # === Arrange ===
        n1, n2, n3 = make_node("n1", gpu="true"), make_node("n2", gpu="false"), make_node("n3")
        mock_node_repo.list_nodes.return_value = [n1, n2, n3]

        # === Act ===
        target_service.delete_target_group("gpu")

        # === Assert ===
        # n3에는 라벨이 없었으므로 갱신 대상이 아님
        assert mock_node_repo.update_node.call_count == 2
        assert all(labels.NODE_GROUP_PREFIX + "gpu" not in n.metadata.labels for n in (n1, n2))

    def test_delete_missing_group_raises(self, target_service, mock_node_repo):
        mock_node_repo.list_nodes.return_value = [make_node("n1")]

        # n1은 NODE 타겟이므로 그룹으로 삭제할 수 없음
        with pytest.raises(InvalidTargetError):
            target_service.delete_target_group("n1")
