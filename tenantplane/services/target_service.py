import logging
from typing import Dict, List, Optional

from tenantplane.cluster import labels
from tenantplane.cluster.models import AccessType, Target
from tenantplane.repositories.interfaces import INodeRepository, ITenantRepository
from tenantplane.services.exceptions import InvalidTargetError

logger = logging.getLogger(__name__)


def targets_from_tenant_labels(tenant_labels: Dict[str, str]) -> List[Target]:
    """테넌트 ServiceAccount 라벨에서 값이 "true"인 권한 키만 골라 타겟으로 바꿉니다."""
    targets = []
    for key, value in (tenant_labels or {}).items():
        if value != labels.GRANTED:
            continue
        if key.startswith(labels.GROUP_ACCESS_PREFIX):
            targets.append(Target(key[len(labels.GROUP_ACCESS_PREFIX):], AccessType.GROUP))
        elif key.startswith(labels.NODE_ACCESS_PREFIX):
            targets.append(Target(key[len(labels.NODE_ACCESS_PREFIX):], AccessType.NODE))
    return targets


class TargetService:
    """클러스터 토폴로지에서 타겟(노드, 노드 그룹)을 찾아내는 카탈로그 서비스입니다."""

    def __init__(self, node_repo: INodeRepository, tenant_repo: ITenantRepository):
        self.node_repo = node_repo
        self.tenant_repo = tenant_repo

    def list_targets(self, tenant_name: Optional[str] = None) -> List[Target]:
        """
        타겟 목록을 조회합니다.

        tenant_name이 없으면 클러스터 전체를 훑습니다. 노드마다 hostname 라벨로 NODE 타겟을 하나씩
        만들고, 그룹 라벨 중 값이 "false"가 아닌 그룹 이름을 중복 없이 모아 GROUP 타겟을 만듭니다.
        tenant_name이 있으면 그 테넌트에게 부여된 타겟만 반환합니다.

        Args:
            tenant_name: 조회 범위를 한정할 테넌트 이름. None이면 클러스터 전체.

        Returns:
            순서가 보장되지 않는 Target 리스트.

        Raises:
            GatewayError: 클러스터 조회에 실패했을 때. 부분 결과는 반환하지 않습니다.
        """
        if tenant_name is not None:
            service_account = self.tenant_repo.get_service_account(labels.tenant_user_name(tenant_name))
            return targets_from_tenant_labels(service_account.metadata.labels)

        results = []
        groups = set()
        for node in self.node_repo.list_nodes():
            node_labels = node.metadata.labels or {}
            hostname = node_labels.get(labels.NODE_HOSTNAME_LABEL)
            if hostname:
                results.append(Target(hostname, AccessType.NODE))
            for key, value in node_labels.items():
                if key.startswith(labels.NODE_GROUP_PREFIX) and value != labels.NOT_IN_GROUP:
                    groups.add(key[len(labels.NODE_GROUP_PREFIX):])

        results.extend(Target(group, AccessType.GROUP) for group in groups if group)
        return results

    def find_target(self, target_name: str, tenant_name: Optional[str] = None) -> Target:
        """
        이름으로 타겟을 찾습니다.

        Raises:
            InvalidTargetError: 해당 범위에 그런 이름의 타겟이 없을 때.
        """
        for target in self.list_targets(tenant_name):
            if target.name == target_name:
                return target
        raise InvalidTargetError("The target does not exist or the tenant has no access to the target.")

    def create_target_group(self, group_name: str, node_names: List[str]) -> bool:
        """
        노드 그룹 타겟을 정의합니다. 목록에 있는 노드는 그룹 라벨을 "true"로, 나머지는 "false"로 설정합니다.

        이미 같은 이름의 타겟이 있으면 아무것도 바꾸지 않고 False를 반환합니다.

        Raises:
            InvalidTargetError: 그룹 이름이 비어 있거나 구분자('_')를 포함할 때.
        """
        if not group_name or labels.GRANT_LIST_DELIMITER in group_name:
            raise InvalidTargetError(f"Invalid target group name: '{group_name}'.")
        if any(t.name == group_name for t in self.list_targets()):
            logger.info("Target '%s' already exists, leaving node labels unchanged.", group_name)
            return False

        key = labels.NODE_GROUP_PREFIX + group_name
        for node in self.node_repo.list_nodes():
            node_labels = dict(node.metadata.labels or {})
            node_labels[key] = labels.GRANTED if node.metadata.name in node_names else labels.NOT_IN_GROUP
            node.metadata.labels = node_labels
            self.node_repo.update_node(node)
        logger.info("Target group '%s' created on nodes %s.", group_name, node_names)
        return True

    def delete_target_group(self, group_name: str) -> bool:
        """
        노드 그룹 타겟을 모든 노드에서 제거합니다.

        Raises:
            InvalidTargetError: 그런 이름의 그룹 타겟이 없을 때.
        """
        if not any(t.name == group_name and t.access_type == AccessType.GROUP for t in self.list_targets()):
            raise InvalidTargetError(f"Target group '{group_name}' does not exist.")

        key = labels.NODE_GROUP_PREFIX + group_name
        for node in self.node_repo.list_nodes():
            node_labels = dict(node.metadata.labels or {})
            if node_labels.pop(key, None) is None:
                continue
            node.metadata.labels = node_labels
            self.node_repo.update_node(node)
        logger.info("Target group '%s' deleted.", group_name)
        return True
