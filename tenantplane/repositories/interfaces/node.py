from abc import ABC, abstractmethod
from typing import List, Optional
from kubernetes.client import V1Node


class INodeRepository(ABC):
    @abstractmethod
    def list_nodes(self, label_selector: Optional[str] = None) -> List[V1Node]:
        """클러스터의 모든 컴퓨트 노드를 조회합니다."""
        pass

    @abstractmethod
    def update_node(self, node: V1Node) -> V1Node:
        """노드 객체 전체를 교체합니다. (그룹 라벨 변경용)"""
        pass
