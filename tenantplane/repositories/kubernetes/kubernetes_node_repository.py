from typing import List, Optional
from kubernetes import client
from kubernetes.client import V1Node

from tenantplane.repositories.interfaces import INodeRepository
from tenantplane.repositories.kubernetes.errors import translate_api_errors


class KubernetesNodeRepository(INodeRepository):
    def __init__(self, api_client: client.ApiClient):
        self.core = client.CoreV1Api(api_client)

    @translate_api_errors
    def list_nodes(self, label_selector: Optional[str] = None) -> List[V1Node]:
        return self.core.list_node(label_selector=label_selector or "").items

    @translate_api_errors
    def update_node(self, node: V1Node) -> V1Node:
        return self.core.replace_node(node.metadata.name, node)
