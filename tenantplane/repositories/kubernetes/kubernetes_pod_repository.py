from typing import List, Optional
from kubernetes import client
from kubernetes.client import V1Pod

from tenantplane.repositories.interfaces import IPodRepository
from tenantplane.repositories.kubernetes.errors import translate_api_errors


class KubernetesPodRepository(IPodRepository):
    def __init__(self, api_client: client.ApiClient):
        self.core = client.CoreV1Api(api_client)

    @translate_api_errors
    def get_pod(self, namespace: str, name: str) -> V1Pod:
        return self.core.read_namespaced_pod(name, namespace)

    @translate_api_errors
    def list_pods(self, namespace: str, label_selector: Optional[str] = None) -> List[V1Pod]:
        return self.core.list_namespaced_pod(namespace, label_selector=label_selector or "").items

    @translate_api_errors
    def create_pod(self, namespace: str, pod: V1Pod) -> V1Pod:
        return self.core.create_namespaced_pod(namespace, pod)

    @translate_api_errors
    def delete_pod(self, namespace: str, name: str) -> None:
        self.core.delete_namespaced_pod(name, namespace)

    @translate_api_errors
    def read_pod_log(self, namespace: str, name: str) -> str:
        return self.core.read_namespaced_pod_log(name, namespace)
