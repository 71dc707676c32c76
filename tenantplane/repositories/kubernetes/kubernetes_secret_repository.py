from typing import List
from kubernetes import client
from kubernetes.client import V1Secret

from tenantplane.repositories.interfaces import ISecretRepository
from tenantplane.repositories.kubernetes.errors import translate_api_errors


class KubernetesSecretRepository(ISecretRepository):
    def __init__(self, api_client: client.ApiClient):
        self.core = client.CoreV1Api(api_client)

    @translate_api_errors
    def get_secret(self, namespace: str, name: str) -> V1Secret:
        return self.core.read_namespaced_secret(name, namespace)

    @translate_api_errors
    def list_secrets(self, namespace: str) -> List[V1Secret]:
        return self.core.list_namespaced_secret(namespace).items

    @translate_api_errors
    def create_secret(self, namespace: str, secret: V1Secret) -> V1Secret:
        return self.core.create_namespaced_secret(namespace, secret)

    @translate_api_errors
    def delete_secret(self, namespace: str, name: str) -> None:
        self.core.delete_namespaced_secret(name, namespace)
