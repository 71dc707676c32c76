from typing import List, Optional
from kubernetes import client
from kubernetes.client import (
    V1Namespace, V1ResourceQuota, V1Role, V1RoleBinding, V1NetworkPolicy, V1ServiceAccount
)

from tenantplane.repositories.interfaces import ITenantTargetRepository
from tenantplane.repositories.kubernetes.errors import translate_api_errors


class KubernetesTenantTargetRepository(ITenantTargetRepository):
    def __init__(self, api_client: client.ApiClient):
        self.core = client.CoreV1Api(api_client)
        self.rbac = client.RbacAuthorizationV1Api(api_client)
        self.networking = client.NetworkingV1Api(api_client)

    @translate_api_errors
    def get_namespace(self, name: str) -> V1Namespace:
        return self.core.read_namespace(name)

    @translate_api_errors
    def list_namespaces(self, label_selector: Optional[str] = None) -> List[V1Namespace]:
        return self.core.list_namespace(label_selector=label_selector or "").items

    @translate_api_errors
    def create_namespace(self, namespace: V1Namespace) -> V1Namespace:
        return self.core.create_namespace(namespace)

    @translate_api_errors
    def update_namespace(self, namespace: V1Namespace) -> V1Namespace:
        return self.core.replace_namespace(namespace.metadata.name, namespace)

    @translate_api_errors
    def delete_namespace(self, name: str) -> None:
        self.core.delete_namespace(name)

    @translate_api_errors
    def get_resource_quota(self, namespace: str, name: str) -> V1ResourceQuota:
        return self.core.read_namespaced_resource_quota(name, namespace)

    @translate_api_errors
    def create_resource_quota(self, namespace: str, quota: V1ResourceQuota) -> V1ResourceQuota:
        return self.core.create_namespaced_resource_quota(namespace, quota)

    @translate_api_errors
    def update_resource_quota(self, namespace: str, quota: V1ResourceQuota) -> V1ResourceQuota:
        return self.core.replace_namespaced_resource_quota(quota.metadata.name, namespace, quota)

    @translate_api_errors
    def create_role(self, namespace: str, role: V1Role) -> V1Role:
        return self.rbac.create_namespaced_role(namespace, role)

    @translate_api_errors
    def update_role(self, namespace: str, role: V1Role) -> V1Role:
        return self.rbac.replace_namespaced_role(role.metadata.name, namespace, role)

    @translate_api_errors
    def create_role_binding(self, namespace: str, role_binding: V1RoleBinding) -> V1RoleBinding:
        return self.rbac.create_namespaced_role_binding(namespace, role_binding)

    @translate_api_errors
    def list_network_policies(self, namespace: str) -> List[V1NetworkPolicy]:
        return self.networking.list_namespaced_network_policy(namespace).items

    @translate_api_errors
    def create_network_policy(self, namespace: str, policy: V1NetworkPolicy) -> V1NetworkPolicy:
        return self.networking.create_namespaced_network_policy(namespace, policy)

    @translate_api_errors
    def update_network_policy(self, namespace: str, policy: V1NetworkPolicy) -> V1NetworkPolicy:
        return self.networking.replace_namespaced_network_policy(policy.metadata.name, namespace, policy)

    @translate_api_errors
    def create_service_account(self, namespace: str, service_account: V1ServiceAccount) -> V1ServiceAccount:
        return self.core.create_namespaced_service_account(namespace, service_account)
