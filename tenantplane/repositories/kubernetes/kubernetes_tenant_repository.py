from kubernetes import client
from kubernetes.client import V1ServiceAccount, V1Role, V1RoleBinding

from tenantplane.repositories.interfaces import ITenantRepository
from tenantplane.repositories.kubernetes.errors import translate_api_errors


class KubernetesTenantRepository(ITenantRepository):
    def __init__(self, api_client: client.ApiClient, namespace: str = "default"):
        self.core = client.CoreV1Api(api_client)
        self.rbac = client.RbacAuthorizationV1Api(api_client)
        self.namespace = namespace

    @translate_api_errors
    def get_service_account(self, name: str) -> V1ServiceAccount:
        return self.core.read_namespaced_service_account(name, self.namespace)

    @translate_api_errors
    def create_service_account(self, service_account: V1ServiceAccount) -> V1ServiceAccount:
        return self.core.create_namespaced_service_account(self.namespace, service_account)

    @translate_api_errors
    def update_service_account(self, service_account: V1ServiceAccount) -> V1ServiceAccount:
        return self.core.replace_namespaced_service_account(
            service_account.metadata.name, self.namespace, service_account
        )

    @translate_api_errors
    def delete_service_account(self, name: str) -> None:
        self.core.delete_namespaced_service_account(name, self.namespace)

    @translate_api_errors
    def create_role(self, role: V1Role) -> V1Role:
        return self.rbac.create_namespaced_role(self.namespace, role)

    @translate_api_errors
    def delete_role(self, name: str) -> None:
        self.rbac.delete_namespaced_role(name, self.namespace)

    @translate_api_errors
    def create_role_binding(self, role_binding: V1RoleBinding) -> V1RoleBinding:
        return self.rbac.create_namespaced_role_binding(self.namespace, role_binding)

    @translate_api_errors
    def delete_role_binding(self, name: str) -> None:
        self.rbac.delete_namespaced_role_binding(name, self.namespace)
