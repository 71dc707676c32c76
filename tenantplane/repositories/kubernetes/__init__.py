from .kubernetes_tenant_repository import KubernetesTenantRepository
from .kubernetes_node_repository import KubernetesNodeRepository
from .kubernetes_tenant_target_repository import KubernetesTenantTargetRepository
from .kubernetes_pod_repository import KubernetesPodRepository
from .kubernetes_secret_repository import KubernetesSecretRepository
