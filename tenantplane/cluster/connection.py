from pathlib import Path

from kubernetes import client, config

from tenantplane.config import Settings

# 파드 안에서 실행될 때 ServiceAccount 네임스페이스가 마운트되는 경로
IN_CLUSTER_NAMESPACE_FILE = Path("/var/run/secrets/kubernetes.io/serviceaccount/namespace")


def create_api_client(settings: Settings) -> client.ApiClient:
    """
    설정에 따라 클러스터 API 클라이언트를 생성합니다.

    IN_CLUSTER가 참이면 파드에 마운트된 ServiceAccount 자격증명을, 아니면 kubeconfig 파일과
    컨텍스트를 사용합니다. 모든 리포지토리는 이 클라이언트를 공유합니다.
    """
    if settings.IN_CLUSTER:
        config.load_incluster_config()
        return client.ApiClient()
    return config.new_client_from_config(config_file=settings.KUBECONFIG, context=settings.KUBE_CONTEXT)


def get_current_namespace(settings: Settings) -> str:
    """
    호출자 자신의 네임스페이스를 반환합니다.

    테넌트 자격증명은 '<tenant>-<target>' 네임스페이스를 기본값으로 가지므로,
    X-Tenant 헤더가 없을 때 이 값에서 테넌트 이름을 유도합니다.
    """
    if settings.IN_CLUSTER:
        return IN_CLUSTER_NAMESPACE_FILE.read_text().strip()

    contexts, active_context = config.list_kube_config_contexts(config_file=settings.KUBECONFIG)
    if settings.KUBE_CONTEXT:
        active_context = next((c for c in contexts if c["name"] == settings.KUBE_CONTEXT), active_context)
    return active_context.get("context", {}).get("namespace", "default")
