# tenantplane/cluster/labels.py
# 클러스터 객체에 저장되는 라벨/어노테이션 키. 영속 상태의 레이아웃이므로 값을 바꾸면 안 됩니다.

# 테넌트 ServiceAccount 라벨
DEFAULT_TARGET_LABEL = "tenantplane.io/default-target"
NODE_ACCESS_PREFIX = "node-access.tenantplane.io/"
GROUP_ACCESS_PREFIX = "group-access.tenantplane.io/"

# 노드 라벨
NODE_HOSTNAME_LABEL = "kubernetes.io/hostname"
NODE_GROUP_PREFIX = "group.tenantplane.io/"

# 테넌트 타겟 네임스페이스
TENANT_LABEL = "tenantplane.io/tenant"
TARGET_LABEL = "tenantplane.io/target"
NETWORK_LABEL = "network"
NODE_SELECTOR_ANNOTATION = "scheduler.alpha.kubernetes.io/node-selector"

# 예전 인코딩에서 여러 타겟을 이어 붙이던 문자. 타겟 이름에 쓸 수 없습니다.
GRANT_LIST_DELIMITER = "_"

GRANTED = "true"
NOT_IN_GROUP = "false"

# 시크릿 키
SECRET_DATA_KEY = "secret"
DOCKER_CONFIG_KEY = ".dockerconfigjson"
DOCKER_CONFIG_TYPE = "kubernetes.io/dockerconfigjson"


def tenant_user_name(tenant_name: str) -> str:
    return f"{tenant_name}-user"


def tenant_role_name(tenant_name: str) -> str:
    return f"{tenant_name}-defaultrole"


def tenant_role_binding_name(tenant_name: str) -> str:
    return f"{tenant_name}-defaultrolebinding"


def tenant_target_name(tenant_name: str, target_name: str) -> str:
    return f"{tenant_name}-{target_name}"


def quota_name(namespace: str) -> str:
    return f"{namespace}-limits"


def tenant_from_namespace(namespace: str) -> str:
    """'<tenant>-<target>' 형태의 네임스페이스에서 테넌트 이름을 꺼냅니다."""
    return namespace.split("-", 1)[0]
