"""
클러스터에 보낼 객체(manifest)를 만드는 함수 모음.

여기서 만든 객체는 로컬에만 존재하며, 리포지토리를 통해 클러스터에 생성해야 합니다.
"""
import base64
from typing import Dict, Optional

from kubernetes import client
from kubernetes.utils import parse_quantity

from tenantplane.cluster import labels
from tenantplane.cluster.models import AccessType, PodSpec, ResourceLimits, Target
from tenantplane.services.exceptions import InvalidQuantityError

# 테넌트 타겟 안에서 테넌트가 다룰 수 있는 리소스
TENANT_TARGET_RESOURCES = ["pods", "pods/log", "secrets", "resourcequotas"]
TENANT_TARGET_VERBS = ["get", "list", "watch", "create", "update", "delete"]


def _quantity(value: str) -> str:
    try:
        parse_quantity(value)
    except ValueError as e:
        raise InvalidQuantityError(f"Invalid quantity '{value}'.") from e
    return value


# --------------------------------------------------------------------------
## 테넌트 신원 객체
# --------------------------------------------------------------------------

def new_tenant_user(tenant_name: str, namespace: str) -> client.V1ServiceAccount:
    return client.V1ServiceAccount(
        metadata=client.V1ObjectMeta(
            name=labels.tenant_user_name(tenant_name),
            namespace=namespace,
            labels={},
        )
    )


def new_tenant_default_role(tenant_name: str, namespace: str) -> client.V1Role:
    """테넌트가 자기 ServiceAccount(권한 라벨)와 토큰 시크릿만 읽을 수 있는 역할."""
    return client.V1Role(
        metadata=client.V1ObjectMeta(name=labels.tenant_role_name(tenant_name), namespace=namespace),
        rules=[
            client.V1PolicyRule(
                api_groups=[""],
                resources=["serviceaccounts"],
                resource_names=[labels.tenant_user_name(tenant_name)],
                verbs=["get"],
            ),
        ],
    )


def new_tenant_default_role_binding(tenant_name: str, namespace: str) -> client.V1RoleBinding:
    return client.V1RoleBinding(
        metadata=client.V1ObjectMeta(name=labels.tenant_role_binding_name(tenant_name), namespace=namespace),
        role_ref=client.V1RoleRef(
            api_group="rbac.authorization.k8s.io",
            kind="Role",
            name=labels.tenant_role_name(tenant_name),
        ),
        subjects=[
            client.RbacV1Subject(
                kind="ServiceAccount",
                name=labels.tenant_user_name(tenant_name),
                namespace=namespace,
            )
        ],
    )


# --------------------------------------------------------------------------
## 테넌트 타겟 객체
# --------------------------------------------------------------------------

def node_selector_for(target: Target) -> str:
    """타겟을 네임스페이스 스케줄링 어노테이션 값으로 바꿉니다."""
    if target.access_type == AccessType.NODE:
        return f"{labels.NODE_HOSTNAME_LABEL}={target.name}"
    return f"{labels.NODE_GROUP_PREFIX}{target.name}={labels.GRANTED}"


def new_tenant_target_namespace(tenant_name: str, target: Target) -> client.V1Namespace:
    return client.V1Namespace(
        metadata=client.V1ObjectMeta(
            name=labels.tenant_target_name(tenant_name, target.name),
            labels={
                labels.TENANT_LABEL: tenant_name,
                labels.TARGET_LABEL: target.name,
            },
            annotations={labels.NODE_SELECTOR_ANNOTATION: node_selector_for(target)},
        )
    )


def quota_hard_limits(limits: ResourceLimits) -> Dict[str, str]:
    """limits/requests 쌍을 같은 값으로 채운 쿼터 hard 항목을 만듭니다."""
    hard = {}
    for key, value in (("cpu", limits.cpu), ("memory", limits.memory), ("ephemeral-storage", limits.storage)):
        if value:
            hard[f"limits.{key}"] = _quantity(value)
            hard[f"requests.{key}"] = value
    return hard


def new_resource_quota(namespace: str, limits: ResourceLimits) -> client.V1ResourceQuota:
    return client.V1ResourceQuota(
        metadata=client.V1ObjectMeta(name=labels.quota_name(namespace), namespace=namespace),
        spec=client.V1ResourceQuotaSpec(hard=quota_hard_limits(limits)),
    )


def new_tenant_target_role(namespace: str) -> client.V1Role:
    return client.V1Role(
        metadata=client.V1ObjectMeta(name=f"{namespace}-role", namespace=namespace),
        rules=[
            client.V1PolicyRule(api_groups=[""], resources=TENANT_TARGET_RESOURCES, verbs=TENANT_TARGET_VERBS),
        ],
    )


def new_tenant_target_role_binding(namespace: str, tenant_name: str, tenant_namespace: str) -> client.V1RoleBinding:
    """테넌트 신원과 네임스페이스 전용 ServiceAccount를 타겟 역할에 묶습니다."""
    return client.V1RoleBinding(
        metadata=client.V1ObjectMeta(name=f"{namespace}-rolebinding", namespace=namespace),
        role_ref=client.V1RoleRef(api_group="rbac.authorization.k8s.io", kind="Role", name=f"{namespace}-role"),
        subjects=[
            client.RbacV1Subject(
                kind="ServiceAccount",
                name=labels.tenant_user_name(tenant_name),
                namespace=tenant_namespace,
            ),
            client.RbacV1Subject(kind="ServiceAccount", name=f"{namespace}-user", namespace=namespace),
        ],
    )


def new_network_policy(namespace: str) -> client.V1NetworkPolicy:
    """같은 테넌트 타겟의 파드에서 오는 트래픽만 허용합니다."""
    return client.V1NetworkPolicy(
        metadata=client.V1ObjectMeta(name=f"{namespace}-policy", namespace=namespace),
        spec=client.V1NetworkPolicySpec(
            pod_selector=client.V1LabelSelector(),
            policy_types=["Ingress"],
            ingress=[
                client.V1NetworkPolicyIngressRule(
                    _from=[
                        client.V1NetworkPolicyPeer(
                            pod_selector=client.V1LabelSelector(match_labels={labels.NETWORK_LABEL: namespace})
                        )
                    ]
                )
            ],
        ),
    )


def new_tenant_target_user(namespace: str) -> client.V1ServiceAccount:
    return client.V1ServiceAccount(
        metadata=client.V1ObjectMeta(name=f"{namespace}-user", namespace=namespace)
    )


# --------------------------------------------------------------------------
## 워크로드 객체
# --------------------------------------------------------------------------

def new_pod(spec: PodSpec, namespace: str) -> client.V1Pod:
    """
    파드 객체를 생성합니다.

    리소스 값은 limits와 requests에 같은 값으로 들어갑니다. 첨부된 시크릿은 같은 이름의
    환경 변수로 노출되고, deploy-secret은 imagePullSecrets로 연결됩니다.
    """
    resources = {}
    for key, value in (("cpu", spec.cpu), ("memory", spec.memory), ("ephemeral-storage", spec.storage)):
        if value:
            resources[key] = _quantity(value)

    container = client.V1Container(
        name=spec.name,
        image=spec.image,
        command=spec.command or None,
        resources=client.V1ResourceRequirements(limits=dict(resources), requests=dict(resources)),
        ports=[client.V1ContainerPort(container_port=port) for port in spec.ports],
        env=[
            client.V1EnvVar(
                name=secret_name,
                value_from=client.V1EnvVarSource(
                    secret_key_ref=client.V1SecretKeySelector(name=secret_name, key=labels.SECRET_DATA_KEY)
                ),
            )
            for secret_name in spec.secrets
        ],
    )

    pod_spec = client.V1PodSpec(containers=[container])
    if spec.always_restart:
        pod_spec.restart_policy = "Always"
    if spec.deploy_secret:
        pod_spec.image_pull_secrets = [client.V1LocalObjectReference(name=spec.deploy_secret)]

    return client.V1Pod(
        api_version="v1",
        kind="Pod",
        metadata=client.V1ObjectMeta(
            name=spec.name,
            namespace=namespace,
            labels={labels.NETWORK_LABEL: namespace},
        ),
        spec=pod_spec,
    )


def new_secret(namespace: str, secret_name: str, secret_data: str) -> client.V1Secret:
    return client.V1Secret(
        api_version="v1",
        kind="Secret",
        metadata=client.V1ObjectMeta(name=secret_name, namespace=namespace),
        string_data={labels.SECRET_DATA_KEY: secret_data},
        type="Opaque",
    )


def new_deploy_secret(namespace: str, secret_name: str, docker_config: bytes) -> client.V1Secret:
    """프라이빗 레지스트리에서 이미지를 받을 때 쓰는 dockerconfigjson 시크릿."""
    return client.V1Secret(
        api_version="v1",
        kind="Secret",
        metadata=client.V1ObjectMeta(name=secret_name, namespace=namespace),
        data={labels.DOCKER_CONFIG_KEY: base64.b64encode(docker_config).decode("ascii")},
        type=labels.DOCKER_CONFIG_TYPE,
    )


def decode_secret_value(secret: client.V1Secret, key: str) -> Optional[str]:
    """시크릿 data의 base64 값을 디코딩합니다. 키가 없으면 None."""
    raw = (secret.data or {}).get(key)
    if raw is None:
        return None
    return base64.b64decode(raw).decode("utf-8")
