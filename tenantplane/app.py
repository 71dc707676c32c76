# tenantplane/app.py
from wsgiref.simple_server import make_server
from functools import lru_cache
from urllib.parse import parse_qs
import base64
import binascii
import json
import logging
import re

from kubernetes import client

from tenantplane.config import Settings, get_settings
from tenantplane.cluster.connection import create_api_client, get_current_namespace
from tenantplane.cluster.models import PodSpec
from tenantplane.repositories.kubernetes import (
    KubernetesTenantRepository,
    KubernetesNodeRepository,
    KubernetesTenantTargetRepository,
    KubernetesPodRepository,
    KubernetesSecretRepository,
)
from tenantplane.services.target_service import TargetService
from tenantplane.services.access_service import AccessService
from tenantplane.services.target_resolver import TargetResolver
from tenantplane.services.tenant_service import TenantService
from tenantplane.services.tenant_target_service import TenantTargetService
from tenantplane.services.workload_service import WorkloadService
from tenantplane.services.exceptions import *
from tenantplane.utils.logging import setup_logging
from tenantplane.utils.task_group import collect_errors

logger = logging.getLogger(__name__)

NAME = r'([A-Za-z0-9][A-Za-z0-9._-]*)'

# --------------------------------------------------------------------------
## 요청 처리 유틸리티 함수
# --------------------------------------------------------------------------

def get_request_data(environ):
    try:
        content_length = int(environ.get("CONTENT_LENGTH") or 0)
        data = json.loads(environ["wsgi.input"].read(content_length)) if content_length > 0 else {}
    except (ValueError, json.JSONDecodeError):
        raise ValueError("Invalid or missing JSON body.")
    if not isinstance(data, dict):
        raise ValueError("JSON body must be an object.")
    return data

def get_names(environ):
    names = get_request_data(environ).get("names")
    if not names or not isinstance(names, list):
        raise ValidationError("Wrong number of arguments: 'names' must be a non-empty list.")
    return names

def get_query(environ):
    return {k: v[0] for k, v in parse_qs(environ.get("QUERY_STRING", "")).items()}

def resolve_target(environ):
    """
    X-Tenant / X-Target 헤더가 있으면 그 값을, 없으면 기본값을 사용해 테넌트 타겟을 결정합니다.

    명시된 타겟은 테넌트에게 부여된 것이어야 합니다. 기본 타겟은 결정 과정에서 이미 확인됩니다.
    """
    resolved = environ['services']['resolver'].resolve(environ.get('HTTP_X_TENANT'), environ.get('HTTP_X_TARGET'))
    if environ.get('HTTP_X_TARGET'):
        environ['services']['access'].find_grant(resolved.tenant, resolved.target)
    return resolved

def resolve_tenant(environ):
    return environ['services']['resolver'].resolve_tenant(environ.get('HTTP_X_TENANT'))

def deletion_response(results):
    errors = collect_errors(results)
    for error in errors:
        logger.warning(error)
    return '200 OK', json.dumps({
        "results": [{"name": r.name, "error": r.error} for r in results],
        "errors": errors,
        "message": "Done",
    })

def handle_exception(e):
    # 하위 클래스가 먼저 오도록 순서를 유지해야 합니다.
    error_map = [
        (TenantNotReadyError, "202 Accepted"),
        (ValidationError, "400 Bad Request"),
        (ValueError, "400 Bad Request"),
        (AuthorizationError, "403 Forbidden"),
        (ObjectNotFoundError, "404 Not Found"),
        (ConflictError, "409 Conflict"),
        (GatewayError, "502 Bad Gateway"),
        (RemovalNotConfirmedError, "504 Gateway Timeout"),
    ]
    for error_type, status in error_map:
        if isinstance(e, error_type):
            return status, json.dumps({"error": str(e)})

    logger.exception("Unhandled error while processing request")
    return "500 Internal Server Error", json.dumps({"error": str(e)})

# --------------------------------------------------------------------------
## WSGI 애플리케이션 (의존성 주입 및 라우팅)
# --------------------------------------------------------------------------

@lru_cache()
def get_api_client() -> client.ApiClient:
    return create_api_client(get_settings())

def build_services(api_client: client.ApiClient, settings: Settings):
    # 1. 의존성 생성 (Repositories -> Services)
    tenant_repo = KubernetesTenantRepository(api_client, settings.TENANT_NAMESPACE)
    node_repo = KubernetesNodeRepository(api_client)
    tenant_target_repo = KubernetesTenantTargetRepository(api_client)
    pod_repo = KubernetesPodRepository(api_client)
    secret_repo = KubernetesSecretRepository(api_client)

    target_service = TargetService(node_repo, tenant_repo)
    access_service = AccessService(tenant_repo, target_service, settings)
    tenant_target_service = TenantTargetService(tenant_target_repo, pod_repo, access_service, settings)

    return {
        'target': target_service,
        'access': access_service,
        'resolver': TargetResolver(access_service, lambda: get_current_namespace(settings)),
        'tenant': TenantService(tenant_repo, secret_repo, access_service, tenant_target_service, settings),
        'tenant_target': tenant_target_service,
        'workload': WorkloadService(pod_repo, secret_repo, access_service, settings),
    }

def application(environ, start_response):
    try:
        # 2. 생성된 서비스 객체들을 environ을 통해 핸들러에 전달
        environ['services'] = build_services(get_api_client(), get_settings())

        # 3. 라우팅 및 핸들러 실행
        path = environ.get("PATH_INFO", "")
        method = environ.get("REQUEST_METHOD", "")

        routes = [
            ('GET', r'^/v1/targets$', list_targets_handler),
            ('POST', r'^/v1/target-groups$', create_target_group_handler),
            ('DELETE', rf'^/v1/target-groups/{NAME}$', delete_target_group_handler),
            ('POST', r'^/v1/tenants$', create_tenant_handler),
            ('DELETE', r'^/v1/tenants$', delete_tenants_handler),
            ('GET', rf'^/v1/tenants/{NAME}$', get_tenant_handler),
            ('GET', rf'^/v1/tenants/{NAME}/credentials$', get_user_credentials_handler),
            ('GET', rf'^/v1/tenants/{NAME}/default-target$', get_default_target_handler),
            ('PUT', rf'^/v1/tenants/{NAME}/default-target$', set_default_target_handler),
            ('PUT', rf'^/v1/tenants/{NAME}/targets/{NAME}$', grant_target_handler),
            ('DELETE', rf'^/v1/tenants/{NAME}/targets/{NAME}$', revoke_target_handler),
            ('POST', r'^/v1/tenant-targets$', create_tenant_target_handler),
            ('GET', r'^/v1/tenant-targets$', list_tenant_targets_handler),
            ('DELETE', r'^/v1/tenant-targets$', delete_tenant_targets_handler),
            ('GET', rf'^/v1/tenant-targets/{NAME}$', get_tenant_target_handler),
            ('PUT', rf'^/v1/tenant-targets/{NAME}$', update_tenant_target_handler),
            ('POST', r'^/v1/pods$', create_pod_handler),
            ('GET', r'^/v1/pods$', list_pods_handler),
            ('DELETE', r'^/v1/pods$', delete_pods_handler),
            ('GET', rf'^/v1/pods/{NAME}$', get_pod_handler),
            ('GET', rf'^/v1/pods/{NAME}/logs$', get_pod_logs_handler),
            ('POST', r'^/v1/secrets$', create_secret_handler),
            ('GET', r'^/v1/secrets$', list_secrets_handler),
            ('DELETE', r'^/v1/secrets$', delete_secrets_handler),
            ('GET', rf'^/v1/secrets/{NAME}$', get_secret_handler),
            ('POST', r'^/v1/deploy-secrets$', create_deploy_secret_handler),
            ('GET', rf'^/v1/deploy-secrets/{NAME}$', get_deploy_secret_handler),
        ]

        handler, path_args = None, []
        for route_method, pattern, route_handler in routes:
            if method == route_method and (match := re.match(pattern, path)):
                handler, path_args = route_handler, match.groups()
                break

        if handler:
            status, response_body = handler(environ, *path_args)
        else:
            status, response_body = '404 Not Found', json.dumps({'error': 'Not Found'})

    except Exception as e:
        status, response_body = handle_exception(e)

    start_response(status, [("Content-Type", "application/json")])
    return [response_body.encode("utf-8")]

# --------------------------------------------------------------------------
## 타겟 / 권한 핸들러
# --------------------------------------------------------------------------

def list_targets_handler(environ, *args):
    if get_query(environ).get('scope') == 'all':
        targets = environ['services']['target'].list_targets()
    else:
        targets = environ['services']['target'].list_targets(resolve_tenant(environ))
    return '200 OK', json.dumps({'targets': [t.to_dict() for t in targets]})

def create_target_group_handler(environ, *args):
    data = get_request_data(environ)
    created = environ['services']['target'].create_target_group(data.get('name', ''), data.get('nodes', []))
    return ('201 Created' if created else '200 OK'), json.dumps({'name': data.get('name'), 'created': created})

def delete_target_group_handler(environ, group_name):
    environ['services']['target'].delete_target_group(group_name)
    return '204 No Content', ''

def grant_target_handler(environ, tenant_name, target_name):
    grant = environ['services']['access'].grant_target(tenant_name, target_name)
    return '200 OK', json.dumps({'tenant': grant.tenant, 'target': grant.target, 'access_type': grant.access_type.value})

def revoke_target_handler(environ, tenant_name, target_name):
    environ['services']['access'].revoke_target(tenant_name, target_name)
    return '204 No Content', ''

def get_default_target_handler(environ, tenant_name):
    default_target = environ['services']['access'].get_default_target(tenant_name)
    return '200 OK', json.dumps({'tenant': tenant_name, 'default_target': default_target})

def set_default_target_handler(environ, tenant_name):
    target_name = get_request_data(environ).get('target')
    if not target_name:
        raise ValidationError("Missing 'target'.")
    environ['services']['access'].set_default_target(tenant_name, target_name)
    return '204 No Content', ''

# --------------------------------------------------------------------------
## 테넌트 핸들러
# --------------------------------------------------------------------------

def create_tenant_handler(environ, *args):
    tenant = environ['services']['tenant'].create_tenant(get_request_data(environ).get('name'))
    return '201 Created', json.dumps(tenant)

def get_tenant_handler(environ, tenant_name):
    return '200 OK', json.dumps(environ['services']['tenant'].get_tenant(tenant_name))

def delete_tenants_handler(environ, *args):
    return deletion_response(environ['services']['tenant'].delete_tenants(get_names(environ)))

def get_user_credentials_handler(environ, tenant_name):
    return '200 OK', json.dumps(environ['services']['tenant'].get_user_credentials(tenant_name))

# --------------------------------------------------------------------------
## 테넌트 타겟 핸들러
# --------------------------------------------------------------------------

def create_tenant_target_handler(environ, *args):
    data = get_request_data(environ)
    target_name = data.get('target') or environ.get('HTTP_X_TARGET')
    if not target_name:
        raise ValidationError("Missing 'target'.")
    tenant_target = environ['services']['tenant_target'].create_tenant_target(
        resolve_tenant(environ), target_name,
        cpu=data.get('cpu'), memory=data.get('memory'), storage=data.get('storage'),
    )
    return '201 Created', json.dumps(tenant_target)

def list_tenant_targets_handler(environ, *args):
    tenant_targets = environ['services']['tenant_target'].list_tenant_targets(resolve_tenant(environ))
    return '200 OK', json.dumps({'tenant_targets': tenant_targets})

def get_tenant_target_handler(environ, target_name):
    tenant_target = environ['services']['tenant_target'].get_tenant_target(resolve_tenant(environ), target_name)
    return '200 OK', json.dumps(tenant_target)

def update_tenant_target_handler(environ, target_name):
    data = get_request_data(environ)
    tenant_target = environ['services']['tenant_target'].update_tenant_target(
        resolve_tenant(environ), target_name,
        cpu=data.get('cpu'), memory=data.get('memory'), storage=data.get('storage'),
    )
    return '200 OK', json.dumps(tenant_target)

def delete_tenant_targets_handler(environ, *args):
    results = environ['services']['tenant_target'].delete_tenant_targets(resolve_tenant(environ), get_names(environ))
    return deletion_response(results)

# --------------------------------------------------------------------------
## 파드 / 시크릿 핸들러
# --------------------------------------------------------------------------

def create_pod_handler(environ, *args):
    data = get_request_data(environ)
    try:
        spec = PodSpec(**data)
    except TypeError as e:
        raise ValidationError(f"Invalid pod definition: {e}")
    pod = environ['services']['workload'].create_pod(resolve_target(environ).namespace, spec)
    return '201 Created', json.dumps(pod)

def list_pods_handler(environ, *args):
    return '200 OK', json.dumps({'pods': environ['services']['workload'].list_pods(resolve_tenant(environ))})

def get_pod_handler(environ, pod_name):
    return '200 OK', json.dumps(environ['services']['workload'].get_pod(resolve_target(environ).namespace, pod_name))

def get_pod_logs_handler(environ, pod_name):
    logs = environ['services']['workload'].get_pod_logs(resolve_target(environ).namespace, pod_name)
    return '200 OK', json.dumps({'name': pod_name, 'logs': logs})

def delete_pods_handler(environ, *args):
    names = get_names(environ)
    return deletion_response(environ['services']['workload'].delete_pods(resolve_target(environ).namespace, names))

def create_secret_handler(environ, *args):
    data = get_request_data(environ)
    if not data.get('name') or data.get('data') is None:
        raise ValidationError("Both 'name' and 'data' are required.")
    secret = environ['services']['workload'].create_secret(resolve_target(environ).namespace, data['name'], data['data'])
    return '201 Created', json.dumps(secret)

def list_secrets_handler(environ, *args):
    return '200 OK', json.dumps({'secrets': environ['services']['workload'].list_secrets(resolve_tenant(environ))})

def get_secret_handler(environ, secret_name):
    secret = environ['services']['workload'].get_secret(resolve_target(environ).namespace, secret_name)
    return '200 OK', json.dumps(secret)

def delete_secrets_handler(environ, *args):
    names = get_names(environ)
    return deletion_response(environ['services']['workload'].delete_secrets(resolve_target(environ).namespace, names))

def create_deploy_secret_handler(environ, *args):
    data = get_request_data(environ)
    if not data.get('name') or not data.get('dockerconfigjson'):
        raise ValidationError("Both 'name' and 'dockerconfigjson' (base64) are required.")
    try:
        docker_config = base64.b64decode(data['dockerconfigjson'], validate=True)
    except binascii.Error:
        raise ValidationError("'dockerconfigjson' must be base64 encoded.")
    secret = environ['services']['workload'].create_deploy_secret(
        resolve_target(environ).namespace, data['name'], docker_config
    )
    return '201 Created', json.dumps(secret)

def get_deploy_secret_handler(environ, secret_name):
    secret = environ['services']['workload'].get_deploy_secret(resolve_target(environ).namespace, secret_name)
    return '200 OK', json.dumps(secret)

# --------------------------------------------------------------------------
## 서버 실행
# --------------------------------------------------------------------------

if __name__ == "__main__":
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    with make_server(settings.HOST, settings.PORT, application) as httpd:
        logger.info("Serving tenantplane on port %d...", settings.PORT)
        httpd.serve_forever()
