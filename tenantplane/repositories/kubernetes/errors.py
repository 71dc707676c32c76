import functools
import json

from kubernetes.client.rest import ApiException
from urllib3.exceptions import HTTPError

from tenantplane.services.exceptions import GatewayError, ObjectNotFoundError, ConflictError


def to_gateway_error(e: ApiException) -> GatewayError:
    """ApiException을 상태 코드에 맞는 GatewayError로 바꿉니다. 서버 메시지는 그대로 둡니다."""
    message = e.reason or "Unknown error"
    if e.body:
        try:
            message = json.loads(e.body).get("message", message)
        except (ValueError, AttributeError):
            message = str(e.body)

    if e.status == 404:
        return ObjectNotFoundError(message, status=e.status, reason=e.reason)
    if e.status == 409:
        return ConflictError(message, status=e.status, reason=e.reason)
    return GatewayError(message, status=e.status, reason=e.reason)


def translate_api_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ApiException as e:
            raise to_gateway_error(e) from e
        except HTTPError as e:
            # 연결 거부, 타임아웃 등 응답조차 받지 못한 경우
            raise GatewayError(f"Cluster API unreachable: {e}") from e
    return wrapper
