# tests/repositories/test_errors.py
import json
import pytest
from kubernetes.client.rest import ApiException
from urllib3.exceptions import ProtocolError

from tenantplane.repositories.kubernetes.errors import to_gateway_error, translate_api_errors
from tenantplane.services.exceptions import *


def api_exception(status, reason, message=None):
    e = ApiException(status=status, reason=reason)
    if message is not None:
        e.body = json.dumps({"kind": "Status", "message": message})
    return e


class TestToGatewayError:
    @pytest.mark.parametrize("status, error_type", [
        (404, ObjectNotFoundError),
        (409, ConflictError),
        (403, GatewayError),
        (500, GatewayError),
    ])
    def test_status_is_mapped(self, status, error_type):
        """상태 코드별로 알맞은 GatewayError 하위 타입으로 바뀌는지 테스트합니다."""
        error = to_gateway_error(api_exception(status, "Reason", "server says no"))

        assert type(error) is error_type
        assert error.status == status
        assert str(error) == "server says no"

    def test_reason_is_used_without_body(self):
        error = to_gateway_error(api_exception(404, "Not Found"))

        assert str(error) == "Not Found"

    def test_non_json_body_is_kept_verbatim(self):
        e = api_exception(502, "Bad Gateway")
        e.body = "upstream connect error"

        assert str(to_gateway_error(e)) == "upstream connect error"


class TestTranslateApiErrors:
    def test_api_exception_is_translated(self):
        @translate_api_errors
        def read():
            raise api_exception(404, "Not Found", 'namespaces "acme-n1" not found')

        with pytest.raises(ObjectNotFoundError, match='namespaces "acme-n1" not found'):
            read()

    def test_transport_error_is_unreachable(self):
        """응답을 받지 못한 연결 오류는 상태 코드 없는 GatewayError가 되는지 테스트합니다."""
        @translate_api_errors
        def read():
            raise ProtocolError("Connection aborted.")

        with pytest.raises(GatewayError, match="Cluster API unreachable") as exc_info:
            read()
        assert exc_info.value.status is None
