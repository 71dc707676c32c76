# tests/cluster/test_connection.py
from unittest.mock import patch

from tenantplane.cluster.connection import create_api_client, get_current_namespace
from tenantplane.config import Settings

CONTEXTS = [
    {"name": "admin", "context": {"cluster": "prod", "user": "admin"}},
    {"name": "acme", "context": {"cluster": "prod", "user": "acme-user", "namespace": "acme-n1"}},
]


class TestCreateApiClient:
    @patch("tenantplane.cluster.connection.config")
    def test_kubeconfig(self, mock_config):
        """kubeconfig 파일과 컨텍스트로 클라이언트를 만드는지 테스트합니다."""
        settings = Settings(KUBECONFIG="/tmp/kubeconfig", KUBE_CONTEXT="acme")

        api_client = create_api_client(settings)

        mock_config.new_client_from_config.assert_called_once_with(config_file="/tmp/kubeconfig", context="acme")
        assert api_client is mock_config.new_client_from_config.return_value

    @patch("tenantplane.cluster.connection.client")
    @patch("tenantplane.cluster.connection.config")
    def test_in_cluster(self, mock_config, mock_client):
        create_api_client(Settings(IN_CLUSTER=True))

        mock_config.load_incluster_config.assert_called_once_with()
        mock_config.new_client_from_config.assert_not_called()
        mock_client.ApiClient.assert_called_once_with()


class TestGetCurrentNamespace:
    @patch("tenantplane.cluster.connection.config")
    def test_namespace_of_active_context(self, mock_config):
        mock_config.list_kube_config_contexts.return_value = (CONTEXTS, CONTEXTS[1])

        assert get_current_namespace(Settings()) == "acme-n1"

    @patch("tenantplane.cluster.connection.config")
    def test_selected_context_overrides_active(self, mock_config):
        mock_config.list_kube_config_contexts.return_value = (CONTEXTS, CONTEXTS[0])

        assert get_current_namespace(Settings(KUBE_CONTEXT="acme")) == "acme-n1"

    @patch("tenantplane.cluster.connection.config")
    def test_context_without_namespace_is_default(self, mock_config):
        mock_config.list_kube_config_contexts.return_value = (CONTEXTS, CONTEXTS[0])

        assert get_current_namespace(Settings()) == "default"
