# tests/conftest.py
import threading
import time

import pytest
from kubernetes.client import V1ObjectMeta, V1ObjectReference, V1ServiceAccount

from tenantplane.config import Settings
from tenantplane.cluster import labels
from tenantplane.repositories.interfaces import ITenantRepository
from tenantplane.services.exceptions import ConflictError, ObjectNotFoundError

# ===================================================================
#  테스트 전역 설정 및 가짜 리포지토리
# ===================================================================

class FakeTenantRepository(ITenantRepository):
    """
    테넌트 ServiceAccount를 메모리에 보관하는 가짜 리포지토리.

    get은 매번 새 객체를 돌려주므로, 서비스가 읽은 객체를 고쳐도 update 전까지는 저장소가 바뀌지 않습니다.
    API 서버처럼 resourceVersion을 확인해서, 읽은 뒤 다른 쓰기가 있었던 객체로 교체하면 409를 발생시킵니다.
    conflict_hook이 설정되면 update 직전에 호출되고, True를 반환하면 409를 발생시킵니다.
    latency(초)를 주면 get과 update마다 그만큼 기다립니다.
    """
    def __init__(self):
        self.labels = {}
        self.secrets = {}
        self.versions = {}
        self.roles = set()
        self.role_bindings = set()
        self.update_calls = 0
        self.conflict_hook = None
        self.latency = 0
        self._lock = threading.RLock()

    def add_tenant(self, tenant_name, tenant_labels=None, secrets=None):
        name = labels.tenant_user_name(tenant_name)
        self.labels[name] = dict(tenant_labels or {})
        self.secrets[name] = list(secrets or [])
        self.versions[name] = 1

    def tenant_labels(self, tenant_name):
        return self.labels[labels.tenant_user_name(tenant_name)]

    def get_service_account(self, name):
        time.sleep(self.latency)
        with self._lock:
            if name not in self.labels:
                raise ObjectNotFoundError(f'serviceaccounts "{name}" not found', status=404)
            return V1ServiceAccount(
                metadata=V1ObjectMeta(
                    name=name, labels=dict(self.labels[name]), resource_version=str(self.versions[name]),
                ),
                secrets=[V1ObjectReference(name=s) for s in self.secrets[name]] or None,
            )

    def create_service_account(self, service_account):
        with self._lock:
            self.labels[service_account.metadata.name] = dict(service_account.metadata.labels or {})
            self.secrets[service_account.metadata.name] = []
            self.versions[service_account.metadata.name] = 1
        return service_account

    def update_service_account(self, service_account):
        time.sleep(self.latency)
        name = service_account.metadata.name
        with self._lock:
            self.update_calls += 1
            if self.conflict_hook is not None and self.conflict_hook(self):
                raise ConflictError("the object has been modified", status=409)
            if service_account.metadata.resource_version != str(self.versions.get(name)):
                raise ConflictError("the object has been modified", status=409)
            self.labels[name] = dict(service_account.metadata.labels or {})
            self.versions[name] += 1
        return service_account

    def delete_service_account(self, name):
        with self._lock:
            self.labels.pop(name, None)
            self.secrets.pop(name, None)
            self.versions.pop(name, None)

    def create_role(self, role):
        self.roles.add(role.metadata.name)
        return role

    def delete_role(self, name):
        self.roles.discard(name)

    def create_role_binding(self, role_binding):
        self.role_bindings.add(role_binding.metadata.name)
        return role_binding

    def delete_role_binding(self, name):
        self.role_bindings.discard(name)


@pytest.fixture
def settings() -> Settings:
    """대기 시간을 없앤 테스트용 설정."""
    return Settings(
        REMOVAL_POLL_INTERVAL=0,
        REMOVAL_TIMEOUT=1.0,
        TENANT_READY_ATTEMPTS=3,
        TENANT_READY_INTERVAL=0,
        GRANT_UPDATE_RETRIES=3,
        MAX_WORKERS=4,
    )

@pytest.fixture
def fake_tenant_repo() -> FakeTenantRepository:
    return FakeTenantRepository()
