"""
애플리케이션 설정

pydantic-settings로 환경 변수(TENANTPLANE_ 접두사)와 .env 파일에서 설정을 읽어옵니다.
"""
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    tenantplane 전역 설정.

    get_settings()는 lru_cache로 한 번만 생성되므로, 테스트에서 값을 바꾸려면
    Settings(...)를 직접 만들어 서비스에 주입하세요.
    """

    # 클러스터 연결
    KUBECONFIG: Optional[str] = None
    KUBE_CONTEXT: Optional[str] = None
    IN_CLUSTER: bool = False

    # 테넌트 신원 객체(ServiceAccount, Role, RoleBinding)가 놓이는 네임스페이스
    TENANT_NAMESPACE: str = "default"

    # 삭제 수렴 확인. REMOVAL_TIMEOUT이 None이면 확인될 때까지 무한정 기다립니다.
    REMOVAL_POLL_INTERVAL: float = 0.25
    REMOVAL_TIMEOUT: Optional[float] = 300.0

    # 테넌트 생성 후 준비 대기 (기본 600회 x 1초)
    TENANT_READY_ATTEMPTS: int = 600
    TENANT_READY_INTERVAL: float = 1.0

    # 권한 라벨 갱신 시 409 Conflict 재시도 횟수
    GRANT_UPDATE_RETRIES: int = 5

    # 다중 이름 작업의 동시 실행 상한
    MAX_WORKERS: int = 16

    # 테넌트 타겟 기본 쿼터
    DEFAULT_CPU: str = "2"
    DEFAULT_MEMORY: str = "4Gi"
    DEFAULT_STORAGE: str = "20Gi"

    # 로깅
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # WSGI 서버
    HOST: str = ""
    PORT: int = 8000

    class Config:
        env_prefix = "TENANTPLANE_"
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """캐시된 Settings 인스턴스를 반환합니다."""
    return Settings()
