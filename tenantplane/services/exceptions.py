# tenantplane/services/exceptions.py

# --- Validation Exceptions ---
class ValidationError(Exception):
    """요청 인자가 잘못되어 작업을 시작할 수 없을 때"""
    pass

class InvalidTargetError(ValidationError):
    """존재하지 않거나 구분자('_')를 포함한 타겟 이름일 때"""
    pass

class NoTargetResolvedError(ValidationError):
    """명시된 타겟도, 유효한 기본 타겟도 없을 때"""
    pass

class InvalidQuantityError(ValidationError):
    """CPU/메모리/스토리지 값이 Kubernetes quantity 형식이 아닐 때"""
    pass

class NotADeploySecretError(ValidationError):
    """조회한 시크릿이 레지스트리 자격증명(deploy-secret)이 아닐 때"""
    pass

# --- Authorization Exceptions ---
class AuthorizationError(Exception):
    """테넌트에게 권한이 없는 작업일 때"""
    pass

class TargetNotGrantedError(AuthorizationError):
    """테넌트에게 부여되지 않은 타겟을 사용하려고 할 때"""
    pass

# --- Gateway Exceptions ---
class GatewayError(Exception):
    """클러스터 API 호출이 실패했을 때. 원본 상태 코드와 사유를 그대로 보존합니다."""

    def __init__(self, message: str, status: int = None, reason: str = None):
        super().__init__(message)
        self.status = status
        self.reason = reason

class ObjectNotFoundError(GatewayError):
    """클러스터에서 객체를 찾을 수 없을 때 (404)"""
    pass

class ConflictError(GatewayError):
    """객체가 이미 존재하거나 resourceVersion이 오래되었을 때 (409)"""
    pass

# --- Lifecycle Exceptions ---
class RemovalNotConfirmedError(Exception):
    """삭제를 요청했지만 객체가 사라졌는지 확인하지 못했을 때 (시간 초과, API 불통, 취소)"""

    def __init__(self, message: str, outcome=None):
        super().__init__(message)
        self.outcome = outcome

class TenantNotReadyError(TimeoutError):
    """테넌트는 생성되었지만 준비 대기 시간 안에 자격증명 시크릿이 나타나지 않았을 때"""
    pass
