from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional


class AccessType(str, Enum):
    NODE = "node"
    GROUP = "group"


@dataclass(frozen=True)
class Target:
    """
    클러스터 용량의 주소 단위입니다. 단일 노드(NODE)이거나 이름 붙은 노드 그룹(GROUP)입니다.
    타겟은 클러스터 토폴로지에서 발견될 뿐, 카탈로그가 만들지 않습니다.
    """
    name: str
    access_type: AccessType

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "access_type": self.access_type.value}


@dataclass(frozen=True)
class AccessGrant:
    """테넌트가 특정 타겟을 인스턴스화할 수 있도록 허가하는 (테넌트, 타겟, 접근 유형) 관계입니다."""
    tenant: str
    target: str
    access_type: AccessType


@dataclass
class ResourceLimits:
    """테넌트 타겟 쿼터의 limits/requests 값 (Kubernetes quantity 문자열)."""
    cpu: Optional[str] = None
    memory: Optional[str] = None
    storage: Optional[str] = None


@dataclass
class PodSpec:
    """테넌트 타겟 안에 생성할 파드의 요청 사양."""
    name: str
    image: str
    secrets: List[str] = field(default_factory=list)
    deploy_secret: Optional[str] = None
    cpu: Optional[str] = None
    memory: Optional[str] = None
    storage: Optional[str] = None
    always_restart: bool = False
    ports: List[int] = field(default_factory=list)
    command: List[str] = field(default_factory=list)
