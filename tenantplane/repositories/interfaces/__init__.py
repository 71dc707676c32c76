from .tenant import ITenantRepository
from .node import INodeRepository
from .tenant_target import ITenantTargetRepository
from .pod import IPodRepository
from .secret import ISecretRepository
