"""
Node identity lifecycle: registration and revocation.
"""

from .coordinator import NodeLifecycleCoordinator
from .store import IdentityStore, SQLIdentityStore
from .types import NodeRecord, RegisteredNode, RevokeResult

__all__ = [
    "NodeLifecycleCoordinator",
    "IdentityStore",
    "SQLIdentityStore",
    "NodeRecord",
    "RegisteredNode",
    "RevokeResult",
]
