"""
Error taxonomy shared by the coordinator, the reconciler and their adapters.

Every error carries a ``kind`` (stable, machine readable) and a ``retryable``
flag. Messages name the node or field involved but never a revocation secret.
"""

from typing import Any


class NodeDNSError(Exception):
    kind = "error"
    retryable = False

    def __init__(self, detail: str, **context: Any):
        super().__init__(detail)
        self.detail = detail
        self.context = context

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "detail": self.detail,
            "retryable": self.retryable,
            **self.context,
        }


class ValidationError(NodeDNSError):
    """Malformed or missing input (including a malformed manifest)."""

    kind = "validation_error"


class NotFound(NodeDNSError):
    kind = "not_found"


class AlreadyRevoked(NodeDNSError):
    """Terminal outcome of revoking a node that is already revoked."""

    kind = "already_revoked"


class Unauthorized(NodeDNSError):
    kind = "unauthorized"


class Conflict(NodeDNSError):
    """Lost a create-if-absent or conditional write."""

    kind = "conflict"
    retryable = True


class ConditionFailed(Conflict):
    """Raised by an identity store when a conditional update's guard is unmet."""

    kind = "condition_failed"


class UpstreamError(NodeDNSError):
    """Identity store, DNS provider or manifest source failure or timeout."""

    kind = "upstream_error"
    retryable = True


class PartialFailure(NodeDNSError):
    kind = "partial_failure"
    retryable = True
