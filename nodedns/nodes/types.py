from datetime import datetime
from typing import NamedTuple

from ..dns.types import RecordType
from ..errors import UpstreamError


class NodeRecord(NamedTuple):
    """Node identity as held by an identity store"""

    id: str
    secret_digest: str
    address: str
    record_type: RecordType
    ttl: int
    revoked: bool
    created_at: datetime
    revoked_at: datetime | None = None


class RegisteredNode(NamedTuple):
    """Result of a registration. Carries the only copy of the secret."""

    id: str
    revocation_secret: str
    fqdn: str
    record_type: RecordType

    def __repr__(self) -> str:
        return (
            f"RegisteredNode(id={self.id!r}, fqdn={self.fqdn!r}, "
            f"record_type={self.record_type.value!r})"
        )


class RevokeResult(NamedTuple):
    """
    Acknowledgement of a revocation.

    The node is revoked whenever a RevokeResult is returned; ``warning`` is
    set when the DNS record could not be deleted.
    """

    node_id: str
    dns_deleted: bool
    warning: UpstreamError | None = None
