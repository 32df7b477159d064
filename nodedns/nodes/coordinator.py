"""
Node lifecycle coordinator

Sequences node registration and revocation across an identity store and a
DNS zone. Each step's outcome is checked before the next one runs; the first
failure ends the flow.
"""

import hashlib
import hmac
import secrets
from datetime import datetime, timezone

from ..dns.types import (
    ChangeAction,
    ChangeBatch,
    DNSChange,
    fqdn,
    record_type_for_address,
)
from ..dns.zone import DNSZone
from ..errors import (
    AlreadyRevoked,
    ConditionFailed,
    NodeDNSError,
    Unauthorized,
    UpstreamError,
    ValidationError,
)
from ..logger import logger
from .store import IdentityStore
from .types import NodeRecord, RegisteredNode, RevokeResult

NODE_TTL = 3600
NODE_ID_BYTES = 16  # 128 bits
SECRET_BYTES = 20  # 160 bits


def digest_secret(secret: str) -> str:
    return hashlib.sha256(secret.encode()).hexdigest()


class NodeLifecycleCoordinator:
    """
    Registers and revokes nodes.

    Holds no state of its own; uniqueness and the single-winner revoke rely on
    the identity store's create-if-absent and conditional update.
    """

    def __init__(
        self,
        store: IdentityStore,
        zone: DNSZone,
        ttl: int = NODE_TTL,
    ) -> None:
        self._store = store
        self._zone = zone
        self._ttl = ttl

    @property
    def base_domain(self) -> str:
        return self._zone.get_domain()

    def node_fqdn(self, node_id: str) -> str:
        return fqdn(node_id, self.base_domain)

    async def register(self, source_address: str) -> RegisteredNode:
        """
        Mint a node identity for ``source_address`` and publish its address.

        Not idempotent: every call mints a new identity.

        Raises:
            ValidationError: source address missing
            Conflict: generated id already present in the store
            UpstreamError: store failure, or DNS failure after compensation
        """
        source_address = (source_address or "").strip()
        if not source_address:
            raise ValidationError("Source address is required", field="source_address")

        record_type = record_type_for_address(source_address)
        node_id = secrets.token_hex(NODE_ID_BYTES)
        revocation_secret = secrets.token_hex(SECRET_BYTES)

        record = NodeRecord(
            id=node_id,
            secret_digest=digest_secret(revocation_secret),
            address=source_address,
            record_type=record_type,
            ttl=self._ttl,
            revoked=False,
            created_at=datetime.now(timezone.utc),
        )
        await self._store.put(record)

        name = self.node_fqdn(node_id)
        change = DNSChange(
            action=ChangeAction.CREATE,
            name=name,
            record_type=record_type,
            value=source_address,
            ttl=record.ttl,
        )
        try:
            await self._submit_one(change, f"register node {node_id}")
        except NodeDNSError:
            await self._compensate_register(node_id)
            raise
        except Exception as e:
            await self._compensate_register(node_id)
            raise UpstreamError(
                f"DNS CREATE for {name} failed: {type(e).__name__}: {e}", name=name
            ) from e

        logger.info(f"Registered node {node_id} as {name} ({record_type.value})")
        return RegisteredNode(
            id=node_id,
            revocation_secret=revocation_secret,
            fqdn=name,
            record_type=record_type,
        )

    async def _compensate_register(self, node_id: str) -> None:
        try:
            await self._store.discard(node_id)
        except Exception as e:
            # The original DNS error is what the caller must see
            logger.error(
                f"Failed to discard node {node_id} after DNS create failure: {e}"
            )
            return
        logger.warning(f"Discarded node {node_id} after DNS create failure")

    async def revoke(self, node_id: str, supplied_secret: str) -> RevokeResult:
        """
        Revoke ``node_id`` and delete its DNS record.

        The conditional store update is the commit point. A DNS failure after
        it does not undo the revocation and is returned as a warning.

        Raises:
            ValidationError: id or secret missing
            NotFound: unknown node
            Unauthorized: secret mismatch
            AlreadyRevoked: node was already revoked, or a concurrent revoke won
            UpstreamError: store failure before the revocation committed
        """
        if not node_id:
            raise ValidationError("Node id is required", field="id")
        if not supplied_secret:
            raise ValidationError(
                "Revocation secret is required", field="revocation_secret", node_id=node_id
            )

        record = await self._store.get(node_id)

        if not hmac.compare_digest(
            digest_secret(supplied_secret), record.secret_digest
        ):
            logger.warning(f"Rejected revoke for node {node_id}: secret mismatch")
            raise Unauthorized("Revocation secret does not match", node_id=node_id)

        if record.revoked:
            raise AlreadyRevoked(f"Node {node_id} is already revoked", node_id=node_id)

        try:
            await self._store.mark_revoked(node_id, datetime.now(timezone.utc))
        except ConditionFailed as e:
            raise AlreadyRevoked(
                f"Node {node_id} was revoked concurrently", node_id=node_id
            ) from e

        logger.info(f"Revoked node {node_id}")

        change = DNSChange(
            action=ChangeAction.DELETE,
            name=self.node_fqdn(node_id),
            record_type=record.record_type,
            value=record.address,
            ttl=record.ttl,
        )
        try:
            await self._submit_one(change, f"revoke node {node_id}")
        except Exception as e:
            if isinstance(e, UpstreamError):
                warning = e
            else:
                warning = UpstreamError(
                    f"DNS DELETE for {change.name} failed: {type(e).__name__}: {e}",
                    name=change.name,
                )
            logger.warning(
                f"Node {node_id} revoked but its DNS record was not deleted: {warning}"
            )
            return RevokeResult(node_id=node_id, dns_deleted=False, warning=warning)

        return RevokeResult(node_id=node_id, dns_deleted=True)

    async def get(self, node_id: str) -> NodeRecord:
        if not node_id:
            raise ValidationError("Node id is required", field="id")
        return await self._store.get(node_id)

    async def _submit_one(self, change: DNSChange, comment: str) -> None:
        """Submit a single-change batch; any non-applied outcome is an UpstreamError."""
        result = await self._zone.submit_change_batch(ChangeBatch([change], comment))
        if result.failed or not result.outcomes:
            error = result.failed[0].error if result.failed else "no outcome reported"
            raise UpstreamError(
                f"DNS {change.action.value} for {change.name} failed: {error}",
                name=change.name,
            )
