"""Identity stores.

An identity store only needs two atomic primitives: create-if-absent and a
conditional update of the revoked flag. The coordinator relies on nothing
else for cross-request consistency.
"""

from datetime import datetime

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..dns.types import RecordType
from ..errors import ConditionFailed, Conflict, NotFound, UpstreamError
from ..models import Node
from .types import NodeRecord


class IdentityStore:
    """
    abstract class for an identity store
    """

    async def put(self, record: NodeRecord) -> None:
        """Create the record; raise Conflict if the id already exists."""
        raise NotImplementedError

    async def get(self, node_id: str) -> NodeRecord:
        """Return the record; raise NotFound if absent."""
        raise NotImplementedError

    async def mark_revoked(self, node_id: str, revoked_at: datetime) -> None:
        """Set revoked=True guarded by revoked == False; raise ConditionFailed otherwise."""
        raise NotImplementedError

    async def discard(self, node_id: str) -> None:
        """Remove a record that was never handed out to a caller."""
        raise NotImplementedError


def _to_record(node: Node) -> NodeRecord:
    return NodeRecord(
        id=node.id,
        secret_digest=node.secret_digest,
        address=node.address,
        record_type=RecordType(node.record_type),
        ttl=node.ttl,
        revoked=node.revoked,
        created_at=node.created_at,
        revoked_at=node.revoked_at,
    )


class SQLIdentityStore(IdentityStore):
    """Identity store backed by an async SQLAlchemy database."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def put(self, record: NodeRecord) -> None:
        async with self._session_maker() as session:
            session.add(
                Node(
                    id=record.id,
                    secret_digest=record.secret_digest,
                    address=record.address,
                    record_type=record.record_type.value,
                    ttl=record.ttl,
                    revoked=record.revoked,
                    created_at=record.created_at,
                    revoked_at=record.revoked_at,
                )
            )
            try:
                await session.commit()
            except IntegrityError as e:
                raise Conflict(
                    f"Node {record.id} already exists", node_id=record.id
                ) from e
            except SQLAlchemyError as e:
                raise UpstreamError(
                    f"Failed to store node {record.id}: {e}", node_id=record.id
                ) from e

    async def get(self, node_id: str) -> NodeRecord:
        async with self._session_maker() as session:
            try:
                node = await session.get(Node, node_id)
            except SQLAlchemyError as e:
                raise UpstreamError(
                    f"Failed to load node {node_id}: {e}", node_id=node_id
                ) from e
        if node is None:
            raise NotFound(f"Node {node_id} not found", node_id=node_id)
        return _to_record(node)

    async def mark_revoked(self, node_id: str, revoked_at: datetime) -> None:
        async with self._session_maker() as session:
            try:
                result = await session.execute(
                    update(Node)
                    .where(Node.id == node_id, Node.revoked.is_(False))
                    .values(revoked=True, revoked_at=revoked_at)
                    .execution_options(synchronize_session=False)
                )
                await session.commit()
            except SQLAlchemyError as e:
                raise UpstreamError(
                    f"Failed to revoke node {node_id}: {e}", node_id=node_id
                ) from e
        if result.rowcount != 1:
            raise ConditionFailed(
                f"Node {node_id} is missing or already revoked", node_id=node_id
            )

    async def discard(self, node_id: str) -> None:
        async with self._session_maker() as session:
            try:
                await session.execute(delete(Node).where(Node.id == node_id))
                await session.commit()
            except SQLAlchemyError as e:
                raise UpstreamError(
                    f"Failed to discard node {node_id}: {e}", node_id=node_id
                ) from e
