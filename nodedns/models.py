from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel
from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class TZDatetime(TypeDecorator):
    """Custom DateTime type that ensures timezone-aware datetimes."""

    impl = DateTime(timezone=True)

    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is None:
            raise ValueError(
                "Naive datetime is not allowed. Please provide a timezone-aware datetime."
            )
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            # Assume UTC if no timezone info is present
            return value.replace(tzinfo=timezone.utc)
        return value


class Base(AsyncAttrs, DeclarativeBase):
    """SQLAlchemy declarative base for all ORM models with async support."""

    pass


class Node(Base):
    """Node identity table ORM model.

    Rows are never deleted once issued; ``revoked`` only moves from False to
    True. Only a digest of the revocation secret is stored.
    """

    __tablename__ = "node"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    secret_digest: Mapped[str] = mapped_column(String(64))
    address: Mapped[str] = mapped_column(Text)
    record_type: Mapped[str] = mapped_column(String(8))
    ttl: Mapped[int] = mapped_column(Integer)
    revoked: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    created_at: Mapped[datetime] = mapped_column(
        TZDatetime(), default=lambda: datetime.now(timezone.utc)
    )
    revoked_at: Mapped[Optional[datetime]] = mapped_column(TZDatetime(), nullable=True)


# Pydantic models for request/response serialization
class NodePublic(BaseModel):
    """Node view safe to return to any caller."""

    id: str
    fqdn: str
    address: str
    record_type: str
    ttl: int
    revoked: bool
    created_at: datetime
    revoked_at: datetime | None = None


class NodeRegistered(BaseModel):
    """Response for a registration; the only place the secret ever appears."""

    id: str
    revocation_secret: str
    fqdn: str
    record_type: str


class RevokeRequest(BaseModel):
    revocation_secret: str


class RevokeResponse(BaseModel):
    id: str
    revoked: bool
    dns_deleted: bool
    warning: str | None = None
