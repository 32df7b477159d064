"""
DNS type definitions for the DNS module
"""

import ipaddress
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple


class ChangeAction(str, Enum):
    CREATE = "CREATE"
    UPSERT = "UPSERT"
    DELETE = "DELETE"


class RecordType(str, Enum):
    A = "A"
    AAAA = "AAAA"
    CNAME = "CNAME"


class DNSChange(NamedTuple):
    """One record mutation submitted as part of a change batch"""

    action: ChangeAction
    name: str
    record_type: RecordType
    value: str
    ttl: int


class AliasEntry(NamedTuple):
    """Desired alias taken from a manifest"""

    alias: str
    node: str


class AliasRecord(NamedTuple):
    """Alias CNAME currently published in the zone"""

    alias: str
    node: str
    ttl: int
    value: str


class ChangeOutcome(NamedTuple):
    change: DNSChange
    applied: bool
    error: str | None = None


@dataclass
class ChangeBatch:
    """Ordered changes submitted to the provider in one request"""

    changes: list[DNSChange]
    comment: str = ""

    def __len__(self) -> int:
        return len(self.changes)


@dataclass
class ChangeBatchResult:
    """Per-change outcome of a submitted batch"""

    outcomes: list[ChangeOutcome] = field(default_factory=list)
    change_id: str | None = None

    @property
    def succeeded(self) -> list[ChangeOutcome]:
        return [outcome for outcome in self.outcomes if outcome.applied]

    @property
    def failed(self) -> list[ChangeOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.applied]

    @property
    def all_applied(self) -> bool:
        return not self.failed

    @classmethod
    def rejected(cls, batch: ChangeBatch, error: str) -> "ChangeBatchResult":
        return cls(
            outcomes=[ChangeOutcome(change, False, error) for change in batch.changes]
        )


def record_type_for_address(address: str) -> RecordType:
    """
    Pick A or AAAA for a source address.

    Only an IPv6 literal yields AAAA; everything else, including strings that
    are not valid addresses at all, is published as A and left for the
    provider to judge.
    """
    try:
        parsed = ipaddress.ip_address(address)
    except ValueError:
        return RecordType.A
    return RecordType.AAAA if parsed.version == 6 else RecordType.A


def fqdn(label: str, domain: str) -> str:
    return f"{label}.{domain.rstrip('.')}"
