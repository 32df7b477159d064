"""
DNS zone access and change-batch model.
"""

from .route53 import Route53Zone
from .types import (
    AliasEntry,
    AliasRecord,
    ChangeAction,
    ChangeBatch,
    ChangeBatchResult,
    ChangeOutcome,
    DNSChange,
    RecordType,
    fqdn,
    record_type_for_address,
)
from .zone import DNSZone

__all__ = [
    "DNSZone",
    "Route53Zone",
    "AliasEntry",
    "AliasRecord",
    "ChangeAction",
    "ChangeBatch",
    "ChangeBatchResult",
    "ChangeOutcome",
    "DNSChange",
    "RecordType",
    "fqdn",
    "record_type_for_address",
]
