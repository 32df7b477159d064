"""
Alias diffing
"""

from typing import Iterable

from ..dns.types import (
    AliasEntry,
    AliasRecord,
    ChangeAction,
    DNSChange,
    RecordType,
    fqdn,
)


def diff_aliases(
    desired: Iterable[AliasEntry],
    current: Iterable[AliasRecord],
    domain: str,
    ttl: int,
) -> list[DNSChange]:
    """
    Compare desired aliases with the zone's alias records.

    Args:
        desired: Aliases from the manifest
        current: Alias CNAMEs currently in the zone
        domain: Base domain both aliases and nodes live under
        ttl: TTL for upserted aliases

    Returns:
        UPSERTs for new or retargeted aliases followed by DELETEs for aliases
        no longer in the manifest, each sorted by alias name
    """
    desired_by_alias = {entry.alias: entry for entry in desired}
    current_by_alias = {record.alias: record for record in current}

    upserts = []
    for alias in sorted(desired_by_alias):
        entry = desired_by_alias[alias]
        record = current_by_alias.get(alias)
        if record is not None and record.node == entry.node and record.ttl == ttl:
            continue
        upserts.append(
            DNSChange(
                action=ChangeAction.UPSERT,
                name=fqdn(alias, domain),
                record_type=RecordType.CNAME,
                value=fqdn(entry.node, domain),
                ttl=ttl,
            )
        )

    deletes = []
    for alias in sorted(current_by_alias):
        if alias in desired_by_alias:
            continue
        record = current_by_alias[alias]
        # A delete must quote the record exactly as the provider holds it
        deletes.append(
            DNSChange(
                action=ChangeAction.DELETE,
                name=fqdn(alias, domain),
                record_type=RecordType.CNAME,
                value=record.value,
                ttl=record.ttl,
            )
        )

    return upserts + deletes
