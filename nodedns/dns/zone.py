from .types import AliasRecord, ChangeBatch, ChangeBatchResult


class DNSZone:
    """
    abstract class for a DNS zone

    A zone accepts change batches and reports a per-change outcome. Accepted
    changes are live only after provider-side propagation.
    """

    def get_domain(self) -> str: ...

    async def submit_change_batch(self, batch: ChangeBatch) -> ChangeBatchResult:
        """
        Submit all changes of ``batch`` in one provider request.

        Implementations must not raise for changes the provider rejected;
        those are reported as non-applied outcomes. Transport or credential
        failures raise UpstreamError.
        """
        raise NotImplementedError

    async def list_alias_records(self) -> list[AliasRecord]:
        """
        List alias CNAME records directly under the zone's base domain.

        Returns:
            Alias records with the node label parsed from each CNAME target
        """
        raise NotImplementedError

    def alias_from_cname(self, name: str, value: str, ttl: int) -> AliasRecord | None:
        """
        Turn a CNAME into an AliasRecord, or None if it is not a direct child
        of the base domain.
        """
        domain = self.get_domain().rstrip(".").lower()
        name = name.rstrip(".").lower()
        suffix = f".{domain}"
        if not name.endswith(suffix):
            return None
        alias = name[: -len(suffix)]
        if not alias or "." in alias:
            return None

        target = value.rstrip(".").lower()
        node = target[: -len(suffix)] if target.endswith(suffix) else target
        return AliasRecord(alias=alias, node=node, ttl=ttl, value=value)
