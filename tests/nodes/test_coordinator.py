"""
Tests for the node lifecycle coordinator
"""

import asyncio
import string

import pytest

from nodedns.dns.types import ChangeAction, RecordType
from nodedns.errors import (
    AlreadyRevoked,
    NotFound,
    Unauthorized,
    UpstreamError,
    ValidationError,
)
from nodedns.nodes.coordinator import NodeLifecycleCoordinator, digest_secret

from ..fixtures.fakes import FakeZone, MemoryIdentityStore, upstream


@pytest.fixture
def zone():
    return FakeZone()


@pytest.fixture
def store():
    return MemoryIdentityStore()


@pytest.fixture
def coordinator(store, zone):
    return NodeLifecycleCoordinator(store, zone)


class TestRegister:
    async def test_ipv4_selects_a_record(self, coordinator, zone):
        registered = await coordinator.register("203.0.113.5")

        assert registered.record_type == RecordType.A
        assert registered.fqdn == f"{registered.id}.nodes.example.com"

        [change] = zone.changes_of(ChangeAction.CREATE)
        assert change.name == registered.fqdn
        assert change.record_type == RecordType.A
        assert change.value == "203.0.113.5"
        assert change.ttl == 3600

    async def test_ipv6_selects_aaaa_record(self, coordinator, zone):
        registered = await coordinator.register("2001:db8::1")

        assert registered.record_type == RecordType.AAAA
        [change] = zone.changes_of(ChangeAction.CREATE)
        assert change.record_type == RecordType.AAAA

    async def test_malformed_address_is_published_as_given(self, coordinator, zone):
        registered = await coordinator.register("not-an-address")

        assert registered.record_type == RecordType.A
        [change] = zone.changes_of(ChangeAction.CREATE)
        assert change.value == "not-an-address"

    async def test_secret_has_at_least_160_bits(self, coordinator):
        registered = await coordinator.register("203.0.113.5")

        assert len(registered.revocation_secret) >= 40
        assert set(registered.revocation_secret) <= set(string.hexdigits)

    async def test_ids_are_unique(self, coordinator, store):
        ids = set()
        for _ in range(50):
            registered = await coordinator.register("203.0.113.5")
            assert registered.id not in ids
            ids.add(registered.id)

        assert len(store.records) == 50

    async def test_id_is_a_valid_dns_label(self, coordinator):
        registered = await coordinator.register("203.0.113.5")

        assert len(registered.id) == 32
        assert set(registered.id) <= set("0123456789abcdef")

    async def test_store_keeps_only_secret_digest(self, coordinator, store):
        registered = await coordinator.register("203.0.113.5")
        record = store.records[registered.id]

        assert record.secret_digest == digest_secret(registered.revocation_secret)
        assert registered.revocation_secret not in record
        assert record.revoked is False

    async def test_secret_not_in_repr(self, coordinator):
        registered = await coordinator.register("203.0.113.5")

        assert registered.revocation_secret not in repr(registered)

    async def test_empty_address_rejected(self, coordinator, store, zone):
        with pytest.raises(ValidationError):
            await coordinator.register("")

        assert store.records == {}
        assert zone.batches == []

    async def test_store_failure_skips_dns(self, coordinator, store, zone):
        store.fail_with = upstream("store down")

        with pytest.raises(UpstreamError):
            await coordinator.register("203.0.113.5")

        assert zone.batches == []

    async def test_dns_failure_discards_record(self, coordinator, store, zone):
        zone.fail_with = upstream("route53 down")

        with pytest.raises(UpstreamError, match="route53 down"):
            await coordinator.register("203.0.113.5")

        assert store.records == {}

    async def test_rejected_change_discards_record(self, coordinator, store, zone):
        original_submit = zone.submit_change_batch

        async def reject_all(batch):
            zone.reject_names.update(change.name for change in batch.changes)
            return await original_submit(batch)

        zone.submit_change_batch = reject_all

        with pytest.raises(UpstreamError, match="rejected"):
            await coordinator.register("203.0.113.5")

        assert store.records == {}

    async def test_failed_compensation_surfaces_dns_error(
        self, coordinator, store, zone
    ):
        zone.fail_with = upstream("route53 down")
        store.discard_error = upstream("store down")

        with pytest.raises(UpstreamError, match="route53 down"):
            await coordinator.register("203.0.113.5")

    async def test_unexpected_dns_error_discards_record(self, coordinator, store, zone):
        zone.fail_with = RuntimeError("connection reset")

        with pytest.raises(UpstreamError, match="connection reset") as exc_info:
            await coordinator.register("203.0.113.5")

        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert store.records == {}

    async def test_record_keeps_registration_ttl(self, store, zone):
        coordinator = NodeLifecycleCoordinator(store, zone, ttl=120)

        registered = await coordinator.register("203.0.113.5")

        assert store.records[registered.id].ttl == 120
        [change] = zone.changes_of(ChangeAction.CREATE)
        assert change.ttl == 120


class TestRevoke:
    async def test_revoke_marks_record_and_deletes_dns(self, coordinator, store, zone):
        registered = await coordinator.register("203.0.113.5")

        result = await coordinator.revoke(registered.id, registered.revocation_secret)

        assert result.node_id == registered.id
        assert result.dns_deleted is True
        assert result.warning is None
        assert store.records[registered.id].revoked is True
        assert store.records[registered.id].revoked_at is not None

        [delete] = zone.changes_of(ChangeAction.DELETE)
        assert delete.name == registered.fqdn
        assert delete.value == "203.0.113.5"
        assert delete.record_type == RecordType.A
        assert delete.ttl == 3600
        assert zone.records == {}

    async def test_wrong_secret_is_unauthorized(self, coordinator, store, zone):
        registered = await coordinator.register("203.0.113.5")

        with pytest.raises(Unauthorized) as exc_info:
            await coordinator.revoke(registered.id, "0" * 40)

        assert store.records[registered.id].revoked is False
        assert zone.changes_of(ChangeAction.DELETE) == []
        assert registered.revocation_secret not in str(exc_info.value.to_dict())

    async def test_unknown_node_is_not_found(self, coordinator):
        with pytest.raises(NotFound):
            await coordinator.revoke("f" * 32, "secret")

    async def test_missing_secret_is_validation_error(self, coordinator):
        registered = await coordinator.register("203.0.113.5")

        with pytest.raises(ValidationError):
            await coordinator.revoke(registered.id, "")

    async def test_second_revoke_is_already_revoked(self, coordinator, zone):
        registered = await coordinator.register("203.0.113.5")

        await coordinator.revoke(registered.id, registered.revocation_secret)
        with pytest.raises(AlreadyRevoked):
            await coordinator.revoke(registered.id, registered.revocation_secret)

        assert len(zone.changes_of(ChangeAction.DELETE)) == 1

    async def test_wrong_secret_on_revoked_node_is_unauthorized(self, coordinator):
        registered = await coordinator.register("203.0.113.5")
        await coordinator.revoke(registered.id, registered.revocation_secret)

        with pytest.raises(Unauthorized):
            await coordinator.revoke(registered.id, "0" * 40)

    async def test_concurrent_revokes_have_one_winner(self, coordinator, zone):
        registered = await coordinator.register("2001:db8::1")

        results = await asyncio.gather(
            coordinator.revoke(registered.id, registered.revocation_secret),
            coordinator.revoke(registered.id, registered.revocation_secret),
            return_exceptions=True,
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        assert len(winners) == 1
        assert len(losers) == 1
        assert isinstance(losers[0], AlreadyRevoked)
        assert len(zone.changes_of(ChangeAction.DELETE)) == 1

    async def test_lost_conditional_update_is_already_revoked(
        self, coordinator, store, zone
    ):
        registered = await coordinator.register("203.0.113.5")
        stale = store.records[registered.id]
        await coordinator.revoke(registered.id, registered.revocation_secret)

        async def stale_get(node_id):
            # Simulates a read that happened before the other revoke committed
            return stale

        store.get = stale_get

        with pytest.raises(AlreadyRevoked, match="concurrently"):
            await coordinator.revoke(registered.id, registered.revocation_secret)

        assert len(zone.changes_of(ChangeAction.DELETE)) == 1

    async def test_dns_failure_keeps_node_revoked(self, coordinator, store, zone):
        registered = await coordinator.register("203.0.113.5")
        zone.fail_with = upstream("route53 down")

        result = await coordinator.revoke(registered.id, registered.revocation_secret)

        assert result.dns_deleted is False
        assert isinstance(result.warning, UpstreamError)
        assert store.records[registered.id].revoked is True

        # Retrying after a DNS failure is terminal, not a second delete attempt
        zone.fail_with = None
        with pytest.raises(AlreadyRevoked):
            await coordinator.revoke(registered.id, registered.revocation_secret)


    async def test_delete_quotes_ttl_from_registration(self, store, zone):
        registered = await NodeLifecycleCoordinator(store, zone, ttl=3600).register(
            "203.0.113.5"
        )

        result = await NodeLifecycleCoordinator(store, zone, ttl=60).revoke(
            registered.id, registered.revocation_secret
        )

        assert result.dns_deleted is True
        [delete] = zone.changes_of(ChangeAction.DELETE)
        assert delete.ttl == 3600
        assert zone.records == {}

    async def test_unexpected_dns_error_is_warning(self, coordinator, store, zone):
        registered = await coordinator.register("203.0.113.5")
        zone.fail_with = RuntimeError("connection reset")

        result = await coordinator.revoke(registered.id, registered.revocation_secret)

        assert result.dns_deleted is False
        assert isinstance(result.warning, UpstreamError)
        assert "connection reset" in result.warning.detail
        assert store.records[registered.id].revoked is True

class TestGet:
    async def test_get_returns_record(self, coordinator):
        registered = await coordinator.register("203.0.113.5")

        record = await coordinator.get(registered.id)

        assert record.id == registered.id
        assert record.address == "203.0.113.5"

    async def test_get_unknown(self, coordinator):
        with pytest.raises(NotFound):
            await coordinator.get("missing")
