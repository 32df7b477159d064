"""
Tests for alias diffing
"""

from nodedns.aliases.utils import diff_aliases
from nodedns.dns.types import AliasEntry, AliasRecord, ChangeAction, RecordType

DOMAIN = "nodes.example.com"


def record(alias, node, ttl=300):
    return AliasRecord(alias=alias, node=node, ttl=ttl, value=f"{node}.{DOMAIN}")


class TestDiffAliases:
    def test_empty_desired_and_current(self):
        assert diff_aliases([], [], DOMAIN, 300) == []

    def test_identical_state_is_empty(self):
        desired = [AliasEntry("api", "n1"), AliasEntry("www", "n2")]
        current = [record("api", "n1"), record("www", "n2")]

        assert diff_aliases(desired, current, DOMAIN, 300) == []

    def test_new_alias_is_upserted(self):
        [change] = diff_aliases([AliasEntry("api", "n1")], [], DOMAIN, 300)

        assert change.action == ChangeAction.UPSERT
        assert change.name == "api.nodes.example.com"
        assert change.record_type == RecordType.CNAME
        assert change.value == "n1.nodes.example.com"
        assert change.ttl == 300

    def test_retargeted_alias_is_upserted(self):
        [change] = diff_aliases(
            [AliasEntry("api", "n1")], [record("api", "n0")], DOMAIN, 300
        )

        assert change.action == ChangeAction.UPSERT
        assert change.value == "n1.nodes.example.com"

    def test_ttl_change_is_upserted(self):
        [change] = diff_aliases(
            [AliasEntry("api", "n1")], [record("api", "n1", ttl=60)], DOMAIN, 300
        )

        assert change.action == ChangeAction.UPSERT
        assert change.ttl == 300

    def test_dropped_alias_is_deleted_as_published(self):
        current = [
            record("api", "n1"),
            AliasRecord(alias="old", node="n9", ttl=60, value="n9.nodes.example.com."),
        ]

        [change] = diff_aliases([AliasEntry("api", "n1")], current, DOMAIN, 300)

        assert change.action == ChangeAction.DELETE
        assert change.name == "old.nodes.example.com"
        assert change.value == "n9.nodes.example.com."
        assert change.ttl == 60

    def test_upserts_precede_deletes_in_alias_order(self):
        desired = [AliasEntry("b", "n1"), AliasEntry("a", "n1")]
        current = [record("z", "n1"), record("y", "n1")]

        changes = diff_aliases(desired, current, DOMAIN, 300)

        assert [(c.action, c.name.split(".")[0]) for c in changes] == [
            (ChangeAction.UPSERT, "a"),
            (ChangeAction.UPSERT, "b"),
            (ChangeAction.DELETE, "y"),
            (ChangeAction.DELETE, "z"),
        ]
