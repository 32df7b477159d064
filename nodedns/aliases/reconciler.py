"""
Alias reconciler

Converges the zone's alias CNAMEs to a manifest in a single change batch.
A run walks IDLE -> FETCHING -> DIFFING -> APPLYING and ends in one of the
terminal states. There is no automatic retry; running again is the recovery
path for a partial failure.
"""

from dataclasses import dataclass, field
from enum import Enum

from ..dns.types import AliasEntry, AliasRecord, ChangeBatch, ChangeBatchResult, DNSChange
from ..dns.zone import DNSZone
from ..errors import NodeDNSError, PartialFailure
from ..logger import logger
from .manifest import ManifestSource
from .utils import diff_aliases

ALIAS_TTL = 300


class ReconcileState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    DIFFING = "diffing"
    APPLYING = "applying"
    SUCCEEDED = "succeeded"
    PARTIAL_FAILURE = "partial_failure"
    NOOP = "noop"
    EMPTY_MANIFEST = "empty_manifest"
    FAILED = "failed"


TERMINAL_STATES = frozenset(
    {
        ReconcileState.SUCCEEDED,
        ReconcileState.PARTIAL_FAILURE,
        ReconcileState.NOOP,
        ReconcileState.EMPTY_MANIFEST,
        ReconcileState.FAILED,
    }
)


@dataclass
class ReconcileResult:
    trail: list[ReconcileState] = field(default_factory=lambda: [ReconcileState.IDLE])
    changes: list[DNSChange] = field(default_factory=list)
    batch_result: ChangeBatchResult | None = None

    @property
    def status(self) -> ReconcileState:
        return self.trail[-1]

    @property
    def submitted(self) -> int:
        return len(self.batch_result.outcomes) if self.batch_result else 0

    def advance(self, state: ReconcileState) -> None:
        if self.status in TERMINAL_STATES:
            raise RuntimeError(f"Reconcile run already finished as {self.status.value}")
        self.trail.append(state)

    def check(self) -> None:
        """Raise PartialFailure if any submitted change was not applied."""
        if self.status == ReconcileState.PARTIAL_FAILURE and self.batch_result:
            failed = self.batch_result.failed
            raise PartialFailure(
                f"{len(failed)} of {self.submitted} alias changes failed",
                failed=[outcome.change.name for outcome in failed],
            )


class AliasReconciler:
    def __init__(
        self,
        zone: DNSZone,
        manifest_source: ManifestSource,
        ttl: int = ALIAS_TTL,
    ) -> None:
        self._zone = zone
        self._manifest_source = manifest_source
        self._ttl = ttl

    def diff(
        self, desired: list[AliasEntry], current: list[AliasRecord]
    ) -> list[DNSChange]:
        return diff_aliases(desired, current, self._zone.get_domain(), self._ttl)

    async def reconcile(
        self,
        desired: list[AliasEntry],
        current: list[AliasRecord],
        allow_empty: bool = False,
        result: ReconcileResult | None = None,
    ) -> ReconcileResult:
        """
        Diff ``desired`` against ``current`` and submit the changes.

        An empty manifest against a non-empty zone ends as EMPTY_MANIFEST
        without touching the zone unless ``allow_empty`` is set.
        """
        result = result or ReconcileResult()
        result.advance(ReconcileState.DIFFING)

        if not desired and current and not allow_empty:
            logger.warning(
                f"Alias manifest is empty but {len(current)} aliases exist; "
                "refusing to delete them without confirmation"
            )
            result.advance(ReconcileState.EMPTY_MANIFEST)
            return result

        result.changes = self.diff(desired, current)
        if not result.changes:
            logger.info("Aliases already up to date")
            result.advance(ReconcileState.NOOP)
            return result

        result.advance(ReconcileState.APPLYING)
        batch = ChangeBatch(
            result.changes,
            comment=f"reconcile {len(desired)} aliases",
        )
        try:
            result.batch_result = await self._zone.submit_change_batch(batch)
        except NodeDNSError:
            result.advance(ReconcileState.FAILED)
            raise

        if result.batch_result.all_applied:
            logger.info(f"Applied {len(batch)} alias changes")
            result.advance(ReconcileState.SUCCEEDED)
        else:
            for outcome in result.batch_result.failed:
                logger.warning(
                    f"Alias change {outcome.change.action.value} "
                    f"{outcome.change.name} failed: {outcome.error}"
                )
            result.advance(ReconcileState.PARTIAL_FAILURE)
        return result

    async def reconcile_aliases(
        self, manifest_ref: str | None = None, allow_empty: bool = False
    ) -> ReconcileResult:
        """
        Run a full reconciliation: fetch the manifest and the zone's aliases,
        then reconcile. Fetch errors end the run and propagate.
        """
        result = ReconcileResult()
        result.advance(ReconcileState.FETCHING)
        try:
            desired = await self._manifest_source.fetch(manifest_ref)
            current = await self._zone.list_alias_records()
        except NodeDNSError as e:
            logger.error(f"Alias reconciliation aborted while fetching: {e}")
            result.advance(ReconcileState.FAILED)
            raise

        logger.info(
            f"Reconciling {len(desired)} desired aliases against {len(current)} current"
        )
        return await self.reconcile(desired, current, allow_empty, result)

    async def preview(self, manifest_ref: str | None = None) -> list[DNSChange]:
        """Compute the pending alias changes without submitting them."""
        desired = await self._manifest_source.fetch(manifest_ref)
        current = await self._zone.list_alias_records()
        return self.diff(desired, current)
