"""
Periodic alias reconciliation.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .aliases.reconciler import AliasReconciler, ReconcileResult
from .logger import log_exception, logger

JOB_ID = "reconcile_aliases"


@log_exception("Scheduled alias reconciliation")
async def run_scheduled_reconcile(reconciler: AliasReconciler) -> ReconcileResult:
    result = await reconciler.reconcile_aliases()
    logger.info(f"Scheduled alias reconciliation finished as {result.status.value}")
    result.check()
    return result


class ReconcileScheduler:
    """
    Runs alias reconciliation on a fixed interval with APScheduler.

    Runs never overlap; a run that is still going when the next one is due
    causes the next one to be skipped.
    """

    def __init__(self, reconciler: AliasReconciler, interval_seconds: int):
        self.scheduler = AsyncIOScheduler()
        self._reconciler = reconciler
        self._interval_seconds = interval_seconds

    def start(self) -> None:
        self.scheduler.add_job(
            run_scheduled_reconcile,
            trigger=IntervalTrigger(seconds=self._interval_seconds),
            args=[self._reconciler],
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self.scheduler.start()
        logger.info(
            f"Alias reconciliation scheduled every {self._interval_seconds} seconds"
        )

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown()
