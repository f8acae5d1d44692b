import time
from datetime import date
from typing import Optional

from domain.interfaces import InstallmentStore, LoggingPort, MetricsPort, bind_logger


class OverdueReconciliationService:
    def __init__(
        self,
        store: InstallmentStore,
        metrics_port: Optional[MetricsPort] = None,
        logging_port: Optional[LoggingPort] = None,
    ):
        self.store = store
        self.metrics_port = metrics_port
        self.logging_port = logging_port

    async def reconcile_overdue(self, as_of: Optional[date] = None) -> int:
        """
        Move past-due SCHEDULED installments to OVERDUE and refresh days overdue.

        Every OVERDUE installment due before as_of gets its day count recomputed
        on each run, so running twice on the same day yields the same values.
        All changes are written in a single store call; if it fails nothing is
        applied and the error is logged and re-raised to the scheduler.

        Args:
            as_of: Reference date (defaults to today)

        Returns:
            Number of installments that transitioned to OVERDUE
        """
        as_of = as_of or date.today()
        start_time = time.time()
        log = bind_logger(self.logging_port, as_of=as_of.isoformat(), step="reconcile_overdue")
        log.info("reconciliation_started")

        try:
            candidates = await self.store.find_overdue_candidates(as_of)
            transitioned = 0
            for installment in candidates:
                if installment.mark_overdue(as_of):
                    transitioned += 1
            await self.store.update_many(candidates)
        except Exception as e:
            log.error(
                "reconciliation_failed",
                error=str(e),
                duration_ms=round((time.time() - start_time) * 1000, 2),
                exc_info=True,
            )
            raise

        if self.metrics_port:
            self.metrics_port.increment_overdue_transitions(count=transitioned)
        log.info(
            "reconciliation_completed",
            transitioned=transitioned,
            refreshed=len(candidates),
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )
        return transitioned
