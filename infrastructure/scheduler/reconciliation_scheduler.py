"""
Daily trigger for the overdue reconciliation.

Runs once when started (configurable) and then every day at
RECONCILE_HOUR:RECONCILE_MINUTE local time. A failed run is logged and counted;
the loop keeps going and the next attempt happens at the next daily slot.
"""
import asyncio
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Optional

from domain.config import ReconciliationConfig, get_reconciliation_config
from infrastructure.logging.structlog_logs import logger
from infrastructure.metrics.metrics import reconciliation_runs_total


class ReconciliationScheduler:
    def __init__(
        self,
        job: Callable[[], Awaitable[int]],
        config: Optional[ReconciliationConfig] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        """
        Args:
            job: Coroutine function running one reconciliation pass
            config: Daily run time and startup behaviour (defaults from env)
            clock: Source of the current time
        """
        self.job = job
        self.config = config or get_reconciliation_config()
        self.clock = clock
        self._task: Optional[asyncio.Task] = None
        self.log = logger.bind(step="reconciliation_scheduler")

    def next_run_at(self, now: datetime) -> datetime:
        candidate = now.replace(hour=self.config.hour, minute=self.config.minute, second=0, microsecond=0)
        if candidate <= now:
            candidate += timedelta(days=1)
        return candidate

    def seconds_until_next_run(self, now: datetime) -> float:
        return (self.next_run_at(now) - now).total_seconds()

    async def run_once(self, trigger: str = "schedule") -> Optional[int]:
        """Run the job once; returns the transition count, or None if it failed."""
        try:
            transitioned = await self.job()
        except Exception as e:
            reconciliation_runs_total.labels(outcome="failure").inc()
            self.log.error("scheduled_reconciliation_failed", trigger=trigger, error=str(e), exc_info=True)
            return None
        reconciliation_runs_total.labels(outcome="success").inc()
        self.log.info("scheduled_reconciliation_completed", trigger=trigger, transitioned=transitioned)
        return transitioned

    async def _loop(self) -> None:
        if self.config.run_on_startup:
            await self.run_once(trigger="startup")
        while True:
            delay = self.seconds_until_next_run(self.clock())
            self.log.info("reconciliation_scheduled", next_run_in_seconds=round(delay))
            await asyncio.sleep(delay)
            await self.run_once()

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
