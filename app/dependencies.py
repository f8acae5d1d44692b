"""
Wiring of application services for FastAPI routes and the reconciliation scheduler.
"""
import os
from typing import Optional

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from application.service.contract_schedule import ContractScheduleService
from application.service.installment_lifecycle import InstallmentLifecycleService
from application.service.installment_queries import InstallmentQueryService
from application.service.overdue_reconciliation import OverdueReconciliationService
from infrastructure.clients import LedgerClient
from infrastructure.db.database import AsyncSessionLocal, get_db_session
from infrastructure.db.repositories.installment_store_sqlalchemy import InstallmentStoreSqlalchemy
from infrastructure.logging.logging_adapter import LoggingAdapter
from infrastructure.metrics.metrics_adapter import MetricsAdapter

_ledger_client: Optional[LedgerClient] = None


def ledger_url_builder() -> Optional[str]:
    return os.getenv("LEDGER_WEBHOOK_URL")


def get_ledger_client() -> Optional[LedgerClient]:
    """Shared ledger client; None when no ledger URL is configured."""
    global _ledger_client
    url = ledger_url_builder()
    if not url:
        return None
    if _ledger_client is None:
        _ledger_client = LedgerClient(base_url=url)
    return _ledger_client


async def close_ledger_client() -> None:
    global _ledger_client
    if _ledger_client is not None:
        await _ledger_client.close()
        _ledger_client = None


def get_store(db: AsyncSession = Depends(get_db_session)) -> InstallmentStoreSqlalchemy:
    return InstallmentStoreSqlalchemy(db)


def get_schedule_service(store: InstallmentStoreSqlalchemy = Depends(get_store)) -> ContractScheduleService:
    return ContractScheduleService(store, metrics_port=MetricsAdapter(), logging_port=LoggingAdapter())


def get_lifecycle_service(store: InstallmentStoreSqlalchemy = Depends(get_store)) -> InstallmentLifecycleService:
    return InstallmentLifecycleService(
        store,
        ledger_port=get_ledger_client(),
        metrics_port=MetricsAdapter(),
        logging_port=LoggingAdapter(),
    )


def get_query_service(store: InstallmentStoreSqlalchemy = Depends(get_store)) -> InstallmentQueryService:
    return InstallmentQueryService(store)


def get_reconciliation_service(store: InstallmentStoreSqlalchemy = Depends(get_store)) -> OverdueReconciliationService:
    return OverdueReconciliationService(store, metrics_port=MetricsAdapter(), logging_port=LoggingAdapter())


async def run_reconciliation() -> int:
    """One reconciliation pass on its own session, for the scheduler."""
    async with AsyncSessionLocal() as session:
        service = OverdueReconciliationService(
            InstallmentStoreSqlalchemy(session),
            metrics_port=MetricsAdapter(),
            logging_port=LoggingAdapter(trigger="scheduler"),
        )
        return await service.reconcile_overdue()
