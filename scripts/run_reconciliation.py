#!/usr/bin/env python3
"""
Run the overdue reconciliation once against the configured database.

Usage:
    python scripts/run_reconciliation.py
    python scripts/run_reconciliation.py --as-of 2025-03-01

Uses DATABASE_URL (or DB_* variables) from the environment or .env.
"""
import argparse
import asyncio
import os
import sys
from datetime import date

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from dotenv import load_dotenv

load_dotenv()

from application.service.overdue_reconciliation import OverdueReconciliationService
from infrastructure.db.database import AsyncSessionLocal, dispose_engine
from infrastructure.db.repositories.installment_store_sqlalchemy import InstallmentStoreSqlalchemy
from infrastructure.logging.logging_adapter import LoggingAdapter
from infrastructure.metrics.metrics_adapter import MetricsAdapter


async def reconcile(as_of: date) -> int:
    try:
        async with AsyncSessionLocal() as session:
            service = OverdueReconciliationService(
                InstallmentStoreSqlalchemy(session),
                metrics_port=MetricsAdapter(),
                logging_port=LoggingAdapter(trigger="manual"),
            )
            return await service.reconcile_overdue(as_of)
    finally:
        await dispose_engine()


def main():
    parser = argparse.ArgumentParser(description="Mark past-due installments as OVERDUE")
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=None,
        help="Reference date (YYYY-MM-DD), defaults to today",
    )
    args = parser.parse_args()

    as_of = args.as_of or date.today()
    transitioned = asyncio.run(reconcile(as_of))
    print(f"Reconciliation as of {as_of.isoformat()}: {transitioned} installment(s) moved to OVERDUE")


if __name__ == "__main__":
    main()
