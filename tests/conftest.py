"""
Shared fixtures: an in-memory InstallmentStore with the same write semantics
as the SQLAlchemy store (conditional PAID writes, atomic batches).
"""
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

import pytest

from domain.config import PaymentConfig, ScheduleConfig
from domain.entities import Installment, InstallmentStatus, ReceiptMethod
from domain.exceptions import PaidHistoryError

OPEN_STATUSES = (InstallmentStatus.SCHEDULED, InstallmentStatus.OVERDUE)


class InMemoryInstallmentStore:
    def __init__(self, installments: Optional[list[Installment]] = None):
        self.rows: dict[str, Installment] = {}
        self.fail_next_write: Optional[Exception] = None
        for inst in installments or []:
            self.rows[inst.id] = replace(inst)

    def _check_failure(self):
        if self.fail_next_write is not None:
            error, self.fail_next_write = self.fail_next_write, None
            raise error

    @staticmethod
    def _sorted(rows) -> list[Installment]:
        return [replace(r) for r in sorted(rows, key=lambda r: (r.due_date, r.id))]

    async def insert_many(self, contract_id: str, installments: list[Installment]) -> list[Installment]:
        self._check_failure()
        for inst in installments:
            self.rows[inst.id] = replace(inst)
        return installments

    async def find_by_id(self, installment_id: str) -> Optional[Installment]:
        row = self.rows.get(installment_id)
        return replace(row) if row else None

    async def find_by_contract(self, contract_id: str) -> list[Installment]:
        rows = [r for r in self.rows.values() if r.contract_id == contract_id]
        return [replace(r) for r in sorted(rows, key=lambda r: r.sequence_number)]

    async def find_overdue_candidates(self, as_of: date) -> list[Installment]:
        return self._sorted(r for r in self.rows.values() if r.status in OPEN_STATUSES and r.due_date < as_of)

    async def update(self, installment_id: str, fields: dict[str, Any], unless_paid: bool = False) -> Optional[Installment]:
        self._check_failure()
        row = self.rows.get(installment_id)
        if row is None or (unless_paid and row.status == InstallmentStatus.PAID):
            return None
        self.rows[installment_id] = replace(row, updated_at=datetime.now(), **fields)
        return replace(self.rows[installment_id])

    async def mark_paid(
        self,
        installment_id: str,
        payment_date: date,
        paid_amount: Decimal,
        receipt_method: Optional[ReceiptMethod] = None,
    ) -> Optional[Installment]:
        return await self.update(
            installment_id,
            {
                "status": InstallmentStatus.PAID,
                "payment_date": payment_date,
                "paid_amount": paid_amount,
                "receipt_method": receipt_method,
                "days_overdue": 0,
            },
            unless_paid=True,
        )

    async def update_many(self, installments: list[Installment]) -> int:
        self._check_failure()
        updated = 0
        for inst in installments:
            row = self.rows.get(inst.id)
            if row is None or row.status not in OPEN_STATUSES or row.due_date != inst.due_date:
                continue
            self.rows[inst.id] = replace(
                row, status=inst.status, days_overdue=inst.days_overdue, updated_at=inst.updated_at
            )
            updated += 1
        return updated

    async def delete_all_for_contract(self, contract_id: str, force: bool = True) -> int:
        self._check_failure()
        ids = [r.id for r in self.rows.values() if r.contract_id == contract_id]
        if not force and await self.has_paid(contract_id):
            raise PaidHistoryError(contract_id)
        for installment_id in ids:
            del self.rows[installment_id]
        return len(ids)

    async def replace_for_contract(
        self,
        contract_id: str,
        installments: list[Installment],
        force: bool = False,
    ) -> list[Installment]:
        self._check_failure()
        if not force and await self.has_paid(contract_id):
            raise PaidHistoryError(contract_id)
        for installment_id in [r.id for r in self.rows.values() if r.contract_id == contract_id]:
            del self.rows[installment_id]
        for inst in installments:
            self.rows[inst.id] = replace(inst)
        return installments

    async def has_paid(self, contract_id: str) -> bool:
        return any(r.contract_id == contract_id and r.is_paid for r in self.rows.values())

    async def find_all(self, page: int = 1, page_size: Optional[int] = 10, filters=None):
        filters = filters or {}
        rows = list(self.rows.values())
        if filters.get("status") is not None:
            status = InstallmentStatus.parse(filters["status"])
            rows = [r for r in rows if r.status == status]
        if filters.get("month") is not None and filters.get("year") is not None:
            rows = [r for r in rows if r.due_date.month == filters["month"] and r.due_date.year == filters["year"]]
        if filters.get("contract_id") is not None:
            rows = [r for r in rows if r.contract_id == filters["contract_id"]]
        ordered = self._sorted(rows)
        if page_size is None:
            return ordered, len(ordered)
        start = (page - 1) * page_size
        return ordered[start:start + page_size], len(ordered)

    async def find_by_status(self, status: InstallmentStatus) -> list[Installment]:
        return self._sorted(r for r in self.rows.values() if r.status == status)

    async def find_due_between(self, start: date, end: date, status: Optional[InstallmentStatus] = None):
        return self._sorted(
            r for r in self.rows.values()
            if start <= r.due_date <= end and (status is None or r.status == status)
        )


def make_installment(
    seq: int = 1,
    contract_id: str = "CTR-2025-0001",
    due_date: date = date(2025, 1, 15),
    expected_amount: str = "100.00",
    status: InstallmentStatus = InstallmentStatus.SCHEDULED,
    **kwargs,
) -> Installment:
    return Installment(
        id=f"{contract_id}-{seq:03d}",
        contract_id=contract_id,
        sequence_number=seq,
        competencia=f"{due_date.month:02d}/{due_date.year}",
        due_date=due_date,
        expected_amount=Decimal(expected_amount),
        status=status,
        **kwargs,
    )


@pytest.fixture
def store():
    return InMemoryInstallmentStore()


@pytest.fixture
def schedule_config():
    return ScheduleConfig(default_installment_count=3, default_due_day=15, subscription_months=12)


@pytest.fixture
def payment_config():
    return PaymentConfig(tolerance=Decimal("0.10"), deferred_methods=frozenset({"CARD"}))
