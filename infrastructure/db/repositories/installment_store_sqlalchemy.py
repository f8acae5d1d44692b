from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import delete, extract, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities import Installment, InstallmentStatus, ReceiptMethod
from domain.exceptions import PaidHistoryError
from domain.interfaces import InstallmentFilters, InstallmentStore
from infrastructure.db.models.installments import InstallmentModel, column_values

PAID = InstallmentStatus.PAID.value
OPEN_STATUSES = (InstallmentStatus.SCHEDULED.value, InstallmentStatus.OVERDUE.value)


def lock_contract_rows(contract_id: str):
    """SELECT ... FOR UPDATE over a contract's rows; payments on them wait for the caller's commit."""
    return (
        select(InstallmentModel.status)
        .where(InstallmentModel.contract_id == contract_id)
        .with_for_update()
    )


class InstallmentStoreSqlalchemy(InstallmentStore):
    """
    SQLAlchemy implementation of InstallmentStore.

    Every public write commits once at the end and rolls back on error, so a
    caller never observes half of a batch.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _fetch(self, installment_id: str) -> Optional[InstallmentModel]:
        stmt = (
            select(InstallmentModel)
            .where(InstallmentModel.id == installment_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def _fetch_all(self, stmt) -> list[Installment]:
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        return [model.to_domain() for model in result.scalars().all()]

    async def _paid_count(self, contract_id: str) -> int:
        stmt = (
            select(func.count())
            .select_from(InstallmentModel)
            .where(InstallmentModel.contract_id == contract_id, InstallmentModel.status == PAID)
        )
        return (await self.db.execute(stmt)).scalar_one()

    async def _ensure_no_paid_history(self, contract_id: str) -> None:
        """Lock the contract's rows until commit, then refuse if any is PAID."""
        statuses = (await self.db.execute(lock_contract_rows(contract_id))).scalars().all()
        paid = sum(1 for status in statuses if status == PAID)
        if paid:
            raise PaidHistoryError(contract_id, paid)

    async def insert_many(self, contract_id: str, installments: list[Installment]) -> list[Installment]:
        """Insert a freshly generated schedule."""
        try:
            self.db.add_all([InstallmentModel.from_domain(inst) for inst in installments])
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return installments

    async def find_by_id(self, installment_id: str) -> Optional[Installment]:
        model = await self._fetch(installment_id)
        return model.to_domain() if model else None

    async def find_by_contract(self, contract_id: str) -> list[Installment]:
        stmt = (
            select(InstallmentModel)
            .where(InstallmentModel.contract_id == contract_id)
            .order_by(InstallmentModel.sequence_number)
        )
        return await self._fetch_all(stmt)

    async def find_overdue_candidates(self, as_of: date) -> list[Installment]:
        """SCHEDULED or OVERDUE installments due before as_of."""
        stmt = (
            select(InstallmentModel)
            .where(InstallmentModel.status.in_(OPEN_STATUSES), InstallmentModel.due_date < as_of)
            .order_by(InstallmentModel.due_date, InstallmentModel.id)
        )
        return await self._fetch_all(stmt)

    async def update(
        self,
        installment_id: str,
        fields: dict[str, Any],
        unless_paid: bool = False,
    ) -> Optional[Installment]:
        values = column_values(fields)
        values["updated_at"] = datetime.now()
        stmt = update(InstallmentModel).where(InstallmentModel.id == installment_id)
        if unless_paid:
            stmt = stmt.where(InstallmentModel.status != PAID)
        try:
            result = await self.db.execute(
                stmt.values(**values).execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await self.db.rollback()
                return None
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return await self.find_by_id(installment_id)

    async def mark_paid(
        self,
        installment_id: str,
        payment_date: date,
        paid_amount: Decimal,
        receipt_method: Optional[ReceiptMethod] = None,
    ) -> Optional[Installment]:
        """UPDATE ... WHERE status != 'PAID'; a zero rowcount means another payment won."""
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
        updated = 0
        try:
            for inst in installments:
                stmt = (
                    update(InstallmentModel)
                    .where(
                        InstallmentModel.id == inst.id,
                        InstallmentModel.status.in_(OPEN_STATUSES),
                        InstallmentModel.due_date == inst.due_date,
                    )
                    .values(
                        status=inst.status.value,
                        days_overdue=inst.days_overdue,
                        updated_at=inst.updated_at or datetime.now(),
                    )
                    .execution_options(synchronize_session=False)
                )
                result = await self.db.execute(stmt)
                updated += result.rowcount
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return updated

    async def delete_all_for_contract(self, contract_id: str, force: bool = True) -> int:
        try:
            if not force:
                await self._ensure_no_paid_history(contract_id)
            result = await self.db.execute(
                delete(InstallmentModel)
                .where(InstallmentModel.contract_id == contract_id)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return result.rowcount

    async def replace_for_contract(
        self,
        contract_id: str,
        installments: list[Installment],
        force: bool = False,
    ) -> list[Installment]:
        try:
            if not force:
                await self._ensure_no_paid_history(contract_id)
            await self.db.execute(
                delete(InstallmentModel)
                .where(InstallmentModel.contract_id == contract_id)
                .execution_options(synchronize_session=False)
            )
            # The delete must reach the database before rows with the same ids are inserted
            self.db.expunge_all()
            self.db.add_all([InstallmentModel.from_domain(inst) for inst in installments])
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return installments

    async def has_paid(self, contract_id: str) -> bool:
        return await self._paid_count(contract_id) > 0

    async def find_all(
        self,
        page: int = 1,
        page_size: Optional[int] = 10,
        filters: Optional[InstallmentFilters] = None,
    ) -> tuple[list[Installment], int]:
        filters = filters or {}
        conditions = []
        if filters.get("status") is not None:
            conditions.append(InstallmentModel.status == InstallmentStatus.parse(filters["status"]).value)
        if filters.get("month") is not None and filters.get("year") is not None:
            conditions.append(extract("month", InstallmentModel.due_date) == filters["month"])
            conditions.append(extract("year", InstallmentModel.due_date) == filters["year"])
        if filters.get("contract_id") is not None:
            conditions.append(InstallmentModel.contract_id == filters["contract_id"])

        count_stmt = select(func.count()).select_from(InstallmentModel).where(*conditions)
        total = (await self.db.execute(count_stmt)).scalar_one()

        stmt = (
            select(InstallmentModel)
            .where(*conditions)
            .order_by(InstallmentModel.due_date, InstallmentModel.id)
        )
        if page_size is not None:
            stmt = stmt.offset((page - 1) * page_size).limit(page_size)
        return await self._fetch_all(stmt), total

    async def find_by_status(self, status: InstallmentStatus) -> list[Installment]:
        stmt = (
            select(InstallmentModel)
            .where(InstallmentModel.status == status.value)
            .order_by(InstallmentModel.due_date, InstallmentModel.id)
        )
        return await self._fetch_all(stmt)

    async def find_due_between(
        self,
        start: date,
        end: date,
        status: Optional[InstallmentStatus] = None,
    ) -> list[Installment]:
        stmt = select(InstallmentModel).where(
            InstallmentModel.due_date >= start,
            InstallmentModel.due_date <= end,
        )
        if status is not None:
            stmt = stmt.where(InstallmentModel.status == status.value)
        return await self._fetch_all(stmt.order_by(InstallmentModel.due_date, InstallmentModel.id))
