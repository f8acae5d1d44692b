import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from domain.entities import Installment, InstallmentStatus, ScheduleSummary
from domain.exceptions import NotFoundError, ValidationError
from domain.interfaces import InstallmentFilters, InstallmentStore


@dataclass
class InstallmentPage:
    items: list[Installment]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0


class InstallmentQueryService:
    """Read side used by dashboards and reports."""

    def __init__(self, store: InstallmentStore):
        self.store = store

    async def get(self, installment_id: str) -> Installment:
        installment = await self.store.find_by_id(installment_id)
        if installment is None:
            raise NotFoundError("Installment", installment_id)
        return installment

    async def search(
        self,
        page: int = 1,
        page_size: int = 10,
        filters: Optional[InstallmentFilters] = None,
    ) -> InstallmentPage:
        if page < 1 or page_size < 1:
            raise ValidationError("page and page_size must be positive")
        filters = filters or {}
        if ("month" in filters) != ("year" in filters):
            raise ValidationError("month and year filters must be used together", field="month")
        items, total = await self.store.find_all(page=page, page_size=page_size, filters=filters)
        return InstallmentPage(items=items, total=total, page=page, page_size=page_size)

    async def list_for_contract(self, contract_id: str) -> list[Installment]:
        return await self.store.find_by_contract(contract_id)

    async def overdue(self) -> list[Installment]:
        return await self.store.find_by_status(InstallmentStatus.OVERDUE)

    async def upcoming(self, days: int = 7, today: Optional[date] = None) -> list[Installment]:
        """SCHEDULED installments due from today through today + days."""
        if days < 0:
            raise ValidationError("days must not be negative", field="days")
        today = today or date.today()
        return await self.store.find_due_between(today, today + timedelta(days=days), InstallmentStatus.SCHEDULED)

    async def summary(self, contract_id: Optional[str] = None) -> ScheduleSummary:
        if contract_id is not None:
            installments = await self.store.find_by_contract(contract_id)
        else:
            installments, _ = await self.store.find_all(page=1, page_size=None)
        return ScheduleSummary.from_installments(installments)
