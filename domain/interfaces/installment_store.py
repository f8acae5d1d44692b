from datetime import date
from decimal import Decimal
from typing import Any, Optional

from typing_extensions import Protocol, TypedDict

from domain.entities import Installment, InstallmentStatus, ReceiptMethod


class InstallmentFilters(TypedDict, total=False):
    status: InstallmentStatus
    month: int
    year: int
    contract_id: str


class InstallmentStore(Protocol):
    """Persistence boundary for installments. Writes of one call are all-or-nothing."""

    async def insert_many(self, contract_id: str, installments: list[Installment]) -> list[Installment]: ...
    async def find_by_id(self, installment_id: str) -> Optional[Installment]: ...
    async def find_by_contract(self, contract_id: str) -> list[Installment]: ...
    async def find_overdue_candidates(self, as_of: date) -> list[Installment]: ...
    async def update(
        self,
        installment_id: str,
        fields: dict[str, Any],
        unless_paid: bool = False,
    ) -> Optional[Installment]:
        """
        Apply fields to one installment.

        With unless_paid the write is conditional on the row not being PAID.
        Returns None when no row was updated.
        """
        ...
    async def mark_paid(
        self,
        installment_id: str,
        payment_date: date,
        paid_amount: Decimal,
        receipt_method: Optional[ReceiptMethod] = None,
    ) -> Optional[Installment]:
        """
        Atomically set PAID unless the row is already PAID.

        Returns the updated installment, or None when no unpaid row matched.
        """
        ...
    async def update_many(self, installments: list[Installment]) -> int:
        """
        Write status, days overdue and timestamps back in one transaction.

        A row is written only while it is still SCHEDULED or OVERDUE with the
        due date it was read with; rows paid, cancelled or rescheduled in the
        meantime are left untouched.
        """
        ...
    async def delete_all_for_contract(self, contract_id: str, force: bool = True) -> int:
        """Delete every installment of a contract; without force raise PaidHistoryError if any is PAID."""
        ...
    async def replace_for_contract(
        self,
        contract_id: str,
        installments: list[Installment],
        force: bool = False,
    ) -> list[Installment]:
        """Delete and re-insert the schedule of a contract in one transaction."""
        ...
    async def has_paid(self, contract_id: str) -> bool: ...
    async def find_all(
        self,
        page: int = 1,
        page_size: Optional[int] = 10,
        filters: Optional[InstallmentFilters] = None,
    ) -> tuple[list[Installment], int]:
        """Installments ordered by due date; page_size None returns every match."""
        ...
    async def find_by_status(self, status: InstallmentStatus) -> list[Installment]: ...
    async def find_due_between(
        self,
        start: date,
        end: date,
        status: Optional[InstallmentStatus] = None,
    ) -> list[Installment]: ...
