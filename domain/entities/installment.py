from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from domain.exceptions import AlreadyPaidError, InvalidTransitionError, ValidationError


class InstallmentStatus(Enum):
    SCHEDULED = "SCHEDULED"
    PAID = "PAID"
    OVERDUE = "OVERDUE"
    CANCELLED = "CANCELLED"

    @classmethod
    def parse(cls, value: Union[str, "InstallmentStatus"]) -> "InstallmentStatus":
        if isinstance(value, cls):
            return value
        key = str(value).strip().upper()
        key = _STATUS_ALIASES.get(key, key)
        if key not in cls.__members__:
            raise ValidationError(f"Unknown installment status: {value!r}", field="status")
        return cls[key]


class ReceiptMethod(Enum):
    PIX = "PIX"
    TRANSFER = "TRANSFER"
    INVOICE = "INVOICE"
    CHECK = "CHECK"
    CARD = "CARD"

    @classmethod
    def parse(cls, value: Union[str, "ReceiptMethod"]) -> "ReceiptMethod":
        if isinstance(value, cls):
            return value
        key = str(value).strip().upper()
        key = _RECEIPT_ALIASES.get(key, key)
        if key not in cls.__members__:
            raise ValidationError(f"Unknown receipt method: {value!r}", field="receipt_method")
        return cls[key]


_STATUS_ALIASES = {
    "PREVISTO": "SCHEDULED",
    "PAGO": "PAID",
    "ATRASADO": "OVERDUE",
    "CANCELADO": "CANCELLED",
}

_RECEIPT_ALIASES = {
    "TRANSFERENCIA": "TRANSFER",
    "BOLETO": "INVOICE",
    "CHEQUE": "CHECK",
    "CARTAO": "CARD",
}


@dataclass
class Installment:
    id: str
    contract_id: str
    sequence_number: int
    competencia: str
    due_date: date
    expected_amount: Decimal
    status: InstallmentStatus = InstallmentStatus.SCHEDULED
    payment_date: Optional[date] = None
    paid_amount: Optional[Decimal] = None
    receipt_method: Optional[ReceiptMethod] = None
    days_overdue: int = 0
    notes: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: Optional[datetime] = None

    @property
    def is_paid(self) -> bool:
        return self.status == InstallmentStatus.PAID

    def payment_ceiling(self, tolerance: Decimal) -> Decimal:
        """Largest amount accepted as payment for this installment."""
        return self.expected_amount * (Decimal("1") + tolerance)

    def record_payment(
        self,
        payment_date: date,
        paid_amount: Decimal,
        receipt_method: Optional[ReceiptMethod] = None,
    ) -> 'Installment':
        if self.is_paid:
            raise AlreadyPaidError(self.id)
        if self.status == InstallmentStatus.CANCELLED:
            raise InvalidTransitionError(self.id, self.status.value, InstallmentStatus.PAID.value)
        self.status = InstallmentStatus.PAID
        self.payment_date = payment_date
        self.paid_amount = paid_amount
        self.receipt_method = receipt_method
        self.days_overdue = 0
        self.updated_at = datetime.now()
        return self

    def mark_overdue(self, as_of: date) -> bool:
        """
        Advance a past-due installment to OVERDUE and refresh its day count.

        Returns True only when the status actually changed. The day count is
        always derived from as_of, never accumulated.
        """
        if self.due_date >= as_of:
            return False
        transitioned = False
        if self.status == InstallmentStatus.SCHEDULED:
            self.status = InstallmentStatus.OVERDUE
            transitioned = True
        if self.status == InstallmentStatus.OVERDUE:
            self.days_overdue = (as_of - self.due_date).days
            self.updated_at = datetime.now()
        return transitioned

    def cancel(self) -> 'Installment':
        if self.is_paid:
            raise AlreadyPaidError(self.id)
        self.status = InstallmentStatus.CANCELLED
        self.days_overdue = 0
        self.updated_at = datetime.now()
        return self
