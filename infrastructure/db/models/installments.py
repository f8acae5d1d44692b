from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Date, DateTime, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from domain.entities import Installment, InstallmentStatus, ReceiptMethod
from infrastructure.db.models.base import Base


class InstallmentModel(Base):
    __tablename__ = "installment"
    __table_args__ = (
        UniqueConstraint("contract_id", "sequence_number"),
    )

    # {contract_id}-{seq:03d}
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    contract_id: Mapped[str] = mapped_column(String(48), nullable=False, index=True)
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    competencia: Mapped[str] = mapped_column(String(7), nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    expected_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    payment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    paid_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 2), nullable=True)
    receipt_method: Mapped[Optional[str]] = mapped_column(String(16), nullable=True)
    days_overdue: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    def to_domain(self) -> Installment:
        """Convert database model to domain entity."""
        return Installment(
            id=self.id,
            contract_id=self.contract_id,
            sequence_number=self.sequence_number,
            competencia=self.competencia,
            due_date=self.due_date,
            expected_amount=Decimal(self.expected_amount),
            status=InstallmentStatus(self.status),
            payment_date=self.payment_date,
            paid_amount=Decimal(self.paid_amount) if self.paid_amount is not None else None,
            receipt_method=ReceiptMethod(self.receipt_method) if self.receipt_method else None,
            days_overdue=self.days_overdue or 0,
            notes=self.notes,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_domain(cls, installment: Installment) -> "InstallmentModel":
        """Convert domain Installment entity to database model."""
        return cls(
            id=installment.id,
            contract_id=installment.contract_id,
            sequence_number=installment.sequence_number,
            competencia=installment.competencia,
            due_date=installment.due_date,
            expected_amount=installment.expected_amount,
            status=installment.status.value,
            payment_date=installment.payment_date,
            paid_amount=installment.paid_amount,
            receipt_method=installment.receipt_method.value if installment.receipt_method else None,
            days_overdue=installment.days_overdue,
            notes=installment.notes,
            created_at=installment.created_at,
            updated_at=installment.updated_at,
        )


def column_values(fields: dict) -> dict:
    """Translate domain field values (enums) into column values."""
    values = {}
    for key, value in fields.items():
        if isinstance(value, (InstallmentStatus, ReceiptMethod)):
            value = value.value
        values[key] = value
    return values
