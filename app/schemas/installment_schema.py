# app/schemas/installment_schema.py
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from domain.entities import ContractTerms, Installment, PaymentMode, ScheduleSummary


class ContractTermsRequest(BaseModel):
    total_value: Decimal = Field(gt=0)
    payment_mode: str
    installment_count: Optional[int] = None
    due_day: Optional[int] = None
    billing_start_date: Optional[date] = None
    billing_end_date: Optional[date] = None

    def to_domain(self) -> ContractTerms:
        return ContractTerms(
            total_value=self.total_value,
            payment_mode=PaymentMode.parse(self.payment_mode),
            installment_count=self.installment_count,
            due_day=self.due_day,
            billing_start_date=self.billing_start_date,
            billing_end_date=self.billing_end_date,
        )


class PaymentRequest(BaseModel):
    payment_date: date
    paid_amount: Decimal
    receipt_method: Optional[str] = None


class InstallmentUpdateRequest(BaseModel):
    due_date: Optional[date] = None
    expected_amount: Optional[Decimal] = None
    notes: Optional[str] = None
    receipt_method: Optional[str] = None
    payment_date: Optional[date] = None
    paid_amount: Optional[Decimal] = None
    status: Optional[str] = None

    def to_changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class InstallmentResponse(BaseModel):
    id: str
    contract_id: str
    sequence_number: int
    competencia: str
    due_date: date
    expected_amount: Decimal
    status: str
    payment_date: Optional[date] = None
    paid_amount: Optional[Decimal] = None
    receipt_method: Optional[str] = None
    days_overdue: int
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_domain(cls, installment: Installment) -> "InstallmentResponse":
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


class InstallmentPageResponse(BaseModel):
    items: List[InstallmentResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class SummaryResponse(BaseModel):
    scheduled_amount: Decimal
    paid_amount: Decimal
    overdue_amount: Decimal
    open_amount: Decimal
    scheduled_count: int
    paid_count: int
    overdue_count: int
    cancelled_count: int
    total_days_overdue: int

    @classmethod
    def from_domain(cls, summary: ScheduleSummary) -> "SummaryResponse":
        return cls(
            scheduled_amount=summary.scheduled_amount,
            paid_amount=summary.paid_amount,
            overdue_amount=summary.overdue_amount,
            open_amount=summary.open_amount,
            scheduled_count=summary.scheduled_count,
            paid_count=summary.paid_count,
            overdue_count=summary.overdue_count,
            cancelled_count=summary.cancelled_count,
            total_days_overdue=summary.total_days_overdue,
        )


class ReconciliationResponse(BaseModel):
    as_of: date
    transitioned: int
