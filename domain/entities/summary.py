from dataclasses import dataclass
from decimal import Decimal

from .installment import Installment, InstallmentStatus


@dataclass
class ScheduleSummary:
    scheduled_amount: Decimal = Decimal("0.00")
    paid_amount: Decimal = Decimal("0.00")
    overdue_amount: Decimal = Decimal("0.00")
    scheduled_count: int = 0
    paid_count: int = 0
    overdue_count: int = 0
    cancelled_count: int = 0
    total_days_overdue: int = 0

    @staticmethod
    def from_installments(installments: list[Installment]) -> 'ScheduleSummary':
        summary = ScheduleSummary()
        for inst in installments:
            if inst.status == InstallmentStatus.SCHEDULED:
                summary.scheduled_amount += inst.expected_amount
                summary.scheduled_count += 1
            elif inst.status == InstallmentStatus.PAID:
                # Paid totals reflect cash received, not the amount owed
                summary.paid_amount += inst.paid_amount if inst.paid_amount is not None else inst.expected_amount
                summary.paid_count += 1
            elif inst.status == InstallmentStatus.OVERDUE:
                summary.overdue_amount += inst.expected_amount
                summary.overdue_count += 1
                summary.total_days_overdue += inst.days_overdue
            else:
                summary.cancelled_count += 1
        return summary

    @property
    def open_amount(self) -> Decimal:
        return self.scheduled_amount + self.overdue_amount
