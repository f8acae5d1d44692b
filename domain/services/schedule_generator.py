"""
Schedule Generator

Derives the installment schedule of a contract from its payment terms.

Modes:
- CASH: one installment for the full value, due on the billing start date.
- INSTALLMENTS: N installments on a fixed due day, one month apart.
- SUBSCRIPTION: one installment per month from the start month through the
  end month (12 months when no end date is given).

Amounts are truncated to cents and the last installment absorbs the remainder,
in every mode, so the schedule always sums to the contract value exactly.
Generation is pure: nothing is persisted here.
"""
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Optional, Union

from domain.config import ScheduleConfig, get_schedule_config
from domain.entities import ContractTerms, Installment, InstallmentStatus, PaymentMode
from domain.exceptions import ValidationError
from domain.services.dates import add_months_on_day, format_competencia, month_index
from domain.services.ids import installment_id
from domain.services.money import CENT, truncate_cents


def split_amount(total: Decimal, count: int) -> list[Decimal]:
    """
    Split total into count amounts truncated to cents, remainder on the last one.

    split_amount(Decimal("100.00"), 3) -> [33.33, 33.33, 33.34]
    """
    if count < 1:
        raise ValidationError(f"Installment count must be positive, got {count}", field="installment_count")
    per_installment = truncate_cents(total / count)
    if per_installment <= 0:
        raise ValidationError(
            f"Total value {total} is too small to split into {count} installments",
            field="installment_count",
        )
    last = total - per_installment * (count - 1)
    return [per_installment] * (count - 1) + [last]


class ScheduleGenerator:
    def __init__(self, config: Optional[ScheduleConfig] = None):
        self.config = config or get_schedule_config()

    def generate(
        self,
        contract_id: str,
        payment_mode: Union[PaymentMode, str],
        total_value: Union[Decimal, int, str],
        installment_count: Optional[int] = None,
        due_day: Optional[int] = None,
        billing_start_date: Optional[date] = None,
        billing_end_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> list[Installment]:
        """
        Generate the ordered, unpersisted schedule for a contract.

        Args:
            contract_id: Contract identifier, used as the installment id prefix
            payment_mode: CASH, INSTALLMENTS or SUBSCRIPTION
            total_value: Contract value, positive and expressed in whole cents
            installment_count: Number of installments (INSTALLMENTS only)
            due_day: Day of month for due dates (ignored for CASH)
            billing_start_date: First due month; defaults to today
            billing_end_date: Last due month (SUBSCRIPTION only)
            today: Reference date used when billing_start_date is absent

        Raises:
            InvalidPaymentModeError: payment_mode is not recognized
            ValidationError: terms are inconsistent (non-positive value or count,
                due day outside 1..31, end month before start month)
        """
        mode = PaymentMode.parse(payment_mode)
        total = self._validate_total(total_value)
        start = billing_start_date or today or date.today()

        if mode == PaymentMode.CASH:
            return [self._build(contract_id, 1, start, total)]

        day = self.config.default_due_day if due_day is None else due_day
        if not 1 <= day <= 31:
            raise ValidationError(f"Due day must be between 1 and 31, got {day}", field="due_day")

        if mode == PaymentMode.INSTALLMENTS:
            count = self.config.default_installment_count if installment_count is None else installment_count
        else:
            count = self._subscription_count(start, billing_end_date)

        amounts = split_amount(total, count)
        return [
            self._build(contract_id, seq, add_months_on_day(start, seq - 1, day), amount)
            for seq, amount in enumerate(amounts, start=1)
        ]

    def generate_from_terms(self, contract_id: str, terms: ContractTerms, today: Optional[date] = None) -> list[Installment]:
        return self.generate(
            contract_id=contract_id,
            payment_mode=terms.payment_mode,
            total_value=terms.total_value,
            installment_count=terms.installment_count,
            due_day=terms.due_day,
            billing_start_date=terms.billing_start_date,
            billing_end_date=terms.billing_end_date,
            today=today,
        )

    def _subscription_count(self, start: date, end: Optional[date]) -> int:
        if end is None:
            return self.config.subscription_months
        count = month_index(end) - month_index(start) + 1
        if count < 1:
            raise ValidationError(
                f"Billing end date {end.isoformat()} is before the start month {format_competencia(start)}",
                field="billing_end_date",
            )
        return count

    @staticmethod
    def _validate_total(total_value) -> Decimal:
        try:
            total = total_value if isinstance(total_value, Decimal) else Decimal(str(total_value))
        except InvalidOperation as e:
            raise ValidationError(f"Invalid total value: {total_value!r}", field="total_value") from e
        if not total.is_finite():
            raise ValidationError(f"Invalid total value: {total_value!r}", field="total_value")
        if total <= 0:
            raise ValidationError(f"Total value must be positive, got {total}", field="total_value")
        if total != total.quantize(CENT):
            raise ValidationError(f"Total value {total} has fractions of a cent", field="total_value")
        return total.quantize(CENT)

    @staticmethod
    def _build(contract_id: str, seq: int, due_date: date, amount: Decimal) -> Installment:
        return Installment(
            id=installment_id(contract_id, seq),
            contract_id=contract_id,
            sequence_number=seq,
            competencia=format_competencia(due_date),
            due_date=due_date,
            expected_amount=amount,
            status=InstallmentStatus.SCHEDULED,
        )


def generate_schedule(
    contract_id: str,
    payment_mode: Union[PaymentMode, str],
    total_value: Union[Decimal, int, str],
    installment_count: Optional[int] = None,
    due_day: Optional[int] = None,
    billing_start_date: Optional[date] = None,
    billing_end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> list[Installment]:
    """Generate a schedule with the configured defaults."""
    return ScheduleGenerator().generate(
        contract_id,
        payment_mode,
        total_value,
        installment_count=installment_count,
        due_day=due_day,
        billing_start_date=billing_start_date,
        billing_end_date=billing_end_date,
        today=today,
    )
