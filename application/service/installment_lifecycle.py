import time
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union

from domain.config import PaymentConfig, get_payment_config
from domain.entities import Installment, InstallmentStatus, PaymentRecorded, ReceiptMethod
from domain.exceptions import (
    AlreadyPaidError,
    AmountToleranceError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from domain.interfaces import InstallmentStore, LedgerPort, LoggingPort, MetricsPort, bind_logger
from domain.services.dates import format_competencia
from domain.services.money import to_money

UPDATABLE_FIELDS = frozenset(
    {"due_date", "expected_amount", "notes", "receipt_method", "payment_date", "paid_amount", "status"}
)


def _positive_amount(value: Union[Decimal, int, str], field: str) -> Decimal:
    """Amount rounded to cents; must still be positive after rounding."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise ValidationError(f"Invalid {field}: {value!r}", field=field) from e
    if not amount.is_finite():
        raise ValidationError(f"Invalid {field}: {value!r}", field=field)
    amount = to_money(amount)
    if amount <= 0:
        raise ValidationError(f"{field} must be a positive amount, got {value!r}", field=field)
    return amount


class InstallmentLifecycleService:
    def __init__(
        self,
        store: InstallmentStore,
        ledger_port: Optional[LedgerPort] = None,
        metrics_port: Optional[MetricsPort] = None,
        logging_port: Optional[LoggingPort] = None,
        payment_config: Optional[PaymentConfig] = None,
    ):
        """
        Initialize the installment lifecycle service.

        Args:
            store: Installment persistence (required)
            ledger_port: Cash ledger collaborator notified after payments (optional)
            metrics_port: Metrics port for emitting metrics (optional)
            logging_port: Logging port for structured logging (optional)
            payment_config: Tolerance and deferred receipt methods (defaults from env)
        """
        self.store = store
        self.ledger_port = ledger_port
        self.metrics_port = metrics_port
        self.logging_port = logging_port
        self.payment_config = payment_config or get_payment_config()

    async def _load(self, installment_id: str) -> Installment:
        installment = await self.store.find_by_id(installment_id)
        if installment is None:
            raise NotFoundError("Installment", installment_id)
        return installment

    def _count_payment(self, outcome: str) -> None:
        if self.metrics_port:
            self.metrics_port.increment_payment_total(outcome=outcome)

    async def record_payment(
        self,
        installment_id: str,
        payment_date: date,
        paid_amount: Union[Decimal, int, str],
        receipt_method: Optional[Union[ReceiptMethod, str]] = None,
    ) -> Installment:
        """
        Record the payment of an installment.

        Underpayment is accepted; overpayment is accepted up to the configured
        tolerance above the expected amount (10% by default).

        Args:
            installment_id: ID of the installment
            payment_date: Date the money was received
            paid_amount: Amount received
            receipt_method: How the money was received (optional)

        Raises:
            NotFoundError: no installment with this ID
            AlreadyPaidError: installment is already PAID, including when a
                concurrent payment wins the race
            AmountToleranceError: paid_amount exceeds the tolerance ceiling
            ValidationError: non-positive amount or cancelled installment
        """
        start_time = time.time()
        log = bind_logger(self.logging_port, installment_id=installment_id, step="record_payment")

        amount = _positive_amount(paid_amount, "paid_amount")
        method = ReceiptMethod.parse(receipt_method) if receipt_method is not None else None

        installment = await self._load(installment_id)

        if installment.is_paid:
            log.warning("payment_rejected_already_paid", payment_date=str(installment.payment_date))
            self._count_payment("already_paid")
            raise AlreadyPaidError(installment_id)
        if installment.status == InstallmentStatus.CANCELLED:
            raise InvalidTransitionError(installment_id, installment.status.value, InstallmentStatus.PAID.value)

        ceiling = installment.payment_ceiling(self.payment_config.tolerance)
        if amount > ceiling:
            log.warning(
                "payment_rejected_tolerance",
                paid_amount=str(amount),
                expected_amount=str(installment.expected_amount),
                ceiling=str(ceiling),
            )
            self._count_payment("tolerance_exceeded")
            raise AmountToleranceError(installment_id, amount, ceiling)

        # Conditional write: only one concurrent payment can flip the status
        updated = await self.store.mark_paid(installment_id, payment_date, amount, method)
        if updated is None:
            log.warning("payment_rejected_concurrent")
            self._count_payment("already_paid")
            raise AlreadyPaidError(installment_id)

        self._count_payment("recorded")
        log.info(
            "payment_recorded",
            contract_id=updated.contract_id,
            paid_amount=str(updated.paid_amount),
            expected_amount=str(updated.expected_amount),
            payment_date=updated.payment_date.isoformat(),
            receipt_method=method.value if method else None,
            previous_status=installment.status.value,
            duration_ms=round((time.time() - start_time) * 1000, 2),
        )

        if self.ledger_port and not self._is_deferred(method):
            posted = await self.ledger_port.post_payment(PaymentRecorded.from_installment(updated))
            log.info("ledger_notified", success=posted)

        return updated

    def _is_deferred(self, method: Optional[ReceiptMethod]) -> bool:
        return method is not None and method.value in self.payment_config.deferred_methods

    async def update_installment(self, installment_id: str, changes: dict[str, Any]) -> Installment:
        """
        Field-level update of an installment (due date shift, amount correction,
        notes, receipt method, payment data).

        A payment date without a paid amount, or the reverse, is rejected. Status
        changes follow the state machine: nothing leaves PAID or CANCELLED, PAID is
        only reached through record_payment and OVERDUE only through reconciliation.
        """
        log = bind_logger(self.logging_port, installment_id=installment_id, step="update_installment")

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        installment = await self._load(installment_id)
        fields: dict[str, Any] = {}

        has_date = changes.get("payment_date") is not None
        has_amount = changes.get("paid_amount") is not None
        if has_date != has_amount:
            raise ValidationError(
                "payment_date and paid_amount must be provided together",
                field="payment_date" if has_amount else "paid_amount",
            )
        if has_date:
            fields["payment_date"] = changes["payment_date"]
            fields["paid_amount"] = _positive_amount(changes["paid_amount"], "paid_amount")

        if "status" in changes and changes["status"] is not None:
            fields.update(self._status_change(installment, InstallmentStatus.parse(changes["status"])))

        if changes.get("due_date") is not None:
            due_date = changes["due_date"]
            fields["due_date"] = due_date
            fields["competencia"] = format_competencia(due_date)
            if installment.status == InstallmentStatus.OVERDUE and due_date >= date.today() and "status" not in fields:
                # Postponed past today: no longer overdue
                fields["status"] = InstallmentStatus.SCHEDULED
                fields["days_overdue"] = 0

        if changes.get("expected_amount") is not None:
            fields["expected_amount"] = _positive_amount(changes["expected_amount"], "expected_amount")
        if "notes" in changes:
            fields["notes"] = changes["notes"]
        if "receipt_method" in changes:
            method = changes["receipt_method"]
            fields["receipt_method"] = ReceiptMethod.parse(method) if method is not None else None

        if not fields:
            return installment

        updated = await self.store.update(installment_id, fields, unless_paid="status" in fields)
        if updated is None:
            if "status" in fields:
                raise AlreadyPaidError(installment_id)
            raise NotFoundError("Installment", installment_id)

        log.info("installment_updated", fields=sorted(fields))
        return updated

    @staticmethod
    def _status_change(installment: Installment, target: InstallmentStatus) -> dict:
        current = installment.status
        if current == target:
            return {}
        if current == InstallmentStatus.PAID:
            raise AlreadyPaidError(installment.id)
        # PAID only through record_payment, OVERDUE only through reconciliation
        if current == InstallmentStatus.CANCELLED or target in (InstallmentStatus.PAID, InstallmentStatus.OVERDUE):
            raise InvalidTransitionError(installment.id, current.value, target.value)
        return {"status": target, "days_overdue": 0}

    async def cancel_installment(self, installment_id: str) -> Installment:
        """Cancel an installment. Paid installments cannot be cancelled."""
        log = bind_logger(self.logging_port, installment_id=installment_id, step="cancel_installment")
        installment = await self._load(installment_id)
        if installment.status == InstallmentStatus.CANCELLED:
            return installment
        installment.cancel()

        updated = await self.store.update(
            installment_id,
            {"status": InstallmentStatus.CANCELLED, "days_overdue": 0},
            unless_paid=True,
        )
        if updated is None:
            raise AlreadyPaidError(installment_id)
        log.info("installment_cancelled", contract_id=installment.contract_id)
        return updated
