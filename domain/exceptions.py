"""
Domain exceptions for the installment engine.

Every error raised by the core is synchronous and reaches the immediate caller;
the HTTP layer maps each kind to its own status code.
"""
from typing import Optional


class InstallmentEngineError(Exception):
    """Base exception for all installment engine errors."""


class InvalidPaymentModeError(InstallmentEngineError):
    """Unrecognized payment mode passed to the schedule generator."""

    def __init__(self, payment_mode: object):
        self.payment_mode = payment_mode
        super().__init__(f"Unknown payment mode: {payment_mode!r}")


class NotFoundError(InstallmentEngineError):
    """Referenced installment or contract does not exist."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class AlreadyPaidError(InstallmentEngineError):
    """Installment is already PAID and cannot change status again."""

    def __init__(self, installment_id: str):
        self.installment_id = installment_id
        super().__init__(f"Installment {installment_id} is already paid")


class AmountToleranceError(InstallmentEngineError):
    """Paid amount exceeds the allowed ceiling over the expected amount."""

    def __init__(self, installment_id: str, paid_amount, ceiling):
        self.installment_id = installment_id
        self.paid_amount = paid_amount
        self.ceiling = ceiling
        super().__init__(
            f"Paid amount {paid_amount} exceeds the ceiling {ceiling} for installment {installment_id}"
        )


class ValidationError(InstallmentEngineError):
    """Malformed input (partial update, contract terms, amounts)."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class InvalidTransitionError(ValidationError):
    """Requested status change is not allowed by the installment state machine."""

    def __init__(self, installment_id: str, current: str, target: str):
        self.installment_id = installment_id
        self.current = current
        self.target = target
        super().__init__(
            f"Installment {installment_id} cannot move from {current} to {target}",
            field="status",
        )


class PaidHistoryError(InstallmentEngineError):
    """Safe schedule regeneration refused because paid installments would be discarded."""

    def __init__(self, contract_id: str, paid_count: int = 1):
        self.contract_id = contract_id
        self.paid_count = paid_count
        super().__init__(
            f"Contract {contract_id} has paid installments; use force to regenerate"
        )
