from typing_extensions import Protocol


class MetricsPort(Protocol):
    """Protocol for metrics operations."""

    def increment_payment_total(self, outcome: str) -> None:
        """
        Increment the installment_payments_total counter.

        Args:
            outcome: One of "recorded", "already_paid" or "tolerance_exceeded"
        """
        ...

    def increment_overdue_transitions(self, count: int) -> None:
        """
        Add to the installment_overdue_transitions_total counter.

        Args:
            count: Installments moved to OVERDUE by one reconciliation run
        """
        ...

    def increment_schedules_generated(self, payment_mode: str) -> None:
        """
        Increment the installment_schedules_generated_total counter.

        Args:
            payment_mode: CASH, INSTALLMENTS or SUBSCRIPTION
        """
        ...
