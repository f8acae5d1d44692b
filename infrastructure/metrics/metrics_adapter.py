"""
Metrics adapter that implements MetricsPort protocol.

Wraps the Prometheus counters so application services stay free of
prometheus_client imports.
"""
from infrastructure.metrics.metrics import (
    installment_overdue_transitions_total,
    installment_payments_total,
    installment_schedules_generated_total,
)


class MetricsAdapter:
    """Adapter that implements MetricsPort by incrementing Prometheus counters."""

    def increment_payment_total(self, outcome: str) -> None:
        """
        Increment the installment_payments_total counter.

        Args:
            outcome: One of "recorded", "already_paid" or "tolerance_exceeded"
        """
        installment_payments_total.labels(outcome=outcome).inc()

    def increment_overdue_transitions(self, count: int) -> None:
        if count > 0:
            installment_overdue_transitions_total.inc(count)

    def increment_schedules_generated(self, payment_mode: str) -> None:
        installment_schedules_generated_total.labels(payment_mode=payment_mode).inc()
