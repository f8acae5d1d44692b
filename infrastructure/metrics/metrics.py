# infrastructure/metrics/metrics.py
from fastapi import Response
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

installment_payments_total = Counter(
    "installment_payments_total",
    "Payment recording attempts",
    ["outcome"]  # recorded|already_paid|tolerance_exceeded
)

installment_overdue_transitions_total = Counter(
    "installment_overdue_transitions_total",
    "Installments moved to OVERDUE by reconciliation"
)

installment_schedules_generated_total = Counter(
    "installment_schedules_generated_total",
    "Schedules generated or regenerated",
    ["payment_mode"]  # CASH|INSTALLMENTS|SUBSCRIPTION
)

reconciliation_runs_total = Counter(
    "reconciliation_runs_total",
    "Reconciliation runs started by the scheduler",
    ["outcome"]  # success|failure
)

ledger_post_failures_total = Counter(
    "ledger_post_failures_total",
    "Payment postings the ledger did not accept after retries"
)

ledger_latency_seconds = Histogram(
    "ledger_latency_seconds",
    "Ledger webhook latency in seconds",
    buckets=[0.05, 0.1, 0.25, 0.5, 1, 2.5, 5]
)


def metrics_endpoint():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
