"""
Configuration module for the installment engine.

All configuration values are loaded from environment variables with sensible defaults.
See .env.example for all available configuration options.
"""
import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import FrozenSet


def _get_int(key: str, default: int) -> int:
    """Get int from environment variable."""
    return int(os.getenv(key, default))


def _get_decimal(key: str, default: str) -> Decimal:
    """Get Decimal from environment variable."""
    return Decimal(os.getenv(key, default))


def _get_bool(key: str, default: bool) -> bool:
    """Get bool from environment variable."""
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _get_set(key: str, default: str) -> FrozenSet[str]:
    """Get a comma separated set of upper-cased names from environment variable."""
    raw = os.getenv(key, default)
    return frozenset(item.strip().upper() for item in raw.split(",") if item.strip())


@dataclass
class ScheduleConfig:
    """Defaults applied by the schedule generator when a term is absent."""

    default_installment_count: int = field(default_factory=lambda: _get_int("SCHEDULE_DEFAULT_INSTALLMENTS", 3))
    default_due_day: int = field(default_factory=lambda: _get_int("SCHEDULE_DEFAULT_DUE_DAY", 15))
    # Number of monthly charges when a subscription has no end date
    subscription_months: int = field(default_factory=lambda: _get_int("SCHEDULE_SUBSCRIPTION_MONTHS", 12))


@dataclass
class PaymentConfig:
    """Payment acceptance policy."""

    # Paid amount may exceed the expected amount by at most this fraction
    tolerance: Decimal = field(default_factory=lambda: _get_decimal("PAYMENT_TOLERANCE", "0.10"))
    # Receipt methods settled later by a third party; no ledger posting on payment
    deferred_methods: FrozenSet[str] = field(default_factory=lambda: _get_set("PAYMENT_DEFERRED_METHODS", "CARD"))


@dataclass
class ReconciliationConfig:
    """Daily overdue sweep schedule."""

    hour: int = field(default_factory=lambda: _get_int("RECONCILE_HOUR", 0))
    minute: int = field(default_factory=lambda: _get_int("RECONCILE_MINUTE", 0))
    run_on_startup: bool = field(default_factory=lambda: _get_bool("RECONCILE_ON_STARTUP", True))


# Global config instances (lazy loaded)
_schedule_config = None
_payment_config = None
_reconciliation_config = None


def get_schedule_config() -> ScheduleConfig:
    """Get schedule generator configuration."""
    global _schedule_config
    if _schedule_config is None:
        _schedule_config = ScheduleConfig()
    return _schedule_config


def get_payment_config() -> PaymentConfig:
    """Get payment policy configuration."""
    global _payment_config
    if _payment_config is None:
        _payment_config = PaymentConfig()
    return _payment_config


def get_reconciliation_config() -> ReconciliationConfig:
    """Get reconciliation schedule configuration."""
    global _reconciliation_config
    if _reconciliation_config is None:
        _reconciliation_config = ReconciliationConfig()
    return _reconciliation_config


def reload_config():
    """Force reload of all configuration from environment variables."""
    global _schedule_config, _payment_config, _reconciliation_config
    _schedule_config = ScheduleConfig()
    _payment_config = PaymentConfig()
    _reconciliation_config = ReconciliationConfig()
