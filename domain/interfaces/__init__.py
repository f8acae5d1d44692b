from .installment_store import InstallmentStore, InstallmentFilters
from .ledger_port import LedgerPort
from .metrics_port import MetricsPort
from .logging_port import LoggingPort, BoundLogger, NoOpLogger, bind_logger

__all__ = ["InstallmentStore", "InstallmentFilters", "LedgerPort", "MetricsPort", "LoggingPort", "BoundLogger", "NoOpLogger", "bind_logger"]
