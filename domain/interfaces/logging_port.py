from typing_extensions import Protocol
from typing import Any


class BoundLogger(Protocol):
    """Logger carrying context (installment_id, contract_id, step) on every event."""

    def debug(self, event: str, **kwargs: Any) -> None: ...

    def info(self, event: str, **kwargs: Any) -> None:
        """
        Log an info event.

        Args:
            event: snake_case event name, e.g. "payment_recorded"
            **kwargs: Additional context fields
        """
        ...

    def warning(self, event: str, **kwargs: Any) -> None: ...

    def error(self, event: str, exc_info: bool = False, **kwargs: Any) -> None:
        """
        Log an error event.

        Args:
            event: snake_case event name, e.g. "reconciliation_failed"
            exc_info: Whether to include the active exception
            **kwargs: Additional context fields
        """
        ...


class LoggingPort(Protocol):
    """Protocol for structured logging."""

    def bind(self, **kwargs: Any) -> BoundLogger:
        """Return a logger with kwargs bound to all of its events."""
        ...


class NoOpLogger:
    """Used by services constructed without a LoggingPort (tests, scripts)."""

    def debug(self, event: str, **kwargs: Any) -> None:
        pass

    def info(self, event: str, **kwargs: Any) -> None:
        pass

    def warning(self, event: str, **kwargs: Any) -> None:
        pass

    def error(self, event: str, exc_info: bool = False, **kwargs: Any) -> None:
        pass


def bind_logger(logging_port, **context: Any) -> BoundLogger:
    """Bind context on logging_port, or fall back to a no-op logger."""
    if logging_port is None:
        return NoOpLogger()
    return logging_port.bind(**context)
