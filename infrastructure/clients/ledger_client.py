"""
Ledger client for posting recorded payments to the cash ledger service.

Retries with exponential backoff using tenacity and observes latency metrics.
A posting that still fails after all attempts is logged and reported as
False; the payment itself is already committed at that point.
"""
import time
from typing import Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from domain.entities import PaymentRecorded
from infrastructure.logging.structlog_logs import logger
from infrastructure.metrics.metrics import ledger_latency_seconds, ledger_post_failures_total

RETRYABLE_ERRORS = (httpx.HTTPStatusError, httpx.TimeoutException, httpx.RequestError)


class LedgerClient:
    """
    HTTP client that implements LedgerPort.

    Uses tenacity for retries:
    - max_attempts: 5 (configurable)
    - exponential backoff between attempts
    - retries on non-2xx responses and network errors
    """

    def __init__(
        self,
        base_url: str,
        path: str = "/payments",
        max_attempts: int = 5,
        connect_timeout: float = 2.0,
        read_timeout: float = 5.0,
        backoff_multiplier: float = 1.0,
        backoff_max: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the ledger client.

        Args:
            base_url: Base URL of the ledger service
            path: Endpoint receiving payment events
            max_attempts: Total attempts including the first one
            connect_timeout: Connection timeout in seconds
            read_timeout: Read timeout in seconds
            backoff_multiplier: Multiplier of the exponential wait between attempts
            backoff_max: Longest wait between attempts in seconds
            client: Pre-built httpx client (tests inject a MockTransport here)
        """
        self.url = f"{base_url.rstrip('/')}/{path.lstrip('/')}"
        self.max_attempts = max_attempts
        self.backoff_multiplier = backoff_multiplier
        self.backoff_max = backoff_max
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=connect_timeout,
                read=read_timeout,
                write=read_timeout,
                pool=connect_timeout,
            ),
        )

    async def _post_once(self, payload: dict) -> httpx.Response:
        start_time = time.time()
        try:
            response = await self._client.post(self.url, json=payload)
        finally:
            ledger_latency_seconds.observe(time.time() - start_time)
        # Non-2xx raises HTTPStatusError, which is retried
        response.raise_for_status()
        return response

    async def post_payment(self, event: PaymentRecorded) -> bool:
        """
        Post a recorded payment to the ledger.

        Returns:
            True if the ledger answered 2xx within max_attempts, False otherwise
        """
        payload = event.to_payload()
        log = logger.bind(
            installment_id=event.installment_id,
            contract_id=event.contract_id,
            step="ledger_post",
        )
        attempts = 0
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=self.backoff_multiplier, max=self.backoff_max),
                retry=retry_if_exception_type(RETRYABLE_ERRORS),
            ):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    response = await self._post_once(payload)
        except RetryError as e:
            ledger_post_failures_total.inc()
            last_error = e.last_attempt.exception() if e.last_attempt else None
            log.error(
                "ledger_post_failed_after_retries",
                attempts=attempts,
                error=str(last_error) if last_error else str(e),
            )
            return False

        log.info("ledger_post_succeeded", status_code=response.status_code, attempts=attempts)
        return True

    async def close(self):
        """Close the httpx client."""
        await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
