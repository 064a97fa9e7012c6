"""Customer service client with timeout, retry and circuit breaking."""

from __future__ import annotations

import contextvars
import json
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any
from urllib.parse import quote

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from credit_engine.clients.circuit_breaker import (
    CircuitBreaker,
    CircuitOpenError,
    get_circuit_breaker,
)
from credit_engine.config import CustomerServiceConfig
from credit_engine.exceptions import CustomerNotFoundError, DependencyUnavailableError
from credit_engine.models import CustomerSnapshot

logger = logging.getLogger(__name__)


class TransientLookupError(Exception):
    """Timeout, transport failure or non-404 error status from the customer service.

    Retried by the gateway and counted by its circuit breaker.
    """


class CustomerGateway:
    """Resolve customer ids against the remote customer service.

    Each lookup is a single ``GET /api/customers/{id}`` bounded by
    ``timeout_seconds`` from sending the request to the last body byte. The
    attempt runs on a small worker pool so the caller stops waiting at the
    deadline even when the server keeps trickling bytes; the worker itself
    abandons the response at the same deadline. Transient failures are
    retried up to ``max_attempts`` times with exponential backoff, and every attempt passes
    through a circuit breaker shared by all gateways for the same service.

    Outcomes stay distinct:
    - found: a :class:`CustomerSnapshot`
    - 404: :class:`CustomerNotFoundError`, returned on the first response
      and never retried
    - anything else (timeouts, 5xx, open circuit): :class:`DependencyUnavailableError`

    Example:
        with CustomerGateway(CustomerServiceConfig(base_url="http://customers:8081")) as gateway:
            customer = gateway.resolve("cust-001")
    """

    CUSTOMER_PATH = "/api/customers/{customer_id}"

    def __init__(
        self,
        config: CustomerServiceConfig | None = None,
        client: httpx.Client | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        """
        Initialize the gateway.

        Args:
            config: Endpoint and resilience settings (defaults to CustomerServiceConfig())
            client: Pre-built httpx client; the gateway builds and owns one when omitted
            breaker: Circuit breaker; defaults to the shared breaker for config.breaker_name
        """
        self.config = config or CustomerServiceConfig()
        self._owns_client = client is None
        self._client = client or httpx.Client(
            base_url=self.config.base_url,
            timeout=httpx.Timeout(self.config.timeout_seconds),
            headers={"Accept": "application/json"},
        )
        self.breaker = breaker or get_circuit_breaker(
            self.config.breaker_name,
            failure_threshold=self.config.failure_threshold,
            recovery_timeout=self.config.recovery_timeout,
            expected_exception=TransientLookupError,
        )
        self._retrying = Retrying(
            retry=retry_if_exception_type(TransientLookupError),
            stop=stop_after_attempt(self.config.max_attempts),
            wait=wait_exponential(
                multiplier=self.config.retry_wait_initial,
                max=self.config.retry_wait_max,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.lookup_workers,
            thread_name_prefix="customer-lookup",
        )

    def __enter__(self) -> CustomerGateway:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        """Stop the lookup workers and close the HTTP client if the gateway created it."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        if self._owns_client:
            self._client.close()

    def resolve(self, customer_id: str) -> CustomerSnapshot:
        """
        Fetch a customer snapshot.

        Args:
            customer_id: Customer identifier

        Returns:
            The customer's id and type

        Raises:
            CustomerNotFoundError: The service answered 404
            DependencyUnavailableError: Timeouts, error responses or open circuit
        """
        logger.debug("Calling customer service for customer %s", customer_id)
        try:
            customer = self._retrying.copy()(self.breaker.call, self._bounded_fetch, customer_id)
        except (TransientLookupError, CircuitOpenError) as e:
            logger.warning(
                "Customer service fallback for customer %s. Reason: %s: %s",
                customer_id,
                type(e).__name__,
                e,
            )
            raise DependencyUnavailableError(
                "Customer service is currently unavailable. Please try again later."
            ) from e

        if customer is None:
            raise CustomerNotFoundError(customer_id)
        logger.debug("Customer found: %s (%s)", customer.customer_id, customer.customer_type.value)
        return customer

    def exists(self, customer_id: str) -> bool:
        """Check whether a customer exists.

        Not-found and unavailable both return ``False``; use :meth:`resolve`
        when the difference matters.
        """
        try:
            self.resolve(customer_id)
        except CustomerNotFoundError:
            logger.debug("Customer %s does not exist", customer_id)
            return False
        except DependencyUnavailableError:
            logger.error("Service unavailable when checking customer existence for id: %s", customer_id)
            return False
        return True

    def _bounded_fetch(self, customer_id: str) -> CustomerSnapshot | None:
        """Run one attempt on the lookup pool, waiting at most ``timeout_seconds``."""
        timeout = self.config.timeout_seconds
        deadline = time.monotonic() + timeout
        # Carry the caller's log context into the worker thread
        context = contextvars.copy_context()
        future = self._executor.submit(context.run, self._fetch, customer_id, deadline)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as e:
            future.cancel()
            raise TransientLookupError(f"Request timed out after {timeout}s") from e

    def _fetch(self, customer_id: str, deadline: float) -> CustomerSnapshot | None:
        """Single remote call. Returns None on 404."""
        path = self.CUSTOMER_PATH.format(customer_id=quote(customer_id, safe=""))
        try:
            with self._client.stream("GET", path) as response:
                if response.status_code == 404:
                    return None
                body = _read_before(response, deadline)
        except httpx.TimeoutException as e:
            raise TransientLookupError(f"Request timed out: {e}") from e
        except httpx.TransportError as e:
            raise TransientLookupError(f"Connection error: {e}") from e

        if not response.is_success:
            preview = body[:200].decode("utf-8", errors="replace") if body else "No body"
            raise TransientLookupError(f"Customer service error {response.status_code}: {preview}")

        try:
            return CustomerSnapshot.from_dict(json.loads(body))
        except (ValueError, KeyError, TypeError) as e:
            raise TransientLookupError(f"Malformed customer payload: {e}") from e


def _read_before(response: httpx.Response, deadline: float) -> bytes:
    """Read a streamed body, giving up once the monotonic ``deadline`` has passed."""
    chunks = []
    if time.monotonic() > deadline:
        raise TransientLookupError("Request timed out waiting for response headers")
    for chunk in response.iter_bytes():
        if time.monotonic() > deadline:
            raise TransientLookupError("Request timed out while reading response body")
        chunks.append(chunk)
    return b"".join(chunks)
