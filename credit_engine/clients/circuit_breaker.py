"""Circuit breaker for calls to downstream services."""

import logging
import threading
import time
from enum import Enum
from typing import Any, Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(Enum):
    CLOSED = "closed"  # calls flow normally
    OPEN = "open"  # calls short-circuit
    HALF_OPEN = "half_open"  # one trial call allowed


class CircuitOpenError(Exception):
    """Raised when a call is rejected because the circuit is open."""

    def __init__(self, name: str, retry_in: float) -> None:
        self.name = name
        self.retry_in = retry_in
        super().__init__(f"Circuit breaker '{name}' is OPEN. Next attempt in {retry_in:.1f}s")


class CircuitBreaker:
    """Stop calling a failing dependency for a cooldown window.

    After ``failure_threshold`` consecutive failures of type
    ``expected_exception`` the circuit opens and every call fails fast with
    :class:`CircuitOpenError`. Once ``recovery_timeout`` seconds have elapsed
    a single trial is let through (half-open): success closes the circuit,
    failure reopens it. Exceptions outside ``expected_exception`` pass through
    without affecting the state.

    Parameters
    ----------
    failure_threshold : int
        Consecutive failures that open the circuit.
    recovery_timeout : float
        Seconds to stay open before probing.
    expected_exception : type[Exception] | tuple[type[Exception], ...]
        Exceptions that count as failures.
    name : str
        Name used in logs and stats.
    clock : Callable[[], float]
        Monotonic time source.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        expected_exception: type[Exception] | tuple[type[Exception], ...] = Exception,
        name: str = "default",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exception = expected_exception
        self.name = name
        self._clock = clock

        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at: float | None = None
        self._trial_in_flight = False

        self._stats: dict[str, int] = {
            "total_calls": 0,
            "successful_calls": 0,
            "failed_calls": 0,
            "rejected_calls": 0,
            "circuit_opens": 0,
        }

        logger.info(
            "CircuitBreaker '%s' initialized - threshold: %d, timeout: %.1fs",
            name,
            failure_threshold,
            recovery_timeout,
        )

    @property
    def state(self) -> CircuitState:
        """Current state, moving OPEN to HALF_OPEN once the cooldown has elapsed."""
        with self._lock:
            self._maybe_half_open()
            return self._state

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    @property
    def is_closed(self) -> bool:
        return self.state == CircuitState.CLOSED

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``func`` through the breaker.

        Raises
        ------
        CircuitOpenError
            If the circuit is open, or half-open with a trial already running.
        Exception
            Whatever ``func`` raises.
        """
        self._before_call()
        try:
            result = func(*args, **kwargs)
        except self.expected_exception as e:
            self.record_failure(e)
            raise
        except BaseException:
            self._release_trial()
            raise
        self.record_success()
        return result

    def record_success(self) -> None:
        """Register a successful call."""
        with self._lock:
            self._stats["total_calls"] += 1
            self._stats["successful_calls"] += 1
            self._failure_count = 0
            self._trial_in_flight = False
            if self._state == CircuitState.HALF_OPEN:
                self._change_state(CircuitState.CLOSED, "successful trial")

    def record_failure(self, exception: BaseException | None = None) -> None:
        """Register a failed call."""
        exception_name = type(exception).__name__ if exception else "Unknown"
        with self._lock:
            self._stats["total_calls"] += 1
            self._stats["failed_calls"] += 1
            self._failure_count += 1
            self._trial_in_flight = False
            logger.warning(
                "CircuitBreaker '%s' recorded failure #%d: %s",
                self.name,
                self._failure_count,
                exception_name,
            )

            if self._state == CircuitState.HALF_OPEN:
                self._open(f"failed trial: {exception_name}")
            elif self._state == CircuitState.CLOSED and self._failure_count >= self.failure_threshold:
                self._open(f"failure threshold reached: {self._failure_count}")

    def reset(self) -> None:
        """Manually close the circuit."""
        logger.info("Manually resetting CircuitBreaker '%s'", self.name)
        with self._lock:
            self._failure_count = 0
            self._opened_at = None
            self._trial_in_flight = False
            self._change_state(CircuitState.CLOSED, "manual reset")

    def get_stats(self) -> dict[str, Any]:
        """Return breaker state and call counters."""
        with self._lock:
            self._maybe_half_open()
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._failure_count,
                "failure_threshold": self.failure_threshold,
                "recovery_timeout": self.recovery_timeout,
                **self._stats,
            }

    def _before_call(self) -> None:
        with self._lock:
            self._maybe_half_open()
            if self._state == CircuitState.OPEN:
                self._stats["rejected_calls"] += 1
                raise CircuitOpenError(self.name, self._remaining())
            if self._state == CircuitState.HALF_OPEN:
                if self._trial_in_flight:
                    self._stats["rejected_calls"] += 1
                    raise CircuitOpenError(self.name, 0.0)
                self._trial_in_flight = True

    def _release_trial(self) -> None:
        with self._lock:
            self._trial_in_flight = False

    def _maybe_half_open(self) -> None:
        if self._state == CircuitState.OPEN and self._remaining() <= 0:
            self._change_state(CircuitState.HALF_OPEN, "attempting recovery")

    def _remaining(self) -> float:
        if self._opened_at is None:
            return 0.0
        return self._opened_at + self.recovery_timeout - self._clock()

    def _open(self, reason: str) -> None:
        self._opened_at = self._clock()
        self._stats["circuit_opens"] += 1
        self._change_state(CircuitState.OPEN, reason)

    def _change_state(self, new_state: CircuitState, reason: str) -> None:
        if new_state != self._state:
            old_state = self._state
            self._state = new_state
            logger.warning(
                "CircuitBreaker '%s' state change: %s -> %s (%s)",
                self.name,
                old_state.value,
                new_state.value,
                reason,
            )


_registry: dict[str, CircuitBreaker] = {}
_registry_lock = threading.Lock()


def get_circuit_breaker(name: str, **kwargs: Any) -> CircuitBreaker:
    """Return the shared breaker for a downstream dependency, creating it on first use.

    Keyword arguments are passed to :class:`CircuitBreaker` only when the
    breaker is created.
    """
    with _registry_lock:
        breaker = _registry.get(name)
        if breaker is None:
            breaker = CircuitBreaker(name=name, **kwargs)
            _registry[name] = breaker
        return breaker


def clear_circuit_breakers() -> None:
    """Forget all registered breakers."""
    with _registry_lock:
        _registry.clear()
