"""
Circuit breaker in front of the database.

Repositories hand every query to :data:`db_circuit_breaker`. Connection-level
failures (``OperationalError``, ``OSError``, timeouts) are counted; once
``CB_FAILURE_THRESHOLD`` of them happen in a row the circuit opens and calls
are refused with :class:`CircuitBreakerError` (HTTP 503 with
``Retry-After``) instead of piling up on a dead pool.

After ``CB_RECOVERY_TIMEOUT`` seconds one probe call is let through. While it
runs, other callers are still refused, so a recovering database does not get
the whole backlog at once. A successful probe closes the circuit; a failed one
reopens it for another timeout.

Domain exceptions and ``IntegrityError`` are not connection failures: they
pass through untouched. An approval that loses its status race must not count
against the database.

   CLOSED ──(threshold failures)──▶ OPEN ──(timeout)──▶ HALF_OPEN
      ▲                                                     │
      └────────────────(probe succeeds)─────────────────────┘
"""

import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Tuple, Type, TypeVar

from sqlalchemy.exc import OperationalError

from sahem_invest.core.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerError(Exception):
    """A call was refused without touching the database."""

    def __init__(self, name: str, retry_after: float):
        self.name = name
        self.retry_after = retry_after
        super().__init__(f"Circuit breaker '{name}' is OPEN; retry after {retry_after:.1f}s.")


class CircuitBreaker:
    """
    Async circuit breaker with a single recovery probe.

    Parameters
    ----------
    name : str
        Shown in logs, errors and ``/health``.
    failure_threshold : int
        Consecutive counted failures that open the circuit.
    recovery_timeout : float
        Seconds the circuit stays OPEN before a probe is allowed.
    expected_exceptions : tuple
        Exception types counted as failures.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        expected_exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.expected_exceptions = expected_exceptions

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time = 0.0
        self._last_error: Optional[str] = None
        self._times_opened = 0
        self._probe_in_flight = False

    @property
    def state(self) -> CircuitState:
        """Current state; an OPEN circuit whose timeout elapsed reads as HALF_OPEN."""
        if self._state == CircuitState.OPEN and self.retry_after == 0:
            self._state = CircuitState.HALF_OPEN
            logger.info("Circuit '%s' -> HALF_OPEN, next call probes the database", self.name)
        return self._state

    @property
    def retry_after(self) -> float:
        """Seconds until a probe is allowed (0 once the timeout has elapsed)."""
        elapsed = time.monotonic() - self._last_failure_time
        return max(self.recovery_timeout - elapsed, 0.0)

    def reset(self) -> None:
        """Force the circuit CLOSED and forget past failures."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_error = None
        self._probe_in_flight = False

    def _on_success(self) -> None:
        if self._state != CircuitState.CLOSED:
            logger.info("Circuit '%s' -> CLOSED, database reachable again", self.name)
        self._state = CircuitState.CLOSED
        self._failure_count = 0

    def _on_failure(self, exc: BaseException) -> None:
        self._failure_count += 1
        self._last_failure_time = time.monotonic()
        self._last_error = f"{type(exc).__name__}: {exc}"[:200]

        if self._state == CircuitState.HALF_OPEN or self._failure_count >= self.failure_threshold:
            self._state = CircuitState.OPEN
            self._times_opened += 1
            logger.error(
                "Circuit '%s' -> OPEN after %d failures (%s); refusing calls for %.1fs",
                self.name,
                self._failure_count,
                self._last_error,
                self.recovery_timeout,
            )
        else:
            logger.warning(
                "Circuit '%s' failure %d/%d: %s",
                self.name,
                self._failure_count,
                self.failure_threshold,
                self._last_error,
            )

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Await ``func(*args, **kwargs)`` unless the circuit refuses it.

        Raises :class:`CircuitBreakerError` while OPEN, and while a HALF_OPEN
        probe is already running.
        """
        state = self.state
        if state == CircuitState.OPEN:
            raise CircuitBreakerError(self.name, self.retry_after)
        if state == CircuitState.HALF_OPEN:
            if self._probe_in_flight:
                raise CircuitBreakerError(self.name, 0.0)
            self._probe_in_flight = True

        try:
            result = await func(*args, **kwargs)
        except self.expected_exceptions as exc:
            self._on_failure(exc)
            raise
        finally:
            if state == CircuitState.HALF_OPEN:
                self._probe_in_flight = False
        self._on_success()
        return result

    def get_status(self) -> dict:
        """Snapshot for ``/health``."""
        state = self.state
        return {
            "name": self.name,
            "state": state.value,
            "failure_count": self._failure_count,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout_s": self.recovery_timeout,
            "retry_after_s": round(self.retry_after, 1) if state == CircuitState.OPEN else 0,
            "times_opened": self._times_opened,
            "last_error": self._last_error,
        }


db_circuit_breaker = CircuitBreaker(
    name="database",
    failure_threshold=settings.CB_FAILURE_THRESHOLD,
    recovery_timeout=settings.CB_RECOVERY_TIMEOUT,
    expected_exceptions=(ConnectionError, OSError, TimeoutError, OperationalError),
)
