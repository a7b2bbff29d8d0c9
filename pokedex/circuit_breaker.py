"""
Circuit breaker guarding calls to the PokeAPI host.

When the API starts failing at the transport level, the breaker stops
sending requests for a cool-down period and fails calls immediately with
`CircuitOpenError` (a `NetworkError`), so a fan-out of dozens of detail
fetches does not pile up timeouts against a host that is already down.

States:
- CLOSED: Requests pass through; consecutive failures are counted.
- OPEN: Requests are rejected until `recovery_timeout` has elapsed.
- HALF_OPEN: Trial requests pass; enough successes close the circuit,
  a single failure reopens it.

The breaker never retries. A rejected call is a failed call.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from pokedex.errors import NetworkError

logger = logging.getLogger("pokedex.circuit_breaker")


class CircuitState(Enum):
    """Enumeration of circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(NetworkError):
    """Raised instead of calling the API while the circuit is open."""

    pass


class CircuitBreaker:
    """
    Async circuit breaker.

    Only exceptions listed in `counted_exceptions` move the breaker towards
    OPEN. The gateway passes transport-level exceptions here, so a 404 or a
    malformed payload is passed through without affecting state.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        success_threshold: int = 2,
        counted_exceptions: tuple = (Exception,),
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.success_threshold = success_threshold
        self.counted_exceptions = counted_exceptions

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        # Monotonic clock, unaffected by wall clock adjustments
        self._opened_at: Optional[float] = None
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    async def call(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """
        Run `func(*args, **kwargs)` unless the circuit is open.

        Raises:
            CircuitOpenError: If the circuit is OPEN and still cooling down.
            Exception: Whatever `func` raised, unchanged.
        """
        async with self._lock:
            if self._state == CircuitState.OPEN:
                if self._cooldown_elapsed():
                    logger.info(
                        f"Circuit breaker '{self.name}' entering half-open state",
                        extra={"breaker_name": self.name},
                    )
                    self._state = CircuitState.HALF_OPEN
                    self._success_count = 0
                else:
                    raise CircuitOpenError(
                        f"Circuit breaker '{self.name}' is open. "
                        f"Service unavailable, try again later."
                    )

        try:
            result = await func(*args, **kwargs)
        except self.counted_exceptions:
            await self._record_failure()
            raise

        await self._record_success()
        return result

    async def _record_success(self) -> None:
        async with self._lock:
            self._failure_count = 0

            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.success_threshold:
                    logger.info(
                        f"Circuit breaker '{self.name}' closing after recovery",
                        extra={
                            "breaker_name": self.name,
                            "consecutive_successes": self._success_count,
                        },
                    )
                    self._state = CircuitState.CLOSED
                    self._success_count = 0

    async def _record_failure(self) -> None:
        async with self._lock:
            self._failure_count += 1

            if self._state == CircuitState.HALF_OPEN:
                logger.error(
                    f"Circuit breaker '{self.name}' failed during recovery, reopening",
                    extra={"breaker_name": self.name},
                )
                self._open()
            elif (
                self._state == CircuitState.CLOSED
                and self._failure_count >= self.failure_threshold
            ):
                logger.error(
                    f"Circuit breaker '{self.name}' opening due to failures",
                    extra={
                        "breaker_name": self.name,
                        "failure_count": self._failure_count,
                        "threshold": self.failure_threshold,
                    },
                )
                self._open()

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._success_count = 0
        self._opened_at = time.monotonic()

    def _cooldown_elapsed(self) -> bool:
        if self._opened_at is None:
            return True
        return (time.monotonic() - self._opened_at) >= self.recovery_timeout

    def get_stats(self) -> dict:
        """
        Get current circuit breaker statistics.

        Returns:
            Dictionary containing state, counts, and configuration.
        """
        return {
            "breaker_name": self.name,
            "state": self._state.value,
            "failure_count": self._failure_count,
            "success_count": self._success_count,
            "failure_threshold": self.failure_threshold,
            "recovery_timeout": self.recovery_timeout,
        }

    async def reset(self) -> None:
        """Manually force the breaker back to CLOSED."""
        async with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._success_count = 0
            self._opened_at = None
