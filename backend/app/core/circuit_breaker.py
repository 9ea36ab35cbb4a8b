"""Circuit breaker guarding the AI provider.

  CLOSED: calls pass through
  OPEN: too many consecutive failures, calls are rejected immediately
  HALF_OPEN: cooldown elapsed, one trial call is let through

Callers pass the coroutine *function*, not a coroutine object; it is never
invoked while the circuit is open.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """Raised when the circuit is open and calls are being rejected."""

    def __init__(self, name: str):
        super().__init__(f"Circuit breaker '{name}' is OPEN, call rejected")
        self.breaker_name = name


class CircuitBreaker:
    """Async-safe circuit breaker."""

    def __init__(
        self,
        name: str,
        failure_threshold: int = 3,
        cooldown_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self.failure_threshold = failure_threshold
        self.cooldown_seconds = cooldown_seconds
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = 0.0
        self._lock = asyncio.Lock()

    @property
    def state(self) -> CircuitState:
        """Current state; an OPEN circuit reads as HALF_OPEN once cooled down."""
        if (
            self._state == CircuitState.OPEN
            and self._clock() - self._opened_at >= self.cooldown_seconds
        ):
            return CircuitState.HALF_OPEN
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failure_count

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """Run ``await func(*args, **kwargs)`` through the breaker.

        Raises CircuitBreakerOpen without calling *func* when the circuit is OPEN.
        """
        async with self._lock:
            current = self.state
            if current == CircuitState.OPEN:
                raise CircuitBreakerOpen(self.name)
            if current == CircuitState.HALF_OPEN:
                logger.info("Circuit '%s' HALF_OPEN, allowing trial call", self.name)

        try:
            result = await func(*args, **kwargs)
        except Exception:
            await self._on_failure()
            raise

        await self._on_success()
        return result

    async def _on_success(self) -> None:
        async with self._lock:
            if self._state != CircuitState.CLOSED:
                logger.info("Circuit '%s' recovered, CLOSED", self.name)
            self._state = CircuitState.CLOSED
            self._failure_count = 0

    async def _on_failure(self) -> None:
        async with self._lock:
            self._failure_count += 1
            trial_failed = self.state == CircuitState.HALF_OPEN
            if trial_failed or self._failure_count >= self.failure_threshold:
                self._state = CircuitState.OPEN
                self._opened_at = self._clock()
                logger.warning(
                    "Circuit '%s' OPEN after %d failures (cooldown %ss)",
                    self.name, self._failure_count, self.cooldown_seconds,
                )

    def reset(self) -> None:
        """Force the circuit back to CLOSED."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._opened_at = 0.0
