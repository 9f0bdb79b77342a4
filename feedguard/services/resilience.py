"""
Resilience patterns for completion calls.

Provides a circuit breaker and a timeout helper so that a slow or failing
completion service degrades rewrites to the local fallback instead of
stalling the batch.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


# -----------------------------------------------------------------------------
# Circuit Breaker
# -----------------------------------------------------------------------------


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation, requests pass through
    OPEN = "open"  # Failing, requests are blocked
    HALF_OPEN = "half_open"  # Testing if service recovered


class CircuitOpenError(Exception):
    """Raised when circuit breaker is open."""

    pass


class CompletionTimeoutError(Exception):
    """Raised when a completion call exceeds its deadline."""

    pass


@dataclass
class CircuitBreaker:
    """
    Circuit breaker to prevent hammering a failing completion service.

    When the service fails repeatedly, the circuit opens and rejects calls for
    a cooldown period, so every item goes straight to the local fallback
    instead of waiting out its timeout. After the cooldown it enters half-open
    state and lets a single call through to test recovery.

    Usage:
        breaker = CircuitBreaker(name="openai", failure_threshold=5)

        try:
            text = await breaker.call(provider.complete, request)
        except CircuitOpenError:
            # Take the fallback path
            pass
    """

    name: str
    failure_threshold: int = 5
    reset_timeout_seconds: float = 30
    half_open_max_calls: int = 1

    # Internal state
    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _last_failure_time: float = field(default=0, init=False)
    _half_open_calls: int = field(default=0, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    @property
    def state(self) -> CircuitState:
        """Get current circuit state, checking for timeout."""
        if self._state == CircuitState.OPEN:
            if time.time() - self._last_failure_time >= self.reset_timeout_seconds:
                return CircuitState.HALF_OPEN
        return self._state

    async def call(self, func: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        """
        Execute an async function through the circuit breaker.

        Raises:
            CircuitOpenError: If circuit is open
            Exception: Any exception from the wrapped function
        """
        async with self._lock:
            current_state = self.state

            if current_state == CircuitState.OPEN:
                raise CircuitOpenError(
                    f"Circuit '{self.name}' is open. Will retry after {self.reset_timeout_seconds}s cooldown."
                )

            if current_state == CircuitState.HALF_OPEN:
                if self._half_open_calls >= self.half_open_max_calls:
                    raise CircuitOpenError(f"Circuit '{self.name}' is half-open with max test calls reached.")
                self._half_open_calls += 1

        try:
            result = await func(*args, **kwargs)
        except Exception:
            async with self._lock:
                self._failure_count += 1
                self._last_failure_time = time.time()

                if self._failure_count >= self.failure_threshold:
                    if self._state != CircuitState.OPEN:
                        logger.warning(
                            f"Circuit '{self.name}' opened after {self._failure_count} failures. "
                            f"Cooldown: {self.reset_timeout_seconds}s"
                        )
                    self._state = CircuitState.OPEN
                    self._half_open_calls = 0
                elif current_state == CircuitState.HALF_OPEN:
                    # Failed during half-open test, reopen
                    self._state = CircuitState.OPEN
                    self._half_open_calls = 0
                    logger.warning(f"Circuit '{self.name}' reopened after half-open failure")
            raise

        async with self._lock:
            self._failure_count = 0
            self._half_open_calls = 0
            if self._state != CircuitState.CLOSED:
                logger.info(f"Circuit '{self.name}' closed after successful call")
            self._state = CircuitState.CLOSED

        return result

    def reset(self) -> None:
        """Manually reset the circuit breaker."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._half_open_calls = 0
        logger.info(f"Circuit '{self.name}' manually reset")


# -----------------------------------------------------------------------------
# Timeout Helper
# -----------------------------------------------------------------------------


async def with_timeout(coro, timeout_seconds: float, error_message: str = "Operation timed out"):
    """
    Execute a coroutine with a timeout.

    Args:
        coro: The coroutine to execute
        timeout_seconds: Maximum time to wait
        error_message: Error message if timeout occurs

    Raises:
        CompletionTimeoutError: If the operation times out
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout_seconds)
    except asyncio.TimeoutError:
        raise CompletionTimeoutError(f"{error_message} (timeout: {timeout_seconds}s)")
