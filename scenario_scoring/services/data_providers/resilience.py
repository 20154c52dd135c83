"""
Resilience patterns for historical data calls.

This module provides:
1. Circuit Breaker - Fail fast after consecutive upstream failures
2. Request Coalescing - One download per ticker window, shared by concurrent scorers
3. Retry - Exponential backoff with jitter for transient network errors

Usage:
    breaker = CircuitBreaker(failure_threshold=5, recovery_timeout=30.0, name="yfinance")

    async def fetch():
        await breaker.guard()  # Raises CircuitOpenError if open
        try:
            result = await download()
            breaker.record_success()
            return result
        except Exception as e:
            breaker.record_failure(e)
            raise

    coalescer = RequestCoalescer()
    closes = await coalescer.execute("SPY:2020-02-01:2020-03-31", download)
"""

from __future__ import annotations

import asyncio
import functools
import random
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from scenario_scoring.core.logging import get_logger

logger = get_logger("resilience")

T = TypeVar("T")


class CircuitOpenError(Exception):
    """Raised when circuit breaker is open and blocking calls."""

    def __init__(self, name: str, message: str = "Circuit breaker is open"):
        self.name = name
        self.message = message
        super().__init__(f"{name}: {message}")


class RetryExhaustedError(Exception):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, attempts: int, last_error: Exception | None = None):
        self.attempts = attempts
        self.last_error = last_error
        message = f"All {attempts} retry attempts exhausted"
        if last_error:
            message += f": {last_error}"
        super().__init__(message)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """
    Circuit breaker for fail-fast protection of an upstream provider.

    Args:
        failure_threshold: Number of consecutive failures before opening
        recovery_timeout: Seconds to wait before letting a test call through
        name: Identifier for logging
        excluded_exceptions: Exception types that shouldn't count as failures
    """

    failure_threshold: int = 5
    recovery_timeout: float = 30.0
    name: str = "circuit"
    excluded_exceptions: tuple[type, ...] = ()

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _last_failure_time: float | None = field(default=None, init=False)

    @property
    def state(self) -> CircuitState:
        """Current circuit state (may transition from OPEN to HALF_OPEN)."""
        if self._state == CircuitState.OPEN and self._last_failure_time:
            if time.monotonic() - self._last_failure_time >= self.recovery_timeout:
                return CircuitState.HALF_OPEN
        return self._state

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    async def guard(self) -> None:
        """Raise CircuitOpenError if the circuit is open."""
        state = self.state

        if state == CircuitState.OPEN:
            remaining = self.recovery_timeout - (
                time.monotonic() - (self._last_failure_time or 0)
            )
            raise CircuitOpenError(
                self.name,
                f"Circuit open after {self._failure_count} failures, "
                f"retry in {remaining:.1f}s",
            )

        if state == CircuitState.HALF_OPEN:
            logger.info(f"[{self.name}] Circuit half-open, allowing test request")

    def record_success(self) -> None:
        if self._state != CircuitState.CLOSED:
            logger.info(f"[{self.name}] Circuit closed after successful recovery")

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time = None

    def record_failure(self, error: Exception | None = None) -> None:
        """Record a failed call. Opens circuit after threshold failures."""
        if error and isinstance(error, self.excluded_exceptions):
            return

        self._failure_count += 1
        self._last_failure_time = time.monotonic()

        if self._failure_count >= self.failure_threshold:
            if self._state != CircuitState.OPEN:
                logger.warning(
                    f"[{self.name}] Circuit OPEN after {self._failure_count} failures"
                )
            self._state = CircuitState.OPEN
        else:
            logger.debug(
                f"[{self.name}] Failure {self._failure_count}/{self.failure_threshold}"
            )

    def reset(self) -> None:
        """Force reset to closed state."""
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time = None


@dataclass
class _PendingRequest:
    future: asyncio.Future[Any]
    created_at: float = field(default_factory=time.monotonic)


class RequestCoalescer:
    """
    Coalesces concurrent requests for the same resource.

    When several portfolios in a fan-out need the same ticker window at once,
    only the first caller downloads it and the rest await its result.
    """

    def __init__(self, max_wait: float = 30.0):
        self._pending: dict[str, _PendingRequest] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._max_wait = max_wait

    def _get_lock(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    async def _wait_for(self, pending: _PendingRequest) -> Any:
        return await asyncio.wait_for(
            asyncio.shield(pending.future), timeout=self._max_wait
        )

    async def _join(self, key: str, pending: _PendingRequest) -> tuple[bool, Any]:
        """
        Wait on an in-flight request.

        Returns ``(True, result)`` on success, ``(False, None)`` when the
        caller should run its own attempt.
        """
        try:
            return True, await self._wait_for(pending)
        except asyncio.TimeoutError:
            logger.warning(f"Coalesce timeout for {key}")
        except asyncio.CancelledError:
            # Only the leader being cancelled is recoverable here
            if not pending.future.cancelled():
                raise
            logger.debug(f"Coalesced leader for {key} was cancelled, retrying")
        except Exception as e:
            logger.debug(f"Coalesced request for {key} failed, retrying: {e}")
        return False, None

    async def execute(self, key: str, func: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``func`` unless an identical request is already in flight.

        A follower whose leader failed, timed out or was cancelled runs its
        own attempt.
        """
        pending = self._pending.get(key)
        if pending is not None:
            joined, result = await self._join(key, pending)
            if joined:
                return result

        async with self._get_lock(key):
            pending = self._pending.get(key)
            if pending is not None:
                joined, result = await self._join(key, pending)
                if joined:
                    return result

            loop = asyncio.get_running_loop()
            future: asyncio.Future[Any] = loop.create_future()
            self._pending[key] = _PendingRequest(future=future)

            try:
                result = await func()
                if not future.done():
                    future.set_result(result)
                return result
            except asyncio.CancelledError:
                future.cancel()
                raise
            except Exception as e:
                if not future.done():
                    future.set_exception(e)
                    # Mark retrieved so an unawaited failure isn't reported at GC
                    future.exception()
                raise
            finally:
                self._pending.pop(key, None)

    def get_pending_count(self) -> int:
        return len(self._pending)


# Default exceptions that should trigger retry
DEFAULT_RETRY_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)


def with_retry(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    exponential_base: float = 2.0,
    jitter: float = 0.5,
    retry_on: tuple[type[Exception], ...] = DEFAULT_RETRY_EXCEPTIONS,
) -> Callable:
    """
    Decorator for retry with exponential backoff and jitter.

    Args:
        max_attempts: Maximum number of attempts (including initial)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay cap
        exponential_base: Base for exponential growth
        jitter: Random jitter factor (0.5 = +/-50% of delay)
        retry_on: Exception types that trigger retry
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            last_error: Exception | None = None

            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    last_error = e

                    if attempt >= max_attempts:
                        logger.warning(
                            f"Retry exhausted for {func.__name__} after {max_attempts} attempts: {e}"
                        )
                        raise RetryExhaustedError(max_attempts, last_error) from e

                    delay = min(
                        base_delay * (exponential_base ** (attempt - 1)),
                        max_delay,
                    )
                    if jitter > 0:
                        delay *= 1 + (random.random() - 0.5) * 2 * jitter

                    logger.debug(
                        f"Retry {attempt}/{max_attempts} for {func.__name__} "
                        f"after {delay:.2f}s: {e}"
                    )
                    await asyncio.sleep(delay)

            raise RetryExhaustedError(max_attempts, last_error)

        return wrapper

    return decorator
