"""
Tests for resilience patterns (circuit breaker, coalescing, retry).
"""

import asyncio
import time

import pytest

from scenario_scoring.services.data_providers.resilience import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    RequestCoalescer,
    RetryExhaustedError,
    with_retry,
)


# =============================================================================
# Circuit Breaker Tests
# =============================================================================


class TestCircuitBreaker:
    """Tests for CircuitBreaker."""

    def test_initial_state_is_closed(self):
        """Circuit starts in closed state."""
        breaker = CircuitBreaker(name="test")
        assert breaker.state == CircuitState.CLOSED
        assert not breaker.is_open

    def test_guard_passes_when_closed(self):
        """Guard allows calls when circuit is closed."""
        breaker = CircuitBreaker(name="test")

        async def run():
            await breaker.guard()  # Should not raise

        asyncio.run(run())

    def test_opens_after_threshold_failures(self):
        """Circuit opens after reaching failure threshold."""
        breaker = CircuitBreaker(failure_threshold=3, name="test")

        breaker.record_failure()
        breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED

        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN
        assert breaker.is_open

    def test_guard_raises_when_open(self):
        """Guard raises CircuitOpenError when circuit is open."""
        breaker = CircuitBreaker(failure_threshold=2, name="yfinance")

        breaker.record_failure()
        breaker.record_failure()

        async def run():
            with pytest.raises(CircuitOpenError) as exc_info:
                await breaker.guard()
            assert exc_info.value.name == "yfinance"

        asyncio.run(run())

    def test_success_resets_failure_count(self):
        """Success resets failure count and closes circuit."""
        breaker = CircuitBreaker(failure_threshold=3, name="test")

        breaker.record_failure()
        breaker.record_failure()
        breaker.record_success()

        assert breaker._failure_count == 0
        assert breaker.state == CircuitState.CLOSED

    def test_half_open_after_recovery_timeout(self):
        """Circuit transitions to half-open after recovery timeout."""
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=0.05, name="test")

        breaker.record_failure()
        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN

        time.sleep(0.1)
        assert breaker.state == CircuitState.HALF_OPEN

        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN

    def test_excluded_exceptions_not_counted(self):
        """Missing-data errors don't count against the upstream."""
        breaker = CircuitBreaker(
            failure_threshold=2,
            name="test",
            excluded_exceptions=(LookupError,),
        )

        breaker.record_failure(LookupError("no history"))
        breaker.record_failure(KeyError("no history"))
        assert breaker._failure_count == 0

        breaker.record_failure(ConnectionError("counted"))
        assert breaker._failure_count == 1

    def test_reset_closes_circuit(self):
        """Reset forces circuit to closed state."""
        breaker = CircuitBreaker(failure_threshold=1, name="test")

        breaker.record_failure()
        assert breaker.is_open

        breaker.reset()
        assert breaker.state == CircuitState.CLOSED


# =============================================================================
# Request Coalescer Tests
# =============================================================================


class TestRequestCoalescer:
    """Tests for RequestCoalescer."""

    @pytest.mark.asyncio
    async def test_concurrent_requests_coalesced(self):
        """Concurrent requests for the same ticker window share one download."""
        coalescer = RequestCoalescer()
        call_count = 0

        async def fetch():
            nonlocal call_count
            call_count += 1
            await asyncio.sleep(0.05)
            return f"result-{call_count}"

        results = await asyncio.gather(
            coalescer.execute("SPY:2020-02-01:2020-03-31", fetch),
            coalescer.execute("SPY:2020-02-01:2020-03-31", fetch),
            coalescer.execute("SPY:2020-02-01:2020-03-31", fetch),
        )

        assert results == ["result-1"] * 3
        assert call_count == 1

    @pytest.mark.asyncio
    async def test_different_keys_not_coalesced(self):
        """Requests for different keys execute independently."""
        coalescer = RequestCoalescer()
        call_count = 0

        async def fetch():
            nonlocal call_count
            call_count += 1
            return call_count

        results = await asyncio.gather(
            coalescer.execute("SPY", fetch),
            coalescer.execute("AGG", fetch),
        )

        assert sorted(results) == [1, 2]

    @pytest.mark.asyncio
    async def test_sequential_requests_not_coalesced(self):
        """Completed requests are not reused."""
        coalescer = RequestCoalescer()
        call_count = 0

        async def fetch():
            nonlocal call_count
            call_count += 1
            return call_count

        assert await coalescer.execute("SPY", fetch) == 1
        assert await coalescer.execute("SPY", fetch) == 2
        assert coalescer.get_pending_count() == 0

    @pytest.mark.asyncio
    async def test_error_propagates(self):
        """Errors reach the caller and leave nothing pending."""
        coalescer = RequestCoalescer()

        async def fetch():
            await asyncio.sleep(0.01)
            raise ValueError("download failed")

        with pytest.raises(ValueError, match="download failed"):
            await asyncio.gather(
                coalescer.execute("SPY", fetch),
                coalescer.execute("SPY", fetch),
            )

        await asyncio.sleep(0.05)
        assert coalescer.get_pending_count() == 0

    @pytest.mark.asyncio
    async def test_cancelled_leader_releases_followers(self):
        """A follower runs its own download as soon as the leader is cancelled."""
        coalescer = RequestCoalescer(max_wait=3.0)
        calls = []

        async def slow_fetch():
            calls.append("leader")
            await asyncio.sleep(10)
            return "stale"

        async def fetch():
            calls.append("follower")
            return "fresh"

        leader = asyncio.create_task(coalescer.execute("SPY", slow_fetch))
        await asyncio.sleep(0.01)
        follower = asyncio.create_task(coalescer.execute("SPY", fetch))
        await asyncio.sleep(0.05)

        started = time.monotonic()
        leader.cancel()
        result = await follower
        elapsed = time.monotonic() - started

        assert result == "fresh"
        assert elapsed < 1.0
        assert calls == ["leader", "follower"]
        assert leader.cancelled()
        assert coalescer.get_pending_count() == 0

    @pytest.mark.asyncio
    async def test_cancelled_follower_leaves_leader_running(self):
        """Cancelling a waiting follower does not cancel the shared download."""
        coalescer = RequestCoalescer()

        async def fetch():
            await asyncio.sleep(0.05)
            return "result"

        leader = asyncio.create_task(coalescer.execute("SPY", fetch))
        await asyncio.sleep(0.01)
        follower = asyncio.create_task(coalescer.execute("SPY", fetch))
        await asyncio.sleep(0.01)

        follower.cancel()

        with pytest.raises(asyncio.CancelledError):
            await follower
        assert await leader == "result"


# =============================================================================
# Retry Tests
# =============================================================================


class TestRetryDecorator:
    """Tests for @with_retry decorator."""

    @pytest.mark.asyncio
    async def test_retry_on_failure(self):
        """Function is retried on retryable exceptions."""
        call_count = 0

        @with_retry(max_attempts=3, base_delay=0.01)
        async def func():
            nonlocal call_count
            call_count += 1
            if call_count < 3:
                raise ConnectionError("transient")
            return "success"

        assert await func() == "success"
        assert call_count == 3

    @pytest.mark.asyncio
    async def test_exhausted_after_max_attempts(self):
        """RetryExhaustedError raised after max attempts."""
        call_count = 0

        @with_retry(max_attempts=2, base_delay=0.01)
        async def func():
            nonlocal call_count
            call_count += 1
            raise TimeoutError("always slow")

        with pytest.raises(RetryExhaustedError) as exc_info:
            await func()

        assert exc_info.value.attempts == 2
        assert isinstance(exc_info.value.last_error, TimeoutError)
        assert call_count == 2

    @pytest.mark.asyncio
    async def test_no_retry_on_non_matching_exception(self):
        """Non-retryable exceptions are raised immediately."""
        call_count = 0

        @with_retry(max_attempts=3, retry_on=(ConnectionError,))
        async def func():
            nonlocal call_count
            call_count += 1
            raise ValueError("not retryable")

        with pytest.raises(ValueError, match="not retryable"):
            await func()

        assert call_count == 1
