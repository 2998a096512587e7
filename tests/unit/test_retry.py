"""
Unit tests for retry utility functions.
"""

import asyncio

import pytest

from src.core.exceptions import SelectionError, SessionFatalError
from src.utils.retry import (
    AttemptOutcome,
    RetryConfig,
    perform_with_retries,
    retry_async_with_backoff,
)


class TestRetryConfig:
    """Tests for RetryConfig dataclass."""

    def test_default_config(self):
        """Test default configuration values."""
        config = RetryConfig()
        assert config.max_retries == 3
        assert config.base_delay == 1.0
        assert config.max_delay == 60.0
        assert config.exponential_base == 2.0

    def test_validation_negative_retries(self):
        with pytest.raises(ValueError, match="max_retries"):
            RetryConfig(max_retries=-1)

    def test_validation_invalid_base_delay(self):
        with pytest.raises(ValueError, match="base_delay"):
            RetryConfig(base_delay=0)

    def test_validation_max_delay_less_than_base(self):
        with pytest.raises(ValueError, match="max_delay"):
            RetryConfig(base_delay=10.0, max_delay=5.0)

    def test_delay_for_is_exponential_and_capped(self):
        config = RetryConfig(base_delay=2.0, max_delay=10.0)
        assert [config.delay_for(a) for a in range(4)] == [2.0, 4.0, 8.0, 10.0]


class TestRetryAsyncWithBackoff:
    """Tests for the async wrapper used around navigation."""

    def test_passes_arguments_and_retries(self):
        calls = []

        async def goto(url, timeout=None):
            calls.append((url, timeout))
            if len(calls) < 2:
                raise ConnectionError("net::ERR_CONNECTION_RESET")
            return "ok"

        retries = []
        wrapped = retry_async_with_backoff(
            goto,
            RetryConfig(max_retries=2, base_delay=0.01),
            on_retry=lambda attempt, exc: retries.append(attempt),
        )
        assert asyncio.run(wrapped("/groups", timeout=5)) == "ok"
        assert calls == [("/groups", 5), ("/groups", 5)]
        assert retries == [1]

    def test_raises_after_exhaustion(self):
        async def goto(url):
            raise ConnectionError("down")

        wrapped = retry_async_with_backoff(goto, RetryConfig(max_retries=1, base_delay=0.01))
        with pytest.raises(ConnectionError):
            asyncio.run(wrapped("/groups"))


def _readiness_from(results):
    it = iter(results)

    async def readiness():
        return next(it)

    return readiness


class TestPerformWithRetries:
    """Tests for the trigger-then-await-readiness loop."""

    def test_returns_false_after_exactly_max_attempts(self, fake_clock):
        triggers = []
        attempts = []

        async def trigger():
            triggers.append(1)

        ok = asyncio.run(perform_with_retries(
            trigger, _readiness_from([False, False, False, True]), max_attempts=3,
            sleep=fake_clock.sleep, on_attempt=attempts.append,
        ))
        assert ok is False
        assert len(triggers) == 3
        assert [a.outcome for a in attempts] == [AttemptOutcome.TIMED_OUT] * 3
        assert attempts[-1].attempt_number == 3
        assert attempts[-1].max_attempts == 3

    def test_success_on_attempt_k_stops(self, fake_clock):
        triggers = []

        async def trigger():
            triggers.append(1)

        ok = asyncio.run(perform_with_retries(
            trigger, _readiness_from([False, True, True]), max_attempts=5,
            post_ready_delay=2.0, sleep=fake_clock.sleep,
        ))
        assert ok is True
        assert len(triggers) == 2
        assert fake_clock.sleeps == [2.0]

    def test_trigger_error_counts_as_failed_attempt(self, fake_clock):
        calls = []

        async def trigger():
            calls.append(1)
            if len(calls) == 1:
                raise SelectionError("show button missing")

        ok = asyncio.run(perform_with_retries(
            trigger, _readiness_from([True]), max_attempts=3, sleep=fake_clock.sleep,
        ))
        assert ok is True
        assert len(calls) == 2

    def test_session_fatal_propagates(self, fake_clock):
        async def trigger():
            raise SessionFatalError("browser closed")

        with pytest.raises(SessionFatalError):
            asyncio.run(perform_with_retries(
                trigger, _readiness_from([True]), max_attempts=3, sleep=fake_clock.sleep,
            ))

    def test_max_attempts_must_be_positive(self):
        async def trigger():
            pass

        with pytest.raises(ValueError):
            asyncio.run(perform_with_retries(trigger, _readiness_from([True]), max_attempts=0))
