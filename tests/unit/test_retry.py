"""
Unit tests for the retry mechanism and the retrying adapter.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from memesim.core.exceptions import MarketDataError
from memesim.core.retry import RetryConfig, RetryStrategy, retry_sync, with_retry
from memesim.data import RetryingMarketDataAdapter, is_retryable_market_error
from tests.mocks import FlakyMarketDataAdapter

AS_OF = datetime(2024, 1, 5, tzinfo=timezone.utc)


class Counter:
    """Callable failing a fixed number of times before succeeding."""

    def __init__(self, failures: int, error: Exception):
        self.failures = failures
        self.error = error
        self.calls = 0

    def __call__(self, value: int = 1) -> int:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return value * 2


def fast_config(**kwargs) -> RetryConfig:
    """RetryConfig that records delays instead of sleeping."""
    delays = []
    config = RetryConfig(base_delay=0.5, sleep=delays.append, **kwargs)
    config.recorded = delays
    return config


# =============================================================================
# RetryConfig Tests
# =============================================================================


class TestRetryConfig:
    """Tests for RetryConfig."""

    def test_validation(self):
        """Test invalid attempt counts and delays."""
        with pytest.raises(ValueError):
            RetryConfig(max_attempts=0)
        with pytest.raises(ValueError):
            RetryConfig(base_delay=-1)

    @pytest.mark.parametrize(
        "strategy,attempt,expected",
        [
            (RetryStrategy.FIXED, 3, 1.0),
            (RetryStrategy.LINEAR, 3, 3.0),
            (RetryStrategy.EXPONENTIAL, 3, 4.0),
        ],
    )
    def test_delays(self, strategy, attempt, expected):
        """Test deterministic backoff strategies."""
        config = RetryConfig(base_delay=1.0, strategy=strategy)
        assert config.calculate_delay(attempt) == expected

    def test_jitter_bounds(self):
        """Test jitter stays within the configured factor."""
        config = RetryConfig(base_delay=1.0, jitter_factor=0.25)
        for _ in range(20):
            assert 2.0 <= config.calculate_delay(2) <= 2.5

    def test_max_delay_cap(self):
        """Test delays never exceed max_delay."""
        config = RetryConfig(base_delay=10.0, max_delay=15.0, strategy=RetryStrategy.EXPONENTIAL)
        assert config.calculate_delay(5) == 15.0

    def test_should_retry(self):
        """Test exception filters and the predicate."""
        config = RetryConfig(
            retryable_exceptions=(MarketDataError,),
            retry_predicate=is_retryable_market_error,
        )

        assert config.should_retry(MarketDataError("timeout", retryable=True))
        assert not config.should_retry(MarketDataError("bad request", retryable=False))
        assert not config.should_retry(ValueError("nope"))


# =============================================================================
# retry_sync Tests
# =============================================================================


class TestRetrySync:
    """Tests for retry_sync and with_retry."""

    def test_succeeds_after_failures(self):
        """Test transient failures are retried with backoff."""
        func = Counter(2, ConnectionError("reset"))
        config = fast_config(max_attempts=3, strategy=RetryStrategy.EXPONENTIAL)

        result = retry_sync(func, 21, config=config)

        assert result.success
        assert result.result == 42
        assert result.attempts == 3
        assert config.recorded == [0.5, 1.0]
        assert len(result.attempt_history) == 3

    def test_gives_up_after_max_attempts(self):
        """Test the last exception is kept when attempts run out."""
        error = ConnectionError("reset")
        result = retry_sync(Counter(5, error), config=fast_config(max_attempts=2))

        assert not result.success
        assert result.attempts == 2
        assert result.exception is error

    def test_non_retryable_stops_immediately(self):
        """Test non-retryable exceptions are not retried."""
        func = Counter(1, ValueError("bad"))
        config = fast_config(max_attempts=5, non_retryable_exceptions=(ValueError,))

        result = retry_sync(func, config=config)

        assert not result.success
        assert func.calls == 1
        assert config.recorded == []

    def test_on_retry_callback(self):
        """Test the callback receives attempt, exception and delay."""
        calls = []
        config = fast_config(
            max_attempts=2,
            strategy=RetryStrategy.FIXED,
            on_retry=lambda attempt, exc, delay: calls.append((attempt, type(exc), delay)),
        )

        retry_sync(Counter(1, ConnectionError()), config=config)

        assert calls == [(1, ConnectionError, 0.5)]

    def test_decorator_reraises(self):
        """Test with_retry re-raises the final exception."""
        func = Counter(3, ConnectionError("down"))
        decorated = with_retry(fast_config(max_attempts=2))(func)

        with pytest.raises(ConnectionError):
            decorated()
        assert func.calls == 2

    def test_decorator_returns_value(self):
        """Test with_retry passes through the result."""
        decorated = with_retry(fast_config(max_attempts=2))(Counter(1, ConnectionError()))
        assert decorated(5) == 10


# =============================================================================
# RetryingMarketDataAdapter Tests
# =============================================================================


class TestRetryingMarketDataAdapter:
    """Tests for caller-side adapter retries."""

    def config(self) -> RetryConfig:
        return fast_config(
            max_attempts=3,
            retryable_exceptions=(MarketDataError,),
            retry_predicate=is_retryable_market_error,
        )

    def test_retryable_failures_recover(self):
        """Test retryable errors are retried until success."""
        inner = FlakyMarketDataAdapter(2, MarketDataError("timeout", retryable=True))
        adapter = RetryingMarketDataAdapter(inner, self.config())

        assert adapter.get_instrument_universe(AS_OF, 24, Decimal("0")) == []
        assert inner.calls == 3

    def test_non_retryable_failure_raises(self):
        """Test non-retryable errors surface after one attempt."""
        inner = FlakyMarketDataAdapter(1, MarketDataError("unknown token", retryable=False))
        adapter = RetryingMarketDataAdapter(inner, self.config())

        with pytest.raises(MarketDataError) as exc_info:
            adapter.get_instrument_universe(AS_OF, 24, Decimal("0"))

        assert exc_info.value.retryable is False
        assert inner.calls == 1

    def test_exhausted_retries_raise_last_error(self):
        """Test the last MarketDataError is raised when attempts run out."""
        inner = FlakyMarketDataAdapter(5, MarketDataError("timeout", retryable=True))
        adapter = RetryingMarketDataAdapter(inner, self.config())

        with pytest.raises(MarketDataError):
            adapter.get_instrument_universe(AS_OF, 24, Decimal("0"))
        assert inner.calls == 3

    def test_passes_candles_through(self):
        """Test successful calls are delegated unchanged."""
        adapter = RetryingMarketDataAdapter(FlakyMarketDataAdapter(0, MarketDataError()))

        assert adapter.get_candles("TOKEN1", AS_OF, 5) == []
        assert adapter.name == "Retrying(FlakyMarketDataAdapter)"
