"""
Retrying Market Data Adapter.

Caller-side retry wrapper: the orchestrator never retries on its own, so
callers that want resilience wrap their adapter with this class.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Optional

from ..core.exceptions import MarketDataError
from ..core.logger import get_logger
from ..core.models import Candle, InstrumentSnapshot
from ..core.retry import RetryConfig, RetryStrategy, retry_sync
from .provider import MarketDataAdapter

logger = get_logger(__name__)


def is_retryable_market_error(exc: Exception) -> bool:
    """Only MarketDataError instances flagged retryable are retried."""
    return isinstance(exc, MarketDataError) and exc.retryable


class RetryingMarketDataAdapter(MarketDataAdapter):
    """
    Wraps another adapter and retries retryable MarketDataError failures.

    Example:
        adapter = RetryingMarketDataAdapter(live_adapter, RetryConfig(max_attempts=5))
        orchestrator.run("volume_spike", provider=adapter)
    """

    def __init__(
        self,
        inner: MarketDataAdapter,
        retry_config: Optional[RetryConfig] = None,
    ) -> None:
        """
        Initialize adapter.

        Args:
            inner: Adapter doing the actual fetching
            retry_config: Backoff settings; MarketDataError only by default
        """
        self._inner = inner
        self._config = retry_config or RetryConfig(
            max_attempts=3,
            base_delay=1.0,
            strategy=RetryStrategy.EXPONENTIAL_JITTER,
            retryable_exceptions=(MarketDataError,),
            retry_predicate=is_retryable_market_error,
        )

    @property
    def inner(self) -> MarketDataAdapter:
        return self._inner

    @property
    def name(self) -> str:
        return f"Retrying({self._inner.name})"

    def get_candles(
        self,
        instrument_id: str,
        since: datetime,
        interval_minutes: int,
    ) -> list[Candle]:
        return self._call(self._inner.get_candles, instrument_id, since, interval_minutes)

    def get_instrument_universe(
        self,
        as_of: datetime,
        max_age_hours: int,
        min_market_cap: Decimal,
    ) -> list[InstrumentSnapshot]:
        return self._call(self._inner.get_instrument_universe, as_of, max_age_hours, min_market_cap)

    def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        result = retry_sync(func, *args, config=self._config)
        if result.success:
            if result.attempts > 1:
                logger.info(f"{func.__name__} succeeded after {result.attempts} attempts")
            return result.result
        raise result.exception or MarketDataError(f"{func.__name__} failed", retryable=False)
