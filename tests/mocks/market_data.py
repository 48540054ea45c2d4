"""
Mock market data for testing.

Candle/instrument builders and adapters that fail on demand.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Optional, Sequence

from memesim.core.exceptions import MarketDataError
from memesim.core.models import Candle, InstrumentSnapshot
from memesim.data.provider import InMemoryMarketDataAdapter, MarketDataAdapter

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def create_candle(
    timestamp: Optional[datetime] = None,
    open_price: Decimal = Decimal("1"),
    close: Optional[Decimal] = None,
    high: Optional[Decimal] = None,
    low: Optional[Decimal] = None,
    volume: Decimal = Decimal("1000"),
) -> Candle:
    """Create a test Candle (wicks default to the body)."""
    if timestamp is None:
        timestamp = BASE_TIME
    if close is None:
        close = open_price
    if high is None:
        high = max(open_price, close)
    if low is None:
        low = min(open_price, close)

    return Candle(
        timestamp=timestamp,
        open=open_price,
        high=high,
        low=low,
        close=close,
        volume=volume,
    )


def candle_series(
    closes: Sequence[str | Decimal],
    start: datetime = BASE_TIME,
    interval_minutes: int = 5,
    volumes: Optional[Sequence[str | Decimal]] = None,
    opens: Optional[Sequence[str | Decimal]] = None,
) -> list[Candle]:
    """
    Build consecutive candles.

    Each candle opens at the previous close unless `opens` is given; the
    first one opens at its own close.
    """
    candles = []
    previous: Optional[Decimal] = None
    for i, raw_close in enumerate(closes):
        close = Decimal(str(raw_close))
        if opens is not None:
            open_price = Decimal(str(opens[i]))
        else:
            open_price = previous if previous is not None else close
        volume = Decimal(str(volumes[i])) if volumes is not None else Decimal("1000")
        candles.append(
            create_candle(
                timestamp=start + timedelta(minutes=interval_minutes * i),
                open_price=open_price,
                close=close,
                volume=volume,
            )
        )
        previous = close
    return candles


def create_instrument(
    address: str = "TOKEN1",
    symbol: str = "TKN",
    market_cap: Decimal = Decimal("100000"),
    volume_24h: Decimal = Decimal("50000"),
    price_change_24h: Decimal = Decimal("0"),
    liquidity: Decimal = Decimal("100000"),
    creation_time: Optional[datetime] = None,
) -> InstrumentSnapshot:
    """Create a test InstrumentSnapshot (listed 2 hours before BASE_TIME by default)."""
    if creation_time is None:
        creation_time = BASE_TIME - timedelta(hours=2)
    return InstrumentSnapshot(
        address=address,
        symbol=symbol,
        estimated_market_cap=market_cap,
        volume_24h=volume_24h,
        price_change_24h=price_change_24h,
        liquidity=liquidity,
        creation_time=creation_time,
    )


class FailingMarketDataAdapter(MarketDataAdapter):
    """
    Delegates to an inner adapter until a configured call count, then raises.

    Example:
        >>> adapter = FailingMarketDataAdapter(fail_universe_after=1)
        >>> adapter.get_instrument_universe(day, 24, Decimal("0"))  # ok
        >>> adapter.get_instrument_universe(day, 24, Decimal("0"))  # raises
    """

    def __init__(
        self,
        inner: Optional[MarketDataAdapter] = None,
        fail_universe_after: Optional[int] = None,
        fail_candles_after: Optional[int] = None,
        error: Optional[Exception] = None,
    ):
        self._inner = inner or InMemoryMarketDataAdapter()
        self._fail_universe_after = fail_universe_after
        self._fail_candles_after = fail_candles_after
        self._error = error or MarketDataError("upstream timeout", retryable=True)
        self.universe_calls = 0
        self.candle_calls = 0

    def get_candles(self, instrument_id, since, interval_minutes):
        self.candle_calls += 1
        if self._fail_candles_after is not None and self.candle_calls > self._fail_candles_after:
            raise self._error
        return self._inner.get_candles(instrument_id, since, interval_minutes)

    def get_instrument_universe(self, as_of, max_age_hours, min_market_cap):
        self.universe_calls += 1
        if self._fail_universe_after is not None and self.universe_calls > self._fail_universe_after:
            raise self._error
        return self._inner.get_instrument_universe(as_of, max_age_hours, min_market_cap)


class FlakyMarketDataAdapter(MarketDataAdapter):
    """Raises the given error for the first `failures` universe calls, then returns []."""

    def __init__(self, failures: int, error: Exception):
        self._failures = failures
        self._error = error
        self.calls = 0

    def get_candles(self, instrument_id, since, interval_minutes):
        return []

    def get_instrument_universe(self, as_of, max_age_hours, min_market_cap):
        self.calls += 1
        if self.calls <= self._failures:
            raise self._error
        return []
