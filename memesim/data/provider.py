"""
Market Data Adapter Interface.

The engine consumes market data only through `MarketDataAdapter`; it never
knows whether candles come from a live API, a fixture or the synthetic
generator.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from ..core.models import Candle, InstrumentSnapshot
from ..core.utils import ensure_utc


class MarketDataAdapter(ABC):
    """
    Abstract base class for market data sources.

    Absence of data is never an error: unknown instruments and empty days
    return empty lists. Failures to reach the source raise MarketDataError.
    """

    @abstractmethod
    def get_candles(
        self,
        instrument_id: str,
        since: datetime,
        interval_minutes: int,
    ) -> list[Candle]:
        """
        Get candles for an instrument.

        Args:
            instrument_id: Instrument address
            since: Earliest candle timestamp to return (inclusive)
            interval_minutes: Candle interval

        Returns:
            Candles sorted ascending by timestamp
        """
        pass

    @abstractmethod
    def get_instrument_universe(
        self,
        as_of: datetime,
        max_age_hours: int,
        min_market_cap: Decimal,
    ) -> list[InstrumentSnapshot]:
        """
        Get instruments eligible for trading at a point in time.

        Args:
            as_of: Snapshot time (start of the simulated day)
            max_age_hours: Exclude instruments older than this
            min_market_cap: Exclude instruments below this market cap

        Returns:
            Eligible instrument snapshots
        """
        pass

    @property
    def name(self) -> str:
        return self.__class__.__name__


def passes_universe_filter(
    instrument: InstrumentSnapshot,
    as_of: datetime,
    max_age_hours: int,
    min_market_cap: Decimal,
    min_liquidity: Decimal = Decimal("0"),
) -> bool:
    """
    Daily universe filter: age, market cap and liquidity.

    The bundled adapters apply the first two; the orchestrator applies all
    three to whatever an adapter returns.
    """
    if instrument.estimated_market_cap < min_market_cap or instrument.liquidity < min_liquidity:
        return False
    return instrument.age_at(as_of) <= timedelta(hours=max_age_hours)


class InMemoryMarketDataAdapter(MarketDataAdapter):
    """
    Adapter over pre-loaded candles and per-day universes.

    Candles are stored as delivered; `interval_minutes` is not used to
    resample them.

    Example:
        adapter = InMemoryMarketDataAdapter()
        adapter.add_universe(date(2024, 1, 1), [instrument])
        adapter.add_candles(instrument.address, candles)
    """

    def __init__(
        self,
        candles: Optional[dict[str, Iterable[Candle]]] = None,
        universes: Optional[dict[date, Iterable[InstrumentSnapshot]]] = None,
    ) -> None:
        self._candles: dict[str, list[Candle]] = {}
        self._universes: dict[date, list[InstrumentSnapshot]] = defaultdict(list)
        for instrument_id, series in (candles or {}).items():
            self.add_candles(instrument_id, series)
        for day, instruments in (universes or {}).items():
            self.add_universe(day, instruments)

    def add_candles(self, instrument_id: str, candles: Iterable[Candle]) -> None:
        """Add candles for an instrument, keeping the series sorted."""
        series = self._candles.setdefault(instrument_id, [])
        series.extend(candles)
        series.sort(key=lambda c: c.timestamp)

    def add_universe(self, day: date, instruments: Iterable[InstrumentSnapshot]) -> None:
        """Register the instruments listed on a day."""
        self._universes[day].extend(instruments)

    def get_candles(
        self,
        instrument_id: str,
        since: datetime,
        interval_minutes: int,
    ) -> list[Candle]:
        since = ensure_utc(since)
        return [c for c in self._candles.get(instrument_id, []) if c.timestamp >= since]

    def get_instrument_universe(
        self,
        as_of: datetime,
        max_age_hours: int,
        min_market_cap: Decimal,
    ) -> list[InstrumentSnapshot]:
        as_of = ensure_utc(as_of)
        return [
            i
            for i in self._universes.get(as_of.date(), [])
            if passes_universe_filter(i, as_of, max_age_hours, min_market_cap)
        ]
