"""
Synthetic Data Provider.

Seeded pump-and-dump candle generator for offline backtests. Every
instrument follows one of three launch profiles: a quiet start, a pump,
a dump and then noisy sideways trading. Output depends only on the seed,
the day and the instrument address, so runs are reproducible.
"""

import random
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional

from ..core.logger import get_logger
from ..core.models import Candle, InstrumentSnapshot
from ..core.utils import ensure_utc
from .provider import MarketDataAdapter, passes_universe_filter

logger = get_logger(__name__)

# Synthetic tokens share one supply so price = market cap / supply
TOKEN_SUPPLY = 1_000_000_000


@dataclass(frozen=True)
class LaunchProfile:
    """
    Shape of a synthetic token launch.

    Attributes:
        name: Profile name
        initial_pump_pct: Total price rise during the pump
        pump_minutes: Pump duration
        dump_severity_pct: Total price drop during the dump
        volatility_pct: Candle-to-candle volatility after the dump
        volume_burst: Volume multiplier during pump and dump
    """

    name: str
    initial_pump_pct: float
    pump_minutes: int
    dump_severity_pct: float
    volatility_pct: float
    volume_burst: float


LAUNCH_PROFILES: dict[str, LaunchProfile] = {
    "meme-coin": LaunchProfile("meme-coin", 5000, 30, 80, 35, 15),
    "utility-token": LaunchProfile("utility-token", 200, 120, 60, 20, 8),
    "quick-flip": LaunchProfile("quick-flip", 1000, 15, 90, 45, 20),
}


def _to_price(value: float) -> Decimal:
    return Decimal(f"{max(value, 1e-12):.10g}")


def _to_amount(value: float) -> Decimal:
    return Decimal(f"{max(value, 0.0):.2f}")


class SyntheticDataProvider(MarketDataAdapter):
    """
    Deterministic synthetic market data.

    This provider is labelled as synthetic everywhere it is reported; it is
    never mixed with real data inside the engine.

    Example:
        provider = SyntheticDataProvider(seed=42)
        universe = provider.get_instrument_universe(day_start, 24, Decimal("50000"))
        candles = provider.get_candles(universe[0].address, day_start, 5)
    """

    def __init__(
        self,
        seed: int = 42,
        instruments_per_day: int = 8,
        history_hours: int = 48,
        interval_minutes: int = 5,
    ) -> None:
        """
        Initialize provider.

        Args:
            seed: Base seed for every generated series
            instruments_per_day: Tokens listed per simulated day
            history_hours: Hours of candles generated per token
            interval_minutes: Native candle interval
        """
        self._seed = seed
        self._instruments_per_day = instruments_per_day
        self._history_hours = history_hours
        self._interval_minutes = interval_minutes

        self._lock = threading.Lock()
        self._instruments: dict[str, InstrumentSnapshot] = {}
        self._profiles: dict[str, LaunchProfile] = {}
        self._series: dict[str, list[Candle]] = {}

    @property
    def seed(self) -> int:
        return self._seed

    # =========================================================================
    # Universe
    # =========================================================================

    def get_instrument_universe(
        self,
        as_of: datetime,
        max_age_hours: int,
        min_market_cap: Decimal,
    ) -> list[InstrumentSnapshot]:
        as_of = ensure_utc(as_of)
        listed = self._listings_for(as_of)
        eligible = [
            i for i in listed if passes_universe_filter(i, as_of, max_age_hours, min_market_cap)
        ]
        eligible.sort(key=lambda i: (-i.discovery_score(), i.address))
        return eligible

    def _listings_for(self, as_of: datetime) -> list[InstrumentSnapshot]:
        day = as_of.date()
        rng = random.Random(f"{self._seed}:universe:{day.isoformat()}")
        profile_names = sorted(LAUNCH_PROFILES)

        listed = []
        for index in range(self._instruments_per_day):
            address = f"SYN{day:%Y%m%d}{index:03d}"
            profile = LAUNCH_PROFILES[rng.choice(profile_names)]
            market_cap = Decimal(rng.randint(30_000, 2_000_000))
            instrument = InstrumentSnapshot(
                address=address,
                symbol=f"SYN{index}{day:%m%d}",
                estimated_market_cap=market_cap,
                volume_24h=Decimal(rng.randint(5_000, 400_000)),
                price_change_24h=Decimal(str(round(rng.uniform(-80, 400), 2))),
                liquidity=Decimal(rng.randint(10_000, 3_000_000)),
                creation_time=as_of - timedelta(minutes=rng.randint(60, 12 * 60)),
            )
            with self._lock:
                self._instruments.setdefault(address, instrument)
                self._profiles.setdefault(address, profile)
            listed.append(instrument)
        return listed

    # =========================================================================
    # Candles
    # =========================================================================

    def get_candles(
        self,
        instrument_id: str,
        since: datetime,
        interval_minutes: int,
    ) -> list[Candle]:
        since = ensure_utc(since)
        series = self._series_for(instrument_id)
        if series is None:
            return []
        if interval_minutes != self._interval_minutes:
            logger.debug(
                f"Synthetic candles are {self._interval_minutes}m; "
                f"ignoring requested {interval_minutes}m"
            )
        return [c for c in series if c.timestamp >= since]

    def _series_for(self, instrument_id: str) -> Optional[list[Candle]]:
        with self._lock:
            series = self._series.get(instrument_id)
            if series is not None:
                return series
            instrument = self._instruments.get(instrument_id)
            profile = self._profiles.get(instrument_id)
        if instrument is None or profile is None:
            return None

        series = self.generate_series(instrument, profile)
        with self._lock:
            return self._series.setdefault(instrument_id, series)

    def generate_series(self, instrument: InstrumentSnapshot, profile: LaunchProfile) -> list[Candle]:
        """
        Generate the candle history of one token.

        The pump starts after 10% of the history, lasts `pump_minutes` and
        is followed by a dump half as long.

        Args:
            instrument: Token snapshot (address, cap, creation time)
            profile: Launch profile

        Returns:
            Candles from creation time onwards, ascending
        """
        rng = random.Random(f"{self._seed}:{instrument.address}")
        interval = self._interval_minutes
        count = max(1, self._history_hours * 60 // interval)

        pump_start = max(1, count // 10)
        pump_len = max(1, profile.pump_minutes // interval)
        dump_len = max(1, pump_len // 2)
        pump_end = pump_start + pump_len
        dump_end = pump_end + dump_len

        pump_step = (1 + profile.initial_pump_pct / 100) ** (1 / pump_len) - 1
        dump_step = 1 - (1 - profile.dump_severity_pct / 100) ** (1 / dump_len)
        volatility = profile.volatility_pct / 100

        market_cap = float(instrument.estimated_market_cap)
        base_volume = market_cap * 0.01
        price = market_cap / TOKEN_SUPPLY

        candles = []
        for i in range(count):
            if i < pump_start:
                change = rng.uniform(-0.02, 0.025)
                volume = base_volume * rng.uniform(0.5, 1.0)
            elif i < pump_end:
                progress = (i - pump_start) / pump_len
                change = pump_step * rng.uniform(0.8, 1.2)
                volume = base_volume * profile.volume_burst * (1 + progress * 2)
            elif i < dump_end:
                progress = (i - pump_end) / dump_len
                change = -dump_step * rng.uniform(0.8, 1.2)
                volume = base_volume * profile.volume_burst * (2 - progress)
            else:
                change = rng.uniform(-0.5, 0.5) * volatility
                volume = base_volume * rng.uniform(0.3, 1.8)
                if rng.random() < 0.05:
                    volume *= 5

            open_price = price
            close_price = max(open_price * (1 + change), 1e-12)
            wick = volatility * rng.random() * 0.25
            high = max(open_price, close_price) * (1 + wick)
            low = min(open_price, close_price) * (1 - wick * 0.5)

            candles.append(
                Candle(
                    timestamp=instrument.creation_time + timedelta(minutes=interval * i),
                    open=_to_price(open_price),
                    high=_to_price(high),
                    low=_to_price(low),
                    close=_to_price(close_price),
                    volume=_to_amount(volume),
                )
            )
            price = close_price

        return candles

    def profile_of(self, instrument_id: str) -> Optional[LaunchProfile]:
        """Launch profile assigned to a listed token."""
        with self._lock:
            return self._profiles.get(instrument_id)

