"""
Base data models for memesim.

Pydantic v2 models for the market data the engine consumes: candles and
point-in-time instrument snapshots.
"""

from datetime import datetime, timedelta
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from .utils import ensure_utc, minutes_between, timestamp_to_datetime, to_decimal


# =============================================================================
# Base Model Configuration
# =============================================================================


class MarketBaseModel(BaseModel):
    """Base model with common configuration for market data models."""

    model_config = ConfigDict(
        frozen=True,
        use_enum_values=True,
        from_attributes=True,
    )


# =============================================================================
# Candle Model
# =============================================================================


class Candle(MarketBaseModel):
    """One OHLCV sample for one instrument."""

    timestamp: datetime
    open: Decimal = Field(gt=0)
    high: Decimal = Field(gt=0)
    low: Decimal = Field(gt=0)
    close: Decimal = Field(gt=0)
    volume: Decimal = Field(ge=0)

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @computed_field
    @property
    def is_green(self) -> bool:
        """True if green candle (close > open)."""
        return self.close > self.open

    @computed_field
    @property
    def is_red(self) -> bool:
        """True if red candle (close < open)."""
        return self.close < self.open

    @classmethod
    def from_ohlcv(cls, data: list) -> "Candle":
        """
        Create Candle from an OHLCV array.

        Args:
            data: [timestamp_ms, open, high, low, close, volume]

        Returns:
            Candle instance
        """
        return cls(
            timestamp=timestamp_to_datetime(data[0]),
            open=to_decimal(data[1]),
            high=to_decimal(data[2]),
            low=to_decimal(data[3]),
            close=to_decimal(data[4]),
            volume=to_decimal(data[5]),
        )


# =============================================================================
# Instrument Snapshot Model
# =============================================================================


class InstrumentSnapshot(MarketBaseModel):
    """Point-in-time descriptive metadata for a tradable instrument."""

    address: str = Field(min_length=1)
    symbol: str
    estimated_market_cap: Decimal = Field(ge=0)
    volume_24h: Decimal = Field(default=Decimal("0"), ge=0)
    price_change_24h: Decimal = Decimal("0")
    liquidity: Decimal = Field(default=Decimal("0"), ge=0)
    creation_time: datetime

    @field_validator("creation_time")
    @classmethod
    def _utc_creation(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    def age_at(self, ts: datetime) -> timedelta:
        """Instrument age at the given time."""
        return ensure_utc(ts) - self.creation_time

    def age_minutes_at(self, ts: datetime) -> Decimal:
        """Instrument age at the given time, in minutes."""
        return minutes_between(self.creation_time, ensure_utc(ts))

    def discovery_score(self) -> Decimal:
        """
        Heuristic attractiveness of a freshly listed token.

        Market cap contributes up to 5 points (per 100k), 24h volume up to
        3 points (per 50k) and liquidity up to 2 points (per 1M).
        """
        return (
            min(self.estimated_market_cap / Decimal("100000"), Decimal("5"))
            + min(self.volume_24h / Decimal("50000"), Decimal("3"))
            + min(self.liquidity / Decimal("1000000"), Decimal("2"))
        )
