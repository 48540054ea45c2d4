"""
Simulation Configuration Model.

Run-level parameters: capital, horizon, universe filter and fees.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import Field

from .base import BaseConfig


class SimulationConfig(BaseConfig):
    """
    Backtest run configuration.

    Example:
        >>> config = SimulationConfig(horizon_days=3, starting_capital=Decimal("500"))
    """

    starting_capital: Decimal = Field(
        default=Decimal("1000"),
        gt=Decimal("0"),
        description="Cash available at the start of the run",
    )
    horizon_days: int = Field(
        default=7,
        ge=1,
        le=90,
        description="Number of simulated days",
    )
    end_date: Optional[date] = Field(
        default=None,
        description="Last simulated day (UTC); defaults to today",
    )
    top_k: int = Field(
        default=3,
        ge=1,
        le=50,
        description="Instruments replayed per day",
    )
    fee_rate: Decimal = Field(
        default=Decimal("0.005"),
        ge=Decimal("0"),
        lt=Decimal("0.1"),
        description="Flat fee per fill as a fraction of notional",
    )
    universe_max_age_hours: int = Field(
        default=24,
        ge=1,
        description="Universe filter: maximum instrument age",
    )
    universe_min_market_cap: Decimal = Field(
        default=Decimal("50000"),
        ge=Decimal("0"),
        description="Universe filter: minimum market cap",
    )
    universe_min_liquidity: Decimal = Field(
        default=Decimal("10000"),
        ge=Decimal("0"),
        description="Universe filter: minimum pool liquidity",
    )
    candle_interval_minutes: int = Field(
        default=5,
        ge=1,
        le=1440,
        description="Candle interval requested from the data adapter",
    )
    seed: int = Field(
        default=42,
        description="Seed for any stochastic data path",
    )
    max_workers: int = Field(
        default=3,
        ge=1,
        le=16,
        description="Thread pool size for multi-strategy comparisons",
    )


class DataConfig(BaseConfig):
    """Synthetic data and adapter retry settings."""

    instruments_per_day: int = Field(default=8, ge=0, le=200)
    history_hours: int = Field(
        default=48,
        ge=1,
        description="Hours of candles generated per synthetic instrument",
    )
    retry_max_attempts: int = Field(default=3, ge=1, le=10)
    retry_base_delay: float = Field(default=1.0, ge=0.0)
