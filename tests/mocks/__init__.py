# Mock classes for testing
"""Mock market data services for testing."""

from .market_data import (
    BASE_TIME,
    FailingMarketDataAdapter,
    FlakyMarketDataAdapter,
    candle_series,
    create_candle,
    create_instrument,
)

__all__ = [
    "BASE_TIME",
    "FailingMarketDataAdapter",
    "FlakyMarketDataAdapter",
    "candle_series",
    "create_candle",
    "create_instrument",
]
