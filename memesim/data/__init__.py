"""
Market data adapters.

- MarketDataAdapter: interface consumed by the orchestrator
- InMemoryMarketDataAdapter: pre-loaded candles and universes
- SyntheticDataProvider: seeded pump/dump generator
- RetryingMarketDataAdapter: caller-side retry wrapper
"""

from .provider import InMemoryMarketDataAdapter, MarketDataAdapter, passes_universe_filter
from .retrying import RetryingMarketDataAdapter, is_retryable_market_error
from .synthetic import LAUNCH_PROFILES, LaunchProfile, SyntheticDataProvider

__all__ = [
    "MarketDataAdapter",
    "InMemoryMarketDataAdapter",
    "passes_universe_filter",
    "RetryingMarketDataAdapter",
    "is_retryable_market_error",
    "SyntheticDataProvider",
    "LaunchProfile",
    "LAUNCH_PROFILES",
]
