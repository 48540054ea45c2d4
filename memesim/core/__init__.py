"""
Core module for memesim.

Provides logging utilities, the exception hierarchy, market data models
and retry helpers.
"""

from .exceptions import (
    ConfigError,
    DuplicatePositionError,
    InvariantViolation,
    LedgerError,
    MarketDataError,
    MemesimError,
    NoOpenPositionError,
    UnknownStrategyError,
)
from .logger import get_logger, set_log_level, setup_logger
from .models import Candle, InstrumentSnapshot
from .retry import RetryConfig, RetryResult, RetryStrategy, retry_sync, with_retry

__all__ = [
    # Logging
    "setup_logger",
    "get_logger",
    "set_log_level",
    # Exceptions
    "MemesimError",
    "ConfigError",
    "UnknownStrategyError",
    "MarketDataError",
    "InvariantViolation",
    "DuplicatePositionError",
    "NoOpenPositionError",
    "LedgerError",
    # Models
    "Candle",
    "InstrumentSnapshot",
    # Retry
    "RetryConfig",
    "RetryResult",
    "RetryStrategy",
    "retry_sync",
    "with_retry",
]
