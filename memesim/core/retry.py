"""
Caller-side retries for market data access.

The backtest engine never retries on its own: a failed adapter call ends
the run. Callers that talk to flaky upstream services wrap their adapter
(see ``memesim.data.RetryingMarketDataAdapter``) or individual functions
with the helpers here.
"""

import functools
import random
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

from .logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RetryStrategy(str, Enum):
    """How the wait grows between attempts."""

    FIXED = "fixed"
    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    EXPONENTIAL_JITTER = "exponential_jitter"


@dataclass
class RetryConfig:
    """
    Retry policy.

    ``max_attempts`` counts the first call. An exception is retried only if
    it is an instance of ``retryable_exceptions``, not an instance of
    ``non_retryable_exceptions``, and ``retry_predicate`` (when given)
    returns True for it. ``sleep`` is injectable so tests can record the
    waits instead of blocking.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    strategy: RetryStrategy = RetryStrategy.EXPONENTIAL_JITTER
    jitter_factor: float = 0.25
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)
    non_retryable_exceptions: Tuple[Type[Exception], ...] = ()
    retry_predicate: Optional[Callable[[Exception], bool]] = None
    on_retry: Optional[Callable[[int, Exception, float], None]] = None
    sleep: Callable[[float], None] = time.sleep
    exponential_base: float = 2.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if min(self.base_delay, self.max_delay) < 0:
            raise ValueError("base_delay and max_delay must be non-negative")

    def calculate_delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based), capped at max_delay."""
        if self.strategy == RetryStrategy.FIXED:
            delay = self.base_delay
        elif self.strategy == RetryStrategy.LINEAR:
            delay = self.base_delay * attempt
        else:
            delay = self.base_delay * self.exponential_base ** (attempt - 1)
            if self.strategy == RetryStrategy.EXPONENTIAL_JITTER:
                delay += delay * self.jitter_factor * random.random()
        return min(delay, self.max_delay)

    def should_retry(self, exception: Exception) -> bool:
        if isinstance(exception, self.non_retryable_exceptions):
            return False
        if not isinstance(exception, self.retryable_exceptions):
            return False
        return self.retry_predicate is None or bool(self.retry_predicate(exception))


@dataclass
class RetryResult:
    """Outcome of ``retry_sync``: the value or the last exception, plus one history entry per attempt."""

    success: bool
    result: Any = None
    exception: Optional[Exception] = None
    attempts: int = 0
    total_delay: float = 0.0
    attempt_history: list[dict[str, Any]] = field(default_factory=list)

    def add_attempt(
        self,
        attempt: int,
        success: bool,
        delay: float = 0.0,
        exception: Optional[Exception] = None,
    ) -> None:
        self.attempts = attempt
        self.total_delay += delay
        self.attempt_history.append(
            {
                "attempt": attempt,
                "success": success,
                "delay": delay,
                "exception": repr(exception) if exception is not None else None,
                "at": datetime.now(timezone.utc).isoformat(),
            }
        )


def retry_sync(
    func: Callable[..., T],
    *args: Any,
    config: Optional[RetryConfig] = None,
    **kwargs: Any,
) -> RetryResult:
    """
    Call ``func(*args, **kwargs)`` under ``config`` and report what happened.

    Never raises the wrapped function's exceptions; inspect
    ``RetryResult.success`` and ``RetryResult.exception`` instead.

    Example:
        >>> outcome = retry_sync(adapter.get_candles, "So11...", since, 5)
        >>> candles = outcome.result if outcome.success else []
    """
    config = config or RetryConfig()
    outcome = RetryResult(success=False)
    name = getattr(func, "__qualname__", type(func).__name__)

    for attempt in range(1, config.max_attempts + 1):
        try:
            value = func(*args, **kwargs)
        except Exception as e:
            outcome.exception = e
            if not config.should_retry(e):
                logger.warning(f"{name}: giving up on {type(e).__name__}: {e}")
                outcome.add_attempt(attempt, success=False, exception=e)
                return outcome
            if attempt == config.max_attempts:
                logger.error(f"{name}: failed after {attempt} attempts, last error {type(e).__name__}: {e}")
                outcome.add_attempt(attempt, success=False, exception=e)
                return outcome

            delay = config.calculate_delay(attempt)
            outcome.add_attempt(attempt, success=False, delay=delay, exception=e)
            logger.warning(
                f"{name}: attempt {attempt}/{config.max_attempts} raised {type(e).__name__}: {e}; "
                f"retrying in {delay:.2f}s"
            )
            if config.on_retry is not None:
                config.on_retry(attempt, e, delay)
            config.sleep(delay)
        else:
            outcome.success = True
            outcome.result = value
            outcome.exception = None
            outcome.add_attempt(attempt, success=True)
            return outcome

    return outcome


def with_retry(config: Optional[RetryConfig] = None, **config_kwargs: Any) -> Callable:
    """
    Decorator form of ``retry_sync`` that returns the value or re-raises the last exception.

    Example:
        >>> @with_retry(max_attempts=5, base_delay=2.0)
        ... def fetch_universe(as_of):
        ...     return client.universe(as_of)
    """
    policy = config if config is not None else RetryConfig(**config_kwargs)

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            outcome = retry_sync(func, *args, config=policy, **kwargs)
            if not outcome.success:
                raise outcome.exception
            return outcome.result

        return wrapper

    return decorator
