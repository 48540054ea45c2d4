"""
Utility functions for memesim.

Includes time conversion and decimal helpers.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any


# =============================================================================
# Time-related functions
# =============================================================================


def timestamp_to_datetime(ts: int | float, unit: str = "ms") -> datetime:
    """
    Convert timestamp to datetime (UTC).

    Args:
        ts: Timestamp value
        unit: "ms" for milliseconds, "s" for seconds

    Returns:
        UTC datetime object

    Example:
        >>> timestamp_to_datetime(1704067200000)
        datetime.datetime(2024, 1, 1, 0, 0, tzinfo=datetime.timezone.utc)
    """
    if unit == "ms":
        ts = ts / 1000
    return datetime.fromtimestamp(ts, tz=timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return dt as an aware UTC datetime (naive values are assumed UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def day_start(day: date) -> datetime:
    """Midnight UTC at the start of the given calendar day."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def horizon_days(end_date: date, days: int) -> list[date]:
    """
    Calendar days of a backtest horizon, oldest first.

    Args:
        end_date: Last simulated day
        days: Number of days in the horizon

    Returns:
        List of `days` dates ending at end_date

    Example:
        >>> horizon_days(date(2024, 1, 7), 3)
        [datetime.date(2024, 1, 5), datetime.date(2024, 1, 6), datetime.date(2024, 1, 7)]
    """
    return [end_date - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def minutes_between(start: datetime, end: datetime) -> Decimal:
    """Elapsed minutes from start to end as a Decimal."""
    seconds = Decimal(str((end - start).total_seconds()))
    return seconds / Decimal("60")


# =============================================================================
# Numeric functions
# =============================================================================


def to_decimal(value: Any) -> Decimal:
    """
    Convert a number or numeric string to Decimal without float artifacts.

    Example:
        >>> to_decimal(0.1)
        Decimal('0.1')
    """
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def pct_change(current: Decimal, reference: Decimal) -> Decimal:
    """
    Percentage change from reference to current.

    Returns:
        (current - reference) / reference * 100, or 0 if reference is 0
    """
    if reference == 0:
        return Decimal("0")
    return (current - reference) / reference * Decimal("100")
