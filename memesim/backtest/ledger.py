"""
Capital Ledger Module.

Tracks free cash for one run and the end-of-day portfolio snapshots.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from ..core.exceptions import LedgerError
from .result import DailyPoint


class CapitalLedger:
    """
    Cash balance plus daily portfolio snapshots.

    Owned by exactly one run; never shared between concurrent runs.
    Cash can never become negative: a debit larger than the balance
    raises LedgerError and leaves the balance untouched.

    Example:
        >>> ledger = CapitalLedger(Decimal("1000"))
        >>> ledger.debit(Decimal("150.75"))
        >>> ledger.cash
        Decimal('849.25')
    """

    def __init__(self, initial_capital: Decimal) -> None:
        """
        Initialize ledger.

        Args:
            initial_capital: Starting cash, must be positive
        """
        if initial_capital <= 0:
            raise ValueError("initial_capital must be positive")
        self._initial_capital = initial_capital
        self._cash = initial_capital
        self._snapshots: list[DailyPoint] = []

    @property
    def initial_capital(self) -> Decimal:
        return self._initial_capital

    @property
    def cash(self) -> Decimal:
        return self._cash

    @property
    def snapshots(self) -> list[DailyPoint]:
        """Daily snapshots taken so far, oldest first."""
        return self._snapshots.copy()

    @property
    def last_value(self) -> Decimal:
        """Most recent snapshot value, or initial capital before the first snapshot."""
        if self._snapshots:
            return self._snapshots[-1].value
        return self._initial_capital

    def debit(self, amount: Decimal) -> None:
        """
        Remove cash for an entry (notional plus fee).

        Raises:
            ValueError: If amount is negative
            LedgerError: If amount exceeds available cash
        """
        if amount < 0:
            raise ValueError("debit amount cannot be negative")
        if amount > self._cash:
            raise LedgerError(
                f"Debit of {amount} exceeds cash {self._cash}",
                code="insufficient_cash",
                details={"amount": str(amount), "cash": str(self._cash)},
            )
        self._cash -= amount

    def credit(self, amount: Decimal) -> None:
        """
        Add net exit proceeds.

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError("credit amount cannot be negative")
        self._cash += amount

    def snapshot(self, day: date, value: Decimal) -> DailyPoint:
        """
        Record the end-of-day portfolio value.

        Args:
            day: Simulated day
            value: Cash plus marked-to-market open positions

        Returns:
            The recorded point
        """
        if self._snapshots and day <= self._snapshots[-1].date:
            raise ValueError(f"snapshot for {day} is not after {self._snapshots[-1].date}")
        point = DailyPoint(date=day, value=value)
        self._snapshots.append(point)
        return point

    def snapshot_for(self, day: date) -> Optional[DailyPoint]:
        """Get the snapshot recorded for a day, if any."""
        for point in self._snapshots:
            if point.date == day:
                return point
        return None
