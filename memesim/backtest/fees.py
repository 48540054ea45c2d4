"""
Trading costs charged on simulated fills.

Memecoin swaps pay a pool fee plus slippage; both are folded into one
rate applied to the notional of every BUY and SELL.
"""

from abc import ABC, abstractmethod
from decimal import Decimal


class FeeCalculator(ABC):
    """Cost model for a fill of ``quantity`` units at ``price``."""

    @abstractmethod
    def calculate_fee(self, price: Decimal, quantity: Decimal) -> Decimal:
        """Fee in quote currency."""

    @property
    @abstractmethod
    def base_rate(self) -> Decimal:
        """Rate as a fraction of notional (0.005 is 0.5%)."""

    def max_notional(self, cash: Decimal) -> Decimal:
        """Largest notional whose cost plus fee fits in ``cash``."""
        return cash / (1 + self.base_rate)


class FixedFeeCalculator(FeeCalculator):
    """
    Same rate for every fill, regardless of side or size.

    Example:
        >>> FixedFeeCalculator(Decimal("0.005")).calculate_fee(Decimal("2"), Decimal("100"))
        Decimal('1.000')
    """

    def __init__(self, fee_rate: Decimal = Decimal("0.005")) -> None:
        if fee_rate < 0:
            raise ValueError(f"fee_rate must be non-negative, got {fee_rate}")
        self._rate = fee_rate

    @property
    def base_rate(self) -> Decimal:
        return self._rate

    def calculate_fee(self, price: Decimal, quantity: Decimal) -> Decimal:
        return price * quantity * self._rate
