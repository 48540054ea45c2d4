"""
Trend-Momentum Strategy.

Entry:
- At least N consecutive green candles
- AND either rising volume (latest window sum > preceding window sum)
  or a price rise over the lookback period

Exits: staged partials at +60% and +100% (one third of the original size
each), take-profit +140%, stop-loss -35%, and an early exit once the first
partial is taken and momentum fades (red candle or volume window no longer
rising) while the trade is still well in profit.
"""

from datetime import timedelta
from decimal import Decimal
from typing import Optional, Sequence

from ...config.models.strategy import StrategyName, TrendMomentumConfig
from ...core.models import Candle, InstrumentSnapshot
from ...core.utils import pct_change
from ..position import Position
from ..signals import HoldReason, Signal
from .base import Strategy


class TrendMomentumStrategy(Strategy):
    """
    Trend-following entries on green candle runs.

    Example:
        strategy = TrendMomentumStrategy(TrendMomentumConfig(consecutive_green=2))
        signal = strategy.evaluate(window, instrument)
    """

    name = StrategyName.TREND_MOMENTUM
    config_type = TrendMomentumConfig

    def volume_rising(self, window: Sequence[Candle]) -> bool:
        """Sum of the latest volume window exceeds the preceding one."""
        size = self._config.volume_window
        recent = sum((c.volume for c in window[-size:]), Decimal("0"))
        previous = sum((c.volume for c in window[-2 * size : -size]), Decimal("0"))
        return recent > previous

    def price_rise_pct(self, window: Sequence[Candle]) -> Optional[Decimal]:
        """
        Price change versus the latest candle at least the lookback old.

        Returns:
            Percent change, or None if the window does not reach back far enough
        """
        last = window[-1]
        cutoff = last.timestamp - timedelta(minutes=self._config.price_lookback_minutes)
        for candle in reversed(window[:-1]):
            if candle.timestamp <= cutoff:
                return pct_change(last.close, candle.close)
        return None

    def check_entry(self, window: Sequence[Candle], instrument: InstrumentSnapshot) -> Signal:
        config = self._config

        run = window[-config.consecutive_green :]
        if not all(c.is_green for c in run):
            return Signal.hold(HoldReason.NO_SETUP, f"fewer than {config.consecutive_green} green candles")

        if self.volume_rising(window):
            return self.buy_signal("trend_momentum", "green run with rising volume")

        rise = self.price_rise_pct(window)
        if rise is not None and rise >= config.min_price_rise_pct:
            return self.buy_signal("trend_momentum", f"green run with {rise:.1f}% price rise")

        return Signal.hold(HoldReason.NO_SETUP, "no volume or price confirmation")

    def check_exit(
        self,
        window: Sequence[Candle],
        instrument: InstrumentSnapshot,
        position: Position,
    ) -> Signal:
        if not position.first_partial_taken or len(window) < 2:
            return Signal.hold(HoldReason.POSITION_OPEN)

        last = window[-1]
        profit = position.profit_pct(last.close)
        if profit <= self._config.early_exit_min_profit_pct:
            return Signal.hold(HoldReason.POSITION_OPEN)

        if not last.is_green or not self.volume_rising(window):
            return Signal.sell("momentum_shift", f"momentum fading at {profit:.1f}% profit")

        return Signal.hold(HoldReason.POSITION_OPEN)

    def rank_key(self, instrument: InstrumentSnapshot) -> Decimal:
        # Strongest 24h gainers first
        return -instrument.price_change_24h
