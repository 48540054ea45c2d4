"""
Dip-Recovery Strategy.

Buys a retracement of 30-60% from the local high while trading volume
stays alive relative to both its recent average and the market cap.
Exits on a half partial at +60%, take-profit +100%, stop-loss -25%, or
after 60 minutes / 4 candles, whichever comes first.
"""

from decimal import Decimal
from typing import Sequence

from ...config.models.strategy import DipRecoveryConfig, StrategyName
from ...core.models import Candle, InstrumentSnapshot
from ..signals import HoldReason, Signal
from .base import Strategy


class DipRecoveryStrategy(Strategy):
    """Mean-reversion entries on sharp pullbacks."""

    name = StrategyName.DIP_RECOVERY
    config_type = DipRecoveryConfig

    def retracement_pct(self, window: Sequence[Candle]) -> Decimal:
        """Drop of the latest close below the local high, in percent."""
        local_high = max(c.high for c in window[-self._config.lookback_periods :])
        return (local_high - window[-1].close) / local_high * Decimal("100")

    def check_entry(self, window: Sequence[Candle], instrument: InstrumentSnapshot) -> Signal:
        config = self._config
        last = window[-1]

        retracement = self.retracement_pct(window)
        if not (config.min_retracement_pct <= retracement <= config.max_retracement_pct):
            return Signal.hold(HoldReason.RETRACEMENT_OUT_OF_RANGE, f"retracement {retracement:.1f}%")

        preceding = window[-(config.volume_average_periods + 1) : -1]
        average = sum((c.volume for c in preceding), Decimal("0")) / len(preceding)

        if last.volume < config.min_volume_vs_average * average:
            return Signal.hold(HoldReason.VOLUME_TOO_LOW, f"volume {last.volume} below average {average:.2f}")
        if average < config.min_volume_to_cap_ratio * instrument.estimated_market_cap:
            return Signal.hold(HoldReason.VOLUME_TOO_LOW, f"average volume {average:.2f} too thin for cap")

        return self.buy_signal("dip_recovery", f"{retracement:.1f}% retracement with stable volume")

    def rank_key(self, instrument: InstrumentSnapshot) -> Decimal:
        # Deepest 24h losers first
        return instrument.price_change_24h
