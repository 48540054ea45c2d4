"""
Volume-Spike Strategy.

Buys freshly launched tokens when a green candle trades a large share of
the token's market cap:

- Token age between the launch exclusion window and the maximum age
- Market cap above the configured floor
- Latest candle green (close > open)
- Latest candle volume >= volume ratio x market cap, with a lower ratio
  for large caps

Exits (position manager): stop-loss -35%, take-profit +140%, half of the
position released at +70%.
"""

from decimal import Decimal
from typing import Sequence

from ...config.models.strategy import StrategyName, VolumeSpikeConfig
from ...core.models import Candle, InstrumentSnapshot
from ..signals import HoldReason, Signal
from .base import Strategy


class VolumeSpikeStrategy(Strategy):
    """
    Volume-spike entries on new tokens.

    Example:
        strategy = VolumeSpikeStrategy()
        signal = strategy.evaluate(window, instrument)
    """

    name = StrategyName.VOLUME_SPIKE
    config_type = VolumeSpikeConfig

    def volume_ratio_for(self, market_cap: Decimal) -> Decimal:
        """Required volume / market cap ratio for the given cap."""
        if market_cap >= self._config.large_cap_threshold:
            return self._config.large_cap_volume_ratio
        return self._config.min_volume_ratio

    def check_entry(self, window: Sequence[Candle], instrument: InstrumentSnapshot) -> Signal:
        config = self._config
        last = window[-1]

        age_minutes = instrument.age_minutes_at(last.timestamp)
        if age_minutes < config.launch_exclusion_minutes or age_minutes >= config.max_age_hours * 60:
            return Signal.hold(HoldReason.AGE_OUT_OF_RANGE, f"age {age_minutes:.0f} min")

        if not last.is_green:
            return Signal.hold(HoldReason.NO_SETUP, "last candle not green")

        market_cap = instrument.estimated_market_cap
        required = self.volume_ratio_for(market_cap) * market_cap
        if last.volume < required:
            return Signal.hold(HoldReason.VOLUME_TOO_LOW, f"volume {last.volume} < {required}")

        return self.buy_signal(
            "volume_spike",
            f"volume {last.volume} >= {required} on green candle, age {age_minutes:.0f} min",
        )

    def rank_key(self, instrument: InstrumentSnapshot) -> Decimal:
        # Highest 24h volume first
        return -instrument.volume_24h
