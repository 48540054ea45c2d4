"""
Strategy evaluators.

One evaluator per StrategyName; `evaluate` is the stateless entry point.
"""

from typing import Optional, Sequence

from ...config.models.strategy import StrategyConfigBase, StrategyName
from ...core.models import Candle, InstrumentSnapshot
from ..position import Position
from ..signals import Signal
from .base import Strategy
from .dip_recovery import DipRecoveryStrategy
from .trend_momentum import TrendMomentumStrategy
from .volume_spike import VolumeSpikeStrategy

STRATEGY_TYPES: dict[StrategyName, type[Strategy]] = {
    StrategyName.VOLUME_SPIKE: VolumeSpikeStrategy,
    StrategyName.TREND_MOMENTUM: TrendMomentumStrategy,
    StrategyName.DIP_RECOVERY: DipRecoveryStrategy,
}


def create_strategy(
    name: "str | StrategyName",
    config: Optional[StrategyConfigBase] = None,
) -> Strategy:
    """
    Build the evaluator for a strategy name.

    Raises:
        UnknownStrategyError: If the name matches no strategy
        ConfigError: If the config belongs to another strategy
    """
    return STRATEGY_TYPES[StrategyName.parse(name)](config)


def evaluate(
    strategy_name: "str | StrategyName",
    window: Sequence[Candle],
    instrument: InstrumentSnapshot,
    open_position: Optional[Position] = None,
    config: Optional[StrategyConfigBase] = None,
) -> Signal:
    """
    Evaluate one tick for the named strategy.

    Args:
        strategy_name: Strategy to apply
        window: Trailing candles, oldest first
        instrument: Instrument metadata
        open_position: Open position on the instrument, if any
        config: Strategy parameters, defaults when omitted

    Returns:
        Signal with action, size hint and reason
    """
    return create_strategy(strategy_name, config).evaluate(window, instrument, open_position)


__all__ = [
    "Strategy",
    "VolumeSpikeStrategy",
    "TrendMomentumStrategy",
    "DipRecoveryStrategy",
    "STRATEGY_TYPES",
    "create_strategy",
    "evaluate",
]
