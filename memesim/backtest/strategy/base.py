"""
Base Strategy Module.

Defines the abstract interface shared by the memecoin entry strategies.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, ClassVar, Optional, Sequence

from ...config.models.strategy import StrategyConfigBase, StrategyName
from ...core.exceptions import ConfigError
from ...core.logger import get_logger
from ...core.models import Candle, InstrumentSnapshot
from ..position import Position
from ..signals import HoldReason, Signal

logger = get_logger(__name__)


class Strategy(ABC):
    """
    Abstract base class for strategy evaluators.

    A strategy is a pure decision function over a trailing candle window.
    Shared rules live in `evaluate`; subclasses only describe their entry
    setup and, optionally, exit guidance for an open position.

    Example:
        class MyStrategy(Strategy):
            name = StrategyName.VOLUME_SPIKE
            config_type = VolumeSpikeConfig

            def check_entry(self, window, instrument) -> Signal:
                if window[-1].is_green:
                    return self.buy_signal("green_candle")
                return Signal.hold()

            def rank_key(self, instrument) -> Decimal:
                return -instrument.volume_24h
    """

    name: ClassVar[StrategyName]
    config_type: ClassVar[type[StrategyConfigBase]]

    def __init__(self, config: Optional[StrategyConfigBase] = None) -> None:
        """
        Initialize strategy.

        Args:
            config: Strategy parameters, defaults when omitted

        Raises:
            ConfigError: If the config belongs to another strategy
        """
        if config is None:
            config = self.config_type()
        if not isinstance(config, self.config_type):
            raise ConfigError(
                f"{self.name.value} needs {self.config_type.__name__}, got {type(config).__name__}",
                code="config_type_mismatch",
            )
        self._config = config

    @property
    def config(self) -> Any:
        return self._config

    @property
    def min_lookback(self) -> int:
        """Minimum number of candles before any decision is made."""
        return self._config.min_lookback

    def evaluate(
        self,
        window: Sequence[Candle],
        instrument: InstrumentSnapshot,
        open_position: Optional[Position] = None,
    ) -> Signal:
        """
        Decide what to do on the latest candle of the window.

        Args:
            window: Trailing candles, oldest first, ending at the current tick
            instrument: Instrument metadata
            open_position: Open position on the instrument, if any

        Returns:
            BUY, SELL (exit guidance only) or HOLD
        """
        if len(window) < self.min_lookback:
            return Signal.hold(
                HoldReason.INSUFFICIENT_HISTORY,
                f"{len(window)} < {self.min_lookback} candles",
            )

        if open_position is not None:
            return self.check_exit(window, instrument, open_position)

        if instrument.estimated_market_cap < self._config.min_market_cap:
            return Signal.hold(
                HoldReason.MARKET_CAP_TOO_LOW,
                f"market cap {instrument.estimated_market_cap} < {self._config.min_market_cap}",
            )

        signal = self.check_entry(window, instrument)
        if signal.is_buy:
            logger.debug(f"{self.name.value} BUY {instrument.symbol}: {signal.detail}")
        return signal

    @abstractmethod
    def check_entry(self, window: Sequence[Candle], instrument: InstrumentSnapshot) -> Signal:
        """
        Check the strategy's entry setup.

        Called only when no position is open, the window is long enough
        and the market cap filter passed.

        Returns:
            BUY or HOLD signal
        """
        pass

    def check_exit(
        self,
        window: Sequence[Candle],
        instrument: InstrumentSnapshot,
        position: Position,
    ) -> Signal:
        """
        Exit guidance for an open position.

        Stop-loss, take-profit, partial and time exits belong to the
        position manager; override only for discretionary exits.

        Returns:
            SELL or HOLD signal (never BUY)
        """
        return Signal.hold(HoldReason.POSITION_OPEN)

    @abstractmethod
    def rank_key(self, instrument: InstrumentSnapshot) -> Decimal:
        """Primary sort key for daily instrument selection (ascending)."""
        pass

    def rank(self, instruments: Sequence[InstrumentSnapshot], top_k: int) -> list[InstrumentSnapshot]:
        """
        Select the top-K instruments in this strategy's preference order.

        Ties break on discovery score (descending), then address.
        """
        ordered = sorted(
            instruments,
            key=lambda i: (self.rank_key(i), -i.discovery_score(), i.address),
        )
        return ordered[:top_k]

    def buy_signal(self, reason: str, detail: str = "") -> Signal:
        """Entry signal sized by the configured risk per trade."""
        return Signal.buy(self._config.risk_per_trade_pct, reason, detail)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name.value!r})"
