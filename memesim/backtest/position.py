"""
Position Management Module.

Per-instrument position lifecycle (FLAT -> OPEN -> PARTIALLY_CLOSED -> CLOSED),
fee-aware P&L accounting and the trade log.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from ..config.models.strategy import StrategyConfigBase
from ..core.exceptions import DuplicatePositionError, NoOpenPositionError
from ..core.logger import get_logger
from ..core.models import Candle, InstrumentSnapshot
from ..core.utils import minutes_between, pct_change
from .context import IntendedTrade, TradeHook
from .fees import FeeCalculator
from .ledger import CapitalLedger
from .result import ExitReason, Trade, TradeSide
from .signals import Signal

logger = get_logger(__name__)


class PositionState(str, Enum):
    """Lifecycle state of one instrument."""

    FLAT = "flat"
    OPEN = "open"
    PARTIALLY_CLOSED = "partially_closed"
    CLOSED = "closed"


@dataclass
class Position:
    """
    Live state of one open trade on one instrument.

    Attributes:
        instrument_id: Instrument address
        entry_price: Entry fill price
        size: Units bought at entry
        entry_timestamp: Entry candle timestamp
        stop_loss_price: Absolute stop-loss price
        take_profit_price: Absolute take-profit price
        entry_fee: Fee paid on entry
        partial_exits_taken: One flag per configured partial exit
        remaining_size: Units still held
        remaining_entry_fee: Entry fee not yet attributed to an exit
        state: OPEN or PARTIALLY_CLOSED while held, CLOSED after the final exit
        candles_held: Ticks processed since entry
        last_price: Last close seen for the instrument
        last_timestamp: Timestamp of that close
    """

    instrument_id: str
    entry_price: Decimal
    size: Decimal
    entry_timestamp: datetime
    stop_loss_price: Decimal
    take_profit_price: Decimal
    entry_fee: Decimal = field(default_factory=lambda: Decimal("0"))
    partial_exits_taken: list[bool] = field(default_factory=list)
    symbol: str = ""
    remaining_size: Optional[Decimal] = None
    remaining_entry_fee: Optional[Decimal] = None
    state: PositionState = PositionState.OPEN
    candles_held: int = 0
    last_price: Optional[Decimal] = None
    last_timestamp: Optional[datetime] = None

    def __post_init__(self) -> None:
        """Initialize remaining amounts and tracking price."""
        if self.remaining_size is None:
            self.remaining_size = self.size
        if self.remaining_entry_fee is None:
            self.remaining_entry_fee = self.entry_fee
        if self.last_price is None:
            self.last_price = self.entry_price
        if self.last_timestamp is None:
            self.last_timestamp = self.entry_timestamp

    @property
    def is_open(self) -> bool:
        return self.state in (PositionState.OPEN, PositionState.PARTIALLY_CLOSED)

    @property
    def first_partial_taken(self) -> bool:
        return bool(self.partial_exits_taken) and self.partial_exits_taken[0]

    @property
    def market_value(self) -> Decimal:
        """Remaining units at the last seen price."""
        return self.remaining_size * self.last_price

    def profit_pct(self, price: Decimal) -> Decimal:
        """Price change from entry, in percent."""
        return pct_change(price, self.entry_price)

    def minutes_held(self, now: datetime) -> Decimal:
        return minutes_between(self.entry_timestamp, now)


class PositionManager:
    """
    Owns every open position of one run and the trade log.

    At most one position exists per instrument. Each call to `on_tick`
    applies at most one transition, chosen by priority:
    stop-loss / take-profit > partial exit > time exit > momentum shift.

    Example:
        ledger = CapitalLedger(Decimal("1000"))
        manager = PositionManager(ledger, FixedFeeCalculator(Decimal("0.005")))
        manager.open_position(instrument, candle, Signal.buy(Decimal("15"), "volume_spike"), config)
        trade = manager.on_tick(instrument.address, next_candle, config)
    """

    def __init__(
        self,
        ledger: CapitalLedger,
        fee_calculator: FeeCalculator,
        trade_hook: Optional[TradeHook] = None,
    ) -> None:
        """
        Initialize position manager.

        Args:
            ledger: Capital ledger debited on entries and credited on exits
            fee_calculator: Fee model applied to every fill
            trade_hook: Optional receiver of IntendedTrade events
        """
        self._ledger = ledger
        self._fees = fee_calculator
        self._trade_hook = trade_hook
        self._positions: dict[str, Position] = {}
        self._trades: list[Trade] = []

    @property
    def ledger(self) -> CapitalLedger:
        return self._ledger

    @property
    def trades(self) -> list[Trade]:
        """Get all fills in execution order."""
        return self._trades.copy()

    @property
    def open_positions(self) -> list[Position]:
        """Get all open positions."""
        return list(self._positions.values())

    def get(self, instrument_id: str) -> Optional[Position]:
        """Get the open position for an instrument, if any."""
        return self._positions.get(instrument_id)

    def has_position(self, instrument_id: str) -> bool:
        return instrument_id in self._positions

    def state_of(self, instrument_id: str) -> PositionState:
        """Lifecycle state of an instrument (FLAT when nothing is held)."""
        position = self._positions.get(instrument_id)
        return position.state if position else PositionState.FLAT

    def portfolio_value(self) -> Decimal:
        """Cash plus remaining units of every position at its last price."""
        return self._ledger.cash + sum(
            (p.market_value for p in self._positions.values()), Decimal("0")
        )

    # =========================================================================
    # Entry
    # =========================================================================

    def open_position(
        self,
        instrument: InstrumentSnapshot,
        candle: Candle,
        signal: Signal,
        config: StrategyConfigBase,
        strict: bool = False,
    ) -> Optional[Trade]:
        """
        Accept a BUY signal and open a position at the candle close.

        size = (cash x size_hint_pct / 100) / close, capped so that the
        notional plus the entry fee never exceeds available cash.

        Args:
            instrument: Instrument being bought
            candle: Entry candle (fill at close)
            signal: BUY signal with a size hint
            config: Strategy config supplying SL/TP and partial exits
            strict: Raise instead of ignoring a duplicate entry

        Returns:
            The BUY trade, or None if the entry was skipped

        Raises:
            DuplicatePositionError: If strict and a position is already open
        """
        if not signal.is_buy:
            raise ValueError(f"open_position needs a BUY signal, got {signal.action.value}")

        instrument_id = instrument.address
        if instrument_id in self._positions:
            if strict:
                raise DuplicatePositionError(instrument_id)
            logger.info(f"Ignoring BUY for {instrument.symbol or instrument_id}: position already open")
            return None

        price = candle.close
        size = self._affordable_size(price, signal.size_hint_pct)
        if size <= 0:
            logger.debug(f"Skipping BUY for {instrument.symbol or instrument_id}: no cash available")
            return None

        fee = self._fees.calculate_fee(price, size)
        trade = Trade(
            instrument_id=instrument_id,
            symbol=instrument.symbol,
            side=TradeSide.BUY,
            price=price,
            size=size,
            timestamp=candle.timestamp,
            fee=fee,
            reason=signal.reason,
        )
        self._ledger.debit(trade.notional + trade.fee)

        position = Position(
            instrument_id=instrument_id,
            symbol=instrument.symbol,
            entry_price=price,
            size=size,
            entry_timestamp=candle.timestamp,
            stop_loss_price=price * config.stop_loss_ratio,
            take_profit_price=price * config.take_profit_ratio,
            entry_fee=fee,
            partial_exits_taken=[False] * len(config.partial_exits),
        )
        self._positions[instrument_id] = position
        self._record(trade)

        logger.info(
            f"BUY {instrument.symbol or instrument_id} @ {price} size={size:.6f} "
            f"fee={fee:.4f} ({signal.reason}) cash={self._ledger.cash:.2f}"
        )
        return trade

    def _affordable_size(self, price: Decimal, size_hint_pct: Decimal) -> Decimal:
        cash = self._ledger.cash
        if cash <= 0 or size_hint_pct <= 0:
            return Decimal("0")

        notional = min(cash * size_hint_pct / Decimal("100"), self._fees.max_notional(cash))
        size = notional / price

        # Full-precision rounding can overshoot the cap by one ulp
        if price * size + self._fees.calculate_fee(price, size) > cash:
            size = size * (Decimal("1") - Decimal("1e-12"))
        return size

    # =========================================================================
    # Exits
    # =========================================================================

    def on_tick(
        self,
        instrument_id: str,
        candle: Candle,
        config: StrategyConfigBase,
        guidance: Optional[Signal] = None,
    ) -> Optional[Trade]:
        """
        Advance an open position by one candle.

        Marks the position to the candle close, then applies at most one
        exit transition.

        Args:
            instrument_id: Instrument address
            candle: Current candle
            config: Strategy config with exit parameters
            guidance: Exit guidance from the strategy evaluator

        Returns:
            The SELL trade if a transition fired, else None

        Raises:
            NoOpenPositionError: If the instrument has no open position
        """
        position = self._require(instrument_id)
        price = candle.close

        position.last_price = price
        position.last_timestamp = candle.timestamp
        if candle.timestamp > position.entry_timestamp:
            position.candles_held += 1

        if price <= position.stop_loss_price:
            return self.exit_position(
                instrument_id, price, candle.timestamp, position.remaining_size, ExitReason.STOP_LOSS
            )

        if price >= position.take_profit_price:
            return self.exit_position(
                instrument_id, price, candle.timestamp, position.remaining_size, ExitReason.TAKE_PROFIT
            )

        profit_pct = position.profit_pct(price)
        for index, partial in enumerate(config.partial_exits):
            if position.partial_exits_taken[index]:
                continue
            if profit_pct < partial.threshold_pct:
                break
            exit_size = position.size * partial.fraction.numerator / partial.fraction.denominator
            position.partial_exits_taken[index] = True
            return self.exit_position(
                instrument_id,
                price,
                candle.timestamp,
                min(exit_size, position.remaining_size),
                ExitReason.PARTIAL_TAKE_PROFIT,
            )

        if self._holding_expired(position, candle.timestamp, config):
            return self.exit_position(
                instrument_id, price, candle.timestamp, position.remaining_size, ExitReason.TIME_BASED_EXIT
            )

        if guidance is not None and guidance.is_sell:
            if position.state == PositionState.PARTIALLY_CLOSED and profit_pct > 0:
                return self.exit_position(
                    instrument_id, price, candle.timestamp, position.remaining_size, ExitReason.MOMENTUM_SHIFT
                )
            logger.debug(
                f"Ignoring exit guidance for {position.symbol or instrument_id}: "
                f"state={position.state.value} profit={profit_pct:.2f}%"
            )

        return None

    def _holding_expired(
        self, position: Position, now: datetime, config: StrategyConfigBase
    ) -> bool:
        if config.max_hold_candles is not None and position.candles_held >= config.max_hold_candles:
            return True
        if config.max_hold_minutes is not None:
            return position.minutes_held(now) >= Decimal(config.max_hold_minutes)
        return False

    def exit_position(
        self,
        instrument_id: str,
        price: Decimal,
        timestamp: datetime,
        size: Decimal,
        reason: ExitReason,
    ) -> Trade:
        """
        Sell part or all of a position and record the trade.

        realized_pnl = (price - entry_price) x size - (exit_fee + entry_fee_share),
        where the entry fee is attributed pro rata to the exited units and
        the final exit takes whatever entry fee remains.

        Args:
            instrument_id: Instrument address
            price: Exit fill price
            timestamp: Exit timestamp
            size: Units to sell (capped at the remaining size)
            reason: Exit reason

        Returns:
            The SELL trade

        Raises:
            NoOpenPositionError: If the instrument has no open position
        """
        position = self._require(instrument_id)
        if size <= 0:
            raise ValueError("exit size must be positive")

        size = min(size, position.remaining_size)
        is_final = size >= position.remaining_size

        if is_final:
            entry_fee_share = position.remaining_entry_fee
        else:
            entry_fee_share = position.entry_fee * size / position.size

        exit_fee = self._fees.calculate_fee(price, size)
        total_fees = exit_fee + entry_fee_share
        realized_pnl = (price - position.entry_price) * size - total_fees

        position.remaining_size -= size
        position.remaining_entry_fee -= entry_fee_share
        position.last_price = price
        position.last_timestamp = timestamp

        if is_final:
            position.state = PositionState.CLOSED
            del self._positions[instrument_id]
        else:
            position.state = PositionState.PARTIALLY_CLOSED

        trade = Trade(
            instrument_id=instrument_id,
            symbol=position.symbol,
            side=TradeSide.SELL,
            price=price,
            size=size,
            timestamp=timestamp,
            fee=exit_fee,
            reason=reason.value,
            realized_pnl=realized_pnl,
            entry_price=position.entry_price,
            entry_fee_share=entry_fee_share,
        )
        self._ledger.credit(trade.notional - trade.fee)
        self._record(trade)

        logger.info(
            f"SELL {position.symbol or instrument_id} @ {price} size={size:.6f} "
            f"({reason.value}) pnl={realized_pnl:.4f} cash={self._ledger.cash:.2f}"
        )
        return trade

    def close_all(self, reason: ExitReason = ExitReason.END_OF_HORIZON) -> list[Trade]:
        """
        Force-close every open position at its last seen close price.

        Each exit is timestamped with the last candle processed for the
        instrument.

        Returns:
            List of SELL trades
        """
        trades = []
        for instrument_id in sorted(self._positions):
            position = self._positions[instrument_id]
            trades.append(
                self.exit_position(
                    instrument_id,
                    position.last_price,
                    position.last_timestamp,
                    position.remaining_size,
                    reason,
                )
            )
        return trades

    def _require(self, instrument_id: str) -> Position:
        position = self._positions.get(instrument_id)
        if position is None:
            raise NoOpenPositionError(instrument_id)
        return position

    def _record(self, trade: Trade) -> None:
        self._trades.append(trade)
        if self._trade_hook is not None:
            self._trade_hook(
                IntendedTrade(
                    instrument_id=trade.instrument_id,
                    side=trade.side,
                    size=trade.size,
                    price_hint=trade.price,
                    reason=trade.reason,
                    timestamp=trade.timestamp,
                )
            )

