"""
Backtest Result Models.

Trade records, daily portfolio points and the simulation result returned
by the orchestrator.
"""

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional


class ExitReason(str, Enum):
    """Reason for exiting (part of) a position."""

    STOP_LOSS = "stop_loss"
    TAKE_PROFIT = "take_profit"
    PARTIAL_TAKE_PROFIT = "partial_take_profit"
    TIME_BASED_EXIT = "time_based_exit"
    MOMENTUM_SHIFT = "momentum_shift"
    END_OF_HORIZON = "end_of_horizon"


class TradeSide(str, Enum):
    """Fill direction."""

    BUY = "buy"
    SELL = "sell"


class RunStatus(str, Enum):
    """Outcome of a simulation run."""

    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class DecimalEncoder(json.JSONEncoder):
    """Custom JSON encoder for Decimal types."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return str(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Enum):
            return obj.value
        return super().default(obj)


@dataclass(frozen=True)
class Trade:
    """
    Immutable record of one fill.

    Attributes:
        instrument_id: Instrument address
        side: BUY or SELL
        price: Fill price (candle close)
        size: Units filled
        timestamp: Candle timestamp of the fill
        fee: Fee charged on this fill
        reason: Entry reason or ExitReason value
        realized_pnl: Net P&L of the exited units (SELL only)
        entry_price: Entry price of the position (SELL only)
        entry_fee_share: Part of the entry fee attributed to the exited units (SELL only)
        symbol: Instrument symbol for display
    """

    instrument_id: str
    side: TradeSide
    price: Decimal
    size: Decimal
    timestamp: datetime
    fee: Decimal
    reason: str
    realized_pnl: Optional[Decimal] = None
    entry_price: Optional[Decimal] = None
    entry_fee_share: Decimal = field(default_factory=lambda: Decimal("0"))
    symbol: str = ""

    @property
    def notional(self) -> Decimal:
        """Fill value before fees."""
        return self.price * self.size

    @property
    def is_exit(self) -> bool:
        return self.side == TradeSide.SELL

    @property
    def total_fees(self) -> Decimal:
        """Exit fee plus the attributed share of the entry fee."""
        return self.fee + self.entry_fee_share

    @property
    def exit_reason(self) -> Optional[ExitReason]:
        """Exit reason for SELL fills, None for entries."""
        if not self.is_exit:
            return None
        return ExitReason(self.reason)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "instrument_id": self.instrument_id,
            "symbol": self.symbol,
            "side": self.side.value,
            "price": str(self.price),
            "size": str(self.size),
            "timestamp": self.timestamp.isoformat(),
            "fee": str(self.fee),
            "reason": self.reason,
            "realized_pnl": str(self.realized_pnl) if self.realized_pnl is not None else None,
            "entry_price": str(self.entry_price) if self.entry_price is not None else None,
            "entry_fee_share": str(self.entry_fee_share),
        }


@dataclass(frozen=True)
class DailyPoint:
    """Portfolio value snapshot at the end of one simulated day."""

    date: date
    value: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "value": str(self.value)}


@dataclass(frozen=True)
class Diagnostic:
    """A recorded problem that did not stop the run."""

    day: date
    instrument_id: str
    code: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "day": self.day.isoformat(),
            "instrument_id": self.instrument_id,
            "code": self.code,
            "message": self.message,
        }


@dataclass(frozen=True)
class RunError:
    """Error that ended a run early."""

    error_type: str
    message: str
    retryable: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.error_type,
            "message": self.message,
            "retryable": self.retryable,
        }


@dataclass(frozen=True)
class SimulationResult:
    """
    Read-only output of one strategy run.

    Attributes:
        strategy: Strategy name
        status: completed, cancelled or failed
        initial_capital: Starting cash
        final_capital: Portfolio value at the end of the run
        profit_percent: Return on initial capital, percent
        success_rate: Winning share of completed buy/sell pairs, percent;
            None when no pair completed
        max_drawdown_percent: Largest peak-to-trough decline of the daily series
        trades: Every fill in execution order
        daily_series: One (date, value) point per simulated day
        trade_count: Number of fills
        completed_pairs: Exit fills matched against entries
        winning_pairs: Matched pairs with sell price above buy price
        total_fees: Fees paid over the run
        horizon_days: Requested horizon
        days_completed: Days actually simulated
        diagnostics: Non-fatal problems (aborted instrument replays)
        error: Failure details when status is failed
        run_id: Caller supplied run identifier
    """

    strategy: str
    status: RunStatus
    initial_capital: Decimal
    final_capital: Decimal
    profit_percent: Decimal
    success_rate: Optional[Decimal]
    max_drawdown_percent: Decimal
    trades: tuple[Trade, ...] = ()
    daily_series: tuple[DailyPoint, ...] = ()
    trade_count: int = 0
    completed_pairs: int = 0
    winning_pairs: int = 0
    total_fees: Decimal = field(default_factory=lambda: Decimal("0"))
    horizon_days: int = 0
    days_completed: int = 0
    diagnostics: tuple[Diagnostic, ...] = ()
    error: Optional[RunError] = None
    run_id: Optional[str] = None

    @property
    def is_completed(self) -> bool:
        return self.status == RunStatus.COMPLETED

    @property
    def is_failed(self) -> bool:
        return self.status == RunStatus.FAILED

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dictionary."""
        return {
            "run_id": self.run_id,
            "strategy": self.strategy,
            "status": self.status.value,
            "initial_capital": str(self.initial_capital),
            "final_capital": str(self.final_capital),
            "profit_percent": str(self.profit_percent),
            "success_rate": str(self.success_rate) if self.success_rate is not None else None,
            "max_drawdown_percent": str(self.max_drawdown_percent),
            "trade_count": self.trade_count,
            "completed_pairs": self.completed_pairs,
            "winning_pairs": self.winning_pairs,
            "total_fees": str(self.total_fees),
            "horizon_days": self.horizon_days,
            "days_completed": self.days_completed,
            "daily_series": [p.to_dict() for p in self.daily_series],
            "trades": [t.to_dict() for t in self.trades],
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "error": self.error.to_dict() if self.error else None,
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialize deterministically (sorted keys)."""
        return json.dumps(self.to_dict(), indent=indent, sort_keys=True, cls=DecimalEncoder)

    def summary(self) -> str:
        """Generate human-readable summary."""
        success = f"{self.success_rate:.2f}%" if self.success_rate is not None else "n/a (no completed trades)"
        lines = [
            f"Strategy: {self.strategy} [{self.status.value}]",
            f"Capital: {self.initial_capital:.2f} -> {self.final_capital:.2f} ({self.profit_percent:.2f}%)",
            f"Trades: {self.trade_count} (pairs: {self.completed_pairs}, wins: {self.winning_pairs})",
            f"Success Rate: {success}",
            f"Max Drawdown: {self.max_drawdown_percent:.2f}%",
            f"Fees Paid: {self.total_fees:.2f}",
            f"Days: {self.days_completed}/{self.horizon_days}",
        ]
        if self.diagnostics:
            lines.append(f"Diagnostics: {len(self.diagnostics)}")
        if self.error:
            lines.append(f"Error: {self.error.error_type}: {self.error.message}")
        return "\n".join(lines)
