"""
Metrics Calculation Module.

Turns the trade log and daily ledger snapshots of a run into the
reported SimulationResult.
"""

from collections import defaultdict, deque
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from .result import (
    DailyPoint,
    Diagnostic,
    RunError,
    RunStatus,
    SimulationResult,
    Trade,
    TradeSide,
)


@dataclass(frozen=True)
class PairStats:
    """FIFO buy/sell matching outcome."""

    completed_pairs: int = 0
    winning_pairs: int = 0

    @property
    def success_rate(self) -> Optional[Decimal]:
        """Winning share in percent, None when nothing completed."""
        if self.completed_pairs == 0:
            return None
        return Decimal(self.winning_pairs) / Decimal(self.completed_pairs) * Decimal("100")


class PerformanceAggregator:
    """
    Calculates performance metrics from trade history and the daily series.

    Example:
        aggregator = PerformanceAggregator(Decimal("1000"), horizon_days=7)
        result = aggregator.aggregate("volume_spike", RunStatus.COMPLETED, trades, points, final)
    """

    def __init__(self, initial_capital: Decimal, horizon_days: int = 7) -> None:
        """
        Initialize aggregator.

        Args:
            initial_capital: Starting capital for percentage calculations
            horizon_days: Requested number of simulated days
        """
        if initial_capital <= 0:
            raise ValueError("initial_capital must be positive")
        self._initial_capital = initial_capital
        self._horizon_days = horizon_days

    def aggregate(
        self,
        strategy: str,
        status: RunStatus,
        trades: Sequence[Trade],
        daily_points: Sequence[DailyPoint],
        final_capital: Decimal,
        horizon_dates: Optional[Sequence[date]] = None,
        diagnostics: Sequence[Diagnostic] = (),
        error: Optional[RunError] = None,
        run_id: Optional[str] = None,
    ) -> SimulationResult:
        """
        Build the SimulationResult of a run.

        Completed runs report exactly one point per horizon day; cancelled
        and failed runs report only the days actually simulated.

        Args:
            strategy: Strategy name
            status: Run outcome
            trades: Every fill in execution order
            daily_points: Ledger snapshots, oldest first
            final_capital: Portfolio value at the end of the run
            horizon_dates: All dates of the horizon, used for padding
            diagnostics: Non-fatal problems recorded during the run
            error: Failure details for failed runs
            run_id: Caller supplied identifier

        Returns:
            Read-only SimulationResult
        """
        days_completed = len(daily_points)
        series = list(daily_points)
        if status == RunStatus.COMPLETED and horizon_dates is not None:
            series = self.pad_daily_series(daily_points, horizon_dates)

        pairs = self.match_pairs(trades)

        return SimulationResult(
            strategy=strategy,
            status=status,
            initial_capital=self._initial_capital,
            final_capital=final_capital,
            profit_percent=self.profit_percent(final_capital),
            success_rate=pairs.success_rate,
            max_drawdown_percent=self.max_drawdown_percent([p.value for p in series]),
            trades=tuple(trades),
            daily_series=tuple(series),
            trade_count=len(trades),
            completed_pairs=pairs.completed_pairs,
            winning_pairs=pairs.winning_pairs,
            total_fees=sum((t.fee for t in trades), Decimal("0")),
            horizon_days=self._horizon_days,
            days_completed=days_completed,
            diagnostics=tuple(diagnostics),
            error=error,
            run_id=run_id,
        )

    def profit_percent(self, final_capital: Decimal) -> Decimal:
        """(final - initial) / initial x 100."""
        return (final_capital - self._initial_capital) / self._initial_capital * Decimal("100")

    def match_pairs(self, trades: Sequence[Trade]) -> PairStats:
        """
        Match sells against buy lots in FIFO order per instrument.

        Every sell that consumes at least one lot is a completed pair. It
        wins when its price is above the size-weighted price of the lots
        it consumed.
        """
        lots: dict[str, deque[list[Decimal]]] = defaultdict(deque)
        completed = 0
        wins = 0

        for trade in trades:
            book = lots[trade.instrument_id]
            if trade.side == TradeSide.BUY:
                book.append([trade.price, trade.size])
                continue

            remaining = trade.size
            matched_size = Decimal("0")
            matched_cost = Decimal("0")
            while remaining > 0 and book:
                lot = book[0]
                take = min(remaining, lot[1])
                matched_size += take
                matched_cost += take * lot[0]
                lot[1] -= take
                remaining -= take
                if lot[1] <= 0:
                    book.popleft()

            if matched_size == 0:
                continue
            completed += 1
            if trade.price > matched_cost / matched_size:
                wins += 1

        return PairStats(completed_pairs=completed, winning_pairs=wins)

    def max_drawdown_percent(self, values: Sequence[Decimal]) -> Decimal:
        """
        Largest peak-to-trough decline in percent of the peak.

        The running peak starts at the initial capital, so a series that
        only ever falls still reports its drawdown.
        """
        peak = self._initial_capital
        max_dd = Decimal("0")

        for value in values:
            if value > peak:
                peak = value
            if peak > 0:
                dd = (peak - value) / peak * Decimal("100")
                if dd > max_dd:
                    max_dd = dd

        return max_dd

    def pad_daily_series(
        self,
        daily_points: Sequence[DailyPoint],
        horizon_dates: Sequence[date],
    ) -> list[DailyPoint]:
        """
        One point per horizon date, carrying the last known value forward.

        Dates before the first snapshot take the initial capital.
        """
        by_date = {p.date: p.value for p in daily_points}
        last_value = self._initial_capital
        series = []
        for day in horizon_dates:
            last_value = by_date.get(day, last_value)
            series.append(DailyPoint(date=day, value=last_value))
        return series
