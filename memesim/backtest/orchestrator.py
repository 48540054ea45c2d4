"""
Backtest Orchestrator Module.

Drives the day-by-day simulation loop: daily instrument selection, tick by
tick candle replay through the strategy evaluator and position manager,
end-of-horizon liquidation and daily ledger snapshots.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional, Sequence

from ..config.models.app import StrategiesConfig
from ..config.models.simulation import SimulationConfig
from ..config.models.strategy import StrategyConfigBase, StrategyName
from ..core.exceptions import InvariantViolation, MarketDataError
from ..core.logger import get_logger
from ..core.models import Candle, InstrumentSnapshot
from ..core.utils import day_start, horizon_days
from ..data.provider import MarketDataAdapter, passes_universe_filter
from .context import RunContext
from .fees import FeeCalculator, FixedFeeCalculator
from .ledger import CapitalLedger
from .metrics import PerformanceAggregator
from .position import PositionManager
from .result import DailyPoint, Diagnostic, ExitReason, RunError, RunStatus, SimulationResult, Trade
from .strategy import Strategy, create_strategy

logger = get_logger(__name__)


class BacktestOrchestrator:
    """
    Multi-day backtest driver.

    Each call to `run` builds its own ledger and position manager, so one
    orchestrator can serve concurrent runs.

    Example:
        orchestrator = BacktestOrchestrator(SimulationConfig(horizon_days=7))
        result = orchestrator.run("volume_spike", SyntheticDataProvider(seed=42))
        print(result.summary())
    """

    def __init__(
        self,
        simulation: Optional[SimulationConfig] = None,
        strategies: Optional[StrategiesConfig] = None,
        fee_calculator: Optional[FeeCalculator] = None,
    ) -> None:
        """
        Initialize orchestrator.

        Args:
            simulation: Run-level settings (capital, horizon, universe filter)
            strategies: Per-strategy parameter bundles
            fee_calculator: Fee model; flat `simulation.fee_rate` by default
        """
        self._simulation = simulation or SimulationConfig()
        self._strategies = strategies or StrategiesConfig()
        self._fee_calculator = fee_calculator or FixedFeeCalculator(self._simulation.fee_rate)

    @property
    def simulation(self) -> SimulationConfig:
        return self._simulation

    def run(
        self,
        strategy_name: "str | StrategyName",
        provider: MarketDataAdapter,
        horizon_days: Optional[int] = None,
        starting_capital: Optional[Decimal] = None,
        context: Optional[RunContext] = None,
        strategy_config: Optional[StrategyConfigBase] = None,
    ) -> SimulationResult:
        """
        Run one strategy over the backtest horizon.

        Adapter failures and cancellation never raise past this method;
        they are reported through the result status.

        Args:
            strategy_name: Strategy to simulate
            provider: Market data adapter
            horizon_days: Number of days, defaults to the simulation config
            starting_capital: Initial cash, defaults to the simulation config
            context: Caller-owned run context (id, cancellation, hooks)
            strategy_config: Parameter override for this run

        Returns:
            SimulationResult with status completed, cancelled or failed

        Raises:
            UnknownStrategyError: If the strategy name is not known
            ConfigError: If the override belongs to another strategy
        """
        name = StrategyName.parse(strategy_name)
        config = strategy_config or self._strategies.get(name)
        strategy = create_strategy(name, config)

        days = horizon_days if horizon_days is not None else self._simulation.horizon_days
        if days < 1:
            raise ValueError("horizon_days must be at least 1")
        capital = starting_capital if starting_capital is not None else self._simulation.starting_capital

        simulation_run = SimulationRun(
            strategy=strategy,
            provider=provider,
            simulation=self._simulation,
            fee_calculator=self._fee_calculator,
            horizon=days,
            starting_capital=capital,
            context=context or RunContext(),
        )
        return simulation_run.execute()

    def run_many(
        self,
        strategy_names: Iterable["str | StrategyName"],
        provider: MarketDataAdapter,
        horizon_days: Optional[int] = None,
        starting_capital: Optional[Decimal] = None,
        context: Optional[RunContext] = None,
        max_workers: Optional[int] = None,
    ) -> dict[StrategyName, SimulationResult]:
        """
        Run several strategies concurrently over the same horizon.

        Runs share nothing but the adapter and the cancellation event.

        Args:
            strategy_names: Strategies to compare (duplicates ignored)
            provider: Market data adapter shared by all runs
            horizon_days: Number of days per run
            starting_capital: Initial cash per run
            context: Parent context; its run id prefixes each child run id
            max_workers: Thread pool size, defaults to the simulation config

        Returns:
            Results keyed by strategy, in the requested order
        """
        names: list[StrategyName] = []
        for raw in strategy_names:
            name = StrategyName.parse(raw)
            if name not in names:
                names.append(name)

        parent = context or RunContext()
        workers = max_workers or self._simulation.max_workers

        def child_context(name: StrategyName) -> RunContext:
            return RunContext(
                run_id=f"{parent.run_id}:{name.value}" if parent.run_id else name.value,
                cancel_event=parent.cancel_event,
                trade_hook=parent.trade_hook,
                day_hook=parent.day_hook,
            )

        logger.info(f"Comparing {len(names)} strategies with {workers} workers")
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                name: executor.submit(
                    self.run,
                    name,
                    provider,
                    horizon_days,
                    starting_capital,
                    child_context(name),
                )
                for name in names
            }
            return {name: futures[name].result() for name in names}


class SimulationRun:
    """
    State of one strategy run: ledger, positions, replay progress.

    Never shared between threads.
    """

    def __init__(
        self,
        strategy: Strategy,
        provider: MarketDataAdapter,
        simulation: SimulationConfig,
        fee_calculator: FeeCalculator,
        horizon: int,
        starting_capital: Decimal,
        context: RunContext,
    ) -> None:
        self._strategy = strategy
        self._provider = provider
        self._simulation = simulation
        self._horizon = horizon
        self._context = context
        self._prefix = context.log_prefix

        self._ledger = CapitalLedger(starting_capital)
        self._positions = PositionManager(self._ledger, fee_calculator, context.trade_hook)
        self._aggregator = PerformanceAggregator(starting_capital, horizon)

        self._instruments: dict[str, InstrumentSnapshot] = {}
        self._last_processed: dict[str, datetime] = {}
        self._diagnostics: list[Diagnostic] = []

    @property
    def positions(self) -> PositionManager:
        return self._positions

    def execute(self) -> SimulationResult:
        """Simulate every day of the horizon and aggregate the result."""
        end_date = self._simulation.end_date or datetime.now(timezone.utc).date()
        days = horizon_days(end_date, self._horizon)
        strategy_name = self._strategy.name.value

        logger.info(
            f"{self._prefix}Starting {strategy_name} backtest: {days[0]} .. {days[-1]}, "
            f"capital={self._ledger.initial_capital}, provider={self._provider.name}"
        )

        status = RunStatus.COMPLETED
        error: Optional[RunError] = None

        for index, day in enumerate(days):
            if self._context.is_cancelled:
                status = RunStatus.CANCELLED
                logger.warning(f"{self._prefix}Run cancelled before {day}")
                break

            try:
                self._simulate_day(day, is_last=index == len(days) - 1)
            except MarketDataError as e:
                status = RunStatus.FAILED
                error = RunError(error_type=type(e).__name__, message=e.message, retryable=e.retryable)
                logger.error(f"{self._prefix}Market data failure on {day}: {e}")
                break
            except Exception as e:
                status = RunStatus.FAILED
                error = RunError(error_type=type(e).__name__, message=str(e), retryable=False)
                logger.error(f"{self._prefix}Simulation failed on {day}: {e}", exc_info=True)
                break

        if status == RunStatus.COMPLETED:
            final_capital = self._ledger.last_value
        else:
            final_capital = self._positions.portfolio_value()

        result = self._aggregator.aggregate(
            strategy=strategy_name,
            status=status,
            trades=self._positions.trades,
            daily_points=self._ledger.snapshots,
            final_capital=final_capital,
            horizon_dates=days,
            diagnostics=self._diagnostics,
            error=error,
            run_id=self._context.run_id,
        )
        logger.info(
            f"{self._prefix}Finished {strategy_name} [{status.value}]: "
            f"{result.final_capital:.2f} ({result.profit_percent:.2f}%), {result.trade_count} trades"
        )
        return result

    # =========================================================================
    # Day loop
    # =========================================================================

    def _simulate_day(self, day: date, is_last: bool) -> None:
        start = day_start(day)
        end = start + timedelta(days=1)

        sim = self._simulation
        listed = self._fetch(
            self._provider.get_instrument_universe,
            start,
            sim.universe_max_age_hours,
            sim.universe_min_market_cap,
        )
        universe = [
            instrument
            for instrument in listed
            if passes_universe_filter(
                instrument,
                start,
                sim.universe_max_age_hours,
                sim.universe_min_market_cap,
                sim.universe_min_liquidity,
            )
        ]
        if not universe:
            self._carry_forward(day, is_last)
            return

        selected = self._strategy.rank(universe, self._simulation.top_k)
        for instrument in selected:
            self._instruments[instrument.address] = instrument

        selected_ids = {i.address for i in selected}
        carried = [
            self._instruments[p.instrument_id]
            for p in sorted(self._positions.open_positions, key=lambda p: p.instrument_id)
            if p.instrument_id not in selected_ids
        ]

        trades_before = len(self._positions.trades)
        for instrument in selected + carried:
            self._replay_instrument(instrument, day, start, end)

        if is_last:
            self._liquidate(day)

        point = self._close_day(day, self._positions.portfolio_value())

        logger.info(
            f"{self._prefix}{day}: value={point.value:.2f} "
            f"selected={len(selected)} carried={len(carried)} "
            f"trades={len(self._positions.trades) - trades_before}"
        )

    def _carry_forward(self, day: date, is_last: bool) -> None:
        # No instruments listed: open positions are not replayed and the value
        # stays where it was, except that the last day still liquidates.
        if is_last and self._liquidate(day):
            value = self._positions.portfolio_value()
        else:
            value = self._ledger.last_value
        point = self._close_day(day, value)
        logger.info(
            f"{self._prefix}{day}: empty universe, value={point.value:.2f} "
            f"open={len(self._positions.open_positions)}"
        )

    def _liquidate(self, day: date) -> list[Trade]:
        liquidated = self._positions.close_all(ExitReason.END_OF_HORIZON)
        if liquidated:
            logger.info(f"{self._prefix}{day}: liquidated {len(liquidated)} positions at horizon end")
        return liquidated

    def _close_day(self, day: date, value: Decimal) -> DailyPoint:
        point = self._ledger.snapshot(day, value)
        if self._context.day_hook is not None:
            self._context.day_hook(point)
        return point

    def _replay_instrument(
        self,
        instrument: InstrumentSnapshot,
        day: date,
        start: datetime,
        end: datetime,
    ) -> None:
        address = instrument.address
        interval = self._simulation.candle_interval_minutes
        warmup = timedelta(minutes=interval * self._strategy.min_lookback)

        candles: list[Candle] = self._fetch(self._provider.get_candles, address, start - warmup, interval)
        last_processed = self._last_processed.get(address)
        window: list[Candle] = []

        try:
            for candle in candles:
                if candle.timestamp >= end:
                    break
                window.append(candle)
                if candle.timestamp < start:
                    continue
                if last_processed is not None and candle.timestamp <= last_processed:
                    continue
                self._tick(instrument, window, candle)
                self._last_processed[address] = candle.timestamp
        except InvariantViolation as e:
            logger.error(f"{self._prefix}{day}: aborting replay of {instrument.symbol or address}: {e}")
            self._diagnostics.append(
                Diagnostic(
                    day=day,
                    instrument_id=address,
                    code=e.code or type(e).__name__,
                    message=e.message,
                )
            )

    def _tick(self, instrument: InstrumentSnapshot, window: Sequence[Candle], candle: Candle) -> None:
        config = self._strategy.config
        position = self._positions.get(instrument.address)

        if position is not None:
            guidance = self._strategy.evaluate(window, instrument, position)
            self._positions.on_tick(instrument.address, candle, config, guidance)
            return

        signal = self._strategy.evaluate(window, instrument, None)
        if signal.is_buy:
            self._positions.open_position(instrument, candle, signal, config)

    def _fetch(self, method: Callable[..., Any], *args: Any) -> Any:
        try:
            return method(*args)
        except MarketDataError:
            raise
        except Exception as e:
            raise MarketDataError(
                f"{method.__name__} failed: {type(e).__name__}: {e}",
                retryable=True,
                code="adapter_error",
            ) from e
