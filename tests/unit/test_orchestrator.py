"""
Unit tests for the backtest orchestrator.

Tests:
- Day loop with entries, exits and empty days
- End-of-horizon liquidation and carried positions
- Aborted instrument replays
- Cancellation and adapter failures
- Determinism and concurrent comparisons
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from memesim.backtest import (
    BacktestOrchestrator,
    ExitReason,
    RunContext,
    RunStatus,
    TradeSide,
)
from memesim.config import SimulationConfig, StrategyName, UnknownStrategyError, VolumeSpikeConfig
from memesim.core.exceptions import LedgerError
from memesim.data import InMemoryMarketDataAdapter, SyntheticDataProvider
from tests.mocks import FailingMarketDataAdapter, create_candle, create_instrument

DAY1 = date(2024, 1, 5)
DAY1_START = datetime(2024, 1, 5, tzinfo=timezone.utc)
DAY2 = date(2024, 1, 6)
DAY2_START = DAY1_START + timedelta(days=1)


def spike_candles(start: datetime, last_close: str = "2.6") -> list:
    """Quiet candle, volume spike on a green candle, then a third candle."""
    return [
        create_candle(timestamp=start, open_price=Decimal("1"), volume=Decimal("1000")),
        create_candle(
            timestamp=start + timedelta(minutes=5),
            open_price=Decimal("1"),
            close=Decimal("1.05"),
            volume=Decimal("40000"),
        ),
        create_candle(
            timestamp=start + timedelta(minutes=10),
            open_price=Decimal("1.05"),
            close=Decimal(last_close),
            volume=Decimal("5000"),
        ),
    ]


def listed(address: str = "TOKEN1", volume_24h: str = "50000", as_of: datetime = DAY1_START, **kwargs):
    """Instrument listed one hour before `as_of` (the start of DAY1 by default)."""
    return create_instrument(
        address=address,
        volume_24h=Decimal(volume_24h),
        creation_time=as_of - timedelta(hours=1),
        **kwargs,
    )


@pytest.fixture
def adapter() -> InMemoryMarketDataAdapter:
    """TOKEN1 spikes and hits take-profit on DAY1; the next days are empty."""
    adapter = InMemoryMarketDataAdapter()
    adapter.add_universe(DAY1, [listed()])
    adapter.add_candles("TOKEN1", spike_candles(DAY1_START))
    return adapter


@pytest.fixture
def orchestrator(simulation_config) -> BacktestOrchestrator:
    return BacktestOrchestrator(simulation_config)


# =============================================================================
# Day Loop Tests
# =============================================================================


class TestDayLoop:
    """Tests for the simulated days."""

    def test_spike_entry_and_take_profit(self, orchestrator, adapter):
        """Test a BUY on the spike candle and a take-profit on the next."""
        result = orchestrator.run("volume_spike", adapter)

        assert result.status == RunStatus.COMPLETED
        assert [t.side for t in result.trades] == [TradeSide.BUY, TradeSide.SELL]
        assert result.trades[0].price == Decimal("1.05")
        assert result.trades[1].exit_reason == ExitReason.TAKE_PROFIT
        assert result.final_capital > Decimal("1000")
        assert result.success_rate == Decimal("100")

    def test_empty_days_are_flat(self, orchestrator, adapter):
        """Test days without instruments carry the value and trade nothing."""
        result = orchestrator.run("volume_spike", adapter)

        values = [p.value for p in result.daily_series]
        assert [p.date for p in result.daily_series] == [DAY1, date(2024, 1, 6), date(2024, 1, 7)]
        assert values[0] == values[1] == values[2]
        assert all(t.timestamp.date() == DAY1 for t in result.trades)

    def test_no_data_at_all(self, orchestrator):
        """Test a run over an empty adapter keeps the starting capital."""
        result = orchestrator.run("trend_momentum", InMemoryMarketDataAdapter())

        assert result.is_completed
        assert result.trade_count == 0
        assert result.success_rate is None
        assert result.max_drawdown_percent == Decimal("0")
        assert [p.value for p in result.daily_series] == [Decimal("1000")] * 3

    def test_end_of_horizon_liquidation(self):
        """Test a position open on the last day is sold at the last close."""
        orchestrator = BacktestOrchestrator(SimulationConfig(horizon_days=1, end_date=DAY1))
        adapter = InMemoryMarketDataAdapter()
        adapter.add_universe(DAY1, [listed()])
        adapter.add_candles("TOKEN1", spike_candles(DAY1_START, last_close="1.2"))

        result = orchestrator.run("volume_spike", adapter)

        final = result.trades[-1]
        assert final.exit_reason == ExitReason.END_OF_HORIZON
        assert final.price == Decimal("1.2")
        assert final.timestamp == DAY1_START + timedelta(minutes=10)
        assert result.final_capital == result.daily_series[-1].value

    def test_carried_position_is_replayed(self):
        """Test a position opened on day one is stopped out on day two."""
        orchestrator = BacktestOrchestrator(SimulationConfig(horizon_days=2, end_date=DAY2))
        adapter = InMemoryMarketDataAdapter()
        adapter.add_universe(DAY1, [listed()])
        adapter.add_universe(DAY2, [listed("TOKEN2", as_of=DAY2_START)])
        adapter.add_candles("TOKEN1", spike_candles(DAY1_START, last_close="1.2"))
        adapter.add_candles("TOKEN1", [create_candle(timestamp=DAY2_START, open_price=Decimal("0.6"))])

        result = orchestrator.run("volume_spike", adapter)

        stop = result.trades[-1]
        assert stop.exit_reason == ExitReason.STOP_LOSS
        assert stop.timestamp == DAY2_START
        assert result.final_capital < Decimal("1000")

    def test_empty_day_freezes_open_position(self):
        """Test a day with no listings trades nothing and keeps the value, even with a position open."""
        orchestrator = BacktestOrchestrator(SimulationConfig(horizon_days=3, end_date=date(2024, 1, 7)))
        adapter = InMemoryMarketDataAdapter()
        adapter.add_universe(DAY1, [listed()])
        adapter.add_candles("TOKEN1", spike_candles(DAY1_START, last_close="1.2"))
        adapter.add_candles("TOKEN1", [create_candle(timestamp=DAY2_START, open_price=Decimal("0.6"))])

        result = orchestrator.run("volume_spike", adapter)

        values = [p.value for p in result.daily_series]
        assert values[1] == values[0]
        assert all(t.timestamp.date() == DAY1 for t in result.trades)
        assert ExitReason.STOP_LOSS not in [t.exit_reason for t in result.trades]

        final = result.trades[-1]
        assert final.exit_reason == ExitReason.END_OF_HORIZON
        assert final.price == Decimal("1.2")
        assert result.final_capital == values[2]

    def test_illiquid_instruments_are_skipped(self, orchestrator):
        """Test listings below the liquidity floor are never traded."""
        adapter = InMemoryMarketDataAdapter()
        adapter.add_universe(DAY1, [listed(liquidity=Decimal("5000"))])
        adapter.add_candles("TOKEN1", spike_candles(DAY1_START))

        result = orchestrator.run("volume_spike", adapter)

        assert result.trade_count == 0
        assert [p.value for p in result.daily_series] == [Decimal("1000")] * 3

    def test_liquidity_floor_is_configurable(self, adapter):
        """Test raising the floor above the listing's liquidity suppresses the entry."""
        orchestrator = BacktestOrchestrator(
            SimulationConfig(horizon_days=3, end_date=date(2024, 1, 7), universe_min_liquidity=Decimal("200000"))
        )

        assert orchestrator.run("volume_spike", adapter).trade_count == 0

    def test_strategy_config_override(self, orchestrator, adapter):
        """Test a stricter volume ratio suppresses the entry."""
        result = orchestrator.run(
            "volume_spike",
            adapter,
            strategy_config=VolumeSpikeConfig(min_volume_ratio=Decimal("0.5")),
        )

        assert result.trade_count == 0

    def test_overrides(self, orchestrator, adapter):
        """Test horizon and capital overrides."""
        result = orchestrator.run("volume_spike", adapter, horizon_days=5, starting_capital=Decimal("500"))

        assert result.horizon_days == 5
        assert len(result.daily_series) == 5
        assert result.initial_capital == Decimal("500")

    def test_unknown_strategy(self, orchestrator, adapter):
        """Test unknown strategy names raise before any simulation."""
        with pytest.raises(UnknownStrategyError):
            orchestrator.run("grid", adapter)

    def test_invalid_horizon(self, orchestrator, adapter):
        """Test a zero-day horizon is rejected."""
        with pytest.raises(ValueError):
            orchestrator.run("volume_spike", adapter, horizon_days=0)


# =============================================================================
# Diagnostics Tests
# =============================================================================


class TestDiagnostics:
    """Tests for aborted instrument replays."""

    def test_invariant_violation_aborts_one_instrument(self, orchestrator):
        """Test a broken replay is recorded and other instruments continue."""
        adapter = InMemoryMarketDataAdapter()
        adapter.add_universe(DAY1, [listed("TOKEN1", "90000"), listed("TOKEN2", "10000")])
        adapter.add_candles("TOKEN1", spike_candles(DAY1_START))
        adapter.add_candles("TOKEN2", spike_candles(DAY1_START))

        def reject_token1(trade):
            if trade.instrument_id == "TOKEN1" and trade.side == TradeSide.BUY:
                raise LedgerError("execution rejected")

        result = orchestrator.run("volume_spike", adapter, context=RunContext(trade_hook=reject_token1))

        assert result.status == RunStatus.COMPLETED
        assert len(result.diagnostics) == 1
        assert result.diagnostics[0].instrument_id == "TOKEN1"
        assert result.diagnostics[0].day == DAY1
        token2 = [t for t in result.trades if t.instrument_id == "TOKEN2"]
        assert [t.side for t in token2] == [TradeSide.BUY, TradeSide.SELL]


# =============================================================================
# Cancellation and Failure Tests
# =============================================================================


class TestCancellationAndFailures:
    """Tests for cancelled and failed runs."""

    def test_cancelled_before_start(self, orchestrator, adapter):
        """Test a pre-set cancel event stops before the first day."""
        context = RunContext(run_id="cancel-me")
        context.cancel()

        result = orchestrator.run("volume_spike", adapter, context=context)

        assert result.status == RunStatus.CANCELLED
        assert result.daily_series == ()
        assert result.final_capital == Decimal("1000")
        assert result.run_id == "cancel-me"

    def test_cancelled_after_first_day(self, orchestrator, adapter):
        """Test cancellation from the day hook stops at the next day boundary."""
        context = RunContext()
        context.day_hook = lambda point: context.cancel()

        result = orchestrator.run("volume_spike", adapter, context=context)

        assert result.status == RunStatus.CANCELLED
        assert len(result.daily_series) == 1
        assert result.days_completed == 1

    def test_adapter_failure(self, orchestrator, adapter):
        """Test a market data failure ends the run as failed."""
        failing = FailingMarketDataAdapter(adapter, fail_universe_after=1)

        result = orchestrator.run("volume_spike", failing)

        assert result.status == RunStatus.FAILED
        assert result.error.error_type == "MarketDataError"
        assert result.error.retryable is True
        assert result.days_completed == 1
        assert result.final_capital == result.daily_series[-1].value

    def test_unexpected_adapter_exception_is_wrapped(self, orchestrator):
        """Test non-market-data exceptions surface as retryable MarketDataError."""
        failing = FailingMarketDataAdapter(fail_universe_after=0, error=ConnectionError("reset by peer"))

        result = orchestrator.run("dip_recovery", failing)

        assert result.is_failed
        assert result.error.error_type == "MarketDataError"
        assert "ConnectionError" in result.error.message
        assert result.error.retryable is True
        assert result.final_capital == Decimal("1000")

    @staticmethod
    def failing_hook(trade):
        raise RuntimeError("execution service down")

    def test_hook_failure_ends_run_as_failed(self, orchestrator, adapter):
        """Test an exception from the trade hook is returned as a failed result."""
        result = orchestrator.run("volume_spike", adapter, context=RunContext(trade_hook=self.failing_hook))

        assert result.status == RunStatus.FAILED
        assert result.error.error_type == "RuntimeError"
        assert result.error.message == "execution service down"
        assert result.error.retryable is False
        assert result.daily_series == ()
        assert result.trade_count == 1

    def test_failed_strategy_does_not_sink_comparison(self, orchestrator, adapter):
        """Test run_many still returns every result when one run fails."""
        results = orchestrator.run_many(
            ["volume_spike", "trend_momentum"], adapter, context=RunContext(trade_hook=self.failing_hook)
        )

        assert results[StrategyName.VOLUME_SPIKE].is_failed
        assert results[StrategyName.TREND_MOMENTUM].is_completed


# =============================================================================
# Hooks, Determinism and Comparison Tests
# =============================================================================


class TestReproducibility:
    """Tests for hooks, determinism and run_many."""

    @pytest.fixture
    def synthetic_orchestrator(self) -> BacktestOrchestrator:
        return BacktestOrchestrator(SimulationConfig(horizon_days=3, end_date=date(2024, 1, 7), top_k=2))

    def provider(self) -> SyntheticDataProvider:
        return SyntheticDataProvider(seed=7, instruments_per_day=4, history_hours=24)

    def test_same_seed_same_result(self, synthetic_orchestrator):
        """Test two runs over equal providers serialize identically."""
        first = synthetic_orchestrator.run("trend_momentum", self.provider())
        second = synthetic_orchestrator.run("trend_momentum", self.provider())

        assert first.to_json() == second.to_json()

    def test_trade_hook_sees_every_fill(self, synthetic_orchestrator):
        """Test one IntendedTrade per recorded trade."""
        seen = []
        result = synthetic_orchestrator.run(
            "volume_spike", self.provider(), context=RunContext(trade_hook=seen.append)
        )

        assert len(seen) == result.trade_count
        assert len(result.daily_series) == 3

    def test_run_many_matches_single_runs(self, synthetic_orchestrator):
        """Test concurrent comparison equals sequential runs."""
        provider = self.provider()
        names = ["volume_spike", "dip-hunter", "trend_momentum"]

        results = synthetic_orchestrator.run_many(names, provider, max_workers=3)

        assert list(results) == [
            StrategyName.VOLUME_SPIKE,
            StrategyName.DIP_RECOVERY,
            StrategyName.TREND_MOMENTUM,
        ]
        for name, result in results.items():
            single = synthetic_orchestrator.run(name, self.provider(), context=RunContext(run_id=name.value))
            assert result.to_json() == single.to_json()

    def test_run_many_prefixes_run_ids(self, synthetic_orchestrator):
        """Test child run ids derive from the parent context."""
        results = synthetic_orchestrator.run_many(
            ["volume_spike", "volume-tracker"], self.provider(), context=RunContext(run_id="cmp")
        )

        assert list(results) == [StrategyName.VOLUME_SPIKE]
        assert results[StrategyName.VOLUME_SPIKE].run_id == "cmp:volume_spike"
