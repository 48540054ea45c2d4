"""
Backtesting engine.

Strategy evaluation, position lifecycle, capital ledger, the multi-day
orchestrator and performance aggregation.

Example:
    from memesim.backtest import BacktestOrchestrator
    from memesim.data import SyntheticDataProvider

    orchestrator = BacktestOrchestrator()
    result = orchestrator.run("trend_momentum", SyntheticDataProvider(seed=7))
    print(result.summary())
"""

from .context import IntendedTrade, RunContext
from .fees import FeeCalculator, FixedFeeCalculator
from .ledger import CapitalLedger
from .metrics import PairStats, PerformanceAggregator
from .orchestrator import BacktestOrchestrator, SimulationRun
from .position import Position, PositionManager, PositionState
from .result import (
    DailyPoint,
    DecimalEncoder,
    Diagnostic,
    ExitReason,
    RunError,
    RunStatus,
    SimulationResult,
    Trade,
    TradeSide,
)
from .signals import HoldReason, Signal, SignalAction
from .strategy import (
    DipRecoveryStrategy,
    Strategy,
    TrendMomentumStrategy,
    VolumeSpikeStrategy,
    create_strategy,
    evaluate,
)

__all__ = [
    # Orchestration
    "BacktestOrchestrator",
    "SimulationRun",
    "RunContext",
    "IntendedTrade",
    # Positions
    "Position",
    "PositionManager",
    "PositionState",
    "CapitalLedger",
    # Fees
    "FeeCalculator",
    "FixedFeeCalculator",
    # Metrics
    "PerformanceAggregator",
    "PairStats",
    # Results
    "SimulationResult",
    "Trade",
    "TradeSide",
    "DailyPoint",
    "Diagnostic",
    "RunError",
    "RunStatus",
    "ExitReason",
    "DecimalEncoder",
    # Signals
    "Signal",
    "SignalAction",
    "HoldReason",
    # Strategies
    "Strategy",
    "VolumeSpikeStrategy",
    "TrendMomentumStrategy",
    "DipRecoveryStrategy",
    "create_strategy",
    "evaluate",
]
