"""
memesim CLI.

Command-line interface for running and comparing strategy backtests.
"""

import argparse
import json
import sys
from datetime import date
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, List, Optional

from .backtest.context import RunContext
from .backtest.orchestrator import BacktestOrchestrator
from .backtest.result import DecimalEncoder, SimulationResult
from .config.loader import load_config
from .config.models.app import AppConfig
from .config.models.simulation import SimulationConfig
from .config.models.strategy import StrategyName
from .core.exceptions import MarketDataError
from .core.logger import get_logger, set_log_level
from .core.retry import RetryConfig, RetryStrategy
from .data.provider import MarketDataAdapter
from .data.retrying import RetryingMarketDataAdapter, is_retryable_market_error
from .data.synthetic import SyntheticDataProvider

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path("config/config.yaml")


def _decimal(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"invalid decimal value: {value!r}")


def _date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date (expected YYYY-MM-DD): {value!r}")


class MemesimCLI:
    """
    Command-line interface for memesim.

    Example:
        >>> cli = MemesimCLI()
        >>> cli.run(["run", "volume_spike", "--days", "3", "--end-date", "2024-01-07"])
        >>> cli.run(["compare", "--json"])
    """

    def __init__(self, config: Optional[AppConfig] = None):
        """
        Initialize CLI.

        Args:
            config: Preloaded configuration; otherwise read from --config
        """
        self._config = config
        self._parser = self._create_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        """Create argument parser."""
        parser = argparse.ArgumentParser(
            prog="memesim",
            description="Memecoin strategy backtesting engine",
        )
        parser.add_argument(
            "--log-level",
            type=str,
            default=None,
            choices=["DEBUG", "INFO", "WARNING", "ERROR"],
            help="Override LOG_LEVEL",
        )
        subparsers = parser.add_subparsers(dest="command", help="Available commands")

        # run command
        run_parser = subparsers.add_parser("run", help="Backtest one strategy")
        run_parser.add_argument("strategy", type=str, help="Strategy name (e.g. volume_spike, dip-hunter)")
        self._add_simulation_arguments(run_parser)

        # compare command
        compare_parser = subparsers.add_parser(
            "compare",
            help="Backtest several strategies in parallel",
        )
        compare_parser.add_argument(
            "strategies",
            type=str,
            nargs="*",
            help="Strategy names (default: all)",
        )
        compare_parser.add_argument(
            "--workers", "-w",
            type=int,
            default=None,
            help="Worker threads (default: simulation.max_workers)",
        )
        self._add_simulation_arguments(compare_parser)

        # strategies command
        subparsers.add_parser("strategies", help="List available strategies")

        return parser

    def _add_simulation_arguments(self, parser: argparse.ArgumentParser) -> None:
        parser.add_argument(
            "--config", "-c",
            type=str,
            default=None,
            help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH} if present)",
        )
        parser.add_argument(
            "--env", "-e",
            type=str,
            default=None,
            help="Config overlay name (config.<env>.yaml)",
        )
        parser.add_argument("--days", "-d", type=int, default=None, help="Horizon in days")
        parser.add_argument("--capital", type=_decimal, default=None, help="Starting capital")
        parser.add_argument("--seed", type=int, default=None, help="Synthetic data seed")
        parser.add_argument("--top-k", type=int, default=None, help="Instruments per day")
        parser.add_argument("--end-date", type=_date, default=None, help="Last simulated day (YYYY-MM-DD)")
        parser.add_argument("--run-id", type=str, default=None, help="Run identifier for logs")
        parser.add_argument("--json", action="store_true", help="Print results as JSON")

    def run(self, args: List[str]) -> int:
        """
        Run CLI command.

        Args:
            args: Command-line arguments

        Returns:
            Exit code (0 for success)
        """
        if not args:
            self._parser.print_help()
            return 0

        parsed = self._parser.parse_args(args)

        if parsed.log_level:
            set_log_level(parsed.log_level)

        if not parsed.command:
            self._parser.print_help()
            return 0

        try:
            handler = getattr(self, f"_cmd_{parsed.command.replace('-', '_')}", None)
            if handler:
                return handler(parsed)
            else:
                print(f"Unknown command: {parsed.command}")
                return 1
        except Exception as e:
            print(f"Error: {e}")
            logger.error(f"CLI error: {e}")
            return 1

    # =========================================================================
    # Command Handlers
    # =========================================================================

    def _cmd_run(self, args: argparse.Namespace) -> int:
        """Handle run command."""
        name = StrategyName.parse(args.strategy)
        config = self._resolve_config(args)
        orchestrator = BacktestOrchestrator(config.simulation, config.strategies)

        result = orchestrator.run(
            name,
            self._create_provider(config),
            context=RunContext(run_id=args.run_id),
        )

        if args.json:
            print(result.to_json(indent=2))
        else:
            self._print_result(result)
        return 0 if result.is_completed else 1

    def _cmd_compare(self, args: argparse.Namespace) -> int:
        """Handle compare command."""
        names = [StrategyName.parse(s) for s in args.strategies] or list(StrategyName)
        config = self._resolve_config(args)
        orchestrator = BacktestOrchestrator(config.simulation, config.strategies)

        results = orchestrator.run_many(
            names,
            self._create_provider(config),
            context=RunContext(run_id=args.run_id),
            max_workers=args.workers,
        )

        if args.json:
            payload = {name.value: result.to_dict() for name, result in results.items()}
            print(json.dumps(payload, indent=2, sort_keys=True, cls=DecimalEncoder))
        else:
            self._print_comparison(list(results.values()))
        return 0 if all(r.is_completed for r in results.values()) else 1

    def _cmd_strategies(self, args: argparse.Namespace) -> int:
        """Handle strategies command."""
        config = self._config or AppConfig()
        print("\n=== Strategies ===")
        for name in StrategyName:
            params = config.strategies.get(name)
            aliases = name.aliases()
            partials = ", ".join(f"+{p.threshold_pct}% -> {p.fraction}" for p in params.partial_exits)
            print(f"\n{name.value}")
            if aliases:
                print(f"  Aliases:       {', '.join(aliases)}")
            print(f"  Min Cap:       {params.min_market_cap}")
            print(f"  Stop Loss:     -{params.stop_loss_pct}%")
            print(f"  Take Profit:   +{params.take_profit_pct}%")
            print(f"  Partial Exits: {partials or 'none'}")
            print(f"  Risk / Trade:  {params.risk_per_trade_pct}%")
            if params.max_hold_minutes or params.max_hold_candles:
                print(f"  Max Hold:      {params.max_hold_minutes} min / {params.max_hold_candles} candles")
        return 0

    # =========================================================================
    # Helpers
    # =========================================================================

    def _resolve_config(self, args: argparse.Namespace) -> AppConfig:
        """Load configuration and apply command-line overrides."""
        config = self._config
        if config is None:
            if args.config:
                config = load_config(args.config, env=args.env)
            elif DEFAULT_CONFIG_PATH.exists():
                config = load_config(DEFAULT_CONFIG_PATH, env=args.env)
            else:
                config = AppConfig()

        overrides: dict[str, Any] = {}
        if args.days is not None:
            overrides["horizon_days"] = args.days
        if args.capital is not None:
            overrides["starting_capital"] = args.capital
        if args.seed is not None:
            overrides["seed"] = args.seed
        if args.top_k is not None:
            overrides["top_k"] = args.top_k
        if args.end_date is not None:
            overrides["end_date"] = args.end_date
        if not overrides:
            return config

        simulation = SimulationConfig(**{**config.simulation.model_dump(), **overrides})
        return AppConfig(simulation=simulation, data=config.data, strategies=config.strategies)

    def _create_provider(self, config: AppConfig) -> MarketDataAdapter:
        provider = SyntheticDataProvider(
            seed=config.simulation.seed,
            instruments_per_day=config.data.instruments_per_day,
            history_hours=config.data.history_hours,
            interval_minutes=config.simulation.candle_interval_minutes,
        )
        retry_config = RetryConfig(
            max_attempts=config.data.retry_max_attempts,
            base_delay=config.data.retry_base_delay,
            strategy=RetryStrategy.EXPONENTIAL_JITTER,
            retryable_exceptions=(MarketDataError,),
            retry_predicate=is_retryable_market_error,
        )
        return RetryingMarketDataAdapter(provider, retry_config)

    def _print_result(self, result: SimulationResult) -> None:
        """Print one result."""
        print("\n=== Backtest Result (synthetic data) ===")
        print(result.summary())
        if result.daily_series:
            print("\n--- Daily Value ---")
            for point in result.daily_series:
                print(f"{point.date}  {point.value:>12.2f}")

    def _print_comparison(self, results: List[SimulationResult]) -> None:
        """Print a comparison table."""
        print("\n=== Strategy Comparison (synthetic data) ===")
        print(f"{'Strategy':<16} {'Status':<10} {'Final':>10} {'Profit %':>9} {'Win %':>7} {'Max DD %':>9} {'Trades':>7}")
        for r in results:
            win = f"{r.success_rate:.1f}" if r.success_rate is not None else "n/a"
            print(
                f"{r.strategy:<16} {r.status.value:<10} {r.final_capital:>10.2f} "
                f"{r.profit_percent:>9.2f} {win:>7} {r.max_drawdown_percent:>9.2f} {r.trade_count:>7}"
            )


def create_cli(config: Optional[AppConfig] = None) -> MemesimCLI:
    """
    Create CLI instance.

    Args:
        config: Optional preloaded configuration

    Returns:
        MemesimCLI instance
    """
    return MemesimCLI(config)


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for CLI.

    Args:
        args: Command-line arguments (defaults to sys.argv)

    Returns:
        Exit code
    """
    if args is None:
        args = sys.argv[1:]

    return MemesimCLI().run(args)


if __name__ == "__main__":
    sys.exit(main())
