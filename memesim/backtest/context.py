"""
Run Context Module.

Caller-owned state handed to every orchestrator run: identity,
cancellation and optional side-effect hooks.
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional

from .result import DailyPoint, TradeSide


@dataclass(frozen=True)
class IntendedTrade:
    """
    Execution request emitted for every accepted BUY/SELL transition.

    An external execution service may fill it when the engine drives a
    live bot; backtests usually leave the hook unset.
    """

    instrument_id: str
    side: TradeSide
    size: Decimal
    price_hint: Decimal
    reason: str
    timestamp: datetime


TradeHook = Callable[[IntendedTrade], None]
DayHook = Callable[[DailyPoint], None]


@dataclass
class RunContext:
    """
    Explicit per-run context.

    Attributes:
        run_id: Identifier copied into the result and log lines
        cancel_event: Set to stop the run at the next day boundary
        trade_hook: Receives IntendedTrade events
        day_hook: Receives each daily snapshot as it is taken

    Example:
        >>> context = RunContext(run_id="cmp-1")
        >>> context.cancel()
        >>> context.is_cancelled
        True
    """

    run_id: Optional[str] = None
    cancel_event: threading.Event = field(default_factory=threading.Event)
    trade_hook: Optional[TradeHook] = None
    day_hook: Optional[DayHook] = None

    @property
    def is_cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        """Request cancellation at the next day boundary."""
        self.cancel_event.set()

    @property
    def log_prefix(self) -> str:
        return f"[{self.run_id}] " if self.run_id else ""
