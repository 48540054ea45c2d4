"""
Signal Module.

Trading signals produced by strategy evaluation.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class SignalAction(str, Enum):
    """What the strategy wants to do on this tick."""

    BUY = "buy"
    SELL = "sell"
    HOLD = "hold"


class HoldReason(str, Enum):
    """Common reasons for HOLD signals."""

    INSUFFICIENT_HISTORY = "insufficient_history"
    MARKET_CAP_TOO_LOW = "market_cap_too_low"
    NO_SETUP = "no_setup"
    POSITION_OPEN = "position_open"
    AGE_OUT_OF_RANGE = "age_out_of_range"
    VOLUME_TOO_LOW = "volume_too_low"
    RETRACEMENT_OUT_OF_RANGE = "retracement_out_of_range"


@dataclass(frozen=True)
class Signal:
    """
    Strategy decision for one evaluation tick.

    Attributes:
        action: BUY, SELL or HOLD
        reason: Short machine-readable reason
        size_hint_pct: Share of available cash to commit (BUY only), percent
        detail: Human-readable explanation for logs
    """

    action: SignalAction
    reason: str
    size_hint_pct: Decimal = field(default_factory=lambda: Decimal("0"))
    detail: str = ""

    @property
    def is_buy(self) -> bool:
        return self.action == SignalAction.BUY

    @property
    def is_sell(self) -> bool:
        return self.action == SignalAction.SELL

    @property
    def is_hold(self) -> bool:
        return self.action == SignalAction.HOLD

    @classmethod
    def buy(cls, size_hint_pct: Decimal, reason: str, detail: str = "") -> "Signal":
        """Create an entry signal."""
        return cls(
            action=SignalAction.BUY,
            reason=reason,
            size_hint_pct=size_hint_pct,
            detail=detail,
        )

    @classmethod
    def sell(cls, reason: str, detail: str = "") -> "Signal":
        """Create a full-exit guidance signal."""
        return cls(action=SignalAction.SELL, reason=reason, detail=detail)

    @classmethod
    def hold(cls, reason: "str | HoldReason" = HoldReason.NO_SETUP, detail: str = "") -> "Signal":
        """Create a no-op signal."""
        if isinstance(reason, HoldReason):
            reason = reason.value
        return cls(action=SignalAction.HOLD, reason=reason, detail=detail)
