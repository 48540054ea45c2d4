"""
Strategy Configuration Models.

One immutable parameter bundle per bot strategy. Percentages are expressed
in percent (35 means 35 %), ratios as plain fractions (0.25 means 25 %).
"""

from decimal import Decimal
from enum import Enum
from fractions import Fraction
from typing import Any, Optional

from pydantic import ConfigDict, Field, field_serializer, field_validator, model_validator

from ...core.exceptions import UnknownStrategyError
from .base import BaseConfig


class StrategyName(str, Enum):
    """The closed set of strategies the engine can run."""

    VOLUME_SPIKE = "volume_spike"
    TREND_MOMENTUM = "trend_momentum"
    DIP_RECOVERY = "dip_recovery"

    @classmethod
    def parse(cls, value: "str | StrategyName") -> "StrategyName":
        """
        Resolve a strategy name, accepting the legacy bot ids.

        Args:
            value: Enum member, canonical name or legacy bot id
                   (e.g. "volume-tracker", "trend-surfer", "dip-hunter")

        Returns:
            Matching StrategyName

        Raises:
            UnknownStrategyError: If the name matches no strategy
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise UnknownStrategyError(repr(value))

        key = value.strip().lower().replace("-", "_").replace(" ", "_")
        try:
            return cls(key)
        except ValueError:
            pass

        alias = _STRATEGY_ALIASES.get(key)
        if alias is None:
            raise UnknownStrategyError(value)
        return alias

    def aliases(self) -> list[str]:
        """Legacy bot ids accepted for this strategy."""
        return sorted(a for a, target in _STRATEGY_ALIASES.items() if target == self)


_STRATEGY_ALIASES = {
    "volume_tracker": StrategyName.VOLUME_SPIKE,
    "trend_surfer": StrategyName.TREND_MOMENTUM,
    "momentum": StrategyName.TREND_MOMENTUM,
    "dip_hunter": StrategyName.DIP_RECOVERY,
}


def _to_fraction(value: Any) -> Fraction:
    if isinstance(value, Fraction):
        return value
    if isinstance(value, bool):
        raise ValueError("fraction must be numeric")
    if isinstance(value, (int, Decimal)):
        return Fraction(value)
    if isinstance(value, (float, str)):
        return Fraction(str(value).strip())
    raise ValueError(f"cannot interpret {value!r} as a fraction")


class PartialExit(BaseConfig):
    """
    A staged partial take-profit.

    Attributes:
        threshold_pct: Profit (percent above entry) that triggers the exit
        fraction: Share of the ORIGINAL position size to release ("1/3", 0.5, ...)
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
    )

    threshold_pct: Decimal = Field(gt=0)
    fraction: Fraction

    @field_validator("fraction", mode="before")
    @classmethod
    def parse_fraction(cls, v: Any) -> Fraction:
        """Accept Fraction, int, Decimal, float or "a/b" strings."""
        fraction = _to_fraction(v)
        if not (0 < fraction <= 1):
            raise ValueError("fraction must be in (0, 1]")
        return fraction

    @field_serializer("fraction")
    def serialize_fraction(self, fraction: Fraction) -> str:
        return str(fraction)


class StrategyConfigBase(BaseConfig):
    """
    Parameters shared by every strategy.

    Example:
        >>> config = VolumeSpikeConfig(stop_loss_pct=Decimal("30"))
        >>> config.stop_loss_pct
        Decimal('30')
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        arbitrary_types_allowed=True,
    )

    min_market_cap: Decimal = Field(
        default=Decimal("40000"),
        ge=Decimal("0"),
        description="Minimum estimated market cap for an entry",
    )
    stop_loss_pct: Decimal = Field(
        default=Decimal("35"),
        gt=Decimal("0"),
        lt=Decimal("100"),
        description="Stop-loss distance below entry, in percent",
    )
    take_profit_pct: Decimal = Field(
        default=Decimal("140"),
        gt=Decimal("0"),
        description="Take-profit distance above entry, in percent",
    )
    partial_exits: tuple[PartialExit, ...] = Field(
        default=(),
        description="Staged partial exits, ascending thresholds",
    )
    max_hold_minutes: Optional[int] = Field(
        default=None,
        ge=1,
        description="Force a time-based exit after this holding time",
    )
    max_hold_candles: Optional[int] = Field(
        default=None,
        ge=1,
        description="Force a time-based exit after this many candles",
    )
    risk_per_trade_pct: Decimal = Field(
        default=Decimal("15"),
        gt=Decimal("0"),
        le=Decimal("100"),
        description="Share of available cash committed per entry, in percent",
    )

    @model_validator(mode="after")
    def validate_exit_ladder(self) -> "StrategyConfigBase":
        """Thresholds ascend, stay below take-profit and release at most the full size."""
        thresholds = [p.threshold_pct for p in self.partial_exits]
        if any(b <= a for a, b in zip(thresholds, thresholds[1:])):
            raise ValueError("partial exit thresholds must be strictly ascending")
        if thresholds and thresholds[-1] >= self.take_profit_pct:
            raise ValueError("take_profit_pct must exceed every partial exit threshold")
        if sum((p.fraction for p in self.partial_exits), Fraction(0)) > 1:
            raise ValueError("partial exit fractions cannot release more than the full size")
        return self

    @property
    def stop_loss_ratio(self) -> Decimal:
        """Stop-loss price as a multiple of entry price."""
        return Decimal("1") - self.stop_loss_pct / Decimal("100")

    @property
    def take_profit_ratio(self) -> Decimal:
        """Take-profit price as a multiple of entry price."""
        return Decimal("1") + self.take_profit_pct / Decimal("100")


class VolumeSpikeConfig(StrategyConfigBase):
    """Volume-spike entries on freshly launched tokens."""

    min_market_cap: Decimal = Field(default=Decimal("100000"), ge=Decimal("0"))
    launch_exclusion_minutes: int = Field(
        default=30,
        ge=0,
        description="Ignore the token for this long after launch",
    )
    max_age_hours: int = Field(
        default=24,
        ge=1,
        description="Only trade tokens younger than this",
    )
    min_volume_ratio: Decimal = Field(
        default=Decimal("0.25"),
        gt=Decimal("0"),
        description="Candle volume must reach this fraction of market cap",
    )
    large_cap_threshold: Decimal = Field(
        default=Decimal("500000"),
        ge=Decimal("0"),
        description="Market cap at which the large-cap ratio applies",
    )
    large_cap_volume_ratio: Decimal = Field(
        default=Decimal("0.15"),
        gt=Decimal("0"),
        description="Volume ratio for large-cap tokens",
    )
    min_lookback: int = Field(default=2, ge=1)
    stop_loss_pct: Decimal = Field(default=Decimal("35"), gt=Decimal("0"), lt=Decimal("100"))
    take_profit_pct: Decimal = Field(default=Decimal("140"), gt=Decimal("0"))
    partial_exits: tuple[PartialExit, ...] = Field(
        default=(PartialExit(threshold_pct=Decimal("70"), fraction=Fraction(1, 2)),),
    )
    risk_per_trade_pct: Decimal = Field(default=Decimal("15"), gt=Decimal("0"), le=Decimal("100"))

    @model_validator(mode="after")
    def validate_age_window(self) -> "VolumeSpikeConfig":
        if self.launch_exclusion_minutes >= self.max_age_hours * 60:
            raise ValueError("launch_exclusion_minutes must be shorter than max_age_hours")
        return self


class TrendMomentumConfig(StrategyConfigBase):
    """Consecutive green candles with rising volume or a sharp price rise."""

    min_market_cap: Decimal = Field(default=Decimal("40000"), ge=Decimal("0"))
    consecutive_green: int = Field(default=3, ge=1)
    volume_window: int = Field(
        default=3,
        ge=1,
        description="Candles per volume window (latest vs preceding)",
    )
    min_price_rise_pct: Decimal = Field(default=Decimal("15"), gt=Decimal("0"))
    price_lookback_minutes: int = Field(default=15, ge=1)
    early_exit_min_profit_pct: Decimal = Field(
        default=Decimal("40"),
        ge=Decimal("0"),
        description="Momentum exit only fires above this profit",
    )
    stop_loss_pct: Decimal = Field(default=Decimal("35"), gt=Decimal("0"), lt=Decimal("100"))
    take_profit_pct: Decimal = Field(default=Decimal("140"), gt=Decimal("0"))
    partial_exits: tuple[PartialExit, ...] = Field(
        default=(
            PartialExit(threshold_pct=Decimal("60"), fraction=Fraction(1, 3)),
            PartialExit(threshold_pct=Decimal("100"), fraction=Fraction(1, 3)),
        ),
    )
    risk_per_trade_pct: Decimal = Field(default=Decimal("25"), gt=Decimal("0"), le=Decimal("100"))

    @property
    def min_lookback(self) -> int:
        return max(self.consecutive_green, 2 * self.volume_window)


class DipRecoveryConfig(StrategyConfigBase):
    """Buy deep retracements from a local high that keep trading volume."""

    min_market_cap: Decimal = Field(default=Decimal("40000"), ge=Decimal("0"))
    lookback_periods: int = Field(default=10, ge=2)
    min_retracement_pct: Decimal = Field(default=Decimal("30"), gt=Decimal("0"), lt=Decimal("100"))
    max_retracement_pct: Decimal = Field(default=Decimal("60"), gt=Decimal("0"), lt=Decimal("100"))
    volume_average_periods: int = Field(default=5, ge=1)
    min_volume_vs_average: Decimal = Field(default=Decimal("0.7"), ge=Decimal("0"))
    min_volume_to_cap_ratio: Decimal = Field(
        default=Decimal("0.005"),
        ge=Decimal("0"),
        description="Average candle volume must stay above this fraction of market cap",
    )
    stop_loss_pct: Decimal = Field(default=Decimal("25"), gt=Decimal("0"), lt=Decimal("100"))
    take_profit_pct: Decimal = Field(default=Decimal("100"), gt=Decimal("0"))
    partial_exits: tuple[PartialExit, ...] = Field(
        default=(PartialExit(threshold_pct=Decimal("60"), fraction=Fraction(1, 2)),),
    )
    max_hold_minutes: Optional[int] = Field(default=60, ge=1)
    max_hold_candles: Optional[int] = Field(default=4, ge=1)
    risk_per_trade_pct: Decimal = Field(default=Decimal("10"), gt=Decimal("0"), le=Decimal("100"))

    @model_validator(mode="after")
    def validate_retracement_band(self) -> "DipRecoveryConfig":
        if self.min_retracement_pct >= self.max_retracement_pct:
            raise ValueError("min_retracement_pct must be below max_retracement_pct")
        return self

    @property
    def min_lookback(self) -> int:
        return max(self.lookback_periods, self.volume_average_periods + 1)


StrategyConfig = VolumeSpikeConfig | TrendMomentumConfig | DipRecoveryConfig

STRATEGY_CONFIG_TYPES: dict[StrategyName, type[StrategyConfigBase]] = {
    StrategyName.VOLUME_SPIKE: VolumeSpikeConfig,
    StrategyName.TREND_MOMENTUM: TrendMomentumConfig,
    StrategyName.DIP_RECOVERY: DipRecoveryConfig,
}


def default_strategy_config(name: "str | StrategyName") -> StrategyConfigBase:
    """
    Build the default config for a strategy.

    Raises:
        UnknownStrategyError: If the name matches no strategy
    """
    return STRATEGY_CONFIG_TYPES[StrategyName.parse(name)]()
