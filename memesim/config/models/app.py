"""
Application Configuration Model.

Root configuration model that bundles the simulation, data and strategy
sections of config.yaml.
"""

from pydantic import Field

from .base import BaseConfig
from .simulation import DataConfig, SimulationConfig
from .strategy import (
    DipRecoveryConfig,
    StrategyConfigBase,
    StrategyName,
    TrendMomentumConfig,
    VolumeSpikeConfig,
)


class StrategiesConfig(BaseConfig):
    """Per-strategy parameter bundles."""

    volume_spike: VolumeSpikeConfig = Field(default_factory=VolumeSpikeConfig)
    trend_momentum: TrendMomentumConfig = Field(default_factory=TrendMomentumConfig)
    dip_recovery: DipRecoveryConfig = Field(default_factory=DipRecoveryConfig)

    def get(self, name: "str | StrategyName") -> StrategyConfigBase:
        """
        Get the config bundle for a strategy.

        Raises:
            UnknownStrategyError: If the name matches no strategy
        """
        return getattr(self, StrategyName.parse(name).value)


class AppConfig(BaseConfig):
    """
    Root application configuration.

    Example:
        >>> config = AppConfig()
        >>> config.simulation.horizon_days
        7
        >>> config.strategies.get("dip-hunter").stop_loss_pct
        Decimal('25')
    """

    simulation: SimulationConfig = Field(default_factory=SimulationConfig)
    data: DataConfig = Field(default_factory=DataConfig)
    strategies: StrategiesConfig = Field(default_factory=StrategiesConfig)
