"""Configuration models."""

from .app import AppConfig, StrategiesConfig
from .base import BaseConfig
from .simulation import DataConfig, SimulationConfig
from .strategy import (
    STRATEGY_CONFIG_TYPES,
    DipRecoveryConfig,
    PartialExit,
    StrategyConfig,
    StrategyConfigBase,
    StrategyName,
    TrendMomentumConfig,
    VolumeSpikeConfig,
    default_strategy_config,
)

__all__ = [
    "AppConfig",
    "BaseConfig",
    "DataConfig",
    "SimulationConfig",
    "StrategiesConfig",
    "StrategyName",
    "StrategyConfig",
    "StrategyConfigBase",
    "VolumeSpikeConfig",
    "TrendMomentumConfig",
    "DipRecoveryConfig",
    "PartialExit",
    "STRATEGY_CONFIG_TYPES",
    "default_strategy_config",
]
