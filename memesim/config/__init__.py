# Config module - simulation and strategy configuration
from ..core.exceptions import ConfigError, UnknownStrategyError
from .exceptions import (
    ConfigFileNotFoundError,
    ConfigParseError,
    ConfigValidationError,
)
from .loader import ConfigLoader, load_config
from .models import (
    STRATEGY_CONFIG_TYPES,
    AppConfig,
    BaseConfig,
    DataConfig,
    DipRecoveryConfig,
    PartialExit,
    SimulationConfig,
    StrategiesConfig,
    StrategyConfig,
    StrategyConfigBase,
    StrategyName,
    TrendMomentumConfig,
    VolumeSpikeConfig,
    default_strategy_config,
)

__all__ = [
    # Exceptions
    "ConfigError",
    "UnknownStrategyError",
    "ConfigFileNotFoundError",
    "ConfigParseError",
    "ConfigValidationError",
    # Loader
    "ConfigLoader",
    "load_config",
    # Models
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
