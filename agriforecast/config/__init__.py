"""
Configuration for the forecasting core.
"""

from .forecast_config import (
    AutoregressiveConfig,
    EnsembleConfig,
    FallbackConfig,
    FeedForwardConfig,
    ForecastConfig,
    MonitoringConfig,
    VotingStrategy,
    get_config,
    load_config_from_file,
    reload_config,
    save_config_to_file,
)

__all__ = [
    "AutoregressiveConfig",
    "EnsembleConfig",
    "FallbackConfig",
    "FeedForwardConfig",
    "ForecastConfig",
    "MonitoringConfig",
    "VotingStrategy",
    "get_config",
    "load_config_from_file",
    "reload_config",
    "save_config_to_file",
]
