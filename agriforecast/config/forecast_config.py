"""
Configuration management for the agriforecast forecasting core.

Pydantic settings for every predictor, the ensemble combiner, the trend
fallback and logging. Each section can be overridden from the environment
(``AGRIFORECAST_<SECTION>_<FIELD>``) or loaded from a YAML file.
"""

from typing import Optional, Union, Literal
from pathlib import Path
from enum import Enum

from pydantic import Field, field_validator, model_validator
from pydantic.types import PositiveInt, PositiveFloat, NonNegativeInt
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.logger import LogLevel, LogFormat


class VotingStrategy(str, Enum):
    """How member votes are combined for one day"""
    WEIGHTED = "weighted"
    AVERAGE = "average"
    # Defined for discrete outputs only; rejected by the continuous ensemble
    MAJORITY = "majority"


class AutoregressiveConfig(BaseSettings):
    """
    Autoregressive differencing model settings
    """

    p: PositiveInt = Field(default=3, le=30, description="Autoregressive order")
    d: NonNegativeInt = Field(default=1, le=3, description="Differencing order")
    q: NonNegativeInt = Field(default=2, le=30, description="Moving-average order")

    default_coefficient: float = Field(
        default=0.1,
        description="Coefficient used before training and after numerical failure"
    )

    min_extra_samples: NonNegativeInt = Field(
        default=10,
        description="Samples required on top of p + d + q for training"
    )

    max_residuals: PositiveInt = Field(
        default=50,
        description="Bound on the stored residual history"
    )

    max_condition_number: PositiveFloat = Field(
        default=1e10,
        description="Normal-equation systems above this condition number are treated as singular"
    )

    ma_noise_scale: float = Field(
        default=0.05,
        ge=0.0,
        le=1.0,
        description="Half-width of the uniform moving-average coefficient approximation"
    )

    random_state: Optional[int] = Field(default=42, description="Seed for moving-average coefficients")

    model_config = SettingsConfigDict(env_prefix="AGRIFORECAST_AR_", case_sensitive=False)


class FeedForwardConfig(BaseSettings):
    """
    Feed-forward network settings
    """

    hidden_size: PositiveInt = Field(default=10, le=512, description="Hidden layer width")
    learning_rate: PositiveFloat = Field(default=0.01, le=1.0, description="Gradient step size")
    max_epochs: PositiveInt = Field(default=100, le=10000, description="Upper bound on training epochs")
    loss_threshold: PositiveFloat = Field(
        default=0.001,
        description="Early stop once the average epoch loss drops below this value"
    )
    min_samples: PositiveInt = Field(default=10, description="Minimum training samples")
    ma_window: PositiveInt = Field(default=5, le=365, description="Moving-average window of the target")
    random_state: Optional[int] = Field(default=42, description="Seed for weight initialization")

    model_config = SettingsConfigDict(env_prefix="AGRIFORECAST_NN_", case_sensitive=False)


class EnsembleConfig(BaseSettings):
    """
    Ensemble combination and confidence settings
    """

    voting_strategy: VotingStrategy = Field(
        default=VotingStrategy.WEIGHTED,
        description="Vote combination rule"
    )
    min_history: PositiveInt = Field(default=14, description="Minimum history for the primary pipeline")
    default_horizon: PositiveInt = Field(default=7, le=365, description="Forecast horizon in days")

    base_confidence: float = Field(default=0.95, ge=0.0, le=1.0)
    horizon_decay: float = Field(default=0.05, ge=0.0, le=1.0, description="Confidence lost per day")
    data_bonus_cap: float = Field(default=0.1, ge=0.0, le=1.0, description="Upper bound of the data-volume bonus")
    data_bonus_divisor: PositiveFloat = Field(default=100.0, description="History length giving a bonus of 1.0")
    min_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    max_confidence: float = Field(default=0.99, ge=0.0, le=1.0)

    @field_validator("voting_strategy")
    @classmethod
    def validate_voting_strategy(cls, v):
        if v == VotingStrategy.MAJORITY:
            raise ValueError("majority voting is only defined for discrete outputs")
        return v

    @model_validator(mode="after")
    def validate_confidence_bounds(self):
        if self.min_confidence > self.max_confidence:
            raise ValueError("min_confidence must not exceed max_confidence")
        return self

    model_config = SettingsConfigDict(env_prefix="AGRIFORECAST_ENSEMBLE_", case_sensitive=False)


class FallbackConfig(BaseSettings):
    """
    Trend fallback settings
    """

    window: PositiveInt = Field(default=7, le=365, description="Observations used for the trend")
    start_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    confidence_decay: float = Field(default=0.1, ge=0.0, le=1.0)
    confidence_floor: float = Field(default=0.3, ge=0.0, le=1.0)

    model_config = SettingsConfigDict(env_prefix="AGRIFORECAST_FALLBACK_", case_sensitive=False)


class MonitoringConfig(BaseSettings):
    """
    Logging settings
    """

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.JSON, description="Log format")
    log_file: Optional[str] = Field(default=None, description="Optional JSON log file")

    model_config = SettingsConfigDict(env_prefix="AGRIFORECAST_MONITORING_", case_sensitive=False)


class ForecastConfig(BaseSettings):
    """
    Root configuration of the forecasting core
    """

    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Runtime environment"
    )
    service_name: str = Field(default="agriforecast", description="Service name")
    version: str = Field(default="1.0.0", description="Service version")

    autoregressive: AutoregressiveConfig = Field(default_factory=AutoregressiveConfig)
    feed_forward: FeedForwardConfig = Field(default_factory=FeedForwardConfig)
    ensemble: EnsembleConfig = Field(default_factory=EnsembleConfig)
    fallback: FallbackConfig = Field(default_factory=FallbackConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    @field_validator("service_name")
    @classmethod
    def validate_service_name(cls, v):
        if not v or not v.strip():
            raise ValueError("service_name must be a non-empty string")
        return v

    def is_production(self) -> bool:
        return self.environment == "production"

    def is_development(self) -> bool:
        return self.environment == "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="AGRIFORECAST_",
        env_nested_delimiter="__",
        case_sensitive=False,
        validate_default=True,
        extra="forbid"
    )


_config: Optional[ForecastConfig] = None


def get_config() -> ForecastConfig:
    """
    Get the global configuration (singleton)

    Returns:
        ForecastConfig instance
    """
    global _config
    if _config is None:
        _config = ForecastConfig()
    return _config


def reload_config() -> ForecastConfig:
    """
    Rebuild the global configuration from the environment

    Returns:
        New ForecastConfig instance
    """
    global _config
    _config = ForecastConfig()
    return _config


def load_config_from_file(config_path: Union[str, Path]) -> ForecastConfig:
    """
    Load configuration from a YAML file

    Args:
        config_path: Path to the YAML file

    Returns:
        ForecastConfig instance
    """
    import yaml

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        config_data = yaml.safe_load(f) or {}

    return ForecastConfig(**config_data)


def save_config_to_file(config: ForecastConfig, config_path: Union[str, Path]) -> None:
    """
    Save configuration to a YAML file

    Args:
        config: Configuration instance
        config_path: Destination path
    """
    import yaml

    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(config.model_dump(mode="json"), f, default_flow_style=False, sort_keys=False)
