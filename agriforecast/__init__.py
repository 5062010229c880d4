"""
agriforecast - ensemble time-series forecasting core

Pluggable numeric predictors that turn a short history of environmental
observations into a multi-day forecast with attached confidence:

- Autoregressive differencing model fitted by least squares
- Feed-forward neural network trained by online gradient descent
- Weighted ensemble with horizon-decayed confidence
- Trend-extrapolation fallback when the primary pipeline fails
- Weather forecasting service built on the canonical ensemble
"""

import logging
from typing import Any, Dict

__version__ = "1.0.0"
__author__ = "AgriForecast Team"
__license__ = "MIT"

logging.getLogger(__name__).addHandler(logging.NullHandler())

from .config.forecast_config import ForecastConfig, get_config
from .ensemble.ensemble_forecaster import EnsembleForecaster, EnsembleForecast, ForecastPoint
from .models.autoregressive import AutoregressiveDifferencingModel
from .models.base import ModelMetrics, ModelState, Predictor
from .models.fallback import TrendFallbackPredictor
from .models.feed_forward import FeedForwardPredictor
from .preprocessing.observations import Observation, ObservationSeries
from .preprocessing.scalers import MinMaxScaler, StandardScaler
from .services.weather_predictor import WeatherForecast, WeatherForecastService
from .utils.logger import configure_logging, get_logger

__all__ = [
    # Data model
    "Observation",
    "ObservationSeries",

    # Predictors
    "Predictor",
    "ModelState",
    "ModelMetrics",
    "AutoregressiveDifferencingModel",
    "FeedForwardPredictor",
    "TrendFallbackPredictor",

    # Ensemble
    "EnsembleForecaster",
    "EnsembleForecast",
    "ForecastPoint",

    # Services
    "WeatherForecastService",
    "WeatherForecast",

    # Scalers
    "StandardScaler",
    "MinMaxScaler",

    # Configuration and logging
    "ForecastConfig",
    "get_config",
    "configure_logging",
    "get_logger",

    "__version__",
]

DEFAULT_HORIZON_DAYS = 7


def get_package_info() -> Dict[str, Any]:
    """
    Package information

    Returns:
        Dict with name, version, author and license
    """
    return {
        "name": "agriforecast",
        "version": __version__,
        "author": __author__,
        "license": __license__,
        "description": "Ensemble time-series forecasting core for environmental observations",
        "default_horizon_days": DEFAULT_HORIZON_DAYS
    }
