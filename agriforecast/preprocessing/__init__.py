"""
Observation model, feature scaling and data preparation.
"""

from .observations import Observation, ObservationSeries
from .scalers import FeatureScaler, StandardScaler, MinMaxScaler, ScalerParameters, create_scaler
from .data_processor import FeatureEngineering, WeatherDataProcessor, ValidationResult

__all__ = [
    "Observation",
    "ObservationSeries",
    "FeatureScaler",
    "StandardScaler",
    "MinMaxScaler",
    "ScalerParameters",
    "create_scaler",
    "FeatureEngineering",
    "WeatherDataProcessor",
    "ValidationResult",
]
