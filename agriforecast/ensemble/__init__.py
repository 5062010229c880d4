"""
Ensemble combination of predictors.
"""

from .ensemble_forecaster import (
    EnsembleForecaster,
    EnsembleForecast,
    EnsembleWeights,
    ForecastPoint,
    ForecastSource,
)

__all__ = [
    "EnsembleForecaster",
    "EnsembleForecast",
    "EnsembleWeights",
    "ForecastPoint",
    "ForecastSource",
]
