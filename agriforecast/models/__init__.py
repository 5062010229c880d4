"""
Predictors of the forecasting core.

All predictors implement the ``Predictor`` interface so the ensemble can
combine them.
"""

from .base import Predictor, ModelState, ModelMetrics, ParameterSource
from .autoregressive import AutoregressiveDifferencingModel, ARParameters
from .feed_forward import FeedForwardPredictor, NetworkParameters
from .fallback import TrendFallbackPredictor, TrendPoint

__all__ = [
    "Predictor",
    "ModelState",
    "ModelMetrics",
    "AutoregressiveDifferencingModel",
    "ARParameters",
    "ParameterSource",
    "FeedForwardPredictor",
    "NetworkParameters",
    "TrendFallbackPredictor",
    "TrendPoint",
]
