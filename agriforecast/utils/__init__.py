"""
Utility modules for the forecasting core

Logging, numeric kernel, exception hierarchy, validation helpers and
time-series diagnostics.
"""

from .logger import get_logger, configure_logging, configure_logging_from_config, LoggerMixin, timed_operation
from .exceptions import (
    ForecastingError,
    InsufficientDataError,
    NotFittedError,
    EmptyEnsembleError,
    EmptyInputError,
    InvalidFeatureError,
    PredictionError,
    ConfigurationError,
    classify_error,
    create_error_response,
    log_exception
)
from .metrics import MathKernel, ModelEvaluation, evaluate_predictions
from .helpers import validate_feature_vector, validate_feature_matrix, safe_divide, ensure_datetime
from .time_series import decompose, autocorrelation, detect_anomalies

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "configure_logging_from_config",
    "LoggerMixin",
    "timed_operation",

    # Exceptions
    "ForecastingError",
    "InsufficientDataError",
    "NotFittedError",
    "EmptyEnsembleError",
    "EmptyInputError",
    "InvalidFeatureError",
    "PredictionError",
    "ConfigurationError",
    "classify_error",
    "create_error_response",
    "log_exception",

    # Metrics
    "MathKernel",
    "ModelEvaluation",
    "evaluate_predictions",

    # Helpers
    "validate_feature_vector",
    "validate_feature_matrix",
    "safe_divide",
    "ensure_datetime",

    # Diagnostics
    "decompose",
    "autocorrelation",
    "detect_anomalies",
]
