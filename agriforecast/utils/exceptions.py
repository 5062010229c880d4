"""
Custom exceptions for the agriforecast forecasting core

Exception hierarchy for the ensemble pipeline. Every error carries a
machine-readable code, a details dictionary and a timestamp so callers can
log or serialize it uniformly.
"""

from typing import Optional, Dict, Any, Sequence
from datetime import datetime


class ForecastingError(Exception):
    """
    Base exception for the forecasting core

    All specific exceptions inherit from this class so that orchestration
    code can handle pipeline errors uniformly.
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        """
        Args:
            message: Human-readable error message
            error_code: Code for programmatic handling
            details: Additional error context
            original_exception: Underlying exception, if any
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.original_exception = original_exception
        self.timestamp = datetime.now()

        if original_exception:
            self.details['original_error'] = str(original_exception)
            self.details['original_type'] = type(original_exception).__name__

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the exception for JSON payloads"""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'details': self.details,
            'timestamp': self.timestamp.isoformat(),
            'original_exception': str(self.original_exception) if self.original_exception else None
        }

    def __str__(self) -> str:
        base_msg = f"[{self.error_code}] {self.message}"
        if self.details:
            base_msg += f" | Details: {self.details}"
        return base_msg


class InsufficientDataError(ForecastingError):
    """
    Input series is shorter than a documented minimum

    Surfaced to the caller as-is; never retried internally.
    """

    def __init__(
        self,
        required: int,
        actual: int,
        message: Optional[str] = None,
        component: Optional[str] = None
    ):
        self.required = required
        self.actual = actual
        details: Dict[str, Any] = {'required': required, 'actual': actual}
        if component:
            details['component'] = component

        super().__init__(
            message=message or f"Insufficient data: required {required}, got {actual}",
            error_code="INSUFFICIENT_DATA",
            details=details
        )


class NotFittedError(ForecastingError):
    """
    A scaler or predictor was used before fit/train/initialize

    This is a programming-contract violation and always fatal to the call.
    """

    def __init__(
        self,
        message: str = "Component must be fitted before use",
        component: Optional[str] = None
    ):
        details = {'component': component} if component else {}
        super().__init__(
            message=message,
            error_code="NOT_FITTED",
            details=details
        )


class EmptyEnsembleError(ForecastingError):
    """An operation would leave the ensemble with zero predictors"""

    def __init__(self, message: str = "Ensemble must contain at least one predictor"):
        super().__init__(message=message, error_code="EMPTY_ENSEMBLE")


class EmptyInputError(ForecastingError):
    """A fit was attempted on zero rows"""

    def __init__(self, message: str = "Cannot fit on empty input", component: Optional[str] = None):
        details = {'component': component} if component else {}
        super().__init__(message=message, error_code="EMPTY_INPUT", details=details)


class InvalidFeatureError(ForecastingError):
    """
    A feature vector or observation contains non-finite values

    Raised by validation before any numeric routine sees the data. The
    offending positions are available as ``indices`` (numeric positions) and
    ``fields`` (reading names, for observations).
    """

    def __init__(
        self,
        message: str,
        indices: Optional[Sequence[int]] = None,
        fields: Optional[Sequence[str]] = None
    ):
        self.indices = list(indices or [])
        self.fields = list(fields or [])
        details: Dict[str, Any] = {}
        if self.indices:
            details['invalid_indices'] = self.indices
        if self.fields:
            details['invalid_fields'] = self.fields

        super().__init__(
            message=message,
            error_code="INVALID_FEATURE",
            details=details
        )


class PredictionError(ForecastingError):
    """
    A predictor could not produce a value for the given input

    Inside the ensemble this triggers the trend fallback.
    """

    def __init__(
        self,
        message: str,
        predictor: Optional[str] = None,
        prediction_params: Optional[Dict[str, Any]] = None,
        original_exception: Optional[Exception] = None
    ):
        details: Dict[str, Any] = {}
        if predictor:
            details['predictor'] = predictor
        if prediction_params:
            details['prediction_params'] = prediction_params

        super().__init__(
            message=message,
            error_code="PREDICTION_ERROR",
            details=details,
            original_exception=original_exception
        )


class ConfigurationError(ForecastingError):
    """Invalid configuration or unsupported option"""

    def __init__(
        self,
        message: str,
        config_section: Optional[str] = None,
        invalid_params: Optional[Dict[str, Any]] = None
    ):
        details: Dict[str, Any] = {}
        if config_section:
            details['config_section'] = config_section
        if invalid_params:
            details['invalid_params'] = invalid_params

        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            details=details
        )


def create_error_response(exception: ForecastingError) -> Dict[str, Any]:
    """
    Build a standardized error payload for orchestration layers

    Args:
        exception: Forecasting error

    Returns:
        Dictionary describing the failure
    """
    return {
        "success": False,
        "error": {
            "type": exception.__class__.__name__,
            "code": exception.error_code,
            "message": exception.message,
            "details": exception.details,
            "timestamp": exception.timestamp.isoformat()
        }
    }


def classify_error(exception: Exception) -> str:
    """
    Map an exception to the error kind used in fallback logs

    Keeps "no usable state yet" distinguishable from numeric failures even
    though both end in a degraded result.
    """
    if isinstance(exception, NotFittedError):
        return "not_fitted"
    if isinstance(exception, InsufficientDataError):
        return "insufficient_data"
    if isinstance(exception, InvalidFeatureError):
        return "invalid_feature"
    if isinstance(exception, ArithmeticError):
        return "numerical_instability"
    if isinstance(exception, ForecastingError):
        return exception.error_code.lower()
    return "unexpected"


def log_exception(logger, exception: Exception, context: Optional[Dict[str, Any]] = None):
    """
    Log an exception with context

    Args:
        logger: Logger object
        exception: Exception to log
        context: Additional context
    """
    context = context or {}

    if isinstance(exception, ForecastingError):
        logger.error(
            f"Forecasting error: {exception.message}",
            error_code=exception.error_code,
            error_type=exception.__class__.__name__,
            details=exception.details,
            **context
        )
    else:
        logger.error(
            f"Unexpected exception: {exception}",
            error_type=type(exception).__name__,
            exc_info=True,
            **context
        )
