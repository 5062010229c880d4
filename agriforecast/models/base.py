"""
Common predictor interface.

Every numeric model (autoregressive, feed-forward, ...) implements
``Predictor`` so the ensemble can hold them behind one type.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..preprocessing.observations import ObservationSeries
from ..utils.exceptions import NotFittedError
from ..utils.logger import LoggerMixin
from ..utils.metrics import ModelEvaluation, evaluate_predictions


class ModelState(str, Enum):
    """Predictor lifecycle"""
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    TRAINED = "trained"


class ParameterSource(str, Enum):
    """Where the current parameters came from"""
    DEFAULT = "default"
    FITTED = "fitted"
    NUMERICAL_FALLBACK = "numerical_fallback"


@dataclass
class ModelMetrics:
    """
    Process-local usage counters of one predictor instance

    Never persisted; ``snapshot`` hands out an independent copy.
    """
    trained_sample_count: int = 0
    last_trained_at: Optional[datetime] = None
    prediction_count: int = 0
    last_prediction_at: Optional[datetime] = None

    def record_training(self, samples: int) -> None:
        self.trained_sample_count = samples
        self.last_trained_at = datetime.now()

    def record_prediction(self, count: int = 1) -> None:
        self.prediction_count += count
        self.last_prediction_at = datetime.now()

    def reset(self) -> None:
        self.trained_sample_count = 0
        self.last_trained_at = None
        self.prediction_count = 0
        self.last_prediction_at = None

    def snapshot(self) -> "ModelMetrics":
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for key in ('last_trained_at', 'last_prediction_at'):
            if data[key] is not None:
                data[key] = data[key].isoformat()
        return data


class Predictor(LoggerMixin, ABC):
    """
    Base class of all predictors

    Subclasses implement ``_initialize_parameters``, ``train``, ``predict``
    and ``forecast``. The state machine is
    ``UNINITIALIZED -> INITIALIZED -> TRAINED``.
    """

    def __init__(self, name: str, target: str = "temperature"):
        super().__init__()
        if not name:
            raise ValueError("Predictor name cannot be empty")
        self.name = name
        self.target = target
        self.state = ModelState.UNINITIALIZED
        self.metrics = ModelMetrics()
        self.set_log_context(predictor=name, target=target)

    @property
    def is_initialized(self) -> bool:
        return self.state != ModelState.UNINITIALIZED

    @property
    def is_trained(self) -> bool:
        return self.state == ModelState.TRAINED

    def initialize(self) -> None:
        """Install default parameters; safe to call more than once"""
        self._initialize_parameters()
        if self.state == ModelState.UNINITIALIZED:
            self.state = ModelState.INITIALIZED
        self.logger.debug("Predictor initialized", state=self.state.value)

    def _initialize_parameters(self) -> None:
        """Hook for subclasses with default parameters"""

    def _require_initialized(self, operation: str) -> None:
        if self.state == ModelState.UNINITIALIZED:
            raise NotFittedError(
                f"Predictor '{self.name}' must be initialized before {operation}",
                component=self.name
            )

    @abstractmethod
    def train(self, series: ObservationSeries) -> Dict[str, Any]:
        """Fit parameters on a history; returns a training summary"""

    @abstractmethod
    def predict(self, history: ObservationSeries) -> float:
        """One-step-ahead value of the target"""

    @abstractmethod
    def forecast(self, history: ObservationSeries, horizon: int) -> List[float]:
        """Exactly ``horizon`` future values of the target"""

    def evaluate(self, histories: Sequence[ObservationSeries], actual: Sequence[float]) -> ModelEvaluation:
        """
        Score one-step predictions against observed values

        Args:
            histories: Input windows, one per expected value
            actual: Observed next values

        Returns:
            ModelEvaluation
        """
        predicted = [self.predict(history) for history in histories]
        evaluation = evaluate_predictions(predicted, actual)
        self.logger.info("Predictor evaluated", **evaluation.to_dict())
        return evaluation

    def get_metrics(self) -> ModelMetrics:
        return self.metrics.snapshot()

    def reset_metrics(self) -> None:
        self.metrics.reset()

    def get_model_info(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'type': self.__class__.__name__,
            'target': self.target,
            'state': self.state.value,
            'metrics': self.metrics.to_dict()
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, state={self.state.value})"
