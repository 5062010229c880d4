"""
Feed-forward neural network predictor.

One hidden ReLU layer with a linear output, trained by per-sample gradient
descent on engineered features of the latest observation. Inputs and targets
are standardized; the prediction is mapped back to the target's scale.
"""

import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .base import Predictor, ModelState, ParameterSource
from ..config.forecast_config import FeedForwardConfig, get_config
from ..preprocessing.observations import Observation, ObservationSeries
from ..preprocessing.scalers import StandardScaler
from ..utils.exceptions import InsufficientDataError, NotFittedError, PredictionError
from ..utils.helpers import validate_feature_vector
from ..utils.logger import log_model_training
from ..utils.metrics import MathKernel


@dataclass(frozen=True)
class NetworkParameters:
    """Weights, biases and scalers of a trained network"""
    input_hidden: np.ndarray
    hidden_bias: np.ndarray
    hidden_output: np.ndarray
    output_bias: float
    feature_scaler: StandardScaler
    target_scaler: StandardScaler
    feature_names: Tuple[str, ...]
    epochs_run: int
    final_loss: float
    source: ParameterSource = ParameterSource.FITTED

    @property
    def input_size(self) -> int:
        return int(self.input_hidden.shape[0])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'input_size': self.input_size,
            'hidden_size': int(self.input_hidden.shape[1]),
            'features': list(self.feature_names),
            'epochs_run': self.epochs_run,
            'final_loss': self.final_loss,
            'source': self.source.value
        }


class FeedForwardPredictor(Predictor):
    """
    Single-hidden-layer network forecasting the next value of ``target``

    Feature vector for the observation at ``t``: the raw readings in
    ``feature_fields``, the product of the first two of them (when there are
    at least two) and the mean of the target over the last ``ma_window``
    observations (when the context is that long).
    """

    def __init__(
        self,
        name: str = "feed_forward",
        target: str = "temperature",
        feature_fields: Optional[Sequence[str]] = None,
        hidden_size: Optional[int] = None,
        learning_rate: Optional[float] = None,
        config: Optional[FeedForwardConfig] = None
    ):
        super().__init__(name=name, target=target)
        self.config = config or get_config().feed_forward
        self.feature_fields: Tuple[str, ...] = tuple(feature_fields or (target,))
        self.hidden_size = self.config.hidden_size if hidden_size is None else hidden_size
        self.learning_rate = self.config.learning_rate if learning_rate is None else learning_rate
        self.ma_window = self.config.ma_window

        if not self.feature_fields:
            raise ValueError("At least one feature field is required")
        if self.hidden_size < 1:
            raise ValueError(f"hidden_size must be >= 1, got {self.hidden_size}")
        if not (self.learning_rate > 0 and np.isfinite(self.learning_rate)):
            raise ValueError(f"learning_rate must be a positive finite number, got {self.learning_rate}")

        self._params: Optional[NetworkParameters] = None

    @property
    def parameters(self) -> Optional[NetworkParameters]:
        return self._params

    @property
    def min_training_length(self) -> int:
        return self.config.min_samples + self.ma_window

    def feature_names(self, context_length: int) -> List[str]:
        names = list(self.feature_fields)
        if len(self.feature_fields) >= 2:
            names.append(f"{self.feature_fields[0]}_x_{self.feature_fields[1]}")
        if context_length >= self.ma_window:
            names.append(f"{self.target}_ma_{self.ma_window}")
        return names

    def build_features(self, context: ObservationSeries) -> np.ndarray:
        """
        Engineered feature vector of the last observation in ``context``

        Raises:
            InsufficientDataError: If the context is empty
            InvalidFeatureError: If a feature is not finite
        """
        if len(context) == 0:
            raise InsufficientDataError(required=1, actual=0, component=self.name)

        latest = context[-1]
        raw = [latest[name] for name in self.feature_fields]
        features = list(raw)
        if len(raw) >= 2:
            features.append(raw[0] * raw[1])
        if len(context) >= self.ma_window:
            features.append(float(np.mean(context.tail(self.ma_window).values(self.target))))

        return validate_feature_vector(features, labels=self.feature_names(len(context)))

    def _training_samples(self, series: ObservationSeries) -> Tuple[np.ndarray, np.ndarray]:
        inputs = []
        targets = []
        for t in range(self.ma_window - 1, len(series) - 1):
            inputs.append(self.build_features(series[:t + 1]))
            targets.append(series[t + 1][self.target])
        return np.array(inputs), np.array(targets, dtype=float).reshape(-1, 1)

    def _initial_weights(self, input_size: int):
        rng = np.random.default_rng(self.config.random_state)
        scale = np.sqrt(2.0 / (input_size + self.hidden_size))
        input_hidden = rng.uniform(-scale, scale, size=(input_size, self.hidden_size))
        hidden_output = rng.uniform(-scale, scale, size=self.hidden_size)
        return input_hidden, np.zeros(self.hidden_size), hidden_output, 0.0

    @staticmethod
    def _forward(x: np.ndarray, input_hidden, hidden_bias, hidden_output, output_bias):
        hidden_raw = x @ input_hidden + hidden_bias
        hidden = MathKernel.relu(hidden_raw)
        return hidden_raw, hidden, float(hidden @ hidden_output + output_bias)

    def train(self, series: ObservationSeries) -> Dict[str, Any]:
        """
        Fit the network by per-sample gradient descent

        Stops early once the average epoch loss drops below
        ``loss_threshold``; never runs more than ``max_epochs`` epochs.

        Raises:
            NotFittedError: If the predictor was not initialized
            InsufficientDataError: Below ``min_samples`` training pairs
        """
        self._require_initialized("train")

        if len(series) < self.min_training_length:
            raise InsufficientDataError(
                required=self.min_training_length,
                actual=len(series),
                component=self.name
            )

        start_time = time.perf_counter()
        inputs, targets = self._training_samples(series)

        feature_scaler = StandardScaler().fit(inputs)
        target_scaler = StandardScaler().fit(targets)
        x_scaled = feature_scaler.transform(inputs)
        y_scaled = target_scaler.transform(targets).ravel()

        input_hidden, hidden_bias, hidden_output, output_bias = self._initial_weights(x_scaled.shape[1])
        lr = self.learning_rate

        epochs_run = 0
        average_loss = float('inf')
        with np.errstate(over='ignore', invalid='ignore'):
            for epoch in range(self.config.max_epochs):
                total_loss = 0.0
                for x, y in zip(x_scaled, y_scaled):
                    hidden_raw, hidden, output = self._forward(
                        x, input_hidden, hidden_bias, hidden_output, output_bias
                    )
                    error = output - y
                    total_loss += error * error

                    hidden_grad = error * hidden_output * MathKernel.relu_derivative(hidden_raw)
                    hidden_output = hidden_output - lr * error * hidden
                    output_bias -= lr * error
                    input_hidden = input_hidden - lr * np.outer(x, hidden_grad)
                    hidden_bias = hidden_bias - lr * hidden_grad

                epochs_run = epoch + 1
                average_loss = total_loss / len(x_scaled)
                if not np.isfinite(average_loss) or average_loss < self.config.loss_threshold:
                    break

        source = ParameterSource.FITTED
        weights_finite = (
            np.all(np.isfinite(input_hidden))
            and np.all(np.isfinite(hidden_bias))
            and np.all(np.isfinite(hidden_output))
            and np.isfinite(output_bias)
        )
        if not (np.isfinite(average_loss) and weights_finite):
            self.logger.warning(
                "Training diverged, publishing mean-predicting network",
                error_kind="numerical_instability",
                epochs_run=epochs_run,
                learning_rate=lr
            )
            # Zero output weights predict the scaled target mean (0)
            input_hidden, hidden_bias, _, _ = self._initial_weights(x_scaled.shape[1])
            hidden_output = np.zeros(self.hidden_size)
            output_bias = 0.0
            average_loss = float(np.mean(y_scaled ** 2))
            source = ParameterSource.NUMERICAL_FALLBACK

        params = NetworkParameters(
            input_hidden=input_hidden,
            hidden_bias=hidden_bias,
            hidden_output=hidden_output,
            output_bias=float(output_bias),
            feature_scaler=feature_scaler,
            target_scaler=target_scaler,
            feature_names=tuple(self.feature_names(self.ma_window)),
            epochs_run=epochs_run,
            final_loss=float(average_loss),
            source=source
        )
        self._params = params
        self.state = ModelState.TRAINED
        self.metrics.record_training(len(series))

        duration = time.perf_counter() - start_time
        log_model_training(
            self.logger,
            predictor=self.name,
            training_duration=duration,
            samples_count=len(x_scaled),
            model_params=params.to_dict()
        )
        return {
            'predictor': self.name,
            'samples': len(x_scaled),
            'epochs_run': epochs_run,
            'final_loss': float(average_loss),
            'source': source.value,
            'training_time_seconds': duration
        }

    def predict_vector(self, features: Sequence[float]) -> float:
        """
        One forward pass on an already engineered feature vector

        Raises:
            NotFittedError: Before a successful ``train``
            InvalidFeatureError: If a feature is not finite
            PredictionError: If the vector length differs from the trained one
        """
        params = self._params
        if self.state != ModelState.TRAINED or params is None:
            raise NotFittedError(f"Predictor '{self.name}' must be trained before predict", component=self.name)

        vector = validate_feature_vector(features)
        if vector.size != params.input_size:
            raise PredictionError(
                f"Feature vector has {vector.size} values, network was trained on {params.input_size}",
                predictor=self.name,
                prediction_params={'expected': params.input_size, 'actual': int(vector.size)}
            )

        scaled = params.feature_scaler.transform(vector.reshape(1, -1))[0]
        _, _, output = self._forward(
            scaled, params.input_hidden, params.hidden_bias, params.hidden_output, params.output_bias
        )
        value = float(params.target_scaler.inverse_transform([[output]])[0, 0])
        if not np.isfinite(value):
            raise PredictionError("Network produced a non-finite value", predictor=self.name)

        self.metrics.record_prediction()
        return value

    def predict(self, history: ObservationSeries) -> float:
        return self.predict_vector(self.build_features(history))

    def forecast(self, history: ObservationSeries, horizon: int) -> List[float]:
        """
        Recursive forecast

        Each step appends a synthetic observation whose target is the
        previous prediction; other readings are carried forward.
        """
        if horizon < 1:
            raise ValueError("horizon must be >= 1")

        context = history
        predictions = []
        for _ in range(horizon):
            value = self.predict(context)
            predictions.append(value)

            last = context[-1]
            recorded_at = last.recorded_at + timedelta(days=1) if last.recorded_at else None
            context = context.append(
                Observation(readings={**last.readings, self.target: value}, recorded_at=recorded_at)
            )
        return predictions

    def get_model_info(self) -> Dict[str, Any]:
        info = super().get_model_info()
        info.update({
            'hidden_size': self.hidden_size,
            'learning_rate': self.learning_rate,
            'feature_fields': list(self.feature_fields),
            'parameters': self._params.to_dict() if self._params else None
        })
        return info
