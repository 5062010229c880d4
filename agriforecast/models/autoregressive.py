"""
Autoregressive differencing model.

A lightweight ARIMA-style predictor: the target series is differenced ``d``
times, ``p`` autoregressive coefficients are fitted by least squares on the
differenced series and forecasts are integrated back to the original scale.
Moving-average coefficients are an approximation (small seeded uniform
values), not a maximum-likelihood fit.
"""

import time
import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from scipy import linalg

from .base import Predictor, ModelState, ParameterSource
from ..config.forecast_config import AutoregressiveConfig, get_config
from ..preprocessing.observations import ObservationSeries
from ..utils.exceptions import InsufficientDataError
from ..utils.logger import log_model_training


def _frozen(values) -> np.ndarray:
    array = np.array(values, dtype=float)
    array.setflags(write=False)
    return array


@dataclass(frozen=True)
class ARParameters:
    """Immutable coefficient snapshot, replaced wholesale by ``train``"""
    ar_coefficients: np.ndarray
    ma_coefficients: np.ndarray
    residuals: Tuple[float, ...] = field(default_factory=tuple)
    source: ParameterSource = ParameterSource.DEFAULT

    def to_dict(self) -> Dict[str, Any]:
        return {
            'ar_coefficients': self.ar_coefficients.tolist(),
            'ma_coefficients': self.ma_coefficients.tolist(),
            'residual_count': len(self.residuals),
            'source': self.source.value
        }


class AutoregressiveDifferencingModel(Predictor):
    """
    AR(p, d, q) predictor on a single target reading

    Example:
        >>> model = AutoregressiveDifferencingModel(p=3, d=1, q=2)
        >>> model.initialize()
        >>> model.train(series)
        >>> model.forecast(series, horizon=7)
    """

    def __init__(
        self,
        name: str = "autoregressive",
        target: str = "temperature",
        p: Optional[int] = None,
        d: Optional[int] = None,
        q: Optional[int] = None,
        config: Optional[AutoregressiveConfig] = None
    ):
        super().__init__(name=name, target=target)
        self.config = config or get_config().autoregressive
        self.p = self.config.p if p is None else p
        self.d = self.config.d if d is None else d
        self.q = self.config.q if q is None else q

        if self.p < 1 or self.d < 0 or self.q < 0:
            raise ValueError(f"Invalid order (p={self.p}, d={self.d}, q={self.q})")

        self._params: Optional[ARParameters] = None

    @property
    def min_training_length(self) -> int:
        return self.p + self.d + self.q + self.config.min_extra_samples

    @property
    def parameters(self) -> Optional[ARParameters]:
        return self._params

    def _default_parameters(self, source: ParameterSource, residuals: Sequence[float] = ()) -> ARParameters:
        return ARParameters(
            ar_coefficients=_frozen(np.full(self.p, self.config.default_coefficient)),
            ma_coefficients=_frozen(np.full(self.q, self.config.default_coefficient)),
            residuals=tuple(residuals),
            source=source
        )

    def _initialize_parameters(self) -> None:
        if self._params is None:
            self._params = self._default_parameters(ParameterSource.DEFAULT)

    @staticmethod
    def difference(values: Union[Sequence[float], np.ndarray], order: int = 1) -> np.ndarray:
        """
        Apply ``order`` successive first differences

        A series of length ``n`` yields ``n - order`` values.
        """
        if order < 0:
            raise ValueError("Differencing order must be >= 0")
        values = np.asarray(values, dtype=float)
        if order > values.size:
            raise InsufficientDataError(required=order, actual=int(values.size), component="difference")
        if order == 0:
            return values.copy()
        return np.diff(values, n=order)

    @staticmethod
    def _lag_matrix(series: np.ndarray, p: int) -> Tuple[np.ndarray, np.ndarray]:
        """Regression rows ``[z[t-1], ..., z[t-p]] -> z[t]``"""
        rows = np.array([series[t - p:t][::-1] for t in range(p, series.size)])
        return rows, series[p:]

    def _solve_coefficients(self, design: np.ndarray, target: np.ndarray) -> np.ndarray:
        """
        Solve the normal equations

        Raises:
            linalg.LinAlgError: If the system is singular or ill-conditioned
        """
        with np.errstate(over='ignore', invalid='ignore'):
            gram = design.T @ design
            moment = design.T @ target
        if not (np.all(np.isfinite(gram)) and np.all(np.isfinite(moment))):
            raise linalg.LinAlgError("Normal equations overflow")

        singular_values = linalg.svdvals(gram)
        if singular_values[0] == 0 or singular_values[-1] * self.config.max_condition_number < singular_values[0]:
            raise linalg.LinAlgError("Normal equations are singular or ill-conditioned")

        with warnings.catch_warnings():
            warnings.simplefilter("error", linalg.LinAlgWarning)
            try:
                coefficients = linalg.solve(gram, moment, assume_a='sym')
            except linalg.LinAlgWarning as e:
                raise linalg.LinAlgError(str(e)) from e

        if not np.all(np.isfinite(coefficients)):
            raise linalg.LinAlgError("Least-squares solution is not finite")
        return coefficients

    def _ma_coefficients(self) -> np.ndarray:
        rng = np.random.default_rng(self.config.random_state)
        scale = self.config.ma_noise_scale
        return rng.uniform(-scale, scale, size=self.q)

    def train(self, series: ObservationSeries) -> Dict[str, Any]:
        """
        Fit AR coefficients on the target reading of ``series``

        Numerical failure of the least-squares solve is recovered locally by
        keeping the default coefficients (``source=numerical_fallback``).

        Raises:
            NotFittedError: If the model was not initialized
            InsufficientDataError: If the series is shorter than p + d + q + 10
        """
        self._require_initialized("train")

        values = series.values(self.target)
        if values.size < self.min_training_length:
            raise InsufficientDataError(
                required=self.min_training_length,
                actual=int(values.size),
                component=self.name
            )

        start_time = time.perf_counter()
        differenced = self.difference(values, self.d)
        design, target = self._lag_matrix(differenced, self.p)

        try:
            coefficients = self._solve_coefficients(design, target)
            source = ParameterSource.FITTED
        except linalg.LinAlgError as e:
            self.logger.warning(
                "Least-squares solve failed, keeping default coefficients",
                error_kind="numerical_instability",
                error=str(e)
            )
            coefficients = np.full(self.p, self.config.default_coefficient)
            source = ParameterSource.NUMERICAL_FALLBACK

        ma_coefficients = self._ma_coefficients()
        residuals = target - design @ coefficients

        params = ARParameters(
            ar_coefficients=_frozen(coefficients),
            ma_coefficients=_frozen(ma_coefficients),
            residuals=tuple(float(r) for r in residuals[-self.config.max_residuals:]),
            source=source
        )
        # Publish the finished snapshot in one assignment
        self._params = params
        self.state = ModelState.TRAINED
        self.metrics.record_training(int(values.size))

        duration = time.perf_counter() - start_time
        log_model_training(
            self.logger,
            predictor=self.name,
            training_duration=duration,
            samples_count=int(values.size),
            model_params=params.to_dict()
        )
        return {
            'predictor': self.name,
            'samples': int(values.size),
            'source': source.value,
            'training_time_seconds': duration
        }

    def forecast_values(self, values: Union[Sequence[float], np.ndarray], horizon: int) -> List[float]:
        """
        Recursive multi-step forecast from a raw window of target values

        Future residuals are taken as zero; the model parameters are never
        modified.
        """
        self._require_initialized("predict")
        if horizon < 1:
            raise ValueError("horizon must be >= 1")

        values = np.asarray(values, dtype=float)
        if values.size < self.d + 1:
            raise InsufficientDataError(required=self.d + 1, actual=int(values.size), component=self.name)

        params = self._params
        differenced = list(self.difference(values, self.d))
        # Last value at each differencing level, used to integrate back
        tails = [float(np.diff(values, n=k)[-1]) for k in range(self.d)]
        residuals = list(params.residuals)

        predictions = []
        for _ in range(horizon):
            lags = differenced[::-1][:self.p]
            next_diff = float(np.dot(params.ar_coefficients[:len(lags)], lags))
            recent_residuals = residuals[::-1][:self.q]
            next_diff += float(np.dot(params.ma_coefficients[:len(recent_residuals)], recent_residuals))

            differenced.append(next_diff)
            residuals.append(0.0)

            value = next_diff
            for k in reversed(range(self.d)):
                value = tails[k] + value
                tails[k] = value
            predictions.append(value)

        self.metrics.record_prediction()
        return predictions

    def predict(self, history: ObservationSeries) -> float:
        return self.forecast(history, 1)[0]

    def forecast(self, history: ObservationSeries, horizon: int) -> List[float]:
        return self.forecast_values(history.values(self.target), horizon)

    def get_model_info(self) -> Dict[str, Any]:
        info = super().get_model_info()
        info.update({
            'order': {'p': self.p, 'd': self.d, 'q': self.q},
            'parameters': self._params.to_dict() if self._params else None
        })
        return info
