"""
Ensemble Forecasting System

Weighted combination of heterogeneous predictors with horizon-decayed
confidence and a trend-extrapolation fallback.
"""

import math
import time
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..config.forecast_config import EnsembleConfig, FallbackConfig, VotingStrategy, get_config
from ..models.base import ModelMetrics, Predictor
from ..models.fallback import TrendFallbackPredictor
from ..preprocessing.observations import ObservationSeries
from ..utils.exceptions import (
    ConfigurationError,
    EmptyEnsembleError,
    InsufficientDataError,
    PredictionError,
    classify_error,
)
from ..utils.helpers import day_offset_date
from ..utils.logger import LoggerMixin, log_performance_metrics
from ..utils.metrics import MathKernel


class ForecastSource(str, Enum):
    ENSEMBLE = "ensemble"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class EnsembleWeights:
    """Ordered predictor weights, normalized to sum to 1"""
    names: Tuple[str, ...]
    values: Tuple[float, ...]

    @classmethod
    def normalized(cls, names: Sequence[str], values: Sequence[float]) -> "EnsembleWeights":
        """
        Raises:
            ValueError: On a count mismatch, negative or non-finite weights,
                or a non-positive total
        """
        if len(names) != len(values):
            raise ValueError(f"Expected {len(names)} weights, got {len(values)}")
        if any(not math.isfinite(w) or w < 0 for w in values):
            raise ValueError("Weights must be finite and non-negative")
        total = float(sum(values))
        if total <= 0:
            raise ValueError("Weights must have a positive sum")
        return cls(names=tuple(names), values=tuple(float(w) / total for w in values))

    def as_dict(self) -> Dict[str, float]:
        return dict(zip(self.names, self.values))


@dataclass(frozen=True)
class ForecastPoint:
    """One forecast day"""
    day_offset: int
    value: float
    confidence: float
    source_label: str
    contributing_weights: Dict[str, float] = field(default_factory=dict)
    target_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'day_offset': self.day_offset,
            'value': self.value,
            'confidence': self.confidence,
            'source_label': self.source_label,
            'contributing_weights': dict(self.contributing_weights),
            'target_date': self.target_date.isoformat() if self.target_date else None
        }


@dataclass(frozen=True)
class EnsembleForecast:
    """Fixed-length sequence of forecast points plus run metadata"""
    points: Tuple[ForecastPoint, ...]
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[ForecastPoint]:
        return iter(self.points)

    def __getitem__(self, index: int) -> ForecastPoint:
        return self.points[index]

    @property
    def is_fallback(self) -> bool:
        return bool(self.metadata.get('fallback', False))

    @property
    def values(self) -> List[float]:
        return [point.value for point in self.points]

    @property
    def confidences(self) -> List[float]:
        return [point.confidence for point in self.points]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'points': [point.to_dict() for point in self.points],
            'metadata': dict(self.metadata)
        }

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    'day_offset': p.day_offset,
                    'target_date': p.target_date,
                    'value': p.value,
                    'confidence': p.confidence,
                    'source_label': p.source_label
                }
                for p in self.points
            ],
            columns=['day_offset', 'target_date', 'value', 'confidence', 'source_label']
        )


class EnsembleForecaster(LoggerMixin):
    """
    Weighted ensemble of predictors over one target reading

    Holds an ordered list of ``(predictor, weight)`` entries; weights always
    sum to 1. ``predict`` never fails for a non-empty history: anything that
    prevents the primary pipeline from producing a finite forecast switches
    the whole call to trend extrapolation.
    """

    def __init__(
        self,
        predictors: Sequence[Predictor],
        weights: Optional[Sequence[float]] = None,
        voting_strategy: Optional[Union[VotingStrategy, str]] = None,
        target: str = "temperature",
        config: Optional[EnsembleConfig] = None,
        fallback_config: Optional[FallbackConfig] = None
    ):
        super().__init__()
        predictors = list(predictors)
        if not predictors:
            raise EmptyEnsembleError()

        names = [p.name for p in predictors]
        if len(set(names)) != len(names):
            raise ValueError(f"Predictor names must be unique: {names}")

        self.config = config or get_config().ensemble
        self.target = target
        self.voting_strategy = self._resolve_strategy(voting_strategy or self.config.voting_strategy)

        weights = list(weights) if weights is not None else [1.0] * len(predictors)
        self._predictors: Tuple[Predictor, ...] = tuple(predictors)
        self._weights = EnsembleWeights.normalized(names, weights)

        self.fallback = TrendFallbackPredictor(target=target, config=fallback_config)
        self.metrics = ModelMetrics()

        self.set_log_context(target=target)
        self.logger.info(
            "EnsembleForecaster initialized",
            predictors=names,
            weights=self._weights.as_dict(),
            voting_strategy=self.voting_strategy.value
        )

    @staticmethod
    def _resolve_strategy(strategy: Union[VotingStrategy, str]) -> VotingStrategy:
        try:
            strategy = VotingStrategy(strategy)
        except ValueError:
            raise ConfigurationError(
                f"Unknown voting strategy: {strategy}",
                config_section="ensemble",
                invalid_params={'voting_strategy': strategy}
            )
        if strategy == VotingStrategy.MAJORITY:
            raise ConfigurationError(
                "Majority voting is undefined for continuous forecasts",
                config_section="ensemble",
                invalid_params={'voting_strategy': strategy.value}
            )
        return strategy

    # Read accessors

    @property
    def weights(self) -> List[float]:
        return list(self._weights.values)

    @property
    def predictor_names(self) -> List[str]:
        return list(self._weights.names)

    @property
    def predictors(self) -> List[Predictor]:
        return list(self._predictors)

    @property
    def size(self) -> int:
        return len(self._predictors)

    def get_predictor(self, name: str) -> Optional[Predictor]:
        return next((p for p in self._predictors if p.name == name), None)

    # Membership

    def add_predictor(self, predictor: Predictor, weight: float = 1.0) -> None:
        """
        Append a predictor and renormalize

        Raises:
            ValueError: On a duplicate name or a negative weight
        """
        if predictor.name in self._weights.names:
            raise ValueError(f"Predictor '{predictor.name}' is already in the ensemble")
        if weight < 0 or not math.isfinite(weight):
            raise ValueError(f"Weight must be finite and non-negative, got {weight}")

        weights = EnsembleWeights.normalized(
            self._weights.names + (predictor.name,),
            self._weights.values + (float(weight),)
        )
        self._predictors = self._predictors + (predictor,)
        self._weights = weights
        self.logger.info("Predictor added", predictor=predictor.name, weights=weights.as_dict())

    def remove_predictor(self, name: str) -> bool:
        """
        Remove a predictor by name and renormalize

        Returns:
            False if no predictor has that name

        Raises:
            EmptyEnsembleError: If it is the last predictor
        """
        if name not in self._weights.names:
            self.logger.warning("Predictor not found, nothing removed", predictor=name)
            return False
        if self.size == 1:
            raise EmptyEnsembleError(f"Cannot remove '{name}': it is the last predictor")

        index = self._weights.names.index(name)
        names = self._weights.names[:index] + self._weights.names[index + 1:]
        values = self._weights.values[:index] + self._weights.values[index + 1:]
        if sum(values) <= 0:
            self.logger.warning("Remaining weights are all zero, using equal weights", predictor=name)
            values = (1.0,) * len(names)

        self._predictors = self._predictors[:index] + self._predictors[index + 1:]
        self._weights = EnsembleWeights.normalized(names, values)
        self.logger.info("Predictor removed", predictor=name, weights=self._weights.as_dict())
        return True

    def set_weights(self, weights: Sequence[float]) -> bool:
        """
        Replace all weights (normalized)

        Returns:
            False, leaving the weights unchanged, if the count does not match
            the predictors or the weights are negative or sum to zero
        """
        try:
            new_weights = EnsembleWeights.normalized(self._weights.names, list(weights))
        except ValueError as e:
            self.logger.warning("Weights rejected", error=str(e), weights=list(weights))
            return False
        self._weights = new_weights
        self.logger.info("Weights updated", weights=new_weights.as_dict())
        return True

    # Lifecycle

    def initialize(self) -> None:
        for predictor in self._predictors:
            predictor.initialize()
        self.logger.info("Ensemble members initialized", predictors=self.predictor_names)

    def train(self, series: ObservationSeries) -> Dict[str, Dict[str, Any]]:
        """
        Train every member on ``series``

        A member that fails to train is logged and reported in the result;
        the remaining members are still trained.

        Returns:
            Per-member status, keyed by predictor name
        """
        self.log_operation_start("train", samples=len(series), predictors=self.predictor_names)
        start_time = time.perf_counter()

        results: Dict[str, Dict[str, Any]] = {}
        for predictor in self._predictors:
            try:
                summary = predictor.train(series)
                results[predictor.name] = {'status': 'trained', **summary}
            except Exception as e:
                error_kind = classify_error(e)
                self.logger.warning(
                    "Predictor training failed",
                    predictor=predictor.name,
                    error_kind=error_kind,
                    error=str(e)
                )
                results[predictor.name] = {'status': 'failed', 'error_kind': error_kind, 'error': str(e)}

        self.metrics.record_training(len(series))
        trained = sum(1 for r in results.values() if r['status'] == 'trained')
        self.log_operation_end(
            "train",
            success=trained > 0,
            trained=trained,
            failed=len(results) - trained,
            duration_seconds=round(time.perf_counter() - start_time, 4)
        )
        return results

    # Prediction

    def confidence(self, day: int, history_length: int) -> float:
        cfg = self.config
        bonus = min(cfg.data_bonus_cap, history_length / cfg.data_bonus_divisor)
        raw = cfg.base_confidence - cfg.horizon_decay * day + bonus
        return MathKernel.clamp(raw, cfg.min_confidence, cfg.max_confidence)

    def _combine(self, votes: Sequence[float], weights: Sequence[float]) -> float:
        if self.voting_strategy == VotingStrategy.AVERAGE:
            return float(np.mean(votes))
        return float(np.dot(votes, weights))

    def _collect_votes(
        self,
        predictors: Sequence[Predictor],
        history: ObservationSeries,
        horizon: int
    ) -> List[List[float]]:
        votes = []
        for predictor in predictors:
            try:
                member_votes = [float(v) for v in predictor.forecast(history, horizon)]
            except Exception as e:
                raise PredictionError(
                    f"Predictor '{predictor.name}' failed: {e}",
                    predictor=predictor.name,
                    original_exception=e
                ) from e

            if len(member_votes) != horizon:
                raise PredictionError(
                    f"Predictor '{predictor.name}' returned {len(member_votes)} values for horizon {horizon}",
                    predictor=predictor.name
                )
            if not all(math.isfinite(v) for v in member_votes):
                raise PredictionError(
                    f"Predictor '{predictor.name}' returned a non-finite vote",
                    predictor=predictor.name
                )
            votes.append(member_votes)
        return votes

    def predict(self, history: ObservationSeries, horizon: Optional[int] = None) -> EnsembleForecast:
        """
        Forecast ``horizon`` days of the target reading

        Args:
            history: Chronologically ordered observations
            horizon: Days to forecast (defaults to ``default_horizon``)

        Returns:
            EnsembleForecast with exactly ``horizon`` points

        Raises:
            InsufficientDataError: If ``history`` is empty
            ValueError: If ``horizon`` is below 1
        """
        if horizon is None:
            horizon = self.config.default_horizon
        if horizon < 1:
            raise ValueError("horizon must be >= 1")

        start_time = time.perf_counter()
        history_length = len(history)
        if history_length == 0:
            raise InsufficientDataError(
                required=self.config.min_history,
                actual=0,
                component="ensemble"
            )

        if history_length < self.config.min_history:
            return self._fallback_forecast(
                history,
                horizon,
                start_time,
                reason=f"history shorter than {self.config.min_history}",
                error_kind="insufficient_data"
            )

        # One read of the current membership
        predictors, weights = self._predictors, self._weights

        try:
            votes = self._collect_votes(predictors, history, horizon)
        except PredictionError as e:
            cause = e.original_exception or e
            return self._fallback_forecast(
                history,
                horizon,
                start_time,
                reason=e.message,
                error_kind=classify_error(cause)
            )

        contributing = weights.as_dict()
        last_recorded_at = history.last_recorded_at
        points = []
        for day in range(1, horizon + 1):
            day_votes = [member_votes[day - 1] for member_votes in votes]
            points.append(
                ForecastPoint(
                    day_offset=day,
                    value=self._combine(day_votes, weights.values),
                    confidence=self.confidence(day, history_length),
                    source_label=ForecastSource.ENSEMBLE.value,
                    contributing_weights=dict(contributing),
                    target_date=day_offset_date(last_recorded_at, day)
                )
            )

        self.metrics.record_prediction()
        execution_ms = (time.perf_counter() - start_time) * 1000
        log_performance_metrics(
            self.logger,
            operation="ensemble_predict",
            duration_seconds=execution_ms / 1000,
            additional_metrics={'horizon': horizon, 'history_length': history_length}
        )
        return EnsembleForecast(
            points=tuple(points),
            metadata={
                'fallback': False,
                'voting_strategy': self.voting_strategy.value,
                'history_length': history_length,
                'horizon': horizon,
                'execution_time_ms': round(execution_ms, 3)
            }
        )

    def _fallback_forecast(
        self,
        history: ObservationSeries,
        horizon: int,
        start_time: float,
        reason: str,
        error_kind: str
    ) -> EnsembleForecast:
        self.logger.warning(
            "Primary pipeline unavailable, using trend fallback",
            reason=reason,
            error_kind=error_kind,
            history_length=len(history)
        )

        last_recorded_at = history.last_recorded_at
        points = tuple(
            ForecastPoint(
                day_offset=point.day_offset,
                value=point.value,
                confidence=point.confidence,
                source_label=ForecastSource.FALLBACK.value,
                target_date=day_offset_date(last_recorded_at, point.day_offset)
            )
            for point in self.fallback.forecast(history, horizon)
        )

        self.metrics.record_prediction()
        return EnsembleForecast(
            points=points,
            metadata={
                'fallback': True,
                'fallback_reason': reason,
                'error_kind': error_kind,
                'voting_strategy': self.voting_strategy.value,
                'history_length': len(history),
                'horizon': horizon,
                'execution_time_ms': round((time.perf_counter() - start_time) * 1000, 3)
            }
        )

    # Metrics

    def get_metrics(self) -> Dict[str, Any]:
        return {
            'ensemble': self.metrics.snapshot(),
            'members': {p.name: p.get_metrics() for p in self._predictors}
        }

    def reset_metrics(self) -> None:
        self.metrics.reset()
        for predictor in self._predictors:
            predictor.reset_metrics()

    def get_model_info(self) -> Dict[str, Any]:
        return {
            'predictors': [p.get_model_info() for p in self._predictors],
            'weights': self._weights.as_dict(),
            'voting_strategy': self.voting_strategy.value,
            'min_history': self.config.min_history,
            'metrics': self.metrics.to_dict()
        }
