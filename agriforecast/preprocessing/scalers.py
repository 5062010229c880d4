"""
Per-feature scalers.

Both scalers learn a ``center``/``scale`` pair per feature index and apply
``(x - center) / scale``. Parameters are a frozen snapshot replaced wholesale
by ``fit``; ``transform`` never changes them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Any, Optional, Sequence, Union

import numpy as np

from ..utils.exceptions import EmptyInputError, NotFittedError, InvalidFeatureError, ConfigurationError
from ..utils.helpers import validate_feature_matrix

Rows = Union[Sequence[Sequence[float]], np.ndarray]

# Denominators below this are treated as a constant feature
_ZERO_SCALE = 1e-12


@dataclass(frozen=True)
class ScalerParameters:
    """Fitted per-feature center and scale"""
    center: np.ndarray
    scale: np.ndarray
    fitted: bool = True

    @property
    def n_features(self) -> int:
        return int(self.center.size)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'center': self.center.tolist(),
            'scale': self.scale.tolist(),
            'fitted': self.fitted
        }


class FeatureScaler(ABC):
    """Base class of the feature scalers"""

    def __init__(self):
        self._params: Optional[ScalerParameters] = None

    @property
    def is_fitted(self) -> bool:
        return self._params is not None

    @property
    def n_features(self) -> Optional[int]:
        return self._params.n_features if self._params else None

    @abstractmethod
    def _compute(self, matrix: np.ndarray):
        """Return ``(center, raw_scale)`` for a validated matrix"""

    def fit(self, rows: Rows) -> "FeatureScaler":
        """
        Learn per-feature parameters

        Raises:
            EmptyInputError: If there are no rows
            InvalidFeatureError: If any value is non-finite
        """
        if len(rows) == 0:
            raise EmptyInputError(component=self.__class__.__name__)

        matrix = validate_feature_matrix(rows)
        center, scale = self._compute(matrix)
        scale = np.where(np.abs(scale) < _ZERO_SCALE, 1.0, scale)

        self._params = ScalerParameters(center=center.copy(), scale=scale.copy())
        return self

    def _checked(self, rows: Rows):
        params = self._params
        if params is None:
            raise NotFittedError(
                f"{self.__class__.__name__} must be fitted before transform",
                component=self.__class__.__name__
            )
        matrix = validate_feature_matrix(rows)
        if matrix.shape[1] != params.n_features:
            raise InvalidFeatureError(
                f"Expected {params.n_features} features, got {matrix.shape[1]}"
            )
        return params, matrix

    def transform(self, rows: Rows) -> np.ndarray:
        params, matrix = self._checked(rows)
        return (matrix - params.center) / params.scale

    def inverse_transform(self, rows: Rows) -> np.ndarray:
        params, matrix = self._checked(rows)
        return matrix * params.scale + params.center

    def fit_transform(self, rows: Rows) -> np.ndarray:
        return self.fit(rows).transform(rows)

    def get_params(self) -> Optional[ScalerParameters]:
        return self._params


class StandardScaler(FeatureScaler):
    """Zero mean, unit (population) standard deviation"""

    def _compute(self, matrix: np.ndarray):
        return matrix.mean(axis=0), matrix.std(axis=0)


class MinMaxScaler(FeatureScaler):
    """Maps each feature's observed range onto [0, 1]"""

    def _compute(self, matrix: np.ndarray):
        minimum = matrix.min(axis=0)
        return minimum, matrix.max(axis=0) - minimum


def create_scaler(scaler_type: str = "standard") -> FeatureScaler:
    """Scaler factory: ``"standard"`` or ``"min_max"``"""
    if scaler_type == "standard":
        return StandardScaler()
    if scaler_type == "min_max":
        return MinMaxScaler()
    raise ConfigurationError(f"Unknown scaler type: {scaler_type}", config_section="scaler")
