"""
Numeric kernel and evaluation metrics shared by all predictors.

Elementary primitives (error metrics, correlation, activations) plus a small
evaluation record used by ``Predictor.evaluate``.
"""

from dataclasses import dataclass, asdict
from typing import Dict, List, Sequence, Union

import numpy as np

ArrayLike = Union[Sequence[float], np.ndarray]


def _pair(predicted: ArrayLike, actual: ArrayLike):
    predicted = np.asarray(predicted, dtype=float).ravel()
    actual = np.asarray(actual, dtype=float).ravel()
    if predicted.shape != actual.shape:
        raise ValueError(
            f"Length mismatch: predicted={predicted.size}, actual={actual.size}"
        )
    if predicted.size == 0:
        raise ValueError("Empty input arrays")
    return predicted, actual


class MathKernel:
    """Stateless numeric primitives"""

    @staticmethod
    def mse(predicted: ArrayLike, actual: ArrayLike) -> float:
        """Mean squared error"""
        predicted, actual = _pair(predicted, actual)
        return float(np.mean((predicted - actual) ** 2))

    @staticmethod
    def mae(predicted: ArrayLike, actual: ArrayLike) -> float:
        """Mean absolute error"""
        predicted, actual = _pair(predicted, actual)
        return float(np.mean(np.abs(predicted - actual)))

    @staticmethod
    def rmse(predicted: ArrayLike, actual: ArrayLike) -> float:
        return float(np.sqrt(MathKernel.mse(predicted, actual)))

    @staticmethod
    def r_squared(predicted: ArrayLike, actual: ArrayLike) -> float:
        """Coefficient of determination; 1.0 when the actuals are constant"""
        predicted, actual = _pair(predicted, actual)
        ss_tot = float(np.sum((actual - actual.mean()) ** 2))
        ss_res = float(np.sum((actual - predicted) ** 2))
        if ss_tot == 0:
            return 1.0
        return 1.0 - ss_res / ss_tot

    @staticmethod
    def correlation(x: ArrayLike, y: ArrayLike) -> float:
        """Pearson correlation; 0.0 when either side has zero variance"""
        x, y = _pair(x, y)
        dx = x - x.mean()
        dy = y - y.mean()
        denominator = np.sqrt(np.sum(dx ** 2)) * np.sqrt(np.sum(dy ** 2))
        if denominator == 0:
            return 0.0
        return float(np.sum(dx * dy) / denominator)

    @staticmethod
    def relu(x):
        """Rectified linear unit (scalar or array)"""
        return np.maximum(0.0, x)

    @staticmethod
    def relu_derivative(x):
        """Subgradient of ReLU; zero at the origin"""
        return (np.asarray(x) > 0).astype(float)

    @staticmethod
    def sigmoid(x):
        return 1.0 / (1.0 + np.exp(-np.asarray(x, dtype=float)))

    @staticmethod
    def softmax(values: ArrayLike) -> np.ndarray:
        values = np.asarray(values, dtype=float)
        exps = np.exp(values - values.max())
        return exps / exps.sum()

    @staticmethod
    def linear_trend(values: ArrayLike) -> float:
        """
        Per-step trend of a window: ``(last - first) / len(window)``

        Returns 0.0 for windows with fewer than two values.
        """
        values = np.asarray(values, dtype=float).ravel()
        if values.size < 2:
            return 0.0
        return float((values[-1] - values[0]) / values.size)

    @staticmethod
    def clamp(value: float, lower: float, upper: float) -> float:
        return float(min(upper, max(lower, value)))


@dataclass
class ModelEvaluation:
    """Accuracy summary of a predictor against held-out targets"""
    mse: float
    mae: float
    rmse: float
    r_squared: float
    correlation: float
    accuracy: float
    samples: int

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def evaluate_predictions(predicted: ArrayLike, actual: ArrayLike) -> ModelEvaluation:
    """
    Compute the standard evaluation metrics for a set of predictions

    ``accuracy`` is the correlation clipped at zero, so an anti-correlated
    predictor scores 0 rather than a negative value.

    Args:
        predicted: Predicted values
        actual: Observed values

    Returns:
        ModelEvaluation
    """
    predicted, actual = _pair(predicted, actual)
    correlation = MathKernel.correlation(predicted, actual)
    return ModelEvaluation(
        mse=MathKernel.mse(predicted, actual),
        mae=MathKernel.mae(predicted, actual),
        rmse=MathKernel.rmse(predicted, actual),
        r_squared=MathKernel.r_squared(predicted, actual),
        correlation=correlation,
        accuracy=max(0.0, correlation),
        samples=int(predicted.size)
    )


__all__: List[str] = ["MathKernel", "ModelEvaluation", "evaluate_predictions"]
