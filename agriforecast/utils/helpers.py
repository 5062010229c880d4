"""
Helper utilities for the forecasting core.

Feature-vector validation, date handling and small numeric conveniences.
"""

import math
from typing import Union, Optional, List, Sequence, Iterable
from datetime import datetime, date, timedelta

import numpy as np
import pandas as pd

from .exceptions import InvalidFeatureError


def find_non_finite(values: Iterable[float]) -> List[int]:
    """Return the positions of NaN / infinite entries"""
    invalid = []
    for index, value in enumerate(values):
        try:
            if not math.isfinite(float(value)):
                invalid.append(index)
        except (TypeError, ValueError):
            invalid.append(index)
    return invalid


def validate_feature_vector(
    values: Sequence[float],
    labels: Optional[Sequence[str]] = None
) -> np.ndarray:
    """
    Validate a feature vector before it reaches any numeric routine

    Args:
        values: Feature values
        labels: Optional feature names, used in the error message

    Returns:
        The vector as a float array

    Raises:
        InvalidFeatureError: If the vector is empty or holds NaN / infinity
    """
    values = list(values)
    if not values:
        raise InvalidFeatureError("Feature vector cannot be empty")

    invalid = find_non_finite(values)
    if invalid:
        names = [labels[i] for i in invalid] if labels and len(labels) == len(values) else []
        raise InvalidFeatureError(
            f"Invalid values found at indices: {', '.join(str(i) for i in invalid)}",
            indices=invalid,
            fields=names
        )

    return np.asarray(values, dtype=float)


def validate_feature_matrix(rows: Union[Sequence[Sequence[float]], np.ndarray]) -> np.ndarray:
    """
    Validate a 2-D block of feature vectors

    Raises:
        InvalidFeatureError: If rows have uneven width or any cell is non-finite
    """
    try:
        matrix = np.asarray(rows, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidFeatureError(f"Feature rows must be numeric with equal width: {e}")

    if matrix.ndim == 1:
        matrix = matrix.reshape(1, -1)
    if matrix.ndim != 2:
        raise InvalidFeatureError(f"Expected 2-D feature rows, got {matrix.ndim} dimensions")

    bad_columns = sorted({int(c) for c in np.argwhere(~np.isfinite(matrix))[:, 1]}) if matrix.size else []
    if bad_columns:
        raise InvalidFeatureError(
            f"Invalid values found at feature indices: {', '.join(str(i) for i in bad_columns)}",
            indices=bad_columns
        )
    return matrix


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Division that returns ``default`` for a zero or non-finite result"""
    if denominator == 0:
        return default
    result = numerator / denominator
    return result if math.isfinite(result) else default


def ensure_datetime(value: Union[str, datetime, date, pd.Timestamp, None]) -> Optional[datetime]:
    """
    Convert supported timestamp representations to ``datetime``

    Raises:
        ValueError: If the value cannot be parsed
    """
    if value is None:
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return pd.to_datetime(value).to_pydatetime()
    raise ValueError(f"Unsupported timestamp type: {type(value)}")


def day_offset_date(start: Optional[datetime], days: int) -> Optional[date]:
    """Calendar date ``days`` after ``start`` (None passes through)"""
    if start is None:
        return None
    return (start + timedelta(days=days)).date()
