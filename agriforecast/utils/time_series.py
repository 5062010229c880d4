"""
Time-series diagnostics: decomposition, autocorrelation, anomaly detection.
"""

from dataclasses import dataclass
from typing import List, Sequence, Union

import numpy as np
import pandas as pd

ArrayLike = Union[Sequence[float], np.ndarray]


@dataclass
class Decomposition:
    """Additive decomposition of a series"""
    trend: np.ndarray
    seasonal: np.ndarray
    residual: np.ndarray


def decompose(values: ArrayLike, season_length: int = 12) -> Decomposition:
    """
    Additive decomposition into trend, seasonal and residual components

    The trend is a centered moving average of width ``season_length``
    (shrinking at the edges), the seasonal component is the mean detrended
    value at each position in the season.

    Args:
        values: Series values
        season_length: Season period in steps

    Returns:
        Decomposition with arrays of the input length
    """
    if season_length < 1:
        raise ValueError("season_length must be >= 1")

    series = pd.Series(np.asarray(values, dtype=float))
    if series.empty:
        empty = np.array([], dtype=float)
        return Decomposition(trend=empty, seasonal=empty, residual=empty)

    half = season_length // 2
    trend = series.rolling(window=2 * half + 1, center=True, min_periods=1).mean()

    detrended = series - trend
    positions = np.arange(len(series)) % season_length
    seasonal_means = detrended.groupby(positions).mean()
    seasonal = seasonal_means.reindex(positions).to_numpy()

    residual = series.to_numpy() - trend.to_numpy() - seasonal
    return Decomposition(
        trend=trend.to_numpy(),
        seasonal=seasonal,
        residual=residual
    )


def autocorrelation(values: ArrayLike, max_lag: int = 10) -> List[float]:
    """
    Sample autocorrelation for lags ``0..max_lag``

    Lags beyond the series length and constant series report 0.0 (lag 0 of a
    constant series also reports 0.0).
    """
    data = np.asarray(values, dtype=float)
    n = data.size
    centered = data - data.mean() if n else data
    denominator = float(np.sum(centered ** 2))

    correlations = []
    for lag in range(max_lag + 1):
        if denominator == 0 or lag >= n:
            correlations.append(0.0)
            continue
        numerator = float(np.sum(centered[: n - lag] * centered[lag:]))
        correlations.append(numerator / denominator)
    return correlations


def detect_anomalies(values: ArrayLike, threshold: float = 2.0) -> List[int]:
    """Indices whose absolute z-score exceeds ``threshold``"""
    data = np.asarray(values, dtype=float)
    if data.size == 0:
        return []
    std = data.std()
    if std == 0:
        return []
    z_scores = np.abs((data - data.mean()) / std)
    return [int(i) for i in np.flatnonzero(z_scores > threshold)]
