"""
Shared fixtures for the agriforecast test suite.
"""

from typing import Any, Dict, List

import numpy as np
import pandas as pd
import pytest

from agriforecast.config.forecast_config import ForecastConfig
from agriforecast.models.base import ModelState, Predictor
from agriforecast.preprocessing.observations import Observation, ObservationSeries


class ConstantPredictor(Predictor):
    """Predictor voting the same value for every day"""

    def __init__(self, name: str, value: float, target: str = "temperature"):
        super().__init__(name=name, target=target)
        self.value = value
        self.train_calls = 0

    def train(self, series: ObservationSeries) -> Dict[str, Any]:
        self._require_initialized("train")
        self.train_calls += 1
        self.state = ModelState.TRAINED
        self.metrics.record_training(len(series))
        return {'samples': len(series)}

    def predict(self, history: ObservationSeries) -> float:
        return self.forecast(history, 1)[0]

    def forecast(self, history: ObservationSeries, horizon: int) -> List[float]:
        self._require_initialized("predict")
        self.metrics.record_prediction()
        return [self.value] * horizon


class FailingPredictor(ConstantPredictor):
    """Predictor whose forecast always raises"""

    def __init__(self, name: str = "failing", error: Exception = None):
        super().__init__(name=name, value=0.0)
        self.error = error or RuntimeError("boom")

    def train(self, series: ObservationSeries) -> Dict[str, Any]:
        raise self.error

    def forecast(self, history: ObservationSeries, horizon: int) -> List[float]:
        raise self.error


def make_weather_series(
    n_days: int = 40,
    start: str = "2024-03-01",
    seed: int = 7
) -> ObservationSeries:
    """Seasonal-looking daily weather with small noise"""
    rng = np.random.default_rng(seed)
    dates = pd.date_range(start=start, periods=n_days, freq="D")
    days = np.arange(n_days)

    temperature = 24 + 3 * np.sin(2 * np.pi * days / 14) + rng.normal(0, 0.3, n_days)
    humidity = 65 - 5 * np.sin(2 * np.pi * days / 14) + rng.normal(0, 1.0, n_days)
    rainfall = np.clip(2 + rng.normal(0, 1.0, n_days), 0, None)
    pressure = 1012 + rng.normal(0, 2.0, n_days)

    return ObservationSeries(
        Observation(
            readings={
                'temperature': float(temperature[i]),
                'humidity': float(humidity[i]),
                'rainfall': float(rainfall[i]),
                'pressure': float(pressure[i]),
            },
            recorded_at=dates[i].to_pydatetime()
        )
        for i in range(n_days)
    )


def make_constant_series(n_days: int = 30, temperature: float = 25.0) -> ObservationSeries:
    dates = pd.date_range(start="2024-06-01", periods=n_days, freq="D")
    return ObservationSeries(
        Observation(
            readings={'temperature': temperature, 'humidity': 60.0, 'rainfall': 0.0, 'pressure': 1013.0},
            recorded_at=ts.to_pydatetime()
        )
        for ts in dates
    )


@pytest.fixture
def forecast_config():
    """Default configuration"""
    return ForecastConfig()


@pytest.fixture
def weather_series():
    return make_weather_series()


@pytest.fixture
def constant_series():
    """30 days of temperature fixed at 25.0"""
    return make_constant_series()


@pytest.fixture
def short_series():
    return make_weather_series(n_days=10)


@pytest.fixture
def constant_predictors():
    first = ConstantPredictor("first", 10.0)
    second = ConstantPredictor("second", 20.0)
    first.initialize()
    second.initialize()
    return first, second
