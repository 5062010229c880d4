"""
Tests for weather record cleaning and feature engineering.
"""

from datetime import datetime

import numpy as np
import pandas as pd
import pytest

from agriforecast.preprocessing.data_processor import FeatureEngineering, WeatherDataProcessor
from agriforecast.preprocessing.observations import Observation
from agriforecast.utils.exceptions import EmptyInputError


@pytest.fixture
def processor():
    return WeatherDataProcessor(required_fields=('temperature', 'humidity'))


def record(day, temperature=20.0, humidity=55.0, **extra):
    return {'timestamp': f"2024-04-{day:02d}", 'temperature': temperature, 'humidity': humidity, **extra}


class TestWeatherDataProcessor:

    def test_sorts_and_deduplicates(self, processor):
        series = processor.process([
            record(3, temperature=23.0),
            record(1, temperature=21.0),
            record(2, temperature=22.0),
            record(2, temperature=29.0),
        ])

        assert len(series) == 3
        assert list(series.values('temperature')) == [21.0, 29.0, 23.0]
        assert series.last_recorded_at == datetime(2024, 4, 3)

    def test_drops_invalid_rows(self, processor):
        series = processor.process([
            record(1),
            record(2, humidity=150.0),
            record(3, temperature=float('nan')),
            record(4, temperature=-80.0),
            record(5),
        ])

        assert len(series) == 2
        assert [o.recorded_at.day for o in series] == [1, 5]

    def test_unparseable_timestamp_dropped(self, processor):
        series = processor.process([record(1), {'timestamp': 'not a date', 'temperature': 20.0, 'humidity': 50.0}])
        assert len(series) == 1

    def test_accepts_dataframe(self, processor):
        df = pd.DataFrame([record(1), record(2)])
        assert len(processor.process(df)) == 2

    def test_empty_input(self, processor):
        with pytest.raises(EmptyInputError):
            processor.process([])

    def test_validate_observation(self, processor):
        result = processor.validate_observation({'temperature': 20.0, 'pressure': 700.0})

        assert not result.is_valid
        assert any("humidity" in e for e in result.errors)
        assert any("pressure" in e for e in result.errors)

    def test_heavy_rainfall_is_warning(self, processor):
        observation = Observation(readings={'temperature': 20.0, 'humidity': 90.0, 'rainfall': 600.0})
        result = processor.validate_observation(observation)

        assert result.is_valid
        assert len(result.warnings) == 1


class TestFeatureEngineering:

    def test_weather_features(self, weather_series):
        features = FeatureEngineering.extract_weather_features(weather_series)

        assert len(features) == 40
        assert {'temperature_diff', 'humidity_diff', 'pressure_diff', 'season_sin', 'season_cos'} <= set(features.columns)
        assert 'rainfall_diff' not in features.columns
        assert features['temperature_diff'].iloc[-1] == 0.0

        temperatures = weather_series.values('temperature')
        assert features['temperature_diff'].iloc[0] == pytest.approx(temperatures[1] - temperatures[0])

    def test_cyclical_encoding_on_unit_circle(self):
        sin, cos = FeatureEngineering.cyclical_day_of_year(datetime(2024, 7, 15))
        assert sin ** 2 + cos ** 2 == pytest.approx(1.0)

    def test_polynomial_features(self):
        expanded = FeatureEngineering.polynomial_features([1.0, 2.0, 3.0], degree=2)

        assert expanded.shape == (9,)
        np.testing.assert_array_equal(expanded[:3], [1.0, 2.0, 3.0])
        np.testing.assert_array_equal(expanded[3:6], [1.0, 4.0, 9.0])
        np.testing.assert_array_equal(expanded[6:], [2.0, 3.0, 6.0])
        assert FeatureEngineering.polynomial_features([1.0, 2.0, 3.0], degree=3).shape == (12,)

    def test_lag_features(self):
        rows = FeatureEngineering.lag_features(np.arange(10.0), lags=[1, 3])

        assert rows.shape == (7, 3)
        np.testing.assert_array_equal(rows[0], [3.0, 2.0, 0.0])

    def test_moving_average_features(self):
        rows = FeatureEngineering.moving_average_features(np.arange(10.0), windows=[2, 4])

        assert rows.shape == (7, 3)
        np.testing.assert_allclose(rows[0], [3.0, 2.5, 1.5])

    def test_window_arguments_required(self):
        with pytest.raises(ValueError):
            FeatureEngineering.lag_features([1.0, 2.0], lags=[])
        with pytest.raises(ValueError):
            FeatureEngineering.moving_average_features([1.0, 2.0], windows=[])
