"""
Tests for observations, observation series and feature-vector validation.
"""

from datetime import datetime

import numpy as np
import pytest

from agriforecast.preprocessing.observations import Observation, ObservationSeries
from agriforecast.utils.exceptions import InvalidFeatureError
from agriforecast.utils.helpers import validate_feature_matrix, validate_feature_vector


class TestObservation:

    def test_readings_are_read_only(self):
        observation = Observation(readings={'temperature': 21.0}, recorded_at="2024-05-01")

        with pytest.raises(TypeError):
            observation.readings['temperature'] = 30.0
        assert observation.recorded_at == datetime(2024, 5, 1)

    def test_non_finite_readings_named(self):
        with pytest.raises(InvalidFeatureError) as exc_info:
            Observation(readings={'temperature': float('nan'), 'humidity': 50.0, 'rainfall': float('inf')})

        assert exc_info.value.fields == ['temperature', 'rainfall']

    def test_non_numeric_reading(self):
        with pytest.raises(InvalidFeatureError):
            Observation(readings={'temperature': 'warm'})

    def test_with_readings(self):
        observation = Observation(readings={'temperature': 21.0, 'humidity': 40.0})
        updated = observation.with_readings(temperature=25.0)

        assert updated['temperature'] == 25.0
        assert updated['humidity'] == 40.0
        assert observation['temperature'] == 21.0


class TestObservationSeries:

    def test_sequence_behaviour(self, weather_series):
        assert len(weather_series) == 40
        assert isinstance(weather_series[0], Observation)
        assert isinstance(weather_series[5:10], ObservationSeries)
        assert len(weather_series[5:10]) == 5
        assert len(list(weather_series)) == 40

    def test_tail(self, weather_series):
        assert len(weather_series.tail(7)) == 7
        assert weather_series.tail(7)[-1] is weather_series[-1]
        assert len(weather_series.tail(100)) == 40
        assert len(weather_series.tail(0)) == 0

    def test_values_and_matrix(self, weather_series):
        temperatures = weather_series.values('temperature')
        matrix = weather_series.matrix(['temperature', 'pressure'])

        assert temperatures.shape == (40,)
        assert matrix.shape == (40, 2)
        np.testing.assert_array_equal(matrix[:, 0], temperatures)

    def test_missing_reading(self, weather_series):
        with pytest.raises(KeyError):
            weather_series.values('wind_speed')

    def test_fields(self, weather_series):
        assert weather_series.fields == ['temperature', 'humidity', 'rainfall', 'pressure']
        assert ObservationSeries().fields == []

    def test_order_is_preserved(self):
        series = ObservationSeries.from_records([
            {'recorded_at': '2024-01-03', 'temperature': 3.0},
            {'recorded_at': '2024-01-01', 'temperature': 1.0},
        ])
        assert list(series.values('temperature')) == [3.0, 1.0]

    def test_from_records(self):
        series = ObservationSeries.from_records([
            {'timestamp': '2024-01-01', 'temperature': 20.0, 'humidity': 50.0},
            {'timestamp': '2024-01-02', 'temperature': 21.0, 'humidity': 55.0},
        ])

        assert series.fields == ['temperature', 'humidity']
        assert series.last_recorded_at == datetime(2024, 1, 2)

    def test_dataframe_round_trip(self, weather_series):
        df = weather_series.to_dataframe()
        restored = ObservationSeries.from_dataframe(df)

        assert list(df.columns) == ['recorded_at', 'temperature', 'humidity', 'rainfall', 'pressure']
        np.testing.assert_allclose(restored.values('humidity'), weather_series.values('humidity'))
        assert restored.last_recorded_at == weather_series.last_recorded_at

    def test_from_values(self):
        series = ObservationSeries.from_values([1.0, 2.0, 3.0], name='rainfall', start='2024-02-01')

        assert series.fields == ['rainfall']
        assert series.last_recorded_at == datetime(2024, 2, 3)
        assert ObservationSeries.from_values([1.0]).last_recorded_at is None

    def test_append_returns_new_series(self, weather_series):
        extended = weather_series.append(Observation(readings={'temperature': 1.0}))
        assert len(extended) == 41
        assert len(weather_series) == 40


class TestFeatureValidation:

    def test_nan_at_index_two(self):
        with pytest.raises(InvalidFeatureError) as exc_info:
            validate_feature_vector([1.0, 2.0, float('nan'), 4.0])

        assert exc_info.value.indices == [2]
        assert "2" in str(exc_info.value)

    def test_every_bad_index_listed(self):
        with pytest.raises(InvalidFeatureError) as exc_info:
            validate_feature_vector([float('inf'), 1.0, float('-inf'), float('nan')])
        assert exc_info.value.indices == [0, 2, 3]

    def test_labels_reported(self):
        with pytest.raises(InvalidFeatureError) as exc_info:
            validate_feature_vector([1.0, float('nan')], labels=['temperature', 'humidity'])
        assert exc_info.value.fields == ['humidity']

    def test_empty_vector(self):
        with pytest.raises(InvalidFeatureError):
            validate_feature_vector([])

    def test_valid_vector(self):
        np.testing.assert_array_equal(validate_feature_vector([1, 2, 3]), np.array([1.0, 2.0, 3.0]))

    def test_matrix_ragged(self):
        with pytest.raises(InvalidFeatureError):
            validate_feature_matrix([[1.0, 2.0], [3.0]])

    def test_matrix_single_row(self):
        assert validate_feature_matrix([1.0, 2.0]).shape == (1, 2)
