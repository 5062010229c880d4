"""
Tests for the weather forecasting service.
"""

import pytest

from agriforecast.preprocessing.observations import ObservationSeries
from agriforecast.services.weather_predictor import WeatherForecast, WeatherForecastService
from agriforecast.utils.exceptions import InsufficientDataError

from conftest import make_constant_series


@pytest.fixture
def service(forecast_config):
    service = WeatherForecastService(config=forecast_config)
    service.initialize()
    return service


@pytest.fixture
def trained_service(service, weather_series):
    service.train(weather_series)
    return service


class TestWeatherForecastService:

    def test_members(self, service):
        assert service.ensemble.predictor_names == ["autoregressive", "neural_network"]
        assert service.ensemble.weights.as_dict() == pytest.approx({'autoregressive': 0.6, 'neural_network': 0.4})
        assert service.neural_network.hidden_size == 15
        assert service.neural_network.learning_rate == 0.005

    def test_constant_weather(self, service, constant_series):
        service.train(constant_series)
        forecasts = service.forecast(constant_series)

        assert len(forecasts) == 7
        for day, forecast in enumerate(forecasts, start=1):
            assert isinstance(forecast, WeatherForecast)
            assert forecast.day == day
            assert forecast.temperature == pytest.approx(25.0, abs=2.0)
            assert forecast.confidence >= 0.6
            assert forecast.humidity == 60
            assert forecast.rainfall == 0.0
            assert forecast.source == "ensemble"
        assert forecasts[0].target_date.isoformat() == "2024-07-01"

    def test_forecast_shape_and_rounding(self, trained_service, weather_series):
        forecasts = trained_service.forecast(weather_series, horizon=5)

        assert len(forecasts) == 5
        for forecast in forecasts:
            assert forecast.temperature == round(forecast.temperature, 1)
            assert isinstance(forecast.humidity, int)
            assert 0 <= forecast.humidity <= 100
            assert forecast.rainfall >= 0.0
            assert 0.0 < forecast.confidence <= 0.99

    def test_short_history_uses_fallback(self, trained_service):
        history = make_constant_series(n_days=10, temperature=18.0)
        forecasts = trained_service.forecast(history)

        assert all(f.source == "fallback" for f in forecasts)
        assert all(f.metadata['fallback'] for f in forecasts)
        assert [f.temperature for f in forecasts] == [18.0] * 7
        assert forecasts[0].confidence == pytest.approx(0.7)

    def test_untrained_service_falls_back(self, service, constant_series):
        forecasts = service.forecast(constant_series, horizon=3)
        assert [f.source for f in forecasts] == ["fallback"] * 3

    def test_empty_history(self, service):
        with pytest.raises(InsufficientDataError):
            service.forecast(ObservationSeries())

    def test_temperature_only_history(self, trained_service):
        history = ObservationSeries.from_values([20.0] * 20, start="2024-05-01")
        forecasts = trained_service.forecast(history, horizon=2)

        assert all(f.humidity is None and f.rainfall is None for f in forecasts)

    def test_estimate_secondary(self, service, constant_series):
        assert service.estimate_secondary(constant_series, 'humidity', 35.0) == pytest.approx(57.0)
        assert service.estimate_secondary(constant_series, 'rainfall', 35.0) == pytest.approx(1.0)

    def test_prepare_records(self, service):
        records = [
            {'date': f"2024-05-{day:02d}", 'temperature': 20.0 + day, 'humidity': 50.0,
             'rainfall': 0.0, 'pressure': 1010.0}
            for day in range(1, 6)
        ]
        records.append({'date': "2024-05-06", 'temperature': 20.0, 'humidity': 150.0,
                        'rainfall': 0.0, 'pressure': 1010.0})

        series = service.prepare(records)

        assert len(series) == 5
        assert series.fields == ['temperature', 'humidity', 'rainfall', 'pressure']

    def test_model_info_and_metrics(self, trained_service, weather_series):
        trained_service.forecast(weather_series)

        metrics = trained_service.get_model_metrics()
        info = trained_service.get_model_info()

        assert metrics['ensemble'].prediction_count == 1
        assert set(metrics['members']) == {"autoregressive", "neural_network"}
        assert info['voting_strategy'] == "weighted"

    def test_to_dict(self, service, constant_series):
        service.train(constant_series)
        payload = service.forecast(constant_series, horizon=1)[0].to_dict()

        assert payload['date'] == "2024-07-01"
        assert set(payload) >= {'temperature', 'humidity', 'rainfall', 'confidence', 'source'}

    @pytest.mark.asyncio
    async def test_forecast_async(self, service, constant_series):
        service.train(constant_series)
        forecasts = await service.forecast_async(constant_series, horizon=3)

        assert len(forecasts) == 3
        assert forecasts[0].temperature == pytest.approx(25.0, abs=2.0)
