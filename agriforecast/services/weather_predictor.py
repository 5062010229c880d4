"""
Weather forecasting service.

Assembles the canonical weather ensemble (autoregressive model on
temperature plus a feed-forward network on the main weather readings) and
derives humidity and rainfall estimates from the temperature forecast.
"""

import asyncio
import functools
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..config.forecast_config import ForecastConfig, get_config
from ..ensemble.ensemble_forecaster import EnsembleForecaster, EnsembleForecast
from ..models.autoregressive import AutoregressiveDifferencingModel
from ..models.feed_forward import FeedForwardPredictor
from ..preprocessing.data_processor import WeatherDataProcessor
from ..preprocessing.observations import ObservationSeries
from ..utils.logger import LoggerMixin, configure_logging_from_config, timed_operation
from ..utils.metrics import MathKernel

WEATHER_FEATURES = ('temperature', 'humidity', 'rainfall', 'pressure')


@dataclass(frozen=True)
class WeatherForecast:
    """One forecast day of the weather service"""
    day: int
    target_date: Optional[date]
    temperature: float
    humidity: Optional[int]
    rainfall: Optional[float]
    confidence: float
    source: str
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'day': self.day,
            'date': self.target_date.isoformat() if self.target_date else None,
            'temperature': self.temperature,
            'humidity': self.humidity,
            'rainfall': self.rainfall,
            'confidence': self.confidence,
            'source': self.source,
            'metadata': dict(self.metadata)
        }


class WeatherForecastService(LoggerMixin):
    """
    Canonical weather ensemble

    Members: AR(3, 1, 2) on temperature (weight 0.6) and a feed-forward
    network with 15 hidden units and learning rate 0.005 on temperature,
    humidity, rainfall and pressure (weight 0.4).
    """

    AR_ORDER = (3, 1, 2)
    AR_WEIGHT = 0.6
    NN_HIDDEN_SIZE = 15
    NN_LEARNING_RATE = 0.005
    NN_WEIGHT = 0.4

    # Linear response of secondary readings to the temperature forecast
    REFERENCE_TEMPERATURE = 25.0
    TEMPERATURE_CORRELATION = {'humidity': -0.3, 'rainfall': 0.1}
    SECONDARY_WINDOW = 7

    def __init__(self, config: Optional[ForecastConfig] = None):
        super().__init__()
        self.config = config or get_config()
        configure_logging_from_config(self.config)

        p, d, q = self.AR_ORDER
        self.autoregressive = AutoregressiveDifferencingModel(
            name="autoregressive",
            target="temperature",
            p=p, d=d, q=q,
            config=self.config.autoregressive
        )
        self.neural_network = FeedForwardPredictor(
            name="neural_network",
            target="temperature",
            feature_fields=WEATHER_FEATURES,
            hidden_size=self.NN_HIDDEN_SIZE,
            learning_rate=self.NN_LEARNING_RATE,
            config=self.config.feed_forward
        )
        self.ensemble = EnsembleForecaster(
            predictors=[self.autoregressive, self.neural_network],
            weights=[self.AR_WEIGHT, self.NN_WEIGHT],
            target="temperature",
            config=self.config.ensemble,
            fallback_config=self.config.fallback
        )
        self.processor = WeatherDataProcessor(required_fields=WEATHER_FEATURES)

    def initialize(self) -> None:
        self.ensemble.initialize()

    def prepare(self, records: Union[pd.DataFrame, Sequence[Mapping[str, Any]]]) -> ObservationSeries:
        """Clean raw weather records into a series"""
        return self.processor.process(records)

    def train(self, series: ObservationSeries) -> Dict[str, Dict[str, Any]]:
        return self.ensemble.train(series)

    def estimate_secondary(self, history: ObservationSeries, reading: str, temperature: float) -> float:
        """
        Estimate a reading from its recent level, its recent trend and the
        forecast temperature's departure from 25 degrees
        """
        recent = history.tail(self.SECONDARY_WINDOW).values(reading)
        correlation = self.TEMPERATURE_CORRELATION.get(reading, 0.0)
        temperature_effect = (temperature - self.REFERENCE_TEMPERATURE) * correlation
        return float(np.mean(recent)) + MathKernel.linear_trend(recent) + temperature_effect

    @timed_operation("weather_forecast")
    def forecast(self, history: ObservationSeries, horizon: Optional[int] = None) -> List[WeatherForecast]:
        """
        Multi-day weather forecast

        Temperature and rainfall are rounded to 0.1, humidity to a whole
        percentage in [0, 100]; rainfall is never negative. Humidity and
        rainfall are ``None`` when the history does not carry them.

        Raises:
            InsufficientDataError: If ``history`` is empty
        """
        result: EnsembleForecast = self.ensemble.predict(history, horizon)
        available = set(history.fields)

        forecasts = []
        for point in result:
            humidity = rainfall = None
            if 'humidity' in available:
                humidity = int(MathKernel.clamp(
                    round(self.estimate_secondary(history, 'humidity', point.value)), 0, 100
                ))
            if 'rainfall' in available:
                rainfall = max(0.0, round(self.estimate_secondary(history, 'rainfall', point.value), 1))

            forecasts.append(
                WeatherForecast(
                    day=point.day_offset,
                    target_date=point.target_date,
                    temperature=round(point.value, 1),
                    humidity=humidity,
                    rainfall=rainfall,
                    confidence=point.confidence,
                    source=point.source_label,
                    metadata={
                        'fallback': result.is_fallback,
                        'contributions': dict(point.contributing_weights),
                        'voting_strategy': result.metadata.get('voting_strategy')
                    }
                )
            )

        self.logger.info(
            "Weather forecast generated",
            horizon=len(forecasts),
            fallback=result.is_fallback,
            history_length=len(history)
        )
        return forecasts

    async def forecast_async(
        self,
        history: ObservationSeries,
        horizon: Optional[int] = None
    ) -> List[WeatherForecast]:
        """Run ``forecast`` in the default executor"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(self.forecast, history, horizon))

    def get_model_metrics(self) -> Dict[str, Any]:
        return self.ensemble.get_metrics()

    def get_model_info(self) -> Dict[str, Any]:
        return self.ensemble.get_model_info()
