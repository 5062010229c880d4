"""
Domain services built on the ensemble core.
"""

from .weather_predictor import WeatherForecastService, WeatherForecast

__all__ = ["WeatherForecastService", "WeatherForecast"]
