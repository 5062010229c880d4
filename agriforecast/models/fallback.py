"""
Trend extrapolation used when the primary pipeline cannot produce a forecast.
"""

from dataclasses import dataclass
from typing import List, Optional

from ..config.forecast_config import FallbackConfig, get_config
from ..preprocessing.observations import ObservationSeries
from ..utils.exceptions import InsufficientDataError
from ..utils.metrics import MathKernel


@dataclass(frozen=True)
class TrendPoint:
    day_offset: int
    value: float
    confidence: float


class TrendFallbackPredictor:
    """
    Linear extrapolation of the last ``window`` values of ``target``

    Stateless; needs no training. Confidence starts lower and decays faster
    than the ensemble's.
    """

    def __init__(self, target: str = "temperature", config: Optional[FallbackConfig] = None):
        self.target = target
        self.config = config or get_config().fallback

    def confidence(self, day: int) -> float:
        return max(
            self.config.confidence_floor,
            self.config.start_confidence - self.config.confidence_decay * day
        )

    def forecast(self, history: ObservationSeries, horizon: int) -> List[TrendPoint]:
        """
        Raises:
            InsufficientDataError: If ``history`` is empty
        """
        if len(history) == 0:
            raise InsufficientDataError(required=1, actual=0, component="trend_fallback")
        if horizon < 1:
            raise ValueError("horizon must be >= 1")

        window = history.tail(self.config.window).values(self.target)
        trend = MathKernel.linear_trend(window)
        last = float(window[-1])

        return [
            TrendPoint(day_offset=day, value=last + trend * day, confidence=self.confidence(day))
            for day in range(1, horizon + 1)
        ]
