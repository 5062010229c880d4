"""
Data preprocessing for the weather forecasting pipeline.

Turns raw weather records into a clean, chronologically ordered
``ObservationSeries`` and provides the feature-engineering helpers used for
model inputs and diagnostics.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .observations import Observation, ObservationSeries, TIMESTAMP_COLUMNS
from ..utils.exceptions import EmptyInputError, InvalidFeatureError
from ..utils.logger import LoggerMixin, timed_operation

DAYS_PER_YEAR = 365.25


@dataclass
class ValidationResult:
    """Outcome of a record validation"""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {'is_valid': self.is_valid, 'errors': list(self.errors), 'warnings': list(self.warnings)}


class FeatureEngineering:
    """Feature construction helpers for weather series"""

    DIFF_FIELDS = ('temperature', 'humidity', 'pressure')

    @staticmethod
    def cyclical_day_of_year(moment: datetime) -> Tuple[float, float]:
        """Day of year encoded as ``(sin, cos)`` on the annual cycle"""
        angle = 2 * np.pi * moment.timetuple().tm_yday / DAYS_PER_YEAR
        return float(np.sin(angle)), float(np.cos(angle))

    @classmethod
    def extract_weather_features(cls, series: ObservationSeries) -> pd.DataFrame:
        """
        Feature table of a weather series

        Columns: every reading, ``<field>_diff`` (change to the next
        observation, 0 on the last row) for temperature, humidity and
        pressure, and ``season_sin`` / ``season_cos`` when timestamps exist.
        """
        df = series.to_dataframe()
        if df.empty:
            return df

        features = df.drop(columns=['recorded_at'])
        for name in cls.DIFF_FIELDS:
            if name in features.columns:
                features[f"{name}_diff"] = (features[name].shift(-1) - features[name]).fillna(0.0)

        timestamps = df['recorded_at']
        if timestamps.notna().all():
            cyclical = [cls.cyclical_day_of_year(ts) for ts in pd.to_datetime(timestamps)]
            features['season_sin'] = [c[0] for c in cyclical]
            features['season_cos'] = [c[1] for c in cyclical]

        return features

    @staticmethod
    def polynomial_features(features: Sequence[float], degree: int = 2) -> np.ndarray:
        """
        Raw features plus squares and pairwise products (degree >= 2) and
        cubes (degree >= 3)
        """
        base = np.asarray(features, dtype=float)
        parts = [base]
        if degree >= 2:
            parts.append(base ** 2)
            i, j = np.triu_indices(base.size, k=1)
            parts.append(base[i] * base[j])
        if degree >= 3:
            parts.append(base ** 3)
        return np.concatenate(parts)

    @staticmethod
    def lag_features(values: Sequence[float], lags: Sequence[int]) -> np.ndarray:
        """Rows of ``[x[t], x[t - lag] for lag in lags]`` for every complete t"""
        values = np.asarray(values, dtype=float)
        if not lags:
            raise ValueError("At least one lag is required")
        start = max(lags)
        rows = [[values[t]] + [values[t - lag] for lag in lags] for t in range(start, values.size)]
        return np.array(rows, dtype=float).reshape(-1, len(lags) + 1)

    @staticmethod
    def moving_average_features(values: Sequence[float], windows: Sequence[int]) -> np.ndarray:
        """Rows of ``[x[t], mean(last w values) for w in windows]``"""
        if not windows:
            raise ValueError("At least one window is required")
        series = pd.Series(np.asarray(values, dtype=float))
        columns = [series] + [series.rolling(window=w, min_periods=w).mean() for w in windows]
        table = pd.concat(columns, axis=1).iloc[max(windows) - 1:]
        return table.to_numpy(dtype=float)


class WeatherDataProcessor(LoggerMixin):
    """
    Cleans raw weather records into an observation series

    Records are sorted by timestamp, de-duplicated (last record wins) and
    rows failing validation are dropped with a warning.
    """

    # Hard bounds produce errors, soft bounds warnings
    VALID_RANGES: Dict[str, Tuple[float, float]] = {
        'temperature': (-50.0, 60.0),
        'humidity': (0.0, 100.0),
        'rainfall': (0.0, float('inf')),
        'pressure': (800.0, 1200.0),
    }
    RAINFALL_WARNING_MM = 500.0

    def __init__(self, required_fields: Sequence[str] = ('temperature',)):
        super().__init__()
        self.required_fields = tuple(required_fields)

    def validate_observation(self, record: Union[Observation, Mapping[str, Any]]) -> ValidationResult:
        readings = record.readings if isinstance(record, Observation) else record
        errors: List[str] = []
        warnings: List[str] = []

        for name in self.required_fields:
            if name not in readings:
                errors.append(f"Missing required reading '{name}'")

        for name, (low, high) in self.VALID_RANGES.items():
            if name not in readings:
                continue
            value = readings[name]
            if not (low <= value <= high):
                errors.append(f"{name} {value} is outside valid range ({low} to {high})")

        rainfall = readings.get('rainfall')
        if rainfall is not None and rainfall > self.RAINFALL_WARNING_MM:
            warnings.append(f"rainfall {rainfall}mm is unusually high")

        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    def _to_dataframe(self, data: Union[pd.DataFrame, Sequence[Mapping[str, Any]]]) -> pd.DataFrame:
        if isinstance(data, pd.DataFrame):
            return data.copy()
        return pd.DataFrame(list(data))

    @timed_operation("process_weather_data")
    def process(self, records: Union[pd.DataFrame, Sequence[Mapping[str, Any]]]) -> ObservationSeries:
        """
        Clean raw records into an ordered series

        Raises:
            EmptyInputError: If there are no records
        """
        df = self._to_dataframe(records)
        if df.empty:
            raise EmptyInputError("No weather records to process", component="WeatherDataProcessor")

        self.log_operation_start("process_weather_data", records=len(df))
        original_count = len(df)

        time_col = next((c for c in TIMESTAMP_COLUMNS if c in df.columns), None)
        if time_col is not None:
            df[time_col] = pd.to_datetime(df[time_col], errors='coerce')
            df = df[df[time_col].notna()]
            df = df.sort_values(time_col, kind='stable')
            df = df.drop_duplicates(subset=[time_col], keep='last').copy()

        reading_cols = [c for c in df.columns if c != time_col]
        df[reading_cols] = df[reading_cols].apply(pd.to_numeric, errors='coerce')
        finite = np.isfinite(df[reading_cols].to_numpy(dtype=float)).all(axis=1)
        if not finite.all():
            self.logger.warning("Dropping records with missing or non-finite readings", dropped=int((~finite).sum()))
        df = df[finite]

        observations = []
        rejected = 0
        for row in df.to_dict('records'):
            recorded_at = row.pop(time_col) if time_col else None
            try:
                observation = Observation(readings=row, recorded_at=recorded_at)
            except InvalidFeatureError as e:
                self.logger.warning("Invalid record skipped", error=str(e))
                rejected += 1
                continue

            result = self.validate_observation(observation)
            for message in result.warnings:
                self.logger.warning("Record warning", message=message)
            if not result.is_valid:
                self.logger.warning("Record failed validation", errors=result.errors)
                rejected += 1
                continue
            observations.append(observation)

        series = ObservationSeries(observations)
        self.log_operation_end(
            "process_weather_data",
            success=True,
            input_records=original_count,
            output_records=len(series),
            rejected=rejected
        )
        return series
