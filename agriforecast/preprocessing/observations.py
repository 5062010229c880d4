"""
Observation records and ordered observation series.

An ``Observation`` is an immutable, timestamped set of named readings; an
``ObservationSeries`` is the ordered history every predictor consumes.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from ..utils.exceptions import InvalidFeatureError
from ..utils.helpers import ensure_datetime

TIMESTAMP_COLUMNS = ('recorded_at', 'timestamp', 'datetime', 'date', 'time')


@dataclass(frozen=True)
class Observation:
    """
    Timestamped record of named, finite readings

    Readings are exposed through a read-only mapping. Construction fails with
    ``InvalidFeatureError`` naming every non-finite reading.
    """
    readings: Mapping[str, float]
    recorded_at: Optional[datetime] = None

    def __post_init__(self):
        values: Dict[str, float] = {}
        invalid: List[str] = []
        for name, value in dict(self.readings).items():
            try:
                number = float(value)
            except (TypeError, ValueError):
                invalid.append(name)
                continue
            if not math.isfinite(number):
                invalid.append(name)
            values[name] = number

        if invalid:
            raise InvalidFeatureError(
                f"Non-finite readings: {', '.join(invalid)}",
                fields=invalid
            )

        object.__setattr__(self, 'readings', MappingProxyType(values))
        object.__setattr__(self, 'recorded_at', ensure_datetime(self.recorded_at))

    def __getitem__(self, name: str) -> float:
        return self.readings[name]

    def get(self, name: str, default: Optional[float] = None) -> Optional[float]:
        return self.readings.get(name, default)

    @property
    def fields(self) -> List[str]:
        return list(self.readings.keys())

    def with_readings(self, **updates: float) -> "Observation":
        """Copy of this observation with some readings replaced"""
        readings = dict(self.readings)
        readings.update(updates)
        return Observation(readings=readings, recorded_at=self.recorded_at)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.readings)
        data['recorded_at'] = self.recorded_at.isoformat() if self.recorded_at else None
        return data


@dataclass(frozen=True)
class ObservationSeries:
    """
    Ordered sequence of observations

    Chronological order is the caller's responsibility; the series never
    sorts its contents.
    """
    observations: Sequence[Observation] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, 'observations', tuple(self.observations))

    def __len__(self) -> int:
        return len(self.observations)

    def __iter__(self) -> Iterator[Observation]:
        return iter(self.observations)

    def __getitem__(self, index: Union[int, slice]):
        if isinstance(index, slice):
            return ObservationSeries(self.observations[index])
        return self.observations[index]

    def __bool__(self) -> bool:
        return bool(self.observations)

    @property
    def fields(self) -> List[str]:
        """Reading names present on every observation, in first-seen order"""
        if not self.observations:
            return []
        common = set(self.observations[0].fields)
        for observation in self.observations[1:]:
            common &= set(observation.fields)
        return [name for name in self.observations[0].fields if name in common]

    @property
    def last_recorded_at(self) -> Optional[datetime]:
        if not self.observations:
            return None
        return self.observations[-1].recorded_at

    def tail(self, count: int) -> "ObservationSeries":
        """The last ``count`` observations (all of them if fewer)"""
        if count <= 0:
            return ObservationSeries()
        return ObservationSeries(self.observations[-count:])

    def append(self, observation: Observation) -> "ObservationSeries":
        """New series with ``observation`` added at the end"""
        return ObservationSeries(self.observations + (observation,))

    def values(self, name: str) -> np.ndarray:
        """
        Values of one reading across the series

        Raises:
            KeyError: If any observation lacks the reading
        """
        try:
            return np.array([observation[name] for observation in self.observations], dtype=float)
        except KeyError:
            raise KeyError(f"Reading '{name}' missing from at least one observation")

    def matrix(self, names: Sequence[str]) -> np.ndarray:
        """Rows x readings matrix for the given reading names"""
        if not self.observations:
            return np.empty((0, len(names)), dtype=float)
        return np.column_stack([self.values(name) for name in names])

    def to_dataframe(self) -> pd.DataFrame:
        rows = []
        for observation in self.observations:
            row: Dict[str, Any] = {'recorded_at': observation.recorded_at}
            row.update(observation.readings)
            rows.append(row)
        return pd.DataFrame(rows)

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "ObservationSeries":
        """
        Build a series from dictionaries

        A ``recorded_at`` (or ``timestamp``/``date``...) key becomes the
        observation timestamp; every other key is a reading.
        """
        observations = []
        for record in records:
            record = dict(record)
            recorded_at = None
            for column in TIMESTAMP_COLUMNS:
                if column in record:
                    recorded_at = record.pop(column)
                    break
            observations.append(Observation(readings=record, recorded_at=recorded_at))
        return cls(observations)

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame) -> "ObservationSeries":
        time_col = next((c for c in TIMESTAMP_COLUMNS if c in df.columns), None)
        reading_cols = [c for c in df.columns if c != time_col]

        observations = []
        for row_dict in df.to_dict('records'):
            recorded_at = row_dict.get(time_col) if time_col else None
            if recorded_at is not None and pd.isna(recorded_at):
                recorded_at = None
            observations.append(
                Observation(
                    readings={c: row_dict[c] for c in reading_cols},
                    recorded_at=recorded_at
                )
            )
        return cls(observations)

    @classmethod
    def from_values(
        cls,
        values: Sequence[float],
        name: str = 'temperature',
        start: Optional[Union[str, datetime]] = None,
        freq: str = 'D'
    ) -> "ObservationSeries":
        """Single-reading series, optionally stamped from ``start`` at ``freq``"""
        timestamps: List[Optional[datetime]] = [None] * len(values)
        if start is not None:
            timestamps = [ts.to_pydatetime() for ts in pd.date_range(start=start, periods=len(values), freq=freq)]
        return cls(
            Observation(readings={name: value}, recorded_at=ts)
            for value, ts in zip(values, timestamps)
        )
