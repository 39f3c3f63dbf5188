"""Resolve frequency and trend requests into integer window lengths.

A request is one of ``"auto"``, a duration such as ``"6 weeks"`` or a plain
number of observations. Durations are converted using the median spacing of
the series; ``"auto"`` picks a duration from :data:`TIME_SCALE_TEMPLATE`
based on how often the series is sampled.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Union

import numpy as np
import pandas as pd

from .errors import InsufficientDataError, InvalidPeriodSpec

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Auto:
    pass


@dataclass(frozen=True)
class Duration:
    magnitude: float
    unit: str

    def to_timedelta(self) -> pd.Timedelta:
        return self.magnitude * UNIT_LENGTHS[self.unit]


@dataclass(frozen=True)
class Count:
    n: int


PeriodSpec = Union[Auto, Duration, Count]


_DAY = pd.Timedelta(days=1)

UNIT_LENGTHS: dict[str, pd.Timedelta] = {
    "second": pd.Timedelta(seconds=1),
    "minute": pd.Timedelta(minutes=1),
    "hour": pd.Timedelta(hours=1),
    "day": _DAY,
    "week": 7 * _DAY,
    "month": 365.25 / 12 * _DAY,
    "quarter": 365.25 / 4 * _DAY,
    "year": 365.25 * _DAY,
}

_UNIT_ALIASES = {
    "s": "second", "sec": "second", "secs": "second",
    "min": "minute", "mins": "minute",
    "h": "hour", "hr": "hour", "hrs": "hour",
    "d": "day",
    "w": "week", "wk": "week", "wks": "week",
    "mo": "month", "mon": "month", "mons": "month",
    "q": "quarter", "qtr": "quarter", "qtrs": "quarter",
    "y": "year", "yr": "year", "yrs": "year",
}

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)?\s*([a-zA-Z]+)\s*$")

# (frequency, trend) chosen for "auto", keyed by time scale
TIME_SCALE_TEMPLATE: dict[str, tuple[Duration, Duration]] = {
    "second": (Duration(1, "hour"), Duration(12, "hour")),
    "minute": (Duration(1, "day"), Duration(14, "day")),
    "hour": (Duration(1, "day"), Duration(1, "month")),
    "day": (Duration(1, "week"), Duration(3, "month")),
    "week": (Duration(1, "quarter"), Duration(1, "year")),
    "month": (Duration(1, "year"), Duration(5, "year")),
    "quarter": (Duration(1, "year"), Duration(10, "year")),
    "year": (Duration(5, "year"), Duration(30, "year")),
}

# upper spacing limit for each time scale, checked in order
_SCALE_LIMITS = [
    ("second", pd.Timedelta(minutes=1)),
    ("minute", pd.Timedelta(hours=1)),
    ("hour", _DAY),
    ("day", 7 * _DAY),
    ("week", 28 * _DAY),
    ("month", 85 * _DAY),
    ("quarter", 360 * _DAY),
]


@dataclass(frozen=True)
class ResolvedPeriods:
    frequency: int
    trend: int
    time_scale: str
    fell_back: bool = False

    def describe(self) -> str:
        unit = self.time_scale + ("" if self.frequency == 1 else "s")
        trend_unit = self.time_scale + ("" if self.trend == 1 else "s")
        text = f"frequency = {self.frequency} {unit}; trend = {self.trend} {trend_unit}"
        if self.fell_back:
            text += " (too short for seasonality, trend only)"
        return text


def _unit_name(token: str) -> str:
    token = token.lower()
    if token in UNIT_LENGTHS:
        return token
    if token.endswith("s") and token[:-1] in UNIT_LENGTHS:
        return token[:-1]
    if token in _UNIT_ALIASES:
        return _UNIT_ALIASES[token]
    raise InvalidPeriodSpec(f"Unknown time unit: {token!r}")


def parse_period_spec(value) -> PeriodSpec:
    if isinstance(value, (Auto, Duration, Count)):
        return value

    if isinstance(value, (bool, np.bool_)):
        raise InvalidPeriodSpec(f"Period must be 'auto', a duration or a positive count, got {value!r}")

    if isinstance(value, (int, np.integer)):
        if value < 1:
            raise InvalidPeriodSpec(f"Period count must be positive, got {value}")
        return Count(int(value))

    if isinstance(value, (float, np.floating)):
        if not float(value).is_integer():
            raise InvalidPeriodSpec(f"Period count must be a whole number, got {value}")
        return parse_period_spec(int(value))

    if not isinstance(value, str):
        raise InvalidPeriodSpec(f"Period must be 'auto', a duration or a positive count, got {value!r}")

    text = value.strip()
    if text.lower() == "auto":
        return Auto()
    if text.isdigit():
        return parse_period_spec(int(text))

    match = _DURATION_RE.match(text)
    if match is None:
        raise InvalidPeriodSpec(f"Could not parse period {value!r}")
    magnitude = float(match.group(1)) if match.group(1) else 1.0
    if magnitude <= 0:
        raise InvalidPeriodSpec(f"Duration must be positive, got {value!r}")
    return Duration(magnitude, _unit_name(match.group(2)))


def infer_interval(timestamps: pd.Series) -> pd.Timedelta:
    """Median spacing between consecutive timestamps."""
    ts = pd.to_datetime(pd.Series(timestamps)).reset_index(drop=True)
    if len(ts) < 2:
        raise InsufficientDataError("At least 2 observations are needed to infer the sampling interval")
    return ts.diff().iloc[1:].median()


def time_scale(interval: pd.Timedelta) -> str:
    for scale, limit in _SCALE_LIMITS:
        if interval < limit:
            return scale
    return "year"


def duration_to_count(duration: Duration, interval: pd.Timedelta) -> int:
    ratio = duration.to_timedelta() / interval
    return max(int(np.round(ratio)), 2)


def _resolve(spec: PeriodSpec, interval: pd.Timedelta, template_slot: int) -> int:
    if isinstance(spec, Count):
        return spec.n
    if isinstance(spec, Auto):
        spec = TIME_SCALE_TEMPLATE[time_scale(interval)][template_slot]
    return duration_to_count(spec, interval)


def resolve_frequency(spec, timestamps: pd.Series) -> int:
    return _resolve(parse_period_spec(spec), infer_interval(timestamps), 0)


def resolve_trend(spec, timestamps: pd.Series) -> int:
    return _resolve(parse_period_spec(spec), infer_interval(timestamps), 1)


def resolve_periods(frequency, trend, timestamps: pd.Series) -> ResolvedPeriods:
    """Resolve both windows for one series.

    Raises InvalidPeriodSpec when an explicitly requested frequency leaves
    fewer than two full cycles. An "auto" frequency falls back to trend only
    (frequency 1) instead.
    """
    frequency = parse_period_spec(frequency)
    trend = parse_period_spec(trend)

    interval = infer_interval(timestamps)
    scale = time_scale(interval)
    n = len(timestamps)

    freq_n = _resolve(frequency, interval, 0)
    trend_n = min(_resolve(trend, interval, 1), n)

    fell_back = False
    if 2 * freq_n > n:
        if not isinstance(frequency, Auto):
            raise InvalidPeriodSpec(
                f"Frequency of {freq_n} observations needs at least {2 * freq_n} points, got {n}"
            )
        log.debug("auto frequency %d too long for %d points, using trend only", freq_n, n)
        freq_n = 1
        fell_back = True

    return ResolvedPeriods(frequency=freq_n, trend=max(trend_n, 1), time_scale=scale, fell_back=fell_back)
