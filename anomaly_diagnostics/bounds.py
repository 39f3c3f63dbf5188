"""IQR bounds on the remainder and anomaly classification."""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
import pandas as pd

from .errors import InvalidParameterError


@dataclass(frozen=True)
class RemainderBounds:
    q1: float
    q3: float
    center: float
    factor: float

    @property
    def iqr(self) -> float:
        return self.q3 - self.q1

    @property
    def lower(self) -> float:
        return self.q1 - self.factor * self.iqr

    @property
    def upper(self) -> float:
        return self.q3 + self.factor * self.iqr


def iqr_factor(alpha: float) -> float:
    if not 0.0 < alpha < 1.0:
        raise InvalidParameterError(f"alpha must be in (0, 1), got {alpha}")
    return 0.15 / alpha


def remainder_bounds(remainder: pd.Series, alpha: float = 0.05) -> RemainderBounds:
    arr = np.asarray(remainder, dtype=float)
    q1, center, q3 = np.quantile(arr, [0.25, 0.5, 0.75])
    return RemainderBounds(q1=float(q1), q3=float(q3), center=float(center), factor=iqr_factor(alpha))


def recompose(
    seasonal: pd.Series,
    trend: pd.Series,
    bounds: RemainderBounds,
) -> tuple[pd.Series, pd.Series]:
    base = seasonal + trend
    return base + bounds.lower, base + bounds.upper


def flag_outside(remainder: pd.Series, lower: float, upper: float) -> pd.Series:
    return (remainder < lower) | (remainder > upper)


def distance_outside(remainder: pd.Series, lower: float, upper: float) -> pd.Series:
    below = (lower - remainder).clip(lower=0.0)
    above = (remainder - upper).clip(lower=0.0)
    return np.maximum(below, above)


def max_anomaly_count(max_anomalies: float, n: int) -> int:
    if not 0.0 < max_anomalies <= 1.0:
        raise InvalidParameterError(f"max_anomalies must be in (0, 1], got {max_anomalies}")
    # rounding guards against 0.2 * 5 == 1.0000000000000002
    return int(math.ceil(round(max_anomalies * n, 9)))


def cap_anomalies(flags: pd.Series, distance: pd.Series, max_anomalies: float) -> pd.Series:
    """Keep only the flags furthest outside the band.

    Ties keep the earlier observation, so the result only depends on the data.
    """
    limit = max_anomaly_count(max_anomalies, len(flags))
    flagged = np.flatnonzero(flags.to_numpy())
    if len(flagged) <= limit:
        return flags.copy()

    order = np.argsort(-distance.to_numpy()[flagged], kind="stable")
    kept = np.zeros(len(flags), dtype=bool)
    kept[flagged[order[:limit]]] = True
    return pd.Series(kept, index=flags.index)


ANOMALY_CATEGORIES = ["No", "Yes"]


def classify(
    remainder: pd.Series,
    bounds: RemainderBounds,
    max_anomalies: float = 0.2,
) -> pd.DataFrame:
    flags = flag_outside(remainder, bounds.lower, bounds.upper)
    distance = distance_outside(remainder, bounds.lower, bounds.upper)
    capped = cap_anomalies(flags, distance, max_anomalies)

    direction = pd.Series([None] * len(remainder), index=remainder.index, dtype=object)
    direction[capped & (remainder > bounds.upper)] = "Up"
    direction[capped & (remainder < bounds.lower)] = "Down"

    return pd.DataFrame(
        {
            "remainder_lower_bound": bounds.lower,
            "remainder_upper_bound": bounds.upper,
            "is_anomaly": pd.Categorical(
                np.where(capped, "Yes", "No"), categories=ANOMALY_CATEGORIES
            ),
            "direction": direction,
        },
        index=remainder.index,
    )
