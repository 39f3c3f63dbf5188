"""Seasonal-trend decomposition of a single series."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
import pandas as pd
from statsmodels.tsa.seasonal import STL

from .config import settings
from .errors import InsufficientDataError

log = logging.getLogger(__name__)

# consistency constant turning a median absolute deviation into a normal sigma
_MAD_TO_SIGMA = 1.4826
# same for a mean absolute deviation
_MEAN_AD_TO_SIGMA = 1.2533


@dataclass
class DecompositionResult:
    observed: pd.Series
    seasonal: pd.Series
    trend: pd.Series
    remainder: pd.Series

    @property
    def seasadj(self) -> pd.Series:
        return self.observed - self.seasonal

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            {
                "observed": self.observed,
                "seasonal": self.seasonal,
                "trend": self.trend,
                "remainder": self.remainder,
                "seasadj": self.seasadj,
            }
        )


def _odd(n: int) -> int:
    n = int(n)
    return n if n % 2 == 1 else n + 1


def rolling_trend(observed: pd.Series, window: int) -> pd.Series:
    """Centered rolling median; windows are truncated at the series edges."""
    return observed.rolling(window=_odd(window), center=True, min_periods=1).median()


def despike(observed: pd.Series, window: int, threshold: float) -> pd.Series:
    """Replace isolated spikes by interpolating between their neighbours.

    A point counts as a spike when its distance to the rolling median is more
    than ``threshold`` robust standard deviations, where the scale is measured
    once over the whole series. Ordinary noise therefore stays untouched.
    Points within half a window of either end have no full window and are
    never replaced.

    Only the input to the smoother is cleaned; remainders are still taken
    against the original observations.
    """
    rolling_median = observed.rolling(window=_odd(window), center=True).median()
    deviations = (observed - rolling_median).to_numpy(dtype=float)
    interior = ~np.isnan(deviations)
    if not interior.any():
        return observed.copy()

    abs_deviations = np.abs(deviations[interior])
    scale = _MAD_TO_SIGMA * float(np.median(abs_deviations))
    if scale == 0:
        # piecewise-linear stretches leave most deviations at exactly zero
        scale = _MEAN_AD_TO_SIGMA * float(np.mean(abs_deviations))
    if scale == 0:
        return observed.copy()

    outliers = np.zeros(len(observed), dtype=bool)
    outliers[interior] = abs_deviations > threshold * scale
    if outliers.any():
        log.debug("despiked %d of %d points before STL", int(outliers.sum()), len(observed))
    return observed.where(~outliers).interpolate()


def _stl(observed: pd.Series, frequency: int, trend: int) -> tuple[np.ndarray, np.ndarray]:
    n = len(observed)
    cleaned = despike(observed, settings.despike_window, settings.despike_threshold)
    stl = STL(
        cleaned.to_numpy(),
        period=frequency,
        # periodic season: one fixed cycle repeated over the whole series
        seasonal=_odd(10 * n + 1),
        seasonal_deg=0,
        trend=_odd(max(trend, frequency + 1, 3)),
        robust=settings.stl_robust,
    )
    res = stl.fit(outer_iter=settings.stl_outer_iter if settings.stl_robust else None)
    return np.asarray(res.seasonal, dtype=float), np.asarray(res.trend, dtype=float)


def decompose(observed: pd.Series, frequency: int, trend: int) -> DecompositionResult:
    """Split a series into seasonal, trend and remainder components.

    ``frequency`` and ``trend`` are window lengths in observations. With a
    frequency of 1 no season is fitted and the trend is a rolling median.

    When the smoother reproduces the series exactly, the leftover remainder is
    pure floating point residue. If every remainder is within
    ``settings.remainder_tolerance`` times the largest absolute observation,
    the residue is moved into the trend and the remainder is set to zero.
    Series with any remainder above that level are returned as fitted.
    """
    observed = pd.Series(observed, dtype=float)
    n = len(observed)
    if n < 2 or n < 2 * frequency:
        raise InsufficientDataError(
            f"Need at least {max(2, 2 * frequency)} observations for frequency {frequency}, got {n}"
        )

    values = observed.to_numpy()
    if np.ptp(values) == 0:
        seasonal = np.zeros(n)
        trend_arr = values.copy()
    elif frequency > 1:
        seasonal, trend_arr = _stl(observed, frequency, trend)
    else:
        seasonal = np.zeros(n)
        trend_arr = rolling_trend(observed, trend).to_numpy(dtype=float)
    remainder = values - seasonal - trend_arr

    scale = float(np.max(np.abs(values))) or 1.0
    if np.max(np.abs(remainder)) <= settings.remainder_tolerance * scale:
        trend_arr = trend_arr + remainder
        remainder = np.zeros(n)

    log.debug("decomposed %d points (frequency=%d, trend=%d)", n, frequency, trend)

    index = observed.index
    return DecompositionResult(
        observed=observed,
        seasonal=pd.Series(seasonal, index=index),
        trend=pd.Series(trend_arr, index=index),
        remainder=pd.Series(remainder, index=index),
    )
