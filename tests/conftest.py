import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest


def seasonal_frame(n_points=104, season_length=52, noise=0.5, seed=7, freq="W", start="2020-01-05"):
    """Sine season plus a slight drift and bounded noise of +/- ``noise``."""
    rng = np.random.default_rng(seed)
    idx = np.arange(n_points)
    values = 100 + 10 * np.sin(2 * np.pi * idx / season_length) + 0.02 * idx + rng.uniform(-noise, noise, n_points)
    return pd.DataFrame({"date": pd.date_range(start, periods=n_points, freq=freq), "value": values})


def add_spike(df, position=60, size=10):
    """Set one value to the median plus ``size`` IQRs of the series."""
    q1, median, q3 = np.percentile(df["value"], [25, 50, 75])
    df.loc[position, "value"] = median + size * (q3 - q1)
    return df


@pytest.fixture
def weekly_frame():
    return seasonal_frame()


@pytest.fixture
def spiked_frame():
    return add_spike(seasonal_frame())
