"""Default detection parameters, overridable through ANOMALY_DIAGNOSTICS_* env vars."""

from __future__ import annotations

from typing import Union

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # "auto", a duration such as "6 weeks", or a number of observations
    frequency: Union[int, str] = "auto"
    trend: Union[int, str] = "auto"

    alpha: float = Field(default=0.05, gt=0.0, lt=1.0)
    max_anomalies: float = Field(default=0.2, gt=0.0, le=1.0)

    verbose: bool = True
    n_jobs: int = Field(default=1, ge=1)

    # remainders are zeroed only when all of them are this close to zero (relative to the series scale)
    remainder_tolerance: float = 1e-10

    # STL robustness weights; with only two cycles they move ordinary noise
    # onto one point of each phase pair
    stl_robust: bool = False
    stl_outer_iter: int = 15

    # spikes further than despike_threshold robust sigmas from the rolling median
    # are replaced before STL so they do not leak into the season
    despike_window: int = 7
    despike_threshold: float = 6.0

    model_config = {
        "env_prefix": "ANOMALY_DIAGNOSTICS_",
        "extra": "ignore",
    }


settings = Settings()
