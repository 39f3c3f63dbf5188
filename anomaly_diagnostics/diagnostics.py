"""Group-wise anomaly diagnostics.

Each group is decomposed with STL (or a rolling median when no seasonality
can be resolved), the remainder is bounded with an IQR fence scaled by
``0.15 / alpha``, and points outside the fence are flagged, keeping at most
``max_anomalies`` of each group's observations.

Groups are independent: a group that is too short is reported in
:attr:`AnomalyDiagnostics.failures` and left out of the output, the rest
are still returned.
"""

from __future__ import annotations

import datetime
import enum
import logging
import os
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

import numpy as np
import pandas as pd

from .bounds import classify, iqr_factor, max_anomaly_count, recompose, remainder_bounds
from .config import settings
from .decompose import decompose
from .errors import (
    AnomalyDiagnosticsError,
    DetectionCancelled,
    InsufficientDataError,
    InvalidPeriodSpec,
    MalformedInputError,
)
from .periods import PeriodSpec, ResolvedPeriods, parse_period_spec, resolve_periods

log = logging.getLogger(__name__)

GROUP_SEP = " "
UNGROUPED = "<ungrouped>"

OUTPUT_COLUMNS = [
    "observed",
    "seasonal",
    "trend",
    "remainder",
    "seasadj",
    "remainder_lower_bound",
    "remainder_upper_bound",
    "recomposed_lower_bound",
    "recomposed_upper_bound",
    "is_anomaly",
    "direction",
    "recomposed_l1",
    "recomposed_l2",
]


@dataclass(frozen=True)
class Ungrouped:
    data: pd.DataFrame


@dataclass(frozen=True)
class Grouped:
    data: pd.DataFrame
    group_vars: tuple[str, ...]


def as_grouped(data: Union[pd.DataFrame, Ungrouped, Grouped], group_vars=None) -> Grouped:
    if isinstance(data, Grouped):
        return data
    if isinstance(data, Ungrouped):
        return Grouped(data.data, ())
    if isinstance(group_vars, str):
        group_vars = [group_vars]
    return Grouped(data, tuple(group_vars or ()))


class GroupStage(enum.Enum):
    PENDING = "pending"
    RESOLVING = "resolving"
    DECOMPOSING = "decomposing"
    BOUNDING = "bounding"
    CLASSIFYING = "classifying"
    DONE = "done"
    FAILED = "failed"


@dataclass
class GroupFailure:
    group: str
    stage: GroupStage
    error: Exception

    def __str__(self) -> str:
        return f"{self.group}: {type(self.error).__name__} while {self.stage.value}: {self.error}"


@dataclass
class AnomalyDiagnostics:
    data: pd.DataFrame
    failures: list[GroupFailure] = field(default_factory=list)
    parameters: dict[str, ResolvedPeriods] = field(default_factory=dict)

    @property
    def anomalies(self) -> pd.DataFrame:
        return self.data[self.data["is_anomaly"] == "Yes"]


@dataclass
class _Options:
    date_var: str
    value: str
    frequency: PeriodSpec
    trend: PeriodSpec
    alpha: float
    max_anomalies: float
    verbose: bool


@dataclass
class _Outcome:
    group: str
    frame: Optional[pd.DataFrame] = None
    periods: Optional[ResolvedPeriods] = None
    failure: Optional[GroupFailure] = None


def _is_date_column(col: pd.Series) -> bool:
    if pd.api.types.is_datetime64_any_dtype(col):
        return True
    if col.dtype == object and len(col) > 0:
        return all(isinstance(v, (datetime.date, pd.Timestamp)) for v in col)
    return False


def _validate_data(data: pd.DataFrame, date_var: str, value: str, group_vars: Sequence[str]) -> None:
    if not isinstance(data, pd.DataFrame):
        raise MalformedInputError(f"Expected a pandas DataFrame, got {type(data).__name__}")

    required = [date_var, value, *group_vars]
    missing = [col for col in required if col not in data.columns]
    if missing:
        raise MalformedInputError(f"Missing required columns: {missing}")

    if data.empty:
        raise MalformedInputError("Input has no rows.")

    if data[required].isna().any().any():
        raise MalformedInputError("Found missing values in required columns.")

    if not _is_date_column(data[date_var]):
        raise MalformedInputError(f"{date_var} must hold dates or date-times, got {data[date_var].dtype}")

    value_col = data[value]
    if not pd.api.types.is_numeric_dtype(value_col) or pd.api.types.is_bool_dtype(value_col):
        raise MalformedInputError(f"{value} must be numeric, got {value_col.dtype}")


def partition_groups(data: pd.DataFrame, group_vars: Sequence[str]) -> list[tuple[str, np.ndarray]]:
    """Row positions of every group, in order of first appearance.

    Groups are told apart by their key values. The label is the key values
    joined with ``GROUP_SEP``; keys whose joined text would collide (such as
    ``("a b", "c")`` and ``("a", "b c")``, or ``1`` and ``"1"``) are labeled
    with the repr of the key tuple instead.
    """
    if not group_vars:
        return [(UNGROUPED, np.arange(len(data)))]

    codes = data.groupby(list(group_vars), sort=False).ngroup().to_numpy()
    _, first = np.unique(codes, return_index=True)
    keys = [tuple(data[list(group_vars)].iloc[pos]) for pos in first]

    joined = [GROUP_SEP.join(str(v) for v in key) for key in keys]
    counts = Counter(joined)
    labels = [text if counts[text] == 1 else repr(key) for text, key in zip(joined, keys)]
    return [(label, np.flatnonzero(codes == code)) for code, label in enumerate(labels)]


def _check_timestamps(group: str, timestamps: pd.Series) -> None:
    if not timestamps.is_unique:
        raise MalformedInputError(f"Duplicate timestamps in group {group}")
    if not timestamps.is_monotonic_increasing:
        raise MalformedInputError(f"Timestamps are not increasing in group {group}")


def _run_group(group: str, frame: pd.DataFrame, opts: _Options) -> _Outcome:
    stage = GroupStage.RESOLVING
    try:
        try:
            periods = resolve_periods(opts.frequency, opts.trend, frame[opts.date_var])
        except InvalidPeriodSpec as exc:
            raise InsufficientDataError(f"Group {group} is too short: {exc}") from exc

        message = "%s: %s"
        if opts.verbose:
            log.info(message, group, periods.describe())
        else:
            log.debug(message, group, periods.describe())

        stage = GroupStage.DECOMPOSING
        observed = frame[opts.value].astype(float)
        components = decompose(observed, periods.frequency, periods.trend)

        stage = GroupStage.BOUNDING
        bounds = remainder_bounds(components.remainder, opts.alpha)
        recomposed_l1, recomposed_l2 = recompose(components.seasonal, components.trend, bounds)

        stage = GroupStage.CLASSIFYING
        flags = classify(components.remainder, bounds, opts.max_anomalies)
    except (AnomalyDiagnosticsError, ValueError) as exc:
        log.warning("Skipping group %s (%s): %s", group, stage.value, exc)
        return _Outcome(group, failure=GroupFailure(group, stage, exc))

    result = frame.drop(columns=[opts.value]).join(components.to_frame()).join(flags)
    result["recomposed_lower_bound"] = recomposed_l1
    result["recomposed_upper_bound"] = recomposed_l2
    result["recomposed_l1"] = recomposed_l1
    result["recomposed_l2"] = recomposed_l2
    return _Outcome(group, frame=result, periods=periods)


def _run_or_cancel(group: str, frame: pd.DataFrame, opts: _Options, cancel_event) -> _Outcome:
    if cancel_event is not None and cancel_event.is_set():
        error = DetectionCancelled(f"Cancelled before group {group} started")
        return _Outcome(group, failure=GroupFailure(group, GroupStage.PENDING, error))
    return _run_group(group, frame, opts)


def anomaly_diagnostics(
    data: Union[pd.DataFrame, Ungrouped, Grouped],
    date_var: str,
    value: str,
    group_vars: Optional[Union[str, Sequence[str]]] = None,
    *,
    frequency=None,
    trend=None,
    alpha: Optional[float] = None,
    max_anomalies: Optional[float] = None,
    verbose: Optional[bool] = None,
    n_jobs: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
) -> AnomalyDiagnostics:
    """Detect anomalies in every group of ``data``.

    Args:
        data: DataFrame (optionally with ``group_vars``) or an explicit
            Ungrouped / Grouped wrapper.
        date_var: date or date-time column, strictly increasing within a group.
        value: numeric column to analyse.
        group_vars: column(s) identifying independent series.
        frequency: "auto", a duration such as "6 weeks", or a count.
        trend: same forms as frequency, sets the trend smoothing window.
        alpha: larger values narrow the band and flag more points.
        max_anomalies: maximum fraction of a group that may be flagged.
        verbose: log the resolved frequency/trend of each group at INFO.
        n_jobs: number of threads used to process groups.
        cancel_event: when set, groups that have not started are skipped.

    Returns:
        AnomalyDiagnostics with the output table, per-group failures and
        the resolved periods of each processed group.
    """
    grouped = as_grouped(data, group_vars)
    group_vars = list(grouped.group_vars)
    _validate_data(grouped.data, date_var, value, group_vars)

    alpha = settings.alpha if alpha is None else alpha
    max_anomalies = settings.max_anomalies if max_anomalies is None else max_anomalies
    iqr_factor(alpha)
    max_anomaly_count(max_anomalies, 1)

    opts = _Options(
        date_var=date_var,
        value=value,
        frequency=parse_period_spec(settings.frequency if frequency is None else frequency),
        trend=parse_period_spec(settings.trend if trend is None else trend),
        alpha=alpha,
        max_anomalies=max_anomalies,
        verbose=settings.verbose if verbose is None else verbose,
    )
    n_jobs = settings.n_jobs if n_jobs is None else n_jobs

    # components are joined back by index, so labels must be unique
    frame = grouped.data[[*group_vars, date_var, value]].reset_index(drop=True)
    frame[date_var] = pd.to_datetime(frame[date_var])

    tasks = []
    for group, positions in partition_groups(frame, group_vars):
        part = frame.iloc[positions]
        _check_timestamps(group, part[date_var])
        tasks.append((group, part))

    if n_jobs > 1 and len(tasks) > 1:
        workers = min(n_jobs, os.cpu_count() or 1, len(tasks))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [pool.submit(_run_or_cancel, group, part, opts, cancel_event) for group, part in tasks]
            outcomes = [f.result() for f in futures]
    else:
        outcomes = [_run_or_cancel(group, part, opts, cancel_event) for group, part in tasks]

    failures = [o.failure for o in outcomes if o.failure is not None]
    done = [o for o in outcomes if o.frame is not None]
    if not done:
        details = "; ".join(str(f) for f in failures)
        raise AnomalyDiagnosticsError(f"No group could be processed: {details}")

    result = pd.concat([o.frame for o in done]).reset_index(drop=True)
    result = result[[*group_vars, date_var, *OUTPUT_COLUMNS]]
    return AnomalyDiagnostics(
        data=result,
        failures=failures,
        parameters={o.group: o.periods for o in done},
    )
