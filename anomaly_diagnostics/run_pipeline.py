"""Command line entry point: run anomaly diagnostics on a CSV file."""

from __future__ import annotations

import argparse
import logging
import os

import numpy as np
import pandas as pd

from .config import settings
from .diagnostics import anomaly_diagnostics
from .errors import AnomalyDiagnosticsError

log = logging.getLogger(__name__)


def _precision_recall_f1(y_true: np.ndarray, y_pred: np.ndarray) -> tuple[float, float, float]:
    actual = np.asarray(y_true).astype(bool)
    flagged = np.asarray(y_pred).astype(bool)
    hits = np.count_nonzero(actual & flagged)

    precision = hits / np.count_nonzero(flagged) if flagged.any() else 0.0
    recall = hits / np.count_nonzero(actual) if actual.any() else 0.0
    if precision + recall == 0:
        return precision, recall, 0.0
    return precision, recall, 2 * precision * recall / (precision + recall)


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run STL + IQR anomaly diagnostics on a CSV file.")
    parser.add_argument("--data", required=True, help="Path to CSV data.")
    parser.add_argument("--date-col", default="date", help="Date or date-time column.")
    parser.add_argument("--value-col", default="value", help="Numeric column to analyse.")
    parser.add_argument("--group-col", action="append", default=[], help="Grouping column (repeatable).")
    parser.add_argument("--frequency", default=settings.frequency, help="'auto', a duration or a count.")
    parser.add_argument("--trend", default=settings.trend, help="'auto', a duration or a count.")
    parser.add_argument("--alpha", type=float, default=settings.alpha, help="Band width control.")
    parser.add_argument("--max-anomalies", type=float, default=settings.max_anomalies,
                        help="Maximum fraction of flagged points per group.")
    parser.add_argument("--n-jobs", type=int, default=settings.n_jobs, help="Threads used across groups.")
    parser.add_argument("--output", default="artifacts/anomaly_diagnostics.csv", help="Output CSV path.")
    parser.add_argument("--plot", default=None, help="Optional PNG path for the diagnostics chart.")
    parser.add_argument("--label-col", default=None, help="0/1 column with known anomalies to score against.")
    parser.add_argument("--quiet", action="store_true", help="Only log warnings.")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    df = pd.read_csv(args.data, parse_dates=[args.date_col])
    try:
        result = anomaly_diagnostics(
            df,
            args.date_col,
            args.value_col,
            args.group_col,
            frequency=args.frequency,
            trend=args.trend,
            alpha=args.alpha,
            max_anomalies=args.max_anomalies,
            verbose=not args.quiet,
            n_jobs=args.n_jobs,
        )
    except AnomalyDiagnosticsError as exc:
        log.error("Anomaly diagnostics failed: %s", exc)
        return 1

    out = result.data
    output_dir = os.path.dirname(args.output)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    out.to_csv(args.output, index=False)
    print(f"Wrote {len(out)} rows ({len(result.anomalies)} anomalies) to {args.output}")
    for failure in result.failures:
        print(f"Skipped {failure}")

    if args.plot:
        from .plot import plot_anomaly_diagnostics

        plot_anomaly_diagnostics(out, args.date_col, args.group_col, output_path=args.plot)
        print(f"Saved plot: {args.plot}")

    if args.label_col:
        labels = df[[*args.group_col, args.date_col, args.label_col]]
        scored = out.merge(labels, on=[*args.group_col, args.date_col], how="left")
        y_true = scored[args.label_col].fillna(0).astype(int).to_numpy()
        y_pred = (scored["is_anomaly"] == "Yes").astype(int).to_numpy()

        precision, recall, f1 = _precision_recall_f1(y_true, y_pred)
        print(f"Precision: {precision:.3f}")
        print(f"Recall:    {recall:.3f}")
        print(f"F1 score:  {f1:.3f}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
