"""Simulate grouped seasonal time series with labeled anomalies."""

from __future__ import annotations

import argparse
import os
from dataclasses import dataclass

import numpy as np
import pandas as pd


@dataclass
class AnomalyWindow:
    kind: str
    start: int
    end: int


def _place_window(n_points: int, length: int, rng: np.random.Generator, occupied: list) -> tuple[int, int]:
    """Pick a random start for a run of ``length`` points clear of ``occupied``."""
    free = [
        start
        for start in range(n_points - length + 1)
        if all(start + length <= s or start >= e for s, e in occupied)
    ]
    if not free:
        raise ValueError(f"No room left for {length} more anomalous points in a series of {n_points}")
    start = int(rng.choice(free))
    occupied.append((start, start + length))
    return start, start + length


def _base_signal(n_points: int, season_length: int, rng: np.random.Generator) -> np.ndarray:
    time_idx = np.arange(n_points)
    seasonal = 10 * np.sin(2 * np.pi * time_idx / season_length)
    seasonal += 3 * np.cos(4 * np.pi * time_idx / season_length)

    # slow drift + noise around a level that differs per group
    level = rng.uniform(50, 150)
    return level + seasonal + 0.05 * time_idx + rng.normal(0, 1.0, n_points)


def _apply_anomalies(values, rng, n_spikes, shift_len):
    n_points = len(values)
    occupied = []
    windows = []
    scale = np.subtract(*np.percentile(values, [75, 25]))

    # spikes: single observation far outside the usual range
    for _ in range(n_spikes):
        start, end = _place_window(n_points, 1, rng, occupied)
        values[start:end] += rng.choice([-1, 1]) * rng.uniform(4, 6) * scale
        windows.append(AnomalyWindow("spike", start, end))

    # level shift: short run of offset values
    if shift_len:
        start, end = _place_window(n_points, shift_len, rng, occupied)
        values[start:end] += rng.uniform(2.5, 3.5) * scale
        windows.append(AnomalyWindow("level_shift", start, end))

    return windows


def generate_dataset(
    output_csv=None,
    groups=("A", "B"),
    n_points=156,
    freq="W",
    season_length=52,
    n_spikes=2,
    shift_len=3,
    seed=42,
):
    rng = np.random.default_rng(seed)
    timestamps = pd.date_range("2020-01-05", periods=n_points, freq=freq)

    frames = []
    for group in groups:
        values = _base_signal(n_points, season_length, rng)
        windows = _apply_anomalies(values, rng, n_spikes, shift_len)

        df = pd.DataFrame({"id": group, "date": timestamps, "value": values})
        df["anomaly_flag"] = 0
        df["anomaly_type"] = "none"
        for window in windows:
            df.loc[window.start:window.end - 1, "anomaly_flag"] = 1
            df.loc[window.start:window.end - 1, "anomaly_type"] = window.kind
        frames.append(df)

    data = pd.concat(frames, ignore_index=True)

    if output_csv:
        output_dir = os.path.dirname(output_csv)
        if output_dir:
            os.makedirs(output_dir, exist_ok=True)
        data.to_csv(output_csv, index=False)
    return data


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate seasonal series with labeled anomalies.")
    parser.add_argument("--output", default="data/simulated_series.csv", help="Path of the CSV to write.")
    parser.add_argument("--groups", nargs="+", default=["A", "B"], help="Group ids to generate.")
    parser.add_argument("--n-points", type=int, default=156, help="Observations per group.")
    parser.add_argument("--freq", default="W", help="pandas frequency alias of the timestamps.")
    parser.add_argument("--season-length", type=int, default=52, help="Observations per seasonal cycle.")
    parser.add_argument("--seed", type=int, default=42, help="Random seed.")
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    df = generate_dataset(
        args.output,
        groups=args.groups,
        n_points=args.n_points,
        freq=args.freq,
        season_length=args.season_length,
        seed=args.seed,
    )
    print(f"Wrote {len(df)} rows to {args.output}")


if __name__ == "__main__":
    main()
