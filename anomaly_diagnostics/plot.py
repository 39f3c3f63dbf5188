"""Static chart of anomaly diagnostics output."""

from __future__ import annotations

import os
from typing import Optional, Sequence

import matplotlib.pyplot as plt
import pandas as pd

from .diagnostics import partition_groups


def _facets(df: pd.DataFrame, group_vars: Sequence[str]) -> list[tuple[str, pd.DataFrame]]:
    if not group_vars:
        return [("", df)]
    return [(label, df.iloc[positions]) for label, positions in partition_groups(df, group_vars)]


def plot_anomaly_diagnostics(
    df: pd.DataFrame,
    date_var: str,
    group_vars: Optional[Sequence[str]] = None,
    output_path: Optional[str] = None,
    title: str = "Anomaly Diagnostics",
    line_color: str = "#2c3e50",
    anom_color: str = "#e31a1c",
    ribbon_color: str = "grey",
    ribbon_alpha: float = 0.2,
):
    """Plot observed values, the acceptable range and flagged points per group.

    ``df`` is the table returned by ``anomaly_diagnostics``. If ``output_path``
    is given the figure is written there and closed.
    """
    facets = _facets(df, list(group_vars or []))
    fig, axes = plt.subplots(len(facets), 1, figsize=(12, 3 * len(facets)), sharex=False, squeeze=False)

    for ax, (label, part) in zip(axes[:, 0], facets):
        timestamps = part[date_var]
        ax.fill_between(
            timestamps,
            part["recomposed_lower_bound"],
            part["recomposed_upper_bound"],
            color=ribbon_color,
            alpha=ribbon_alpha,
            linewidth=0,
        )
        ax.plot(timestamps, part["observed"], color=line_color, linewidth=1.1)

        flagged = part[part["is_anomaly"] == "Yes"]
        ax.scatter(flagged[date_var], flagged["observed"], color=anom_color, s=18, zorder=3, label="Anomaly")
        if label:
            ax.set_title(label, fontsize=10)
        ax.grid(alpha=0.2)

    fig.suptitle(title)
    fig.tight_layout()

    if output_path:
        out_dir = os.path.dirname(output_path)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        fig.savefig(output_path, dpi=150)
        plt.close(fig)
    return fig
