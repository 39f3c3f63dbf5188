import numpy as np
import pandas as pd

from anomaly_diagnostics.run_pipeline import _precision_recall_f1, main
from anomaly_diagnostics.simulate_data import generate_dataset


def test_precision_recall_f1():
    y_true = np.array([1, 1, 0, 0, 1])
    y_pred = np.array([1, 0, 1, 0, 1])
    precision, recall, f1 = _precision_recall_f1(y_true, y_pred)
    assert precision == 2 / 3
    assert recall == 2 / 3
    assert abs(f1 - 2 / 3) < 1e-12
    assert _precision_recall_f1(np.zeros(3), np.zeros(3)) == (0.0, 0.0, 0.0)


def test_cli_writes_output_plot_and_scores(tmp_path, capsys):
    data_path = tmp_path / "series.csv"
    generate_dataset(str(data_path), groups=("A", "B"), seed=13)
    out_path = tmp_path / "out" / "diagnostics.csv"
    plot_path = tmp_path / "out" / "diagnostics.png"

    code = main([
        "--data", str(data_path),
        "--group-col", "id",
        "--frequency", "52",
        "--output", str(out_path),
        "--plot", str(plot_path),
        "--label-col", "anomaly_flag",
        "--quiet",
    ])

    assert code == 0
    out = pd.read_csv(out_path)
    assert len(out) == 312
    assert {"recomposed_lower_bound", "recomposed_upper_bound", "recomposed_l1", "recomposed_l2", "is_anomaly"} <= set(out.columns)
    assert plot_path.exists()

    printed = capsys.readouterr().out
    assert "Recall:" in printed
    assert "Saved plot" in printed


def test_cli_reports_skipped_groups(tmp_path, capsys):
    data = pd.DataFrame({
        "date": list(pd.date_range("2021-01-03", periods=120, freq="W")) + list(pd.date_range("2021-01-03", periods=4, freq="W")),
        "value": list(np.sin(np.arange(120) / 4.0) + 10) + [1.0, 2.0, 3.0, 4.0],
        "site": ["big"] * 120 + ["tiny"] * 4,
    })
    data_path = tmp_path / "series.csv"
    data.to_csv(data_path, index=False)

    code = main([
        "--data", str(data_path),
        "--group-col", "site",
        "--frequency", "52",
        "--output", str(tmp_path / "out.csv"),
        "--quiet",
    ])

    assert code == 0
    printed = capsys.readouterr().out
    assert "Skipped tiny: InsufficientDataError" in printed


def test_cli_fails_when_nothing_can_be_processed(tmp_path):
    data = pd.DataFrame({"date": pd.date_range("2021-01-03", periods=4, freq="W"), "value": [1.0, 2.0, 3.0, 4.0]})
    data_path = tmp_path / "series.csv"
    data.to_csv(data_path, index=False)

    assert main(["--data", str(data_path), "--frequency", "52", "--output", str(tmp_path / "o.csv"), "--quiet"]) == 1
