import matplotlib.pyplot as plt

from anomaly_diagnostics import anomaly_diagnostics
from anomaly_diagnostics.plot import plot_anomaly_diagnostics
from anomaly_diagnostics.simulate_data import generate_dataset


def test_plot_one_panel_per_group(tmp_path):
    data = generate_dataset(groups=("A", "B"), seed=2)
    out = anomaly_diagnostics(data, "date", "value", "id", frequency=52).data

    path = tmp_path / "plots" / "diagnostics.png"
    fig = plot_anomaly_diagnostics(out, "date", ["id"], output_path=str(path))

    assert path.exists()
    assert len(fig.axes) == 2
    assert [ax.get_title() for ax in fig.axes] == ["A", "B"]


def test_plot_ungrouped_returns_open_figure(spiked_frame):
    out = anomaly_diagnostics(spiked_frame, "date", "value", frequency=52).data
    fig = plot_anomaly_diagnostics(out, "date")

    ax = fig.axes[0]
    # ribbon, line and anomaly points
    assert len(ax.collections) == 2
    assert len(ax.lines) == 1
    assert len(ax.collections[1].get_offsets()) == 1
    plt.close(fig)
