import pytest
from pydantic import ValidationError

from anomaly_diagnostics import anomaly_diagnostics
from anomaly_diagnostics.config import Settings


def test_defaults():
    s = Settings()
    assert s.frequency == "auto"
    assert s.trend == "auto"
    assert s.alpha == 0.05
    assert s.max_anomalies == 0.2


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("ANOMALY_DIAGNOSTICS_ALPHA", "0.1")
    monkeypatch.setenv("ANOMALY_DIAGNOSTICS_FREQUENCY", "6 weeks")
    s = Settings()
    assert s.alpha == 0.1
    assert s.frequency == "6 weeks"


def test_out_of_range_values_rejected(monkeypatch):
    monkeypatch.setenv("ANOMALY_DIAGNOSTICS_ALPHA", "2")
    with pytest.raises(ValidationError):
        Settings()


def test_module_settings_supply_call_defaults(monkeypatch, weekly_frame):
    monkeypatch.setattr("anomaly_diagnostics.config.settings.frequency", 52)
    result = anomaly_diagnostics(weekly_frame, "date", "value")
    assert result.parameters["<ungrouped>"].frequency == 52
