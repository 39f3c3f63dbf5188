"""Group-wise time series anomaly detection with STL decomposition and IQR bounds."""

from .diagnostics import (
    AnomalyDiagnostics,
    GroupFailure,
    Grouped,
    Ungrouped,
    anomaly_diagnostics,
)
from .errors import (
    AnomalyDiagnosticsError,
    DetectionCancelled,
    InsufficientDataError,
    InvalidParameterError,
    InvalidPeriodSpec,
    MalformedInputError,
)

__all__ = [
    "AnomalyDiagnostics",
    "AnomalyDiagnosticsError",
    "DetectionCancelled",
    "GroupFailure",
    "Grouped",
    "InsufficientDataError",
    "InvalidParameterError",
    "InvalidPeriodSpec",
    "MalformedInputError",
    "Ungrouped",
    "anomaly_diagnostics",
]
