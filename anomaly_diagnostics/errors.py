"""Exceptions raised by the anomaly diagnostics pipeline."""

from __future__ import annotations


class AnomalyDiagnosticsError(Exception):
    pass


class InvalidPeriodSpec(AnomalyDiagnosticsError, ValueError):
    """Frequency or trend request that cannot be parsed or resolved."""


class InsufficientDataError(AnomalyDiagnosticsError):
    """A group is too short for the requested seasonal frequency."""


class MalformedInputError(AnomalyDiagnosticsError, ValueError):
    """The input table breaks the caller contract (columns, types, timestamps)."""


class InvalidParameterError(AnomalyDiagnosticsError, ValueError):
    pass


class DetectionCancelled(AnomalyDiagnosticsError):
    pass
