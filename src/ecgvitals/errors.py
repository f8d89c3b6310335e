"""Error taxonomy for the ECG processing core.

These are raised by the signal primitives and caught at the estimator entry
points, where they become "metric unavailable this cycle".
"""

from __future__ import annotations


class EcgError(ValueError):
    """Base class for recoverable processing conditions."""


class InsufficientData(EcgError):
    """Fewer samples, peaks or intervals than an operation needs."""


class NumericDegenerate(EcgError):
    """A zero-range window or non-finite value would propagate NaN/inf."""
