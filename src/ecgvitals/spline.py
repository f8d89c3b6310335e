"""Cubic-spline resampling of irregular control points."""

from __future__ import annotations

import numpy as np
from scipy.interpolate import CubicSpline

from .errors import InsufficientData, NumericDegenerate


def cubic_spline(xs: np.ndarray, ys: np.ndarray, length: int) -> np.ndarray:
    """Evaluate a natural cubic spline at every integer index 0..length-1.

    Outside the control-point range the first/last control value is held
    instead of extrapolating the end polynomials.

    Args:
        xs: strictly increasing control positions (sample indices, may be fractional).
        ys: control amplitudes.
        length: number of output samples.

    Raises:
        InsufficientData: fewer than 2 control points.
        NumericDegenerate: non-increasing positions or non-finite values.
    """
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    if xs.size != ys.size:
        raise ValueError("xs and ys must have the same length")
    if xs.size < 2:
        raise InsufficientData("cubic spline needs at least 2 control points")
    if not (np.all(np.isfinite(xs)) and np.all(np.isfinite(ys))):
        raise NumericDegenerate("non-finite spline control points")
    if np.any(np.diff(xs) <= 0):
        raise NumericDegenerate("spline control positions must be strictly increasing")
    cs = CubicSpline(xs, ys, bc_type="natural")
    grid = np.clip(np.arange(int(length), dtype=np.float64), xs[0], xs[-1])
    return cs(grid)
