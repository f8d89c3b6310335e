"""Signal preprocessing primitives for ECG and ECG-derived respiration."""

from __future__ import annotations

import numpy as np
from scipy.signal import iirpeak, lfilter, lfilter_zi

from .errors import NumericDegenerate


def moving_average(x: np.ndarray, width: int = 5) -> np.ndarray:
    """Centred moving average with the window clipped at the buffer edges.

    Args:
        x: 1D array.
        width: window length in samples (>=1). Even widths use the larger
            half on the right so the output stays aligned with the input.
    """
    x = np.asarray(x, dtype=np.float64)
    width = max(int(width), 1)
    if x.size == 0 or width == 1:
        return x.copy()
    half_left = (width - 1) // 2
    half_right = width - 1 - half_left
    csum = np.concatenate(([0.0], np.cumsum(x)))
    idx = np.arange(x.size)
    lo = np.clip(idx - half_left, 0, x.size)
    hi = np.clip(idx + half_right + 1, 0, x.size)
    return (csum[hi] - csum[lo]) / (hi - lo)


def biquad_bandpass_coeffs(
    fs: float,
    fmin: float,
    fmax: float,
) -> tuple[np.ndarray, np.ndarray] | None:
    """Second-order band-pass coefficients (b, a) for the band [fmin, fmax].

    The biquad is centred at the middle of the band with a bandwidth equal to
    its width (Q = centre / bandwidth). Returns None when the band does not
    fit strictly inside (0, Nyquist).
    """
    nyq = 0.5 * fs
    if fs <= 0 or not (0.0 < fmin < fmax < nyq):
        return None
    centre = 0.5 * (fmin + fmax)
    q = centre / (fmax - fmin)
    b, a = iirpeak(centre, q, fs=fs)
    return b, a


def bandpass(
    x: np.ndarray,
    fs: float,
    fmin: float = 0.1,
    fmax: float = 0.5,
) -> np.ndarray:
    """Causal biquad band-pass filter (lfilter, direct form).

    Args:
        x: 1D array.
        fs: sampling rate [Hz].
        fmin: low cut [Hz].
        fmax: high cut [Hz].

    Raises:
        NumericDegenerate: if the filtered output is not finite.
    """
    x = np.asarray(x, dtype=np.float64)
    coeffs = biquad_bandpass_coeffs(fs, fmin, fmax)
    if coeffs is None:
        return x.copy()
    b, a = coeffs
    if x.size == 0:
        return x.copy()
    # Start from the steady state of the first sample so an offset does not ring
    y, _ = lfilter(b, a, x, zi=lfilter_zi(b, a) * x[0])
    if not np.all(np.isfinite(y)):
        raise NumericDegenerate("band-pass output is not finite")
    return y


def remove_dc(x: np.ndarray) -> np.ndarray:
    x = np.asarray(x, dtype=np.float64)
    if x.size == 0:
        return x.copy()
    return x - float(np.mean(x))


def normalize_unit(x: np.ndarray) -> np.ndarray:
    """Zero-mean signal scaled so its largest absolute deviation is 1.

    Raises:
        NumericDegenerate: for empty, constant or non-finite input.
    """
    x = np.asarray(x, dtype=np.float64)
    if x.size == 0 or not np.all(np.isfinite(x)):
        raise NumericDegenerate("cannot normalize empty or non-finite signal")
    centred = x - float(np.mean(x))
    scale = float(np.max(np.abs(centred)))
    if scale <= 1e-12:
        raise NumericDegenerate("cannot normalize a zero-range signal")
    return centred / scale


def count_zero_crossings(x: np.ndarray, hysteresis: float = 0.02) -> np.ndarray:
    """Indices where the signal changes side with hysteresis.

    A sample is "above" when > +hysteresis and "below" when < -hysteresis;
    samples inside the band keep the previous side. A crossing is recorded at
    the first sample that is definitively on the opposite side.
    """
    x = np.asarray(x, dtype=np.float64)
    h = abs(float(hysteresis))
    sides = np.where(x > h, 1, np.where(x < -h, -1, 0))
    decided = np.flatnonzero(sides)
    if decided.size < 2:
        return np.zeros(0, dtype=np.int64)
    flips = np.flatnonzero(np.diff(sides[decided]) != 0) + 1
    return decided[flips].astype(np.int64)
