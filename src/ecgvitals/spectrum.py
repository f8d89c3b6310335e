"""Power-of-two FFT helpers for spectral rate estimation."""

from __future__ import annotations

from typing import Tuple

import numpy as np


def next_pow2(n: int) -> int:
    """Smallest power of two >= n (1 for n <= 1)."""
    n = int(n)
    if n <= 1:
        return 1
    return 1 << (n - 1).bit_length()


def magnitude_spectrum(x: np.ndarray, fs: float) -> Tuple[np.ndarray, np.ndarray]:
    """One-sided magnitude spectrum of a Hann-windowed, mean-removed signal.

    The input is zero-padded up to the next power of two before the
    transform. Returns (freqs_hz, magnitude).
    """
    x = np.asarray(x, dtype=np.float64)
    if x.size == 0 or fs <= 0:
        return np.zeros(0), np.zeros(0)
    n_fft = next_pow2(x.size)
    w = np.hanning(x.size)
    X = np.fft.rfft((x - x.mean()) * w, n=n_fft)
    freqs = np.fft.rfftfreq(n_fft, d=1.0 / fs)
    return freqs, np.abs(X)


def dominant_frequency(
    x: np.ndarray,
    fs: float,
    fmin: float,
    fmax: float,
) -> float | None:
    """Frequency (Hz) of the largest spectral bin inside [fmin, fmax].

    Returns None for short input, an empty band or a flat (all-zero) band.
    """
    x = np.asarray(x, dtype=np.float64)
    if x.size < 8 or fs <= 0:
        return None
    freqs, mag = magnitude_spectrum(x, fs)
    band = (freqs >= max(0.0, fmin)) & (freqs <= fmax)
    if not np.any(band) or float(np.max(mag[band])) <= 0.0:
        return None
    idx = int(np.argmax(mag * band))
    f_peak = float(freqs[idx])
    return f_peak if f_peak > 0 else None
