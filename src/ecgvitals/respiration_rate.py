"""Respiration rate from the reconstructed respiration waveform.

The authoritative estimate counts hysteresis zero crossings of the band-passed
waveform over the most recent window; one breath produces two crossings. A
spectral peak pick over the same window serves as cross-check and as the
fallback when no usable crossings exist.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

import numpy as np

from .errors import EcgError
from .preprocess import bandpass, count_zero_crossings, normalize_unit, remove_dc
from .spectrum import dominant_frequency

logger = logging.getLogger(__name__)


class RateStrategy(str, Enum):
    ZERO_CROSSING = "zero_crossing"  # spectral only as fallback
    SPECTRAL = "spectral"


@dataclass
class RateConfig:
    strategy: RateStrategy = RateStrategy.ZERO_CROSSING
    window_sec: float = 10.0
    min_points: int = 3000
    fmin: float = 0.1  # Hz, 6 breaths/min
    fmax: float = 0.5  # Hz, 30 breaths/min
    hysteresis: float = 0.02  # fraction of the unit-normalized scale
    rate_min: float = 5.0
    rate_max: float = 50.0


@dataclass
class RateResult:
    brpm: float | None  # breaths per minute, clamped
    method: RateStrategy | None = None
    crossings: int = 0
    zero_crossing_brpm: float | None = None
    spectral_brpm: float | None = None
    clamped: bool = False

    @property
    def available(self) -> bool:
        return self.brpm is not None


def zero_crossing_rate(
    x: np.ndarray,
    fs: float,
    hysteresis: float = 0.02,
) -> Tuple[float | None, int]:
    """Breaths/min from hysteresis zero crossings, plus the crossing count.

    The half-cycle count is taken over the time spanned by the first and last
    counted crossing, so partial cycles at the window edges do not bias the
    rate. This departs from the plain crossings / window / 2 count on purpose.
    Returns (None, count) with fewer than 2 crossings.
    """
    idx = count_zero_crossings(x, hysteresis)
    if idx.size < 2 or fs <= 0:
        return None, int(idx.size)
    span_sec = float(idx[-1] - idx[0]) / fs
    half_cycles = idx.size - 1
    f_hz = half_cycles / span_sec / 2.0
    return 60.0 * f_hz, int(idx.size)


def spectral_rate(x: np.ndarray, fs: float, fmin: float = 0.1, fmax: float = 0.5) -> float | None:
    """Breaths/min at the dominant spectral peak inside [fmin, fmax]."""
    f_peak = dominant_frequency(x, fs, fmin, fmax)
    return 60.0 * f_peak if f_peak is not None else None


def estimate_respiratory_rate(
    signal: np.ndarray,
    fs: float,
    cfg: RateConfig | None = None,
) -> RateResult:
    """Estimate breaths/min from the cumulative respiration waveform.

    Args:
        signal: respiration samples on the ECG sample grid (oldest first).
        fs: sampling rate of the waveform (Hz).
        cfg: estimator parameters.

    Returns:
        RateResult; ``brpm`` is None while too little signal has accumulated
        or the window is numerically degenerate.
    """
    cfg = cfg or RateConfig()
    x = np.asarray(signal, dtype=np.float64)
    win = int(round(cfg.window_sec * fs))
    if fs <= 0 or win < 8 or x.size < max(cfg.min_points, win):
        logger.debug("Respiratory rate unavailable: %d points", x.size)
        return RateResult(None)

    seg = remove_dc(x[-win:])
    try:
        filtered = normalize_unit(bandpass(seg, fs, cfg.fmin, cfg.fmax))
    except EcgError as e:
        logger.debug("Respiratory rate unavailable: %s", e)
        return RateResult(None)

    zc, n_cross = zero_crossing_rate(filtered, fs, cfg.hysteresis)
    spec = spectral_rate(filtered, fs, cfg.fmin, cfg.fmax)

    if cfg.strategy == RateStrategy.SPECTRAL:
        raw, method = spec, RateStrategy.SPECTRAL
    elif zc is not None:
        raw, method = zc, RateStrategy.ZERO_CROSSING
    else:
        raw, method = spec, RateStrategy.SPECTRAL
    if raw is None or not np.isfinite(raw):
        return RateResult(None, None, n_cross, zc, spec)

    value = float(np.clip(raw, cfg.rate_min, cfg.rate_max))
    return RateResult(
        brpm=value,
        method=method,
        crossings=n_cross,
        zero_crossing_brpm=zc,
        spectral_brpm=spec,
        clamped=value != raw,
    )
