"""R-wave and S-wave peak detection on a single-lead ECG window.

Pipeline:
1. Smooth the raw signal with a short moving average.
2. Adaptive threshold relative to the smoothed signal's peak height.
3. Left-to-right scan for local maxima above threshold, honouring a
   refractory period.
4. Re-align each candidate to the raw-signal maximum nearby, since the
   smoothing can shift the apparent peak.
5. Drop peaks with implausible spacing unless their amplitude is clearly
   high (genuine rapid beats).
6. Pair each R peak with the next local minimum (S wave).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from .preprocess import moving_average

logger = logging.getLogger(__name__)


class ThresholdMode(str, Enum):
    MAX_FRACTION = "max_fraction"  # factor * max(smoothed)
    STATISTICAL = "statistical"  # also require mean + k * std


@dataclass
class PeakConfig:
    min_samples: int = 100
    smooth_width: int = 5
    threshold_factor: float = 0.6
    threshold_mode: ThresholdMode = ThresholdMode.MAX_FRACTION
    std_k: float = 2.0
    refractory_ms: float = 200.0
    align_ms: float = 50.0
    s_search_ms: float = 120.0
    spacing_low: float = 0.5  # x median spacing
    spacing_high: float = 1.5
    amplitude_override: float = 1.5  # x mean R amplitude


@dataclass
class PeakSet:
    """R/S peak indices relative to the window they were computed on."""

    r_peaks: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))
    s_peaks: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int64))
    offset: int = 0  # absolute buffer index of window position 0
    insufficient: bool = False

    def pairs(self) -> list[tuple[int, int]]:
        return [(int(r), int(s)) for r, s in zip(self.r_peaks, self.s_peaks)]

    def absolute_r(self) -> np.ndarray:
        return self.r_peaks + self.offset

    def absolute_s(self) -> np.ndarray:
        return self.s_peaks + self.offset


def ms_to_samples(ms: float, fs: float) -> int:
    return max(1, int(round(ms * fs / 1000.0)))


def _threshold(centred: np.ndarray, cfg: PeakConfig) -> float | None:
    peak = float(np.max(centred))
    if peak <= 0.0:
        return None
    thr = cfg.threshold_factor * peak
    if cfg.threshold_mode == ThresholdMode.STATISTICAL:
        thr = max(thr, float(np.mean(centred) + cfg.std_k * np.std(centred)))
    return thr


def _find_candidates(c: np.ndarray, thr: float, refractory: int) -> np.ndarray:
    mid = c[1:-1]
    is_peak = (mid > thr) & (mid > c[:-2]) & (mid > c[2:])
    out: list[int] = []
    for i in np.flatnonzero(is_peak) + 1:
        if not out or i - out[-1] >= refractory:
            out.append(int(i))
    return np.asarray(out, dtype=np.int64)


def _align_to_raw_max(x: np.ndarray, peaks: np.ndarray, half_width: int) -> np.ndarray:
    n = x.size
    aligned = np.empty_like(peaks)
    for k, i in enumerate(peaks):
        lo = max(0, int(i) - half_width)
        hi = min(n, int(i) + half_width + 1)
        aligned[k] = lo + int(np.argmax(x[lo:hi]))
    return aligned


def _enforce_refractory(x: np.ndarray, peaks: np.ndarray, refractory: int) -> np.ndarray:
    # Keep the taller of two peaks that alignment pulled too close together
    kept: list[int] = []
    for p in np.unique(peaks):
        p = int(p)
        if kept and p - kept[-1] < refractory:
            if x[p] > x[kept[-1]]:
                kept[-1] = p
            continue
        kept.append(p)
    return np.asarray(kept, dtype=np.int64)


def _reject_implausible(centred: np.ndarray, peaks: np.ndarray, cfg: PeakConfig) -> np.ndarray:
    if peaks.size < 3:
        return peaks
    spacing = np.diff(peaks)
    med = float(np.median(spacing))
    amps = centred[peaks]
    tall = cfg.amplitude_override * float(np.mean(amps))
    keep = np.ones(peaks.size, dtype=bool)
    in_range = (spacing >= cfg.spacing_low * med) & (spacing <= cfg.spacing_high * med)
    keep[1:] = in_range | (amps[1:] > tall)
    dropped = int(np.count_nonzero(~keep))
    if dropped:
        logger.debug("Dropped %d R peaks with implausible spacing (median %.1f)", dropped, med)
    return peaks[keep]


def _pair_s_peaks(x: np.ndarray, r_peaks: np.ndarray, horizon: int) -> np.ndarray:
    n = x.size
    s_peaks: list[int] = []
    for r in r_peaks:
        r = int(r)
        end = min(n - 1, r + horizon)
        if end <= r:
            # Only the last R can sit at the window end
            break
        seg = x[r : end + 1]
        mid = seg[1:-1]
        minima = np.flatnonzero((mid < seg[:-2]) & (mid <= seg[2:]))
        s_peaks.append(r + 1 + int(minima[0]) if minima.size else end)
    return np.asarray(s_peaks, dtype=np.int64)


def detect_peaks(
    values: np.ndarray,
    fs: float,
    cfg: PeakConfig | None = None,
    offset: int = 0,
) -> PeakSet:
    """Detect R peaks and their paired S peaks.

    Args:
        values: raw ECG amplitudes of the processing window.
        fs: sampling rate (Hz).
        cfg: detector parameters.
        offset: absolute buffer index of values[0], carried on the result.

    Returns:
        PeakSet; empty with ``insufficient=True`` when the window is shorter
        than ``cfg.min_samples`` or carries no usable peak.
    """
    cfg = cfg or PeakConfig()
    x = np.asarray(values, dtype=np.float64)
    if x.size < max(3, cfg.min_samples) or fs <= 0:
        logger.debug("Peak detection skipped: %d samples", x.size)
        return PeakSet(offset=offset, insufficient=True)
    if not np.all(np.isfinite(x)):
        return PeakSet(offset=offset, insufficient=True)

    smoothed = moving_average(x, cfg.smooth_width)
    baseline = float(np.median(smoothed))
    thr = _threshold(smoothed - baseline, cfg)
    if thr is None:
        return PeakSet(offset=offset, insufficient=True)

    refractory = ms_to_samples(cfg.refractory_ms, fs)
    candidates = _find_candidates(smoothed - baseline, thr, refractory)
    if candidates.size == 0:
        return PeakSet(offset=offset, insufficient=True)
    aligned = _align_to_raw_max(x, candidates, ms_to_samples(cfg.align_ms, fs))
    aligned = _enforce_refractory(x, aligned, refractory)
    r_peaks = _reject_implausible(x - baseline, aligned, cfg)
    if r_peaks.size < 2:
        logger.debug(
            "Only %d R peak(s) from %d candidates; threshold %.3f may be set by a spike",
            r_peaks.size,
            candidates.size,
            thr,
        )
    s_peaks = _pair_s_peaks(x, r_peaks, ms_to_samples(cfg.s_search_ms, fs))
    return PeakSet(
        r_peaks=r_peaks,
        s_peaks=s_peaks,
        offset=offset,
        insufficient=r_peaks.size < 2,
    )
