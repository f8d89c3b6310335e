"""Heart-rate variability (SDNN) from R-peak timestamps."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

logger = logging.getLogger(__name__)

RR_MIN_MS = 300.0  # 200 bpm
RR_MAX_MS = 2000.0  # 30 bpm


@dataclass
class HrvResult:
    sdnn_ms: float | None
    mean_hr_bpm: float | None
    rr_ms: np.ndarray = field(default_factory=lambda: np.zeros(0))  # valid intervals

    @property
    def available(self) -> bool:
        return self.sdnn_ms is not None


def rr_intervals(
    peak_timestamps: Sequence[float],
    rr_min_ms: float = RR_MIN_MS,
    rr_max_ms: float = RR_MAX_MS,
) -> np.ndarray:
    """Consecutive R-R differences (ms) inside [rr_min_ms, rr_max_ms].

    Out-of-range intervals are dropped, not clamped.
    """
    t = np.asarray(peak_timestamps, dtype=np.float64)
    if t.size < 2:
        return np.zeros(0)
    rr = np.diff(t)
    return rr[(rr >= rr_min_ms) & (rr <= rr_max_ms)]


def sdnn(intervals: Sequence[float]) -> float | None:
    """Sample standard deviation (ddof=1) of RR intervals; None below 2 values."""
    arr = np.asarray(intervals, dtype=np.float64)
    if arr.size < 2:
        return None
    return float(np.std(arr, ddof=1))


def estimate_hrv(timestamps: np.ndarray, r_peaks: np.ndarray) -> HrvResult:
    """SDNN and mean heart rate over the R peaks of one window.

    Args:
        timestamps: window sample timestamps (ms).
        r_peaks: R-peak indices into ``timestamps``.
    """
    ts = np.asarray(timestamps)
    idx = np.asarray(r_peaks, dtype=np.int64)
    if idx.size < 2:
        return HrvResult(None, None)
    rr = rr_intervals(ts[idx])
    value = sdnn(rr)
    if value is None:
        logger.debug("HRV unavailable: %d valid RR intervals", rr.size)
        return HrvResult(None, None, rr)
    return HrvResult(value, 60000.0 / float(np.mean(rr)), rr)
