"""ECG-derived respiration (EDR) from R-S amplitude modulation.

Breathing modulates the QRS amplitude. Each matched (R, S) pair gives one
amplitude sample (R minus S) anchored midway between the two peaks; a natural
cubic spline through those anchors reconstructs a continuous respiration
proxy on the ECG sample grid.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Iterable

import numpy as np

from .errors import EcgError
from .peaks import PeakSet
from .preprocess import normalize_unit
from .spline import cubic_spline

logger = logging.getLogger(__name__)

CACHE_MAX_POINTS = 5000


@dataclass
class RespirationWave:
    signal: np.ndarray  # unit-normalized waveform, same length as the ECG window
    anchor_x: np.ndarray = field(default_factory=lambda: np.zeros(0))  # window positions
    anchor_y: np.ndarray = field(default_factory=lambda: np.zeros(0))  # raw R-S amplitudes

    @property
    def empty(self) -> bool:
        return self.signal.size == 0


def rs_anchors(values: np.ndarray, peaks: PeakSet) -> tuple[np.ndarray, np.ndarray]:
    """Midpoint positions and R-S amplitude differences of matched pairs."""
    x = np.asarray(values, dtype=np.float64)
    xs: list[float] = []
    ys: list[float] = []
    for r, s in peaks.pairs():
        if not (0 <= r < s < x.size):
            continue
        mid = 0.5 * (r + s)
        if xs and mid <= xs[-1]:
            continue
        xs.append(mid)
        ys.append(float(x[r] - x[s]))
    return np.asarray(xs), np.asarray(ys)


def extract_respiration(values: np.ndarray, peaks: PeakSet) -> RespirationWave:
    """Reconstruct the respiration proxy over the whole window.

    Returns an empty wave when fewer than 2 anchors exist or the anchors are
    degenerate (e.g. constant amplitude).
    """
    x = np.asarray(values, dtype=np.float64)
    ax, ay = rs_anchors(x, peaks)
    if ax.size < 2:
        logger.debug("Respiration unavailable: %d R-S anchors", ax.size)
        return RespirationWave(np.zeros(0), ax, ay)
    try:
        wave = normalize_unit(cubic_spline(ax, ay, x.size))
    except EcgError as e:
        logger.debug("Respiration unavailable: %s", e)
        return RespirationWave(np.zeros(0), ax, ay)
    return RespirationWave(wave, ax, ay)


class RespirationCache:
    """FIFO of reconstructed respiration samples, oldest evicted first."""

    def __init__(self, max_points: int = CACHE_MAX_POINTS) -> None:
        if max_points < 1:
            raise ValueError("max_points must be >= 1")
        self._buf: Deque[float] = deque(maxlen=int(max_points))

    def __len__(self) -> int:
        return len(self._buf)

    @property
    def max_points(self) -> int:
        return int(self._buf.maxlen or 0)

    def extend(self, samples: Iterable[float]) -> None:
        self._buf.extend(float(v) for v in samples)

    def snapshot(self, n: int | None = None) -> np.ndarray:
        """Copy of the newest n samples (all when n is None)."""
        arr = np.fromiter(self._buf, dtype=np.float64, count=len(self._buf))
        if n is None:
            return arr
        return arr[max(0, arr.size - int(n)) :]

    def clear(self) -> None:
        self._buf.clear()
