"""Session-scoped ECG processing state.

An EcgSession owns the sample buffer and the respiration cache of one live
stream. Every recompute is a full, bounded pass over the current processing
window; the only state carried between recomputes is the buffer, the
respiration cache and the position up to which the cache has been filled.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass, field
from typing import Iterable

import numpy as np

from .buffer import EcgBuffer, SampleLike
from .hrv import HrvResult, estimate_hrv
from .peaks import PeakConfig, PeakSet, detect_peaks
from .respiration import CACHE_MAX_POINTS, RespirationCache, RespirationWave, extract_respiration
from .respiration_rate import RateConfig, RateResult, estimate_respiratory_rate

logger = logging.getLogger(__name__)


@dataclass
class SessionConfig:
    sampling_rate: float = 250.0  # Hz, nominal rate of the sensor stream
    window_sec: float = 20.0  # processing window
    retention_sec: float = 60.0  # samples kept in the buffer
    display_sec: float = 10.0  # respiration waveform returned for display
    cache_points: int = CACHE_MAX_POINTS
    peaks: PeakConfig = field(default_factory=PeakConfig)
    rate: RateConfig = field(default_factory=RateConfig)

    def __post_init__(self) -> None:
        if self.sampling_rate <= 0:
            raise ValueError("sampling_rate must be positive")
        if self.window_sec <= 0 or self.retention_sec < self.window_sec:
            raise ValueError("retention_sec must cover window_sec")
        if self.rate.window_sec * self.sampling_rate > self.cache_points:
            raise ValueError("respiration cache is smaller than the rate window")

    @property
    def window_samples(self) -> int:
        return int(round(self.window_sec * self.sampling_rate))

    @property
    def retention_samples(self) -> int:
        return int(round(self.retention_sec * self.sampling_rate))

    @property
    def display_samples(self) -> int:
        return int(round(self.display_sec * self.sampling_rate))


@dataclass
class Metrics:
    """Latest derived values; peak indices are relative to the processing window."""

    r_peaks: list[int] = field(default_factory=list)
    s_peaks: list[int] = field(default_factory=list)
    hrv_ms: float | None = None
    heart_rate_bpm: float | None = None
    respiration_signal: list[float] = field(default_factory=list)
    respiratory_rate: float | None = None
    rate_method: str | None = None
    window_offset: int = 0
    samples: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class EcgView:
    """The newest samples plus the peaks that fall inside them."""

    timestamps: list[int]
    values: list[float]
    r_peaks: list[int]
    s_peaks: list[int]


class EcgSession:
    def __init__(self, cfg: SessionConfig | None = None) -> None:
        self.cfg = cfg or SessionConfig()
        self.buffer = EcgBuffer(self.cfg.retention_samples)
        self.cache = RespirationCache(self.cfg.cache_points)
        self._filled_until = -1  # absolute index of the newest cached respiration sample
        self._peaks = PeakSet(insufficient=True)
        self._metrics = Metrics()
        self._lock = threading.Lock()

    @property
    def metrics(self) -> Metrics:
        return self._metrics

    def append(self, samples: Iterable[SampleLike]) -> int:
        """Add samples without recomputing; returns the accepted count."""
        with self._lock:
            return self.buffer.extend(samples)

    def update(self, samples: Iterable[SampleLike]) -> Metrics:
        """Append a batch from the sensor and recompute all metrics."""
        with self._lock:
            self.buffer.extend(samples)
            return self._recompute()

    def recompute(self) -> Metrics:
        with self._lock:
            return self._recompute()

    def view(self, points: int = 1000) -> EcgView:
        """Last ``points`` samples with peaks relative to that view."""
        with self._lock:
            win = self.buffer.window(points)
            return EcgView(
                timestamps=win.timestamps.tolist(),
                values=win.values.tolist(),
                r_peaks=_relative(self._peaks.absolute_r(), win.offset, len(win)),
                s_peaks=_relative(self._peaks.absolute_s(), win.offset, len(win)),
            )

    def close(self) -> None:
        """Discard everything; the session can be reused for a new stream."""
        with self._lock:
            self.buffer.clear()
            self.cache.clear()
            self._filled_until = -1
            self._peaks = PeakSet(insufficient=True)
            self._metrics = Metrics()

    def _recompute(self) -> Metrics:
        fs = self.cfg.sampling_rate
        win = self.buffer.window(self.cfg.window_samples)
        peaks = detect_peaks(win.values, fs, self.cfg.peaks, offset=win.offset)
        self._peaks = peaks

        if peaks.insufficient:
            hrv = HrvResult(None, None)
            rate = RateResult(None)
        else:
            hrv = estimate_hrv(win.timestamps, peaks.r_peaks)
            self._fill_cache(extract_respiration(win.values, peaks), win.offset)
            rate = estimate_respiratory_rate(self.cache.snapshot(), fs, self.cfg.rate)

        self._metrics = Metrics(
            r_peaks=peaks.r_peaks.tolist(),
            s_peaks=peaks.s_peaks.tolist(),
            hrv_ms=hrv.sdnn_ms,
            heart_rate_bpm=hrv.mean_hr_bpm,
            respiration_signal=self.cache.snapshot(self.cfg.display_samples).tolist(),
            respiratory_rate=rate.brpm,
            rate_method=rate.method.value if rate.method is not None else None,
            window_offset=win.offset,
            samples=len(win),
        )
        return self._metrics

    def _fill_cache(self, wave: RespirationWave, offset: int) -> None:
        # Only samples between anchors that have not been cached yet
        if wave.empty:
            return
        first = offset + int(np.ceil(wave.anchor_x[0]))
        last = offset + int(np.floor(wave.anchor_x[-1]))
        start = max(self._filled_until + 1, first)
        if start > last:
            return
        self.cache.extend(wave.signal[start - offset : last - offset + 1])
        self._filled_until = last


def _relative(abs_idx: np.ndarray, start: int, size: int) -> list[int]:
    rel = np.asarray(abs_idx, dtype=np.int64) - start
    return rel[(rel >= 0) & (rel < size)].tolist()
