"""Append-only ECG sample buffer with a retention cap.

The buffer keeps the absolute index of its first retained sample so that
indices computed against an earlier window can be mapped back after old
samples have been dropped.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Iterable, Tuple, Union

import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EcgSample:
    timestamp: int  # ms
    value: float


SampleLike = Union[EcgSample, Tuple[int, float]]


@dataclass
class Window:
    """A contiguous slice of the buffer."""

    timestamps: np.ndarray  # int64 ms
    values: np.ndarray  # float64
    offset: int  # absolute index of timestamps[0]

    def __len__(self) -> int:
        return int(self.values.size)


class EcgBuffer:
    def __init__(self, max_samples: int = 15000) -> None:
        if max_samples < 1:
            raise ValueError("max_samples must be >= 1")
        self.max_samples = int(max_samples)
        self._t: Deque[int] = deque(maxlen=self.max_samples)
        self._v: Deque[float] = deque(maxlen=self.max_samples)
        self._appended = 0  # total samples ever accepted

    def __len__(self) -> int:
        return len(self._v)

    @property
    def start(self) -> int:
        """Absolute index of the oldest retained sample."""
        return self._appended - len(self._v)

    @property
    def end(self) -> int:
        """Absolute index one past the newest sample."""
        return self._appended

    @property
    def last_timestamp(self) -> int | None:
        return self._t[-1] if self._t else None

    def extend(self, samples: Iterable[SampleLike]) -> int:
        """Append samples in order; returns how many were accepted.

        Samples whose timestamp does not increase past the newest retained
        one are skipped, as are non-finite values.
        """
        accepted = 0
        rejected = 0
        for s in samples:
            if isinstance(s, EcgSample):
                ts, val = s.timestamp, s.value
            else:
                ts, val = s
            ts = int(ts)
            val = float(val)
            last = self.last_timestamp
            if (last is not None and ts <= last) or not np.isfinite(val):
                rejected += 1
                continue
            self._t.append(ts)
            self._v.append(val)
            self._appended += 1
            accepted += 1
        if rejected:
            logger.warning("Skipped %d out-of-order or non-finite ECG samples", rejected)
        return accepted

    def window(self, n: int | None = None) -> Window:
        """The newest n samples (all retained samples when n is None)."""
        size = len(self._v) if n is None else max(0, min(int(n), len(self._v)))
        ts = np.fromiter(self._t, dtype=np.int64, count=len(self._t))[len(self._t) - size :]
        vals = np.fromiter(self._v, dtype=np.float64, count=len(self._v))[len(self._v) - size :]
        return Window(timestamps=ts, values=vals, offset=self.end - size)

    def clear(self) -> None:
        self._t.clear()
        self._v.clear()
        self._appended = 0
