"""Synthetic single-lead ECG for the test suite."""

from __future__ import annotations

from typing import Callable

import numpy as np
import pytest


def synth_ecg(
    fs: float = 250.0,
    duration: float = 30.0,
    hr_bpm: float = 72.0,
    resp_hz: float = 0.25,
    am: float = 0.15,
    t_wave: bool = True,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Gaussian QRS-like beats whose R amplitude is modulated by breathing.

    Returns (timestamps_ms, values, beat_sample_indices).
    """
    n = int(round(duration * fs))
    t = np.arange(n) / fs
    x = np.zeros(n)
    beats = np.arange(0.5, duration - 0.3, 60.0 / hr_bpm)
    for tb in beats:
        mod = 1.0 + am * np.sin(2 * np.pi * resp_hz * tb)
        x += mod * np.exp(-0.5 * ((t - tb) / 0.010) ** 2)  # R
        x -= 0.3 * np.exp(-0.5 * ((t - tb - 0.040) / 0.012) ** 2)  # S
        if t_wave:
            x += 0.25 * np.exp(-0.5 * ((t - tb - 0.250) / 0.040) ** 2)
    ts = np.round(np.arange(n) * 1000.0 / fs).astype(np.int64)
    return ts, x, np.round(beats * fs).astype(np.int64)


@pytest.fixture
def ecg() -> Callable[..., tuple[np.ndarray, np.ndarray, np.ndarray]]:
    return synth_ecg
