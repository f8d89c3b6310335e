from __future__ import annotations

import numpy as np

from ecgvitals.respiration_rate import (
    RateConfig,
    RateStrategy,
    estimate_respiratory_rate,
    zero_crossing_rate,
)


def _sine(freq_hz: float, fs: float = 250.0, n: int = 3000) -> np.ndarray:
    t = np.arange(n) / fs
    return np.sin(2 * np.pi * freq_hz * t)


def test_zero_crossing_recovers_15_brpm() -> None:
    res = estimate_respiratory_rate(_sine(0.25), fs=250.0)
    assert res.available
    assert res.method == RateStrategy.ZERO_CROSSING
    assert 13.0 <= res.brpm <= 17.0
    assert res.crossings >= 4
    assert not res.clamped


def test_zero_crossing_rate_uses_crossing_span() -> None:
    fs = 100.0
    x = _sine(0.5, fs=fs, n=1000)  # 10 s, 30 BrPM
    brpm, n = zero_crossing_rate(x, fs)
    assert n == 9
    assert abs(brpm - 30.0) < 0.5


def test_insufficient_points_unavailable() -> None:
    res = estimate_respiratory_rate(_sine(0.25, n=2999), fs=250.0)
    assert not res.available
    assert res.method is None


def test_degenerate_window_unavailable() -> None:
    res = estimate_respiratory_rate(np.ones(4000), fs=250.0)
    assert res.brpm is None


def test_rate_is_clamped_into_bounds() -> None:
    high = estimate_respiratory_rate(_sine(1.2), fs=250.0)  # 72 BrPM before clamping
    assert high.brpm == 50.0
    assert high.clamped
    low = estimate_respiratory_rate(_sine(0.25), fs=250.0, cfg=RateConfig(rate_min=20.0))
    assert low.brpm == 20.0
    assert low.clamped


def test_spectral_strategy() -> None:
    res = estimate_respiratory_rate(
        _sine(0.25), fs=250.0, cfg=RateConfig(strategy=RateStrategy.SPECTRAL)
    )
    assert res.method == RateStrategy.SPECTRAL
    assert 12.0 <= res.brpm <= 18.0


def test_spectral_fallback_without_crossings() -> None:
    # Hysteresis above the unit scale: no crossing can be counted
    res = estimate_respiratory_rate(_sine(0.25), fs=250.0, cfg=RateConfig(hysteresis=1.5))
    assert res.crossings == 0
    assert res.zero_crossing_brpm is None
    assert res.method == RateStrategy.SPECTRAL
    assert 12.0 <= res.brpm <= 18.0
