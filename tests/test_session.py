from __future__ import annotations

import numpy as np
import pytest

from ecgvitals.respiration_rate import RateConfig
from ecgvitals.session import EcgSession, SessionConfig


def _feed(session: EcgSession, ts: np.ndarray, x: np.ndarray, batch: int = 250) -> None:
    for i in range(0, x.size, batch):
        session.update(zip(ts[i : i + batch].tolist(), x[i : i + batch].tolist()))


def test_short_stream_reports_unavailable() -> None:
    s = EcgSession()
    m = s.update((i * 4, 0.0) for i in range(50))
    assert m.r_peaks == [] and m.s_peaks == []
    assert m.hrv_ms is None
    assert m.respiratory_rate is None
    assert m.respiration_signal == []


def test_full_pipeline_on_synthetic_stream(ecg) -> None:
    ts, x, _ = ecg(fs=250.0, duration=40.0, hr_bpm=72.0, resp_hz=0.25, am=0.15)
    s = EcgSession(SessionConfig(sampling_rate=250.0))
    _feed(s, ts, x)
    m = s.metrics
    assert len(m.r_peaks) >= 20
    assert all(0 < sp - rp <= 30 for rp, sp in zip(m.r_peaks, m.s_peaks))
    assert m.hrv_ms is not None and m.hrv_ms < 10.0
    assert m.heart_rate_bpm == pytest.approx(72.0, abs=1.0)
    assert m.respiratory_rate is not None
    assert 12.0 <= m.respiratory_rate <= 18.0
    assert m.rate_method == "zero_crossing"
    assert len(m.respiration_signal) == 2500
    assert len(s.cache) == 5000


def test_recompute_is_idempotent(ecg) -> None:
    ts, x, _ = ecg(duration=30.0)
    s = EcgSession()
    _feed(s, ts, x)
    cached = len(s.cache)
    first = s.recompute().to_dict()
    second = s.recompute().to_dict()
    assert first == second
    assert len(s.cache) == cached


def test_peaks_are_relative_to_processing_window(ecg) -> None:
    ts, x, _ = ecg(duration=30.0)
    s = EcgSession(SessionConfig(window_sec=20.0))
    _feed(s, ts, x)
    m = s.metrics
    assert m.samples == 5000
    assert m.window_offset == x.size - 5000
    assert max(m.r_peaks) < 5000
    for r in m.r_peaks:
        assert x[m.window_offset + r] > 0.7


def test_view_maps_peaks_into_display_window(ecg) -> None:
    ts, x, _ = ecg(duration=30.0)
    s = EcgSession()
    _feed(s, ts, x)
    v = s.view(1000)
    assert len(v.values) == 1000
    assert v.timestamps[-1] == int(ts[-1])
    assert 4 <= len(v.r_peaks) <= 6
    for r in v.r_peaks:
        assert 0 <= r < 1000
        assert v.values[r] > 0.7
    assert v.s_peaks
    for sp in v.s_peaks:
        assert 0 <= sp < 1000
        assert v.values[sp] < 0.0


def test_close_discards_state(ecg) -> None:
    ts, x, _ = ecg(duration=15.0)
    s = EcgSession()
    _feed(s, ts, x)
    s.close()
    assert len(s.buffer) == 0
    assert len(s.cache) == 0
    assert s.metrics.hrv_ms is None
    assert s.metrics.r_peaks == []


def test_cache_never_exceeds_cap(ecg) -> None:
    ts, x, _ = ecg(duration=60.0)
    s = EcgSession()
    for i in range(0, x.size, 500):
        s.update(zip(ts[i : i + 500].tolist(), x[i : i + 500].tolist()))
        assert len(s.cache) <= 5000


def test_invalid_config_rejected() -> None:
    with pytest.raises(ValueError):
        SessionConfig(sampling_rate=0.0)
    with pytest.raises(ValueError):
        SessionConfig(window_sec=30.0, retention_sec=10.0)
    with pytest.raises(ValueError):
        SessionConfig(sampling_rate=1000.0, rate=RateConfig(window_sec=10.0))
