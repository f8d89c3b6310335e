from __future__ import annotations

import numpy as np
import pytest

from ecgvitals.hrv import estimate_hrv, rr_intervals, sdnn


def test_sdnn_matches_bessel_corrected_std() -> None:
    rr = [800.0, 820.0, 780.0, 810.0]
    value = sdnn(rr)
    assert value == pytest.approx(float(np.std(rr, ddof=1)))
    assert value == pytest.approx(17.078, abs=1e-3)


def test_rr_intervals_from_timestamps() -> None:
    ts = [0, 800, 1620, 2400, 3210]
    assert rr_intervals(ts).tolist() == [800.0, 820.0, 780.0, 810.0]


def test_out_of_range_intervals_are_discarded() -> None:
    # 250 ms and 2450 ms are dropped, not clamped
    rr = rr_intervals([0, 250, 1050, 3500])
    assert rr.tolist() == [800.0]
    assert sdnn(rr) is None


def test_hrv_unavailable_with_single_peak() -> None:
    ts = np.arange(0, 4000, 4)
    res = estimate_hrv(ts, np.array([120]))
    assert not res.available
    assert res.sdnn_ms is None and res.mean_hr_bpm is None


def test_estimate_hrv_uses_peak_timestamps() -> None:
    ts = np.arange(0, 5000, 4)  # 250 Hz
    peaks = np.array([0, 200, 405, 600, 802])  # RR 800, 820, 780, 808 ms
    res = estimate_hrv(ts, peaks)
    assert res.available
    assert res.rr_ms.tolist() == [800.0, 820.0, 780.0, 808.0]
    assert res.sdnn_ms == pytest.approx(float(np.std(res.rr_ms, ddof=1)))
    assert res.mean_hr_bpm == pytest.approx(60000.0 / 802.0)
