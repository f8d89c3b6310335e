"""Real-time ECG vitals: R/S peaks, HRV (SDNN) and ECG-derived respiration rate."""

from .buffer import EcgBuffer, EcgSample
from .errors import EcgError, InsufficientData, NumericDegenerate
from .hrv import HrvResult, estimate_hrv, rr_intervals, sdnn
from .peaks import PeakConfig, PeakSet, ThresholdMode, detect_peaks
from .respiration import RespirationCache, RespirationWave, extract_respiration
from .respiration_rate import RateConfig, RateResult, RateStrategy, estimate_respiratory_rate
from .session import EcgSession, EcgView, Metrics, SessionConfig

__all__ = [
    "EcgBuffer",
    "EcgSample",
    "EcgError",
    "InsufficientData",
    "NumericDegenerate",
    "HrvResult",
    "estimate_hrv",
    "rr_intervals",
    "sdnn",
    "PeakConfig",
    "PeakSet",
    "ThresholdMode",
    "detect_peaks",
    "RespirationCache",
    "RespirationWave",
    "extract_respiration",
    "RateConfig",
    "RateResult",
    "RateStrategy",
    "estimate_respiratory_rate",
    "EcgSession",
    "EcgView",
    "Metrics",
    "SessionConfig",
]

__version__ = "0.1.0"
