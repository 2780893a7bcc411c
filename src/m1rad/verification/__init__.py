"""Verification test problems for the M1 radiation solver."""

from m1rad.verification.gaussian_pulse import (
    GaussianPulseResult,
    gaussian_pulse_analytical,
    run_gaussian_pulse,
)
from m1rad.verification.marshak import (
    MarshakResult,
    front_position,
    run_marshak,
)
from m1rad.verification.streaming import (
    StreamingResult,
    run_streaming,
)
from m1rad.verification.su_olson import (
    SuOlsonResult,
    run_su_olson,
)

__all__ = [
    "GaussianPulseResult",
    "MarshakResult",
    "StreamingResult",
    "SuOlsonResult",
    "front_position",
    "gaussian_pulse_analytical",
    "run_gaussian_pulse",
    "run_marshak",
    "run_streaming",
    "run_su_olson",
]
