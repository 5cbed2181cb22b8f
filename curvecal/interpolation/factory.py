"""
Factory functions and utilities for creating interpolators.
"""
import math
from typing import Sequence

from .base import Interpolator
from .linear import LinearInterpolator, PiecewiseConstantInterpolator
from .pchip import PchipLogInterpolator
from .step_forward import StepForwardContinuousInterpolator

_INTERPOLATORS = {
    "WEIGHTED": StepForwardContinuousInterpolator,
    "STEP_FORWARD": StepForwardContinuousInterpolator,
    "STEP_FORWARD_CONTINUOUS": StepForwardContinuousInterpolator,
    "LINEAR": LinearInterpolator,
    "PIECEWISE_CONSTANT": PiecewiseConstantInterpolator,
    "PCHIP": PchipLogInterpolator,
}


def interpolator_class(method: str) -> type:
    """Resolve an interpolation method name to its class."""
    method_upper = method.upper()
    if method_upper not in _INTERPOLATORS:
        raise ValueError(f"Unknown interpolation method: {method}. "
                         f"Available: {', '.join(_INTERPOLATORS)}")
    return _INTERPOLATORS[method_upper]


def create_interpolator(method: str,
                        pillars: Sequence[float],
                        values: Sequence[float]) -> Interpolator:
    """
    Create an interpolator based on method name.

    Args:
        method: Interpolation method name
        pillars: Time points
        values: Values to interpolate

    Returns:
        Configured interpolator
    """
    return interpolator_class(method)(pillars, values)


def discount_factor_to_zero_rate(df: float, time: float) -> float:
    """Convert discount factor to continuously compounded zero rate."""
    if df <= 0:
        raise ValueError("Discount factor must be positive")
    if time <= 0:
        raise ValueError("Time must be positive")

    return -math.log(df) / time
