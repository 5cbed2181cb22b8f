"""
Interpolation methods for calibrated curves.
"""

from .base import Interpolator
from .factory import (
    create_interpolator,
    discount_factor_to_zero_rate,
    interpolator_class,
)
from .linear import LinearInterpolator, PiecewiseConstantInterpolator
from .pchip import PchipLogInterpolator
from .step_forward import StepForwardContinuousInterpolator

__all__ = [
    'Interpolator',
    'LinearInterpolator',
    'PiecewiseConstantInterpolator',
    'PchipLogInterpolator',
    'StepForwardContinuousInterpolator',
    'create_interpolator',
    'discount_factor_to_zero_rate',
    'interpolator_class',
]
