"""
Shape-preserving cubic interpolation on log values.
"""
import math
from typing import Sequence

import numpy as np
from scipy.interpolate import PchipInterpolator

from .base import Interpolator
from .step_forward import StepForwardContinuousInterpolator


class PchipLogInterpolator(Interpolator):
    """PCHIP on log-values; flat-forward outside the pillar range.

    Smooth forwards are unstable while points are being added one at a time,
    so curves using this scheme are reformatted to weighted-constant during
    the bootstrap start step.
    """

    is_smooth = True

    def __init__(self, pillars: Sequence[float], values: Sequence[float]):
        super().__init__(pillars, values)
        self._step = StepForwardContinuousInterpolator(self.pillars, self.values)
        self._spline = None
        if len(self.pillars) >= 3:
            self._spline = PchipInterpolator(
                self.pillars, self._step.log_values, extrapolate=False
            )

    def interpolate(self, t: float) -> float:
        if self._spline is None or t <= self.pillars[0] or t >= self.pillars[-1]:
            return self._step.interpolate(t)
        return math.exp(float(self._spline(t)))
