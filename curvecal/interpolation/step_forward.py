"""
Step forward (weighted-constant) interpolation.
"""
import math
from typing import Sequence

import numpy as np

from .base import Interpolator


class StepForwardContinuousInterpolator(Interpolator):
    """Step Forward (continuous) interpolation

    Forward rates are piecewise constant (step function) between pillar points,
    i.e. log-values are linear in time. Before the first pillar the first
    zero rate is held; after the last pillar the last forward is held. This is
    the weighted-constant scheme used during the bootstrap start step.
    """

    def __init__(self, pillars: Sequence[float], discount_factors: Sequence[float]):
        """
        Initialize with discount factors.

        Args:
            pillars: Time to maturity points (in years)
            discount_factors: Positive values at pillar points
        """
        super().__init__(pillars, discount_factors)
        if np.any(self.values <= 0.0):
            raise ValueError("Step forward interpolation requires positive values")

        self.log_values = np.log(self.values)
        # Forward rate: f = ln(DF1/DF2) / (t2-t1)
        self.forward_rates = -np.diff(self.log_values) / np.diff(self.pillars)

    def interpolate(self, t: float) -> float:
        """Interpolate discount factor at time t using step forward rates."""
        pillars = self.pillars
        if t <= pillars[0]:
            if pillars[0] <= 0.0:
                # Before an as-of anchor: hold the first forward backwards
                if len(self.forward_rates) == 0:
                    return float(self.values[0])
                return float(self.values[0] * math.exp(-self.forward_rates[0] * (t - pillars[0])))
            # Step-forward extrapolation using first zero rate
            first_zero_rate = -self.log_values[0] / pillars[0]
            return math.exp(-first_zero_rate * t)
        if t >= pillars[-1]:
            if len(self.forward_rates) == 0:
                if pillars[-1] <= 0.0:
                    return float(self.values[-1])
                zero_rate = -self.log_values[-1] / pillars[-1]
                return math.exp(-zero_rate * t)
            dt = t - pillars[-1]
            return float(self.values[-1] * math.exp(-self.forward_rates[-1] * dt))

        # Find the interval containing t
        i = int(np.searchsorted(pillars, t)) - 1
        return float(self.values[i] * math.exp(-self.forward_rates[i] * (t - pillars[i])))

    def interpolate_zero_rate(self, t: float) -> float:
        """Interpolate continuously compounded zero rate at time t."""
        if t <= 0:
            return 0.0
        return -math.log(self.interpolate(t)) / t
