"""
Linear and step interpolation, used mainly for weight and volatility curves.
"""
import numpy as np

from .base import Interpolator


class LinearInterpolator(Interpolator):
    """Linear interpolation on values with flat extrapolation."""

    def interpolate(self, t: float) -> float:
        """Linear interpolation on values."""
        if t <= self.pillars[0] or t >= self.pillars[-1]:
            return self._extrapolate_flat(t)

        # Find surrounding points
        i = int(np.searchsorted(self.pillars, t)) - 1

        t1, t2 = self.pillars[i], self.pillars[i + 1]
        v1, v2 = self.values[i], self.values[i + 1]

        weight = (t - t1) / (t2 - t1)
        return float(v1 + weight * (v2 - v1))


class PiecewiseConstantInterpolator(Interpolator):
    """Piecewise constant (step function) interpolation.

    Used for rates that are constant between pillar points.
    Simple but can create discontinuities.
    """

    def interpolate(self, t: float) -> float:
        """Step function interpolation."""
        if t <= self.pillars[0] or t >= self.pillars[-1]:
            return self._extrapolate_flat(t)

        # Find the interval and return left endpoint value
        i = int(np.searchsorted(self.pillars, t, side='right')) - 1
        return float(self.values[i])
