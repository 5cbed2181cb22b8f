"""
Base classes for curve interpolation methods.
"""
from abc import ABC, abstractmethod
from typing import List, Sequence

import numpy as np


class Interpolator(ABC):
    """Base class for curve interpolation methods.

    Pillars are curve times in years. A single pillar is allowed; how it
    extrapolates is up to the concrete scheme.
    """

    #: Smooth schemes are swapped for a weighted-constant scheme while the
    #: bootstrap start step runs.
    is_smooth = False

    def __init__(self, pillars: Sequence[float], values: Sequence[float]):
        """
        Initialize interpolator.

        Args:
            pillars: Time to maturity points (in years)
            values: Values to interpolate (discount factors, weights, etc.)
        """
        if len(pillars) != len(values):
            raise ValueError("Pillars and values must have same length")
        if len(pillars) < 1:
            raise ValueError("Need at least 1 point for interpolation")

        # Sort by pillars
        order = np.argsort(np.asarray(pillars, dtype=float), kind="stable")
        self.pillars = np.asarray(pillars, dtype=float)[order]
        self.values = np.asarray(values, dtype=float)[order]

        # Check for duplicates
        if len(np.unique(self.pillars)) != len(self.pillars):
            raise ValueError("Duplicate pillar dates not allowed")

    @abstractmethod
    def interpolate(self, t: float) -> float:
        """Interpolate value at time t."""
        pass

    def interpolate_many(self, times: List[float]) -> List[float]:
        """Interpolate values at multiple times."""
        return [self.interpolate(t) for t in times]

    def _extrapolate_flat(self, t: float) -> float:
        """Flat extrapolation beyond pillar range."""
        if t <= self.pillars[0]:
            return float(self.values[0])
        elif t >= self.pillars[-1]:
            return float(self.values[-1])
        else:
            raise ValueError("Time is within pillar range, use interpolation")
