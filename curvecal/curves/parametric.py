"""
Parametric curve forms whose coefficients are calibrated directly.

Zero rate definitions follow the usual Nelson-Siegel decomposition:

    r(t) = beta0 + beta1 * ((1-exp(-t/tau))/(t/tau))
                 + beta2 * ((1-exp(-t/tau))/(t/tau) - exp(-t/tau))

Svensson adds a second hump term with its own decay ``tau2``. Rates are in
decimal units and discount factors are ``exp(-r(t) * t)``.
"""
from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

import numpy as np


def _loading(t: float, tau: float) -> Tuple[float, float]:
    """Return the slope and curvature loadings at time ``t``."""
    x = t / tau
    if x < 1e-8:
        # As t -> 0: (1 - exp(-x))/x -> 1
        return 1.0, 0.0
    decay = math.exp(-x)
    slope = (1.0 - decay) / x
    return slope, slope - decay


class ParametricCurveFn(ABC):
    """Functional curve form driven by a mutable parameter vector."""

    parameter_names: Tuple[str, ...] = ()

    def __init__(
        self,
        parameters: Sequence[float],
        lower_bounds: Optional[Sequence[float]] = None,
        upper_bounds: Optional[Sequence[float]] = None,
    ):
        if len(parameters) != len(self.parameter_names):
            raise ValueError(
                f"{self.__class__.__name__} expects {len(self.parameter_names)} parameters, "
                f"got {len(parameters)}"
            )
        self.parameters = np.asarray(parameters, dtype=float).copy()
        self.lower_bounds = None if lower_bounds is None else np.asarray(lower_bounds, dtype=float)
        self.upper_bounds = None if upper_bounds is None else np.asarray(upper_bounds, dtype=float)

    @abstractmethod
    def zero_rate(self, t: float) -> float:
        """Continuously compounded zero rate at curve time ``t``."""
        pass

    def discount_factor(self, t: float) -> float:
        if t <= 0.0:
            return 1.0
        return math.exp(-self.zero_rate(t) * t)

    def set_parameters(self, values: Sequence[float]) -> None:
        self.parameters[:] = values

    def clone(self) -> "ParametricCurveFn":
        other = self.__class__.__new__(self.__class__)
        other.__dict__.update(self.__dict__)
        other.parameters = self.parameters.copy()
        return other

    def as_dict(self) -> dict:
        return dict(zip(self.parameter_names, self.parameters.tolist(), strict=True))


class NelsonSiegelFn(ParametricCurveFn):
    """Nelson-Siegel form: level, slope, curvature and one decay."""

    parameter_names = ("beta0", "beta1", "beta2", "tau")

    def __init__(self, beta0=0.03, beta1=-0.01, beta2=0.0, tau=2.0,
                 lower_bounds=None, upper_bounds=None):
        if lower_bounds is None:
            lower_bounds = (-1.0, -1.0, -1.0, 1e-2)
        if upper_bounds is None:
            upper_bounds = (1.0, 1.0, 1.0, 50.0)
        super().__init__((beta0, beta1, beta2, tau), lower_bounds, upper_bounds)

    def zero_rate(self, t: float) -> float:
        beta0, beta1, beta2, tau = self.parameters
        slope, curvature = _loading(t, tau)
        return beta0 + beta1 * slope + beta2 * curvature


class SvenssonFn(ParametricCurveFn):
    """Svensson form: Nelson-Siegel plus a second curvature term."""

    parameter_names = ("beta0", "beta1", "beta2", "beta3", "tau1", "tau2")

    def __init__(self, beta0=0.03, beta1=-0.01, beta2=0.0, beta3=0.0, tau1=2.0, tau2=8.0,
                 lower_bounds=None, upper_bounds=None):
        if lower_bounds is None:
            lower_bounds = (-1.0, -1.0, -1.0, -1.0, 1e-2, 1e-2)
        if upper_bounds is None:
            upper_bounds = (1.0, 1.0, 1.0, 1.0, 50.0, 50.0)
        super().__init__((beta0, beta1, beta2, beta3, tau1, tau2), lower_bounds, upper_bounds)

    def zero_rate(self, t: float) -> float:
        beta0, beta1, beta2, beta3, tau1, tau2 = self.parameters
        slope, curvature = _loading(t, tau1)
        _, curvature2 = _loading(t, tau2)
        return beta0 + beta1 * slope + beta2 * curvature + beta3 * curvature2
