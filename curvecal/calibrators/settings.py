"""
Calibration settings and fitting method / status enumerations.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional, Sequence

from dateutil.relativedelta import relativedelta

from curvecal.conventions.types import InstrumentType
from curvecal.curves.curve import Curve


class CurveFittingMethod(Enum):
    """Numerical method used to fit curve points."""

    BOOTSTRAP = "BOOTSTRAP"
    ITERATIVE_BOOTSTRAP = "ITERATIVE_BOOTSTRAP"
    SVENSSON = "SVENSSON"
    NELSON_SIEGEL = "NELSON_SIEGEL"
    SMOOTH_FORWARDS = "SMOOTH_FORWARDS"
    SMOOTH_FUTURES = "SMOOTH_FUTURES"
    LEAST_SQUARES = "LEAST_SQUARES"

    @property
    def is_bootstrap(self) -> bool:
        return self in (CurveFittingMethod.BOOTSTRAP, CurveFittingMethod.ITERATIVE_BOOTSTRAP)

    @property
    def is_parametric(self) -> bool:
        return self in (CurveFittingMethod.SVENSSON, CurveFittingMethod.NELSON_SIEGEL)


class OptimizerStatus(Enum):
    """Outcome of a calibration; non-convergence is reported, never raised."""

    CONVERGED = "CONVERGED"
    MAX_EVALUATIONS_REACHED = "MAX_EVALUATIONS_REACHED"
    MAX_ITERATIONS_REACHED = "MAX_ITERATIONS_REACHED"
    FAILED_FOR_UNKNOWN_REASON = "FAILED_FOR_UNKNOWN_REASON"
    EXACT_SOLUTION_NOT_FOUND = "EXACT_SOLUTION_NOT_FOUND"


@dataclass
class CashflowCalibratorSettings:
    """Numerical tolerances and caps of the cash flow fitter."""

    curvature_weight_tolerance: float = 1e-32
    slope_weight_tolerance: float = 1e-32
    max_optimizer_evaluations: int = 3000
    max_optimizer_iterations: int = 2000
    max_solver_iterations: int = 20
    optimizer_tolerance: float = 1e-8
    solver_stopping_rule: float = 1e-10
    solver_tolerance: float = 1e-10


def default_weight_curve(asof: date, factor: float = 1.0) -> Curve:
    """Linear weights rising from ``0.001*factor`` at 1Y to ``0.01*factor`` at 10Y."""
    curve = Curve(asof, interp="LINEAR", anchor=None, name="weights")
    curve.add(asof + relativedelta(years=1), 0.001 * factor)
    curve.add(asof + relativedelta(years=10), 0.01 * factor)
    return curve


def flat_weight_curve(asof: date, value: float) -> Curve:
    curve = Curve(asof, interp="LINEAR", anchor=None, name="weights")
    curve.add(asof, value)
    return curve


@dataclass
class CalibratorSettings:
    """Curve fit settings chosen by the user of a calibrator.

    Attributes:
        method: Fitting method
        interp: Interpolation applied to the calibrated curve; None keeps the curve's own
        slope_weight: Flat slope penalty weight; None selects the default curve
        curvature_weight: Flat curvature penalty weight; None selects the default curve
        slope_weight_curve: Explicit slope weights by date (overrides slope_weight)
        curvature_weight_curve: Explicit curvature weights by date
        weight_factor: Scale applied to the default weight curves
        volatility_curve: Forward volatility by date, used by SMOOTH_FUTURES
        overlap_treatment_order: Instrument types by priority when tenors share
            a curve date; empty keeps every tenor
        chained_swap_approach: Assemble basis swap chains for projection curves
        maximum_iterations: Overrides solver and optimizer iteration caps when >= 0
        force_fit: Continue past failed bootstrap points
        lower_bound: Lowest admissible solved value
        upper_bound: Highest admissible solved value
        multithreaded: Sum leg payments on worker threads
        discounting_accrued: Discount coupons straddling settlement in full
        verbose: Log curve conventions before fitting
    """

    method: CurveFittingMethod = CurveFittingMethod.BOOTSTRAP
    interp: Optional[str] = None
    slope_weight: Optional[float] = None
    curvature_weight: Optional[float] = None
    slope_weight_curve: Optional[Curve] = None
    curvature_weight_curve: Optional[Curve] = None
    weight_factor: float = 1.0
    volatility_curve: Optional[Curve] = None
    overlap_treatment_order: Sequence[InstrumentType] = field(default_factory=tuple)
    chained_swap_approach: bool = False
    maximum_iterations: int = -1
    force_fit: bool = False
    lower_bound: float = 1e-8
    upper_bound: float = 1.0
    multithreaded: bool = False
    discounting_accrued: bool = True
    verbose: bool = False

    def __post_init__(self):
        if isinstance(self.method, str):
            self.method = CurveFittingMethod(self.method.upper())
        if self.lower_bound >= self.upper_bound:
            raise ValueError(
                f"lower_bound {self.lower_bound} must be below upper_bound {self.upper_bound}"
            )

    def resolve_weight_curves(self, asof: date):
        """Slope and curvature weight curves in effect as of ``asof``."""
        slope = self.slope_weight_curve
        if slope is None:
            slope = (
                default_weight_curve(asof, self.weight_factor)
                if self.slope_weight is None
                else flat_weight_curve(asof, self.slope_weight)
            )
        curvature = self.curvature_weight_curve
        if curvature is None:
            curvature = (
                default_weight_curve(asof, self.weight_factor)
                if self.curvature_weight is None
                else flat_weight_curve(asof, self.curvature_weight)
            )
        return slope, curvature
