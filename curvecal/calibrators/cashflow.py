"""
Cash flow fitter: bootstrap and global fit of curve points to priced records.

Each record pairs a target price with receiver (and optionally payer)
payment legs. The model error of a record is

    pv(receiver) - pv(payer) - target

with every leg valued at the record's settlement date off its discount
curve. Floating payments read the curve being fitted lazily, so writing a
curve point immediately changes every record that projects from it.
"""
from __future__ import annotations

import bisect
import logging
import math
import time
from dataclasses import dataclass, field, replace
from datetime import date
from operator import attrgetter
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np
from scipy.optimize import least_squares

from curvecal.cashflows import InterestPayment, Payment, parallel_pv, pv, split_payments
from curvecal.conventions.daycount import ACT_365F
from curvecal.conventions.types import Frequency
from curvecal.curves.curve import Curve
from curvecal.errors import CalibrationError, OverlapError
from curvecal.utils.rootfinding import RootFindingError, solve

from .settings import CashflowCalibratorSettings, CurveFittingMethod, OptimizerStatus

logger = logging.getLogger(__name__)

#: Half width of the initial root-finder bracket around a guess.
BRACKET_HALF_WIDTH = 1e-3

#: Brent x-tolerance as a fraction of the price tolerance.
SOLVER_XTOL_FACTOR = 1e-3


@dataclass(frozen=True)
class FitData:
    """Immutable record built for one tenor on each fit.

    Two records are equal when their curve dates are equal; that equality is
    what marks an overlap.
    """

    curve_date: date
    settle: date = field(compare=False)
    discount_curve: Optional[object] = field(compare=False, repr=False)
    accrued_payments: Tuple[Tuple[InterestPayment, ...], ...] = field(compare=False, repr=False)
    payments: Tuple[Tuple[Payment, ...], ...] = field(compare=False, repr=False)
    multithreaded: Tuple[bool, ...] = field(compare=False)
    target: float = field(compare=False)
    weight: float = field(compare=False, default=1.0)

    def leg_pv(self, leg: int) -> float:
        pv_fn = parallel_pv if self.multithreaded[leg] else pv
        return pv_fn(self.settle, self.accrued_payments[leg], self.payments[leg], self.discount_curve)

    def error(self) -> float:
        """Model price less target price."""
        err = self.leg_pv(0) - self.target
        if len(self.payments) == 2:
            err -= self.leg_pv(1)
        return err


@dataclass
class CalibrationResult:
    status: OptimizerStatus
    price_errors: np.ndarray

    @property
    def converged(self) -> bool:
        return self.status == OptimizerStatus.CONVERGED


# ----------------------------------------------------------------------
# Scoped curve reformat for the bootstrap start step
# ----------------------------------------------------------------------
class CurveReformat:
    """Temporarily simplify a curve while its start step is solved.

    On entry a smooth interpolation is replaced by the weighted-constant
    scheme and, for continuously compounded ACT/365F curves, the as-of date
    moves forward to the earliest record settlement with the points rebased.
    Both changes are undone on exit whatever happens inside the block.
    """

    def __init__(self, curve: Curve, settles: Iterable[date]):
        self._curve = curve
        self._settles = list(settles)
        self._original_interp: Optional[str] = None
        self._original_asof: Optional[date] = None

    def __enter__(self) -> "CurveReformat":
        curve = self._curve
        if curve.is_smooth:
            self._original_interp = curve.interp
            curve.interp = "WEIGHTED"
        if not self._settles or not self.is_multiplicative(curve):
            return self
        min_settle = min(self._settles)
        if curve.asof >= min_settle:
            return self
        self._original_asof = curve.asof
        self.change_base_date(curve, min_settle)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._original_asof is not None:
            self.change_base_date(self._curve, self._original_asof)
        if self._original_interp is not None:
            self._curve.interp = self._original_interp

    @staticmethod
    def is_multiplicative(curve: Curve) -> bool:
        return curve.frequency == Frequency.CONTINUOUS and curve.day_count == ACT_365F

    @staticmethod
    def change_base_date(curve: Curve, to_asof: date) -> None:
        """Move the as-of date keeping discount ratios between points unchanged."""
        if curve.count == 0:
            curve.asof = to_asof
            return
        df0 = curve.interpolate(to_asof)
        points = curve.points
        curve.shrink(0)
        curve.asof = to_asof
        for point in points:
            curve.add(point.date, point.value / df0)


# ----------------------------------------------------------------------
# Bootstrap
# ----------------------------------------------------------------------
class _SolverObjective:
    """Record error as a function of one curve point."""

    def __init__(self, curve: Curve, data: FitData, idx: int):
        self.curve = curve
        self.data = data
        self.idx = idx

    @property
    def curve_date(self) -> date:
        return self.data.curve_date

    @property
    def settle(self) -> date:
        return self.data.settle

    def error(self) -> float:
        return self.data.error()

    def set_val(self, x: float) -> None:
        self.curve.set_val(self.idx, x)

    def __call__(self, x: float) -> float:
        self.curve.set_val(self.idx, x)
        return self.data.error()


class _Bootstrap:
    """Sequential root-finding over records in curve date order."""

    def __init__(self, curve: Curve, records: Sequence[FitData], lower: Optional[float],
                 upper: Optional[float], settings: CashflowCalibratorSettings):
        self.curve = curve
        self.objectives = [_SolverObjective(curve, d, i) for i, d in enumerate(records)]
        self.lower = -math.inf if lower is None else lower
        self.upper = math.inf if upper is None else upper
        self.settings = settings

    def _solve(self, objective: _SolverObjective, guess: float) -> float:
        return solve(
            objective,
            0.0,
            guess - BRACKET_HALF_WIDTH,
            guess + BRACKET_HALF_WIDTH,
            lower=self.lower,
            upper=self.upper,
            tol=SOLVER_XTOL_FACTOR * self.settings.solver_tolerance,
        ).root

    def converged(self, price_errors: np.ndarray) -> Tuple[bool, float]:
        """Fill absolute errors and compare their sup-norm to the tolerance."""
        for i, objective in enumerate(self.objectives):
            price_errors[i] = abs(objective.error())
        error_norm = float(price_errors.max()) if len(price_errors) else 0.0
        return error_norm < self.settings.solver_tolerance, error_norm

    def start_step(self, force_fit: bool) -> Tuple[bool, np.ndarray, np.ndarray, float]:
        curve = self.curve
        n = len(self.objectives)
        guess = np.zeros(n)
        price_errors = np.zeros(n)
        with CurveReformat(curve, (o.settle for o in self.objectives)):
            use_as_initial_guess = curve.count >= n
            if use_as_initial_guess:
                for i, objective in enumerate(self.objectives):
                    guess[i] = curve.interpolate(objective.curve_date)
            curve.clear()
            x = 1.0
            for i, objective in enumerate(self.objectives):
                y = guess[i] if use_as_initial_guess else x
                if y - BRACKET_HALF_WIDTH <= self.lower or y + BRACKET_HALF_WIDTH >= self.upper:
                    y = x
                curve.add(objective.curve_date, y)
                if force_fit and i > 0:
                    try:
                        x = guess[i] = self._solve(objective, y)
                    except (RootFindingError, ValueError, ArithmeticError) as exc:
                        fallback = curve.clone()
                        fallback.shrink(i)
                        value = fallback.interpolate(objective.curve_date)
                        logger.debug(
                            "Force fit: no root at %s (%s); using interpolated %s",
                            objective.curve_date, exc, value,
                        )
                        curve.set_val(i, value)
                        guess[i] = value
                else:
                    x = guess[i] = self._solve(objective, y)
        success, error_norm = self.converged(price_errors)
        return success, guess, price_errors, error_norm

    def iterate(self, guess: np.ndarray, price_errors: np.ndarray, error: float) -> bool:
        """Gauss-Seidel sweeps keeping the best sup-norm vector seen."""
        saved = guess.copy()
        error_norm = error
        try:
            for _ in range(self.settings.max_solver_iterations):
                max_change = 0.0
                for i, objective in enumerate(self.objectives):
                    old = guess[i]
                    guess[i] = self._solve(objective, old)
                    max_change = max(max_change, abs(guess[i] - old))
                success, error = self.converged(price_errors)
                if success or max_change <= self.settings.solver_stopping_rule:
                    return True
                if error <= error_norm:
                    error_norm = error
                    saved[:] = guess
                else:
                    self._restore(saved, guess)
                    return False
            return False
        except (RootFindingError, ValueError, ArithmeticError) as exc:
            logger.debug("Bootstrap sweep failed (%s); restoring best solution", exc)
            self._restore(saved, guess)
            return False

    def _restore(self, saved: np.ndarray, guess: np.ndarray) -> None:
        for i, objective in enumerate(self.objectives):
            objective.set_val(saved[i])
        guess[:] = saved

    def fit(self, start_step_only: bool, force_fit: bool) -> Tuple[OptimizerStatus, np.ndarray, np.ndarray]:
        started = time.perf_counter()
        success, guess, price_errors, error = self.start_step(force_fit)
        if not (success or start_step_only):
            success = self.iterate(guess, price_errors, error)
        logger.info(
            "Completed bootstrapping %s in %.3f seconds, %sconverged",
            self.curve.name, time.perf_counter() - started, "" if success else "not ",
        )
        status = OptimizerStatus.CONVERGED if success else OptimizerStatus.EXACT_SOLUTION_NOT_FOUND
        return status, guess, price_errors


# ----------------------------------------------------------------------
# Global fit
# ----------------------------------------------------------------------
class _SplineObjective:
    """Residuals over per-interval simple forward rates in percent.

    Curve point ``i`` is ``prod_{j<=i} 1 / (1 + h_j x_j / 100)`` where ``h_j``
    is the interval length in years (days/365) measured from the as-of date.
    Slope and curvature penalties act on forward differences of ``x``.
    """

    def __init__(self, curve: Curve, records: Sequence[FitData], volatility: Optional[Curve],
                 slope_weights: Optional[Curve], curvature_weights: Optional[Curve],
                 settings: CashflowCalibratorSettings):
        self.curve = curve
        self.records = list(records)
        self.settings = settings
        self.errors = np.zeros(len(self.records))
        n = curve.count
        self.date_count = n
        dates = [curve.get_dt(i) for i in range(n)]
        previous = curve.asof
        hs = []
        for dt in dates:
            hs.append((dt - previous).days / 365.0)
            previous = dt
        self.hs = np.array(hs)
        self.volatility = (
            None if volatility is None
            else np.array([volatility.interpolate(dt) for dt in dates])
        )
        slope_count = max(n - 1, 0)
        self.w_slope = np.zeros(slope_count)
        self.w_curv = np.zeros(slope_count)
        self.constraint_count = 0
        if slope_weights is not None:
            for i in range(slope_count):
                w = slope_weights.interpolate(dates[i])
                if w > settings.slope_weight_tolerance:
                    self.w_slope[i] = w
                    self.constraint_count += 1
        if curvature_weights is not None:
            for i in range(1, slope_count):
                w = curvature_weights.interpolate(dates[i])
                if w > settings.curvature_weight_tolerance:
                    self.w_curv[i] = w
                    self.constraint_count += 1

    @property
    def dimension(self) -> int:
        return len(self.records) + self.constraint_count

    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        # keeps every 1 + h x / 100 factor positive
        lower = np.maximum(-100.0, -100.0 / self.hs) + 1e-8
        upper = np.full(self.date_count, 1000.0)
        return lower, upper

    def initial_point(self, prices: Sequence[float]) -> np.ndarray:
        x0 = np.zeros(self.date_count)
        df0 = 1.0
        for i in range(self.date_count):
            df = prices[i]
            if not (math.isclose(self.hs[i], 0.0, abs_tol=1e-14) and math.isclose(df, 0.0, abs_tol=1e-14)):
                x0[i] = 100.0 * (df0 / df - 1.0) / self.hs[i]
            df0 = df
        return x0

    def set_curve_points(self, x: np.ndarray) -> None:
        df = 1.0
        for i in range(self.date_count):
            df /= 1.0 + self.hs[i] * x[i] / 100.0
            self.curve.set_val(i, df)

    def record_errors(self) -> np.ndarray:
        for i, record in enumerate(self.records):
            self.errors[i] = record.weight * record.error()
        return self.errors

    def constraints(self, x: np.ndarray) -> List[float]:
        fn: List[float] = []
        if self.date_count < 2:
            return fn
        s0 = (x[1] - x[0]) / self.hs[1] / 100.0
        if self.w_slope[0] > self.settings.slope_weight_tolerance:
            fn.append(self.w_slope[0] * s0)
        for i in range(1, self.date_count - 1):
            s = (x[i + 1] - x[i]) / self.hs[i + 1] / 100.0
            if self.volatility is not None:
                s += self.volatility[i]
            if self.w_slope[i] > self.settings.slope_weight_tolerance:
                fn.append(self.w_slope[i] * s)
            if self.w_curv[i] > self.settings.curvature_weight_tolerance:
                fn.append(self.w_curv[i] * (s - s0))
            s0 = s
        return fn

    def __call__(self, x: np.ndarray) -> np.ndarray:
        self.set_curve_points(x)
        errors = self.record_errors()
        if self.constraint_count:
            return np.concatenate([errors, self.constraints(x)])
        return errors.copy()


class _ParametricObjective:
    """Residuals over the coefficients of the curve's parametric form."""

    def __init__(self, curve: Curve, records: Sequence[FitData]):
        if curve.parametric is None:
            raise CalibrationError("Parametric fit requires a curve with a parametric form")
        self.curve = curve
        self.fn = curve.parametric
        self.records = list(records)
        self.errors = np.zeros(len(self.records))

    @property
    def dimension(self) -> int:
        return len(self.records)

    def bounds(self) -> Tuple[np.ndarray, np.ndarray]:
        n = len(self.fn.parameters)
        lower = np.full(n, -np.inf) if self.fn.lower_bounds is None else self.fn.lower_bounds
        upper = np.full(n, np.inf) if self.fn.upper_bounds is None else self.fn.upper_bounds
        return lower, upper

    def __call__(self, x: np.ndarray) -> np.ndarray:
        self.fn.set_parameters(x)
        for i, record in enumerate(self.records):
            self.errors[i] = record.weight * record.error()
        return self.errors.copy()


def _run_optimizer(objective, x0: np.ndarray, settings: CashflowCalibratorSettings) -> OptimizerStatus:
    lower, upper = objective.bounds()
    x0 = np.clip(x0, lower, upper)
    kwargs = {}
    if settings.optimizer_tolerance > 0:
        kwargs = dict(
            ftol=settings.optimizer_tolerance * math.sqrt(0.5 * objective.dimension),
            xtol=settings.optimizer_tolerance,
            gtol=settings.optimizer_tolerance,
        )
    # trf spends one evaluation on x0 and at least one per iteration
    evaluation_cap = max(settings.max_optimizer_evaluations, 1)
    iteration_cap = max(settings.max_optimizer_iterations, 0) + 1
    iterations_bind = iteration_cap < evaluation_cap
    try:
        result = least_squares(
            objective,
            x0,
            bounds=(lower, upper),
            method="trf",
            max_nfev=min(evaluation_cap, iteration_cap),
            **kwargs,
        )
    except (ValueError, ArithmeticError) as exc:
        logger.warning("Global fit failed: %s", exc)
        return OptimizerStatus.FAILED_FOR_UNKNOWN_REASON
    objective(result.x)
    logger.debug(
        "Global fit finished: status=%s nfev=%s njev=%s cost=%s",
        result.status, result.nfev, result.njev, result.cost,
    )
    if result.status == 0:
        if iterations_bind:
            return OptimizerStatus.MAX_ITERATIONS_REACHED
        return OptimizerStatus.MAX_EVALUATIONS_REACHED
    return OptimizerStatus.CONVERGED


def _global_fit(method: CurveFittingMethod, guess: Sequence[float], curve: Curve,
                records: Sequence[FitData], slope_weights: Optional[Curve],
                curvature_weights: Optional[Curve], volatility: Optional[Curve],
                settings: CashflowCalibratorSettings) -> Tuple[OptimizerStatus, np.ndarray]:
    if method.is_parametric:
        objective = _ParametricObjective(curve, records)
        x0 = np.asarray(guess, dtype=float)
    else:
        objective = _SplineObjective(curve, records, volatility, slope_weights,
                                     curvature_weights, settings)
        x0 = objective.initial_point(guess)
    status = _run_optimizer(objective, x0, settings)
    price_errors = np.array([abs(r.error()) for r in records])
    return status, price_errors


# ----------------------------------------------------------------------
# Public fitter
# ----------------------------------------------------------------------
class CashflowCalibrator:
    """Collects fit records and calibrates a curve to them.

    Records are kept in curve date order. A record is accepted only when its
    weight is positive and its curve date lies after the as-of date.
    """

    def __init__(self, asof: date, lower: Optional[float] = None, upper: Optional[float] = None):
        self.asof = asof
        self.lower = lower
        self.upper = upper
        self._records: List[FitData] = []
        self._overlap = False

    @property
    def records(self) -> List[FitData]:
        return list(self._records)

    @property
    def count(self) -> int:
        return len(self._records)

    @property
    def overlap(self) -> bool:
        return self._overlap

    def add(
        self,
        target: float,
        receiver_payments: Optional[Iterable[Payment]],
        payer_payments: Optional[Iterable[Payment]],
        settle: date,
        discount_curve,
        curve_date: date,
        weight: float = 1.0,
        discounting_accrued: bool = True,
        multithreaded: Sequence[bool] = (),
    ) -> bool:
        """Add one record.

        Args:
            target: Target price of receiver less payer
            receiver_payments: Receiver leg payments
            payer_payments: Payer leg payments, or None for a one-leg product
            settle: Settlement date the legs are valued at
            discount_curve: Discount curve, or None for undiscounted sums
            curve_date: Curve date pinned by this record
            weight: Record weight; records with zero weight are skipped
            discounting_accrued: Discount coupons straddling settle in full
            multithreaded: Per-leg flags selecting the threaded summation

        Returns:
            True if the record was added
        """
        if weight < 0:
            raise CalibrationError(f"Negative weight {weight} for record at {curve_date}")
        if weight == 0 or curve_date <= self.asof:
            return False
        legs = [receiver_payments] if payer_payments is None else [receiver_payments, payer_payments]
        accrued, regular = [], []
        for leg in legs:
            acc, reg = split_payments(leg, settle, discounting_accrued)
            accrued.append(acc)
            regular.append(reg)
        flags = tuple(bool(multithreaded[i]) if i < len(multithreaded) else False
                      for i in range(len(legs)))
        data = FitData(curve_date, settle, discount_curve, tuple(accrued), tuple(regular),
                       flags, target, weight)
        if data in self._records:
            self._overlap = True
        bisect.insort(self._records, data, key=attrgetter("curve_date"))
        return True

    def calibrate(
        self,
        method: CurveFittingMethod,
        curve: Curve,
        slope_weights: Optional[Curve] = None,
        curvature_weights: Optional[Curve] = None,
        volatility: Optional[Curve] = None,
        settings: Optional[CashflowCalibratorSettings] = None,
        force_fit: bool = False,
    ) -> CalibrationResult:
        """Fit ``curve`` to the records with the given method.

        Raises:
            OverlapError: Records share a curve date under a bootstrap method
            CalibrationError: Parametric method without a parametric curve, or
                an unsupported method
        """
        settings = CashflowCalibratorSettings() if settings is None else settings
        if isinstance(method, str):
            method = CurveFittingMethod(method.upper())

        if method.is_bootstrap:
            if self._overlap:
                raise OverlapError(
                    "Cannot bootstrap calibration tenors with overlapping curve dates. "
                    "Specify an overlap treatment order or a global fitting method"
                )
            status, _, price_errors = _Bootstrap(
                curve, self._records, self.lower, self.upper, settings
            ).fit(start_step_only=False, force_fit=force_fit)
            return CalibrationResult(status, price_errors)

        if method in (CurveFittingMethod.LEAST_SQUARES, CurveFittingMethod.SMOOTH_FORWARDS,
                      CurveFittingMethod.SMOOTH_FUTURES):
            vol = volatility if method == CurveFittingMethod.SMOOTH_FUTURES else None
            if method == CurveFittingMethod.LEAST_SQUARES:
                slope_weights = curvature_weights = None
            settings = replace(settings, max_solver_iterations=0)
            if self._overlap:
                distinct = list(dict.fromkeys(self._records))
                _, guess, _ = _Bootstrap(curve, distinct, self.lower, self.upper, settings).fit(
                    start_step_only=True, force_fit=True
                )
            else:
                status, guess, price_errors = _Bootstrap(
                    curve, self._records, self.lower, self.upper, settings
                ).fit(start_step_only=True, force_fit=True)
                if status == OptimizerStatus.CONVERGED and method == CurveFittingMethod.LEAST_SQUARES:
                    return CalibrationResult(status, price_errors)
            status, price_errors = _global_fit(method, guess, curve, self._records, slope_weights,
                                               curvature_weights, vol, settings)
            return CalibrationResult(status, price_errors)

        if method.is_parametric:
            if curve.parametric is None:
                raise CalibrationError(f"{method.value} fit requires a curve with a parametric form")
            status, price_errors = _global_fit(method, curve.parametric.parameters.copy(), curve,
                                               self._records, None, None, None, settings)
            return CalibrationResult(status, price_errors)

        raise CalibrationError(f"Calibration method not supported: {method}")
