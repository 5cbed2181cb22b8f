"""
Unit tests for the cash flow fitter.

Tests verify correctness of:
- Record intake (skipped, rejected and overlapping records)
- Bootstrap of zero-coupon targets, warm restarts and force fit
- Global least-squares and smoothed fits, including overlapping records
- Nelson-Siegel parametric fit
- Temporary curve reformatting during the bootstrap start step
- Bracketed root finding, including objectives undefined outside a domain
"""

import math
from datetime import date

import numpy as np
import pytest
from dateutil.relativedelta import relativedelta

from curvecal.calibrators import (
    CashflowCalibrator,
    CashflowCalibratorSettings,
    CurveFittingMethod,
    CurveReformat,
    OptimizerStatus,
    flat_weight_curve,
)
from curvecal.cashflows import FixedPayment
from curvecal.curves import Curve, NelsonSiegelFn
from curvecal.errors import CalibrationError, OverlapError
from curvecal.utils import RootFindingError, find_bracket, solve

ASOF = date(2024, 1, 2)
TARGETS = [(1, 0.99), (2, 0.97), (3, 0.94)]


def years(n: int) -> date:
    return ASOF + relativedelta(years=n)


def add_zero(calibrator: CashflowCalibrator, curve: Curve, maturity: date, target: float,
             weight: float = 1.0) -> bool:
    """Add a unit payment at ``maturity`` priced at ``target``."""
    return calibrator.add(target, [FixedPayment(maturity, 1.0)], None, ASOF, curve, maturity, weight)


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------

@pytest.fixture
def curve() -> Curve:
    return Curve(ASOF, name="zero")


@pytest.fixture
def calibrator(curve) -> CashflowCalibrator:
    """Three zero-coupon records at 1Y, 2Y and 3Y."""
    cal = CashflowCalibrator(ASOF, lower=1e-8, upper=1.0)
    for n, target in TARGETS:
        add_zero(cal, curve, years(n), target)
    return cal


# ------------------------------------------------------------------
# Records
# ------------------------------------------------------------------

class TestRecords:
    """Tests for adding fit records."""

    def test_records_sorted_by_curve_date(self, curve):
        cal = CashflowCalibrator(ASOF)
        add_zero(cal, curve, years(3), 0.94)
        add_zero(cal, curve, years(1), 0.99)
        assert [r.curve_date for r in cal.records] == [years(1), years(3)]
        assert not cal.overlap

    def test_zero_weight_skipped(self, curve):
        cal = CashflowCalibrator(ASOF)
        assert not add_zero(cal, curve, years(1), 0.99, weight=0.0)
        assert cal.count == 0

    def test_past_curve_date_skipped(self, curve):
        cal = CashflowCalibrator(ASOF)
        assert not add_zero(cal, curve, ASOF, 1.0)
        assert cal.count == 0

    def test_negative_weight_rejected(self, curve):
        cal = CashflowCalibrator(ASOF)
        with pytest.raises(CalibrationError, match="Negative weight"):
            add_zero(cal, curve, years(1), 0.99, weight=-1.0)

    def test_same_curve_date_marks_overlap(self, calibrator, curve):
        add_zero(calibrator, curve, years(2), 0.96)
        assert calibrator.overlap
        assert calibrator.count == 4

    def test_record_error(self, curve):
        cal = CashflowCalibrator(ASOF)
        add_zero(cal, curve, years(1), 0.99)
        # empty curve discounts at the anchor
        assert cal.records[0].error() == pytest.approx(0.01)


# ------------------------------------------------------------------
# Bootstrap
# ------------------------------------------------------------------

class TestBootstrap:
    """Tests for sequential bootstrapping."""

    def test_reprices_targets(self, calibrator, curve):
        result = calibrator.calibrate(CurveFittingMethod.BOOTSTRAP, curve)
        assert result.status == OptimizerStatus.CONVERGED
        assert result.converged
        assert curve.count == 3
        for i, (_, target) in enumerate(TARGETS):
            assert curve.get_val(i) == pytest.approx(target, abs=1e-10)
        assert float(result.price_errors.max()) < 1e-10

    def test_values_decreasing(self, calibrator, curve):
        calibrator.calibrate(CurveFittingMethod.BOOTSTRAP, curve)
        values = [p.value for p in curve.points]
        assert all(a > b for a, b in zip(values, values[1:]))

    def test_warm_restart_is_stable(self, calibrator, curve):
        """Calibrating again from the previous solution gives the same curve."""
        calibrator.calibrate(CurveFittingMethod.BOOTSTRAP, curve)
        first = [p.value for p in curve.points]
        result = calibrator.calibrate(CurveFittingMethod.ITERATIVE_BOOTSTRAP, curve)
        assert result.converged
        assert [p.value for p in curve.points] == pytest.approx(first, abs=1e-10)

    def test_method_given_as_string(self, calibrator, curve):
        assert calibrator.calibrate("bootstrap", curve).converged

    def test_overlap_rejected(self, calibrator, curve):
        add_zero(calibrator, curve, years(2), 0.96)
        with pytest.raises(OverlapError, match="overlapping curve dates"):
            calibrator.calibrate(CurveFittingMethod.BOOTSTRAP, curve)

    def test_unsolvable_point_raises(self, curve):
        cal = CashflowCalibrator(ASOF, lower=1e-8, upper=1.0)
        add_zero(cal, curve, years(1), 0.99)
        add_zero(cal, curve, years(2), 1.5)
        with pytest.raises(RootFindingError):
            cal.calibrate(CurveFittingMethod.BOOTSTRAP, curve)

    def test_force_fit_continues(self, curve):
        """With force fit an unsolvable point is interpolated instead."""
        cal = CashflowCalibrator(ASOF, lower=1e-8, upper=1.0)
        add_zero(cal, curve, years(1), 0.99)
        add_zero(cal, curve, years(2), 1.5)
        result = cal.calibrate(CurveFittingMethod.BOOTSTRAP, curve, force_fit=True)
        assert result.status == OptimizerStatus.EXACT_SOLUTION_NOT_FOUND
        assert curve.count == 2
        assert curve.get_val(0) == pytest.approx(0.99, abs=1e-10)
        assert result.price_errors[1] > 0.4

    def test_unbounded_deep_discount(self, curve):
        """Bracket expansion past zero backs off instead of failing."""
        cal = CashflowCalibrator(ASOF)
        add_zero(cal, curve, years(1), 0.99)
        add_zero(cal, curve, years(2), 0.05)
        result = cal.calibrate(CurveFittingMethod.BOOTSTRAP, curve)
        assert result.status == OptimizerStatus.CONVERGED
        assert curve.get_val(0) == pytest.approx(0.99, abs=1e-10)
        assert curve.get_val(1) == pytest.approx(0.05, abs=1e-10)

    def test_unbounded_deep_discount_force_fit(self, curve):
        cal = CashflowCalibrator(ASOF)
        add_zero(cal, curve, years(1), 0.99)
        add_zero(cal, curve, years(2), 0.05)
        result = cal.calibrate(CurveFittingMethod.BOOTSTRAP, curve, force_fit=True)
        assert result.converged
        assert curve.get_val(1) == pytest.approx(0.05, abs=1e-10)

    def test_smooth_curve_keeps_interpolation(self, calibrator, curve):
        curve.interp = "PCHIP"
        assert calibrator.calibrate(CurveFittingMethod.BOOTSTRAP, curve).converged
        assert curve.interp == "PCHIP"


# ------------------------------------------------------------------
# Global fit
# ------------------------------------------------------------------

class TestGlobalFit:
    """Tests for least-squares and smoothed fits."""

    def test_least_squares_exact_without_overlap(self, calibrator, curve):
        result = calibrator.calibrate(CurveFittingMethod.LEAST_SQUARES, curve)
        assert result.status == OptimizerStatus.CONVERGED
        assert curve.get_val(2) == pytest.approx(0.94, abs=1e-10)

    def test_least_squares_averages_overlap(self, calibrator, curve):
        """Two targets on one date are met half way."""
        add_zero(calibrator, curve, years(2), 0.96)
        result = calibrator.calibrate(CurveFittingMethod.LEAST_SQUARES, curve)
        assert result.status == OptimizerStatus.CONVERGED
        assert curve.count == 3
        assert curve.get_val(1) == pytest.approx(0.965, abs=1e-6)
        assert curve.get_val(0) == pytest.approx(0.99, abs=1e-6)
        assert len(result.price_errors) == 4

    def test_smooth_forwards(self, calibrator, curve):
        weights = flat_weight_curve(ASOF, 1e-6)
        result = calibrator.calibrate(
            CurveFittingMethod.SMOOTH_FORWARDS, curve, slope_weights=weights, curvature_weights=weights
        )
        assert result.status == OptimizerStatus.CONVERGED
        assert float(result.price_errors.max()) < 1e-5

    def test_smooth_futures_with_volatility(self, calibrator, curve):
        weights = flat_weight_curve(ASOF, 1e-6)
        volatility = flat_weight_curve(ASOF, 0.0)
        result = calibrator.calibrate(
            CurveFittingMethod.SMOOTH_FUTURES, curve, weights, weights, volatility
        )
        assert float(result.price_errors.max()) < 1e-5

    def test_evaluation_cap_reported(self, calibrator, curve):
        add_zero(calibrator, curve, years(2), 0.96)
        settings = CashflowCalibratorSettings(max_optimizer_evaluations=1)
        result = calibrator.calibrate(CurveFittingMethod.LEAST_SQUARES, curve, settings=settings)
        assert result.status == OptimizerStatus.MAX_EVALUATIONS_REACHED
        assert not result.converged

    def test_iteration_cap_stops_early(self, calibrator, curve):
        """With no iterations allowed the overlapping seed is left in place."""
        add_zero(calibrator, curve, years(2), 0.96)
        settings = CashflowCalibratorSettings(max_optimizer_iterations=0)
        result = calibrator.calibrate(CurveFittingMethod.LEAST_SQUARES, curve, settings=settings)
        assert result.status == OptimizerStatus.MAX_ITERATIONS_REACHED
        assert not result.converged
        # one of the two 2Y targets, not their average
        assert abs(curve.get_val(1) - 0.965) == pytest.approx(0.005, abs=1e-10)

    def test_generous_iteration_cap_converges(self, calibrator, curve):
        add_zero(calibrator, curve, years(2), 0.96)
        settings = CashflowCalibratorSettings(max_optimizer_iterations=500)
        result = calibrator.calibrate(CurveFittingMethod.LEAST_SQUARES, curve, settings=settings)
        assert result.status == OptimizerStatus.CONVERGED
        assert curve.get_val(1) == pytest.approx(0.965, abs=1e-6)


class TestParametricFit:
    """Tests for Nelson-Siegel calibration."""

    def test_recovers_nelson_siegel_prices(self):
        truth = NelsonSiegelFn(0.04, -0.015, 0.01, 1.5)
        curve = Curve(ASOF, parametric=NelsonSiegelFn())
        cal = CashflowCalibrator(ASOF)
        for n in (1, 2, 3, 5, 7, 10, 15, 20):
            dt = years(n)
            add_zero(cal, curve, dt, truth.discount_factor(curve.time(dt)))
        result = cal.calibrate(CurveFittingMethod.NELSON_SIEGEL, curve)
        assert result.converged
        assert float(result.price_errors.max()) < 1e-6

    def test_requires_parametric_curve(self, calibrator, curve):
        with pytest.raises(CalibrationError, match="parametric form"):
            calibrator.calibrate(CurveFittingMethod.SVENSSON, curve)


# ------------------------------------------------------------------
# Curve reformat
# ------------------------------------------------------------------

class TestCurveReformat:
    """Tests for the scoped interpolation and base date change."""

    @pytest.fixture
    def smooth_curve(self) -> Curve:
        curve = Curve(ASOF, interp="PCHIP")
        for n, value in TARGETS:
            curve.add(years(n), value)
        return curve

    def test_switches_and_restores(self, smooth_curve):
        settle = ASOF + relativedelta(days=10)
        before = [p.value for p in smooth_curve.points]
        with CurveReformat(smooth_curve, [settle, years(1)]):
            assert smooth_curve.interp == "WEIGHTED"
            assert smooth_curve.asof == settle
            assert smooth_curve.interpolate(settle) == pytest.approx(1.0)
        assert smooth_curve.interp == "PCHIP"
        assert smooth_curve.asof == ASOF
        assert [p.value for p in smooth_curve.points] == pytest.approx(before, rel=1e-12)

    def test_restores_on_error(self, smooth_curve):
        with pytest.raises(RuntimeError):
            with CurveReformat(smooth_curve, [ASOF + relativedelta(days=10)]):
                raise RuntimeError("boom")
        assert smooth_curve.interp == "PCHIP"
        assert smooth_curve.asof == ASOF

    def test_leaves_non_multiplicative_curve_dated(self):
        curve = Curve(ASOF, day_count="ACT/360")
        with CurveReformat(curve, [ASOF + relativedelta(days=10)]):
            assert curve.asof == ASOF


# ------------------------------------------------------------------
# Root finding
# ------------------------------------------------------------------

class TestRootFinding:
    """Tests for bracketed Brent solves."""

    def test_bracket_expands(self):
        a, b = find_bracket(lambda x: x - 5.0, 0.0, 1.0)
        assert a <= 5.0 <= b

    def test_bracket_respects_bounds(self):
        with pytest.raises(RootFindingError):
            find_bracket(lambda x: x - 5.0, 0.0, 1.0, lower=0.0, upper=2.0)

    def test_bracket_backs_off_undefined_region(self):
        """Expansion into the domain error of log is pulled back."""
        target = math.log(0.05)
        a, b = find_bracket(lambda x: math.log(x) - target, 0.9, 1.0)
        assert 0.0 < a <= 0.05 <= b
        assert solve(math.log, target, 0.9, 1.0).root == pytest.approx(0.05, rel=1e-10)

    def test_bracket_undefined_at_start(self):
        with pytest.raises(RootFindingError, match="undefined"):
            find_bracket(math.log, -2.0, -1.0)

    def test_solve_target(self):
        result = solve(lambda x: math.exp(x), 2.0, 0.0, 1.0, tol=1e-14)
        assert result.converged
        assert result.root == pytest.approx(math.log(2.0), abs=1e-12)

    def test_root_on_bracket_end(self):
        result = solve(lambda x: x, 0.0, 0.0, 1.0)
        assert result.root == 0.0
        assert result.iterations == 0

    def test_several_targets(self):
        roots = [solve(lambda x, k=k: x * x, k, 0.0, 1.0).root for k in (1.0, 4.0, 9.0)]
        assert np.allclose(roots, [1.0, 2.0, 3.0])
