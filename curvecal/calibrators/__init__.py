"""
Curve calibration: numerical fitter, orchestrators, dependency graph and
basis swap chain discovery.
"""

from .base import Calibrator
from .cashflow import CalibrationResult, CashflowCalibrator, CurveReformat, FitData
from .chain import compose_swap_chain, find_chain, match_index
from .curve_fit import CurveFitCalibrator, par_target
from .dependency import CurveDependencyGraph, DependencyGraph, fit_in_dependency_order
from .discount import DiscountCurveFitCalibrator
from .projection import ProjectionCurveFitCalibrator
from .settings import (
    CalibratorSettings,
    CashflowCalibratorSettings,
    CurveFittingMethod,
    OptimizerStatus,
    default_weight_curve,
    flat_weight_curve,
)

__all__ = [
    "CalibrationResult",
    "Calibrator",
    "CalibratorSettings",
    "CashflowCalibrator",
    "CashflowCalibratorSettings",
    "CurveDependencyGraph",
    "CurveFitCalibrator",
    "CurveFittingMethod",
    "CurveReformat",
    "DependencyGraph",
    "DiscountCurveFitCalibrator",
    "FitData",
    "OptimizerStatus",
    "ProjectionCurveFitCalibrator",
    "compose_swap_chain",
    "default_weight_curve",
    "find_chain",
    "fit_in_dependency_order",
    "flat_weight_curve",
    "match_index",
    "par_target",
]
