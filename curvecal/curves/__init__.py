"""
Curves package: curve storage, calibration tenors and calibrated curves.
"""

from .calibrated import CalibratedCurve, get_curve, get_curves
from .curve import Curve, CurvePoint
from .parametric import NelsonSiegelFn, ParametricCurveFn, SvenssonFn
from .tenor import CurveTenor, CurveTenorCollection

__all__ = [
    "CalibratedCurve",
    "Curve",
    "CurvePoint",
    "CurveTenor",
    "CurveTenorCollection",
    "NelsonSiegelFn",
    "ParametricCurveFn",
    "SvenssonFn",
    "get_curve",
    "get_curves",
]
