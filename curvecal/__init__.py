"""
curvecal: calibration of discount and projection curves to market instruments.
"""

__version__ = "1.0.0"

from .calibrators import (
    CalibratorSettings,
    CashflowCalibrator,
    CashflowCalibratorSettings,
    CurveDependencyGraph,
    CurveFittingMethod,
    DependencyGraph,
    DiscountCurveFitCalibrator,
    OptimizerStatus,
    ProjectionCurveFitCalibrator,
    compose_swap_chain,
    find_chain,
)
from .curves import CalibratedCurve, Curve, CurveTenor, NelsonSiegelFn, SvenssonFn
from .errors import (
    CalibrationError,
    CircularDependencyError,
    OverlapError,
    ProductNotSupportedError,
)
from .products import Note, ReferenceIndex, Swap, SwapChain, SwapLeg

__all__ = [
    "CalibratedCurve",
    "CalibrationError",
    "CalibratorSettings",
    "CashflowCalibrator",
    "CashflowCalibratorSettings",
    "CircularDependencyError",
    "Curve",
    "CurveDependencyGraph",
    "CurveFittingMethod",
    "CurveTenor",
    "DependencyGraph",
    "DiscountCurveFitCalibrator",
    "NelsonSiegelFn",
    "Note",
    "OptimizerStatus",
    "OverlapError",
    "ProductNotSupportedError",
    "ProjectionCurveFitCalibrator",
    "ReferenceIndex",
    "Swap",
    "SwapChain",
    "SwapLeg",
    "SvenssonFn",
    "__version__",
]
