"""Projection curve calibration for a floating-rate index."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterator, List

from curvecal.errors import CalibrationError

from .curve_fit import CurveFitCalibrator

if TYPE_CHECKING:
    from curvecal.curves.calibrated import CalibratedCurve

logger = logging.getLogger(__name__)


class ProjectionCurveFitCalibrator(CurveFitCalibrator):
    """Fits the projection curve of ``reference_index`` against a discount curve.

    Payments are discounted on ``discount_curve``; floating legs on the
    target index project from the curve being fitted and other indices from
    ``projection_curves``. Parents are registered at construction and the
    fitted curve is registered as their dependent after each fit.
    """

    def __init__(self, asof, discount_curve: "CalibratedCurve", reference_index, settings=None,
                 cashflow_settings=None, projection_curves=(), settle=None):
        if discount_curve is None:
            raise CalibrationError("A projection curve calibration requires a discount curve")
        if reference_index is None:
            raise CalibrationError("A projection curve calibration requires a reference index")
        super().__init__(asof, reference_index, settings, cashflow_settings, projection_curves, settle)
        self.discount_curve = discount_curve
        self.set_parent_curves(self.parent_curve_ids, discount_curve)
        self.set_parent_curves(self.parent_curve_ids, *self.projection_curves)

    def discount_curve_for(self, curve: "CalibratedCurve"):
        return self.discount_curve

    def projection_curves_for(self, curve: "CalibratedCurve") -> List["CalibratedCurve"]:
        return [curve, *[c for c in self.projection_curves if c is not curve]]

    def enumerate_parent_curves(self) -> Iterator["CalibratedCurve"]:
        yield self.discount_curve
        seen = {self.discount_curve.id}
        for curve in self.projection_curves:
            if curve.id not in seen:
                seen.add(curve.id)
                yield curve

    def fit_from(self, curve: "CalibratedCurve", from_idx: int) -> None:
        super().fit_from(curve, from_idx)
        if not curve.name:
            curve.name = f"{self.reference_index.name}_Curve"
        self.set_dependent_curves(curve, self.discount_curve, *self.projection_curves)
