"""Discount curve calibration from deposits and swaps."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterator

from .curve_fit import CurveFitCalibrator

if TYPE_CHECKING:
    from curvecal.curves.calibrated import CalibratedCurve

logger = logging.getLogger(__name__)


class DiscountCurveFitCalibrator(CurveFitCalibrator):
    """Fits a curve that discounts its own tenors.

    Floating legs on the curve's reference index project from the curve
    itself; legs on other indices use ``projection_curves``.
    """

    def __init__(self, asof, reference_index=None, settings=None, cashflow_settings=None,
                 projection_curves=(), settle=None):
        super().__init__(asof, reference_index, settings, cashflow_settings, projection_curves, settle)
        self.set_parent_curves(self.parent_curve_ids, *self.projection_curves)

    def enumerate_parent_curves(self) -> Iterator["CalibratedCurve"]:
        seen = set()
        for curve in self.projection_curves:
            if curve.id not in seen:
                seen.add(curve.id)
                yield curve

    def fit_from(self, curve: "CalibratedCurve", from_idx: int) -> None:
        super().fit_from(curve, from_idx)
        self.set_dependent_curves(curve, *self.projection_curves)

    def post_process(self, curve: "CalibratedCurve") -> None:
        super().post_process(curve)
        if curve.parametric is not None:
            return
        previous = curve.anchor
        for i in range(curve.count):
            value = curve.get_val(i)
            if previous is not None and value - previous > 1e-6:
                logger.warning(
                    "Discount factors increasing at %s on %s (increase = %.8f)",
                    curve.get_dt(i), curve.name or curve.id, value - previous,
                )
            previous = value
