"""
Cash flow based curve fit strategy shared by discount and projection curves.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import TYPE_CHECKING, List, Optional, Sequence

from curvecal.curves.tenor import CurveTenor
from curvecal.errors import CalibrationError, ProductNotSupportedError
from curvecal.pricers import CashflowPricer
from curvecal.products import Note, Product, Swap, SwapChain

from .base import Calibrator
from .cashflow import CashflowCalibrator
from .chain import compose_swap_chain
from .settings import CalibratorSettings, CashflowCalibratorSettings, CurveFittingMethod

if TYPE_CHECKING:
    from curvecal.curves.calibrated import CalibratedCurve
    from curvecal.products.index import ReferenceIndex

logger = logging.getLogger(__name__)


def par_target(product: Product) -> float:
    """Full price of a product quoted at par: 1 for deposits, 0 for swaps."""
    return 1.0 if isinstance(product, Note) else 0.0


class CurveFitCalibrator(Calibrator):
    """Fits a curve to notes, swaps and swap chains with :class:`CashflowCalibrator`.

    Subclasses choose the discount curve and the projection curves that
    price the tenors; everything else is shared.
    """

    def __init__(
        self,
        asof: date,
        reference_index: Optional["ReferenceIndex"] = None,
        settings: Optional[CalibratorSettings] = None,
        cashflow_settings: Optional[CashflowCalibratorSettings] = None,
        projection_curves: Sequence["CalibratedCurve"] = (),
        settle: Optional[date] = None,
    ):
        super().__init__(asof, settle)
        self.reference_index = reference_index
        self.settings = CalibratorSettings() if settings is None else settings
        self.cashflow_settings = (
            CashflowCalibratorSettings() if cashflow_settings is None else cashflow_settings
        )
        self.projection_curves: List["CalibratedCurve"] = [c for c in projection_curves if c is not None]

    # ------------------------------------------------------------------
    # Curves used for pricing
    # ------------------------------------------------------------------
    def discount_curve_for(self, curve: "CalibratedCurve"):
        return curve

    def projection_curves_for(self, curve: "CalibratedCurve") -> List["CalibratedCurve"]:
        return [curve, *self.projection_curves]

    def known_indices(self, curve: "CalibratedCurve") -> List["ReferenceIndex"]:
        """Indices priced by curves other than ``curve``."""
        known = []
        for other in [self.discount_curve_for(curve), *self.projection_curves]:
            index = getattr(other, "reference_index", None)
            if other is not curve and index is not None and index != self.reference_index and index not in known:
                known.append(index)
        return known

    # ------------------------------------------------------------------
    # Fit protocol
    # ------------------------------------------------------------------
    def update_tenors(self, curve: "CalibratedCurve") -> None:
        super().update_tenors(curve)
        if self.settings.overlap_treatment_order:
            curve.tenors.resolve_overlap(self.settings.overlap_treatment_order)

    def pre_process(self, curve: "CalibratedCurve") -> None:
        curve.reference_index = self.reference_index
        if self.settings.interp is not None and curve.interp != self.settings.interp.upper():
            curve.interp = self.settings.interp
        if self.settings.verbose:
            logger.info("Calibrating %s as of %s", curve.name or curve.id, self.asof)
            logger.info("   Method: %s", self.settings.method.value)
            logger.info("   Interpolation: %s", curve.interp)
            logger.info("   Day count: %s", curve.day_count)
            logger.info("   Reference index: %s", self.reference_index)

    def calibration_tenors(self, curve: "CalibratedCurve") -> List[CurveTenor]:
        if self.settings.chained_swap_approach and self.reference_index is not None:
            return compose_swap_chain(curve.tenors, self.reference_index, self.known_indices(curve))
        return list(curve.tenors)

    def fill_data(self, curve: "CalibratedCurve", tenors: Sequence[CurveTenor]) -> CashflowCalibrator:
        """Build one fit record per tenor."""
        calibrator = CashflowCalibrator(
            curve.asof, lower=self.settings.lower_bound, upper=self.settings.upper_bound
        )
        flags = (self.settings.multithreaded, self.settings.multithreaded)
        for tenor in tenors:
            product = tenor.current_product
            pricer = self.get_pricer(curve, product)
            receiver, payer = pricer.payment_legs()
            target = par_target(product) if tenor.market_pv is None else tenor.market_pv
            weight = 1.0 if isinstance(product, SwapChain) else tenor.weight
            calibrator.add(
                target, receiver, payer, pricer.settle, pricer.discount_curve, tenor.curve_date,
                weight, self.settings.discounting_accrued, flags,
            )
        return calibrator

    def effective_cashflow_settings(self) -> CashflowCalibratorSettings:
        settings = self.cashflow_settings
        if self.settings.maximum_iterations >= 0:
            settings = replace(
                settings,
                max_optimizer_iterations=self.settings.maximum_iterations,
                max_solver_iterations=self.settings.maximum_iterations,
            )
        return settings

    def fit_from(self, curve: "CalibratedCurve", from_idx: int) -> None:
        tenors = self.calibration_tenors(curve)
        calibrator = self.fill_data(curve, tenors)
        method = self.settings.method
        slope, curvature = None, None
        if method in (CurveFittingMethod.SMOOTH_FORWARDS, CurveFittingMethod.SMOOTH_FUTURES):
            slope, curvature = self.settings.resolve_weight_curves(curve.asof)
        volatility = self.settings.volatility_curve if method == CurveFittingMethod.SMOOTH_FUTURES else None
        result = calibrator.calibrate(
            method, curve, slope, curvature, volatility,
            self.effective_cashflow_settings(), force_fit=self.settings.force_fit,
        )
        self.last_status = result.status
        self.price_errors = result.price_errors
        if not result.converged:
            logger.warning(
                "Calibration of %s finished with status %s (max error %s)",
                curve.name or curve.id, result.status.value,
                float(result.price_errors.max()) if len(result.price_errors) else 0.0,
            )

    def post_process(self, curve: "CalibratedCurve") -> None:
        """Write each tenor's model price."""
        for tenor in curve.tenors:
            tenor.model_pv = self.get_pricer(curve, tenor.current_product).pv()

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------
    def get_pricer(self, curve: "CalibratedCurve", product: Product) -> CashflowPricer:
        if not isinstance(product, (Note, Swap, SwapChain)):
            raise ProductNotSupportedError(f"Product not supported: {type(product).__name__}")
        # deposits are discounted on the curve they pin
        discount = curve if isinstance(product, Note) else self.discount_curve_for(curve)
        if discount is None:
            raise CalibrationError(f"No discount curve to price {product.description}")
        if not isinstance(product.effective, date) or isinstance(product.maturity, str):
            product = product.resolve(self.asof)
        return CashflowPricer(
            product,
            self.asof,
            discount,
            self.projection_curves_for(curve),
            discounting_accrued=self.settings.discounting_accrued,
            multithreaded=self.settings.multithreaded,
        )
