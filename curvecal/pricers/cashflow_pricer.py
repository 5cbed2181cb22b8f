"""Cash flow pricer shared by calibration and by post-fit valuation.

The pricer turns a product into receiver/payer payment lists bound to the
curves a calibrator uses, so a product priced after the fit sees exactly the
payments the fitter solved against.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence, Tuple

from curvecal.cashflows import (
    FixedInterestPayment,
    FixedPayment,
    FloatingInterestPayment,
    Payment,
    parallel_pv,
    pv,
    split_payments,
)
from curvecal.conventions.daycount import get_day_count_convention
from curvecal.errors import CalibrationError, ProductNotSupportedError
from curvecal.products import Note, Product, Swap, SwapChain, SwapLeg
from curvecal.products.index import ReferenceIndex

logger = logging.getLogger(__name__)

PaymentLegs = Tuple[List[Payment], Optional[List[Payment]]]


@dataclass
class CashflowPricer:
    """Price a note, swap or swap chain off a discount curve.

    Attributes:
        product: Product with resolved dates
        asof: Pricing date
        discount_curve: Curve used to discount every payment
        projection_curves: Curves projecting floating legs, matched by
            ``reference_index``
        settle: Settlement date; defaults to the product effective date
        discounting_accrued: When False, coupons straddling settle are split
            into an accrued part and a discounted remainder
        multithreaded: Sum regular payments on worker threads
    """

    product: Product
    asof: date
    discount_curve: object
    projection_curves: Sequence[object] = field(default_factory=tuple)
    settle: Optional[date] = None
    discounting_accrued: bool = True
    multithreaded: bool = False

    def __post_init__(self):
        if self.discount_curve is None:
            raise CalibrationError("A discount curve is required to build a pricer")
        if self.settle is None:
            effective = getattr(self.product, "effective", None)
            self.settle = effective if isinstance(effective, date) else self.asof

    # ------------------------------------------------------------------
    # Curves
    # ------------------------------------------------------------------
    def projection_curve_for(self, index: Optional[ReferenceIndex]):
        """Curve projecting ``index``; the discount curve is checked first."""
        if index is None:
            return None
        if getattr(self.discount_curve, "reference_index", None) == index:
            return self.discount_curve
        for curve in self.projection_curves:
            if curve is not None and getattr(curve, "reference_index", None) == index:
                return curve
        return None

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------
    def leg_payments(self, leg: SwapLeg) -> List[Payment]:
        """Coupons of one leg.

        A floating leg whose index has no projection curve is priced on its
        spread alone.
        """
        projection = self.projection_curve_for(leg.index) if leg.floating else None
        if leg.floating and projection is None:
            logger.debug("No projection curve for %s; pricing spread only", leg.index)
        payments: List[Payment] = []
        for period in leg.periods():
            if projection is None:
                payments.append(FixedInterestPayment(
                    period.accrual_start, period.accrual_end, period.payment_date,
                    leg.coupon, leg.notional, leg.day_count,
                ))
            else:
                payments.append(FloatingInterestPayment(
                    period.accrual_start, period.accrual_end, period.payment_date,
                    projection, leg.coupon, leg.notional, leg.day_count, leg.index,
                ))
        return payments

    def payment_legs(self) -> PaymentLegs:
        """Receiver and payer payments; the payer side is None for one-leg products.

        Raises:
            ProductNotSupportedError: For product types without a payment model
        """
        product = self.product
        if isinstance(product, Note):
            if product.effective is None or isinstance(product.maturity, str):
                raise CalibrationError(f"{product.description} must be resolved before pricing")
            tau = get_day_count_convention(product.day_count).year_fraction(
                product.effective, product.maturity
            )
            return [FixedPayment(product.maturity, 1.0 + product.coupon * tau)], None
        if isinstance(product, SwapChain):
            receiver: List[Payment] = []
            payer: List[Payment] = []
            for lhs, rhs in product.leg_pairs():
                receiver.extend(self.leg_payments(lhs))
                payer.extend(self.leg_payments(rhs))
            return receiver, payer
        if isinstance(product, Swap):
            return self.leg_payments(product.receiver_leg), self.leg_payments(product.payer_leg)
        raise ProductNotSupportedError(f"Product not supported: {type(product).__name__}")

    # ------------------------------------------------------------------
    # Valuation
    # ------------------------------------------------------------------
    def leg_pv(self, payments: Optional[List[Payment]]) -> float:
        if not payments:
            return 0.0
        accrued, regular = split_payments(payments, self.settle, self.discounting_accrued)
        pv_fn = parallel_pv if self.multithreaded else pv
        return pv_fn(self.settle, accrued, regular, self.discount_curve)

    def pv(self) -> float:
        """Receiver value less payer value at settlement."""
        receiver, payer = self.payment_legs()
        return self.leg_pv(receiver) - self.leg_pv(payer)
