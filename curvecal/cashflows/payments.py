"""Payment objects consumed by pricing and calibration.

Amounts are evaluated lazily: a floating payment reads its projection curve
every time ``amount`` is requested, so while a curve is being calibrated the
payment follows the curve's current trial values.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional, Tuple, Union

from curvecal.conventions.daycount import DayCountConvention, get_day_count_convention


class Payment(ABC):
    """A single cash amount paid on ``pay_date``."""

    pay_date: date

    @property
    @abstractmethod
    def amount(self) -> float:
        """Undiscounted payment amount."""
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(pay_date={self.pay_date})"


class FixedPayment(Payment):
    """Known amount, e.g. a principal exchange."""

    def __init__(self, pay_date: date, amount: float):
        self.pay_date = pay_date
        self._amount = float(amount)

    @property
    def amount(self) -> float:
        return self._amount


class InterestPayment(Payment):
    """Coupon accruing over ``[accrual_start, accrual_end]``."""

    def __init__(
        self,
        accrual_start: date,
        accrual_end: date,
        pay_date: date,
        notional: float = 1.0,
        day_count: Union[str, DayCountConvention] = "ACT/360",
    ):
        self.accrual_start = accrual_start
        self.accrual_end = accrual_end
        self.pay_date = pay_date
        self.notional = notional
        self.day_count = get_day_count_convention(day_count)
        self.accrual_fraction = self.day_count.year_fraction(accrual_start, accrual_end)

    @property
    @abstractmethod
    def rate(self) -> float:
        """Annualized coupon rate."""
        pass

    @property
    def amount(self) -> float:
        return self.notional * self.rate * self.accrual_fraction

    def straddles(self, settle: date) -> bool:
        """True if settlement falls strictly inside the accrual period."""
        return self.accrual_start < settle < self.accrual_end

    def accrued(self, settle: date) -> Tuple[float, float]:
        """Split the coupon at ``settle``.

        Returns:
            Tuple of (amount accrued up to settle, amount accruing after settle)
        """
        amount = self.amount
        if self.accrual_fraction <= 0.0:
            return 0.0, amount
        elapsed = self.day_count.year_fraction(self.accrual_start, settle) / self.accrual_fraction
        elapsed = min(max(elapsed, 0.0), 1.0)
        return amount * elapsed, amount * (1.0 - elapsed)


class FixedInterestPayment(InterestPayment):
    """Coupon at a fixed rate."""

    def __init__(self, accrual_start, accrual_end, pay_date, coupon: float,
                 notional: float = 1.0, day_count="ACT/360"):
        super().__init__(accrual_start, accrual_end, pay_date, notional, day_count)
        self.coupon = coupon

    @property
    def rate(self) -> float:
        return self.coupon


class FloatingInterestPayment(InterestPayment):
    """Coupon projected from a curve's simple forward rate plus a spread."""

    def __init__(self, accrual_start, accrual_end, pay_date, projection_curve,
                 spread: float = 0.0, notional: float = 1.0, day_count="ACT/360",
                 index: Optional[object] = None):
        super().__init__(accrual_start, accrual_end, pay_date, notional, day_count)
        self.projection_curve = projection_curve
        self.spread = spread
        self.index = index

    @property
    def rate(self) -> float:
        curve = self.projection_curve
        start = curve.interpolate(self.accrual_start)
        end = curve.interpolate(self.accrual_end)
        return (start / end - 1.0) / self.accrual_fraction + self.spread
