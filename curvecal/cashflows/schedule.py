"""Accrual schedule generation for swap legs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List

from dateutil.relativedelta import relativedelta

from curvecal.conventions.daycount import DayCountConvention


@dataclass
class SchedulePeriod:
    """Represents a single period in a payment schedule."""

    accrual_start: date
    accrual_end: date
    payment_date: date
    year_fraction: float
    is_stub: bool = False

    @property
    def accrual_days(self) -> int:
        """Number of calendar days in accrual period."""
        return (self.accrual_end - self.accrual_start).days


def generate_periods(
    effective: date,
    maturity: date,
    months: int,
    day_count: DayCountConvention,
    payment_lag_days: int = 0,
) -> List[SchedulePeriod]:
    """Generate unadjusted accrual periods rolling forward from ``effective``.

    A short final stub absorbs any remainder; payment falls on the accrual end
    plus ``payment_lag_days``.
    """
    if maturity <= effective:
        raise ValueError("Effective date must be before maturity date")
    if months <= 0:
        raise ValueError("Period length must be positive")

    dates: List[date] = [effective]
    step = 1
    current = effective + relativedelta(months=months)
    while current < maturity:
        dates.append(current)
        step += 1
        current = effective + relativedelta(months=months * step)
    dates.append(maturity)

    periods = []
    for start, end in zip(dates[:-1], dates[1:]):
        periods.append(
            SchedulePeriod(
                accrual_start=start,
                accrual_end=end,
                payment_date=end + relativedelta(days=payment_lag_days),
                year_fraction=day_count.year_fraction(start, end),
                is_stub=end != start + relativedelta(months=months),
            )
        )
    return periods
