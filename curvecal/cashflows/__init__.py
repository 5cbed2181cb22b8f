"""Payments, schedules and present values."""

from .payments import (
    FixedInterestPayment,
    FixedPayment,
    FloatingInterestPayment,
    InterestPayment,
    Payment,
)
from .pv import parallel_pv, pv, split_payments
from .schedule import SchedulePeriod, generate_periods

__all__ = [
    "FixedInterestPayment",
    "FixedPayment",
    "FloatingInterestPayment",
    "InterestPayment",
    "Payment",
    "SchedulePeriod",
    "generate_periods",
    "parallel_pv",
    "pv",
    "split_payments",
]
