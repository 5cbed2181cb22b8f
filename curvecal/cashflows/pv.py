"""Present value of payment lists as seen at settlement."""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Iterable, Optional, Sequence, Tuple

from .payments import InterestPayment, Payment


def split_payments(
    payments: Optional[Iterable[Payment]],
    settle: date,
    discounting_accrued: bool = False,
) -> Tuple[Tuple[InterestPayment, ...], Tuple[Payment, ...]]:
    """Separate coupons straddling settlement from regular payments.

    Args:
        payments: Payment schedule of one leg (None for an empty leg)
        settle: Settlement date
        discounting_accrued: When True nothing is treated as accrued

    Returns:
        Tuple of (accrued payments, regular payments)
    """
    if payments is None:
        return (), ()
    if discounting_accrued:
        return (), tuple(payments)
    accrued, regular = [], []
    for payment in payments:
        if isinstance(payment, InterestPayment) and payment.straddles(settle):
            accrued.append(payment)
        else:
            regular.append(payment)
    return tuple(accrued), tuple(regular)


def _accrued_pv(settle, accrued_payments, discount) -> Tuple[float, float]:
    accr, pv_sum = 0.0, 0.0
    for payment in accrued_payments:
        earned, remaining = payment.accrued(settle)
        accr += earned
        pv_sum += remaining if discount is None else remaining * discount.interpolate(payment.pay_date)
    return accr, pv_sum


def pv(
    settle: date,
    accrued_payments: Sequence[InterestPayment],
    regular_payments: Sequence[Payment],
    discount=None,
) -> float:
    """Value of a leg at ``settle``.

    With no discount curve the result is the plain sum of amounts (mark to
    market); otherwise regular and post-settle accrued amounts are discounted
    and re-based to the settlement date, while the pre-settle accrued part is
    taken undiscounted.
    """
    accr, total = _accrued_pv(settle, accrued_payments or (), discount)
    if discount is None:
        for payment in regular_payments or ():
            total += payment.amount
        return accr + total
    for payment in regular_payments or ():
        total += payment.amount * discount.interpolate(payment.pay_date)
    return accr + total / discount.interpolate(settle)


def parallel_pv(
    settle: date,
    accrued_payments: Sequence[InterestPayment],
    regular_payments: Sequence[Payment],
    discount=None,
    max_workers: Optional[int] = None,
) -> float:
    """Same as :func:`pv` but fans regular payments out to worker threads.

    Intended for legs whose amounts are expensive to project. The reduction
    uses ``math.fsum`` so the result does not depend on worker scheduling.
    """
    accr, accrued_sum = _accrued_pv(settle, accrued_payments or (), discount)
    regular = list(regular_payments or ())

    def term(payment: Payment) -> float:
        if discount is None:
            return payment.amount
        return payment.amount * discount.interpolate(payment.pay_date)

    if regular:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            terms = list(executor.map(term, regular))
    else:
        terms = []
    total = math.fsum([accrued_sum] + terms)
    if discount is None:
        return accr + total
    return accr + total / discount.interpolate(settle)
