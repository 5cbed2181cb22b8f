"""Swap legs, two-leg swaps and basis swap chains."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Iterator, List, Optional, Tuple

from curvecal.cashflows.schedule import SchedulePeriod, generate_periods
from curvecal.conventions.daycount import get_day_count_convention
from curvecal.conventions.tenor import tenor_months
from curvecal.conventions.types import InstrumentType
from curvecal.errors import CalibrationError

from .base import DateOrTenor, Product, resolve_dates
from .index import ReferenceIndex


@dataclass(frozen=True)
class SwapLeg:
    """One side of a swap.

    A leg without ``index`` is fixed and ``coupon`` is its rate; a floating
    leg pays the index plus ``coupon`` as spread.
    """

    maturity: DateOrTenor
    coupon: float = 0.0
    frequency: str = "3M"
    day_count: str = "ACT/360"
    index: Optional[ReferenceIndex] = None
    effective: Optional[date] = None
    notional: float = 1.0
    payment_lag_days: int = 0

    @property
    def floating(self) -> bool:
        return self.index is not None

    def resolve(self, asof: date) -> "SwapLeg":
        effective, maturity = resolve_dates(asof, self.effective, self.maturity)
        return replace(self, effective=effective, maturity=maturity)

    def periods(self) -> List[SchedulePeriod]:
        if self.effective is None or isinstance(self.maturity, str):
            raise ValueError("Swap leg dates must be resolved before building a schedule")
        return generate_periods(
            self.effective,
            self.maturity,
            tenor_months(self.frequency),
            get_day_count_convention(self.day_count),
            self.payment_lag_days,
        )

    def curve_date(self) -> date:
        """Latest of maturity, last period end and last payment date."""
        last = self.periods()[-1]
        return max(self.maturity, last.accrual_end, last.payment_date)


@dataclass(frozen=True)
class Swap(Product):
    """Receiver leg against payer leg; either may be fixed or floating."""

    receiver_leg: SwapLeg
    payer_leg: SwapLeg
    spread_on_receiver: bool = True
    name: str = ""

    @property
    def instrument_type(self) -> InstrumentType:
        if self.receiver_leg.floating and self.payer_leg.floating:
            return InstrumentType.BASIS_SWAP
        return InstrumentType.SWAP

    @property
    def effective(self) -> Optional[date]:
        return self.receiver_leg.effective

    @property
    def maturity(self) -> DateOrTenor:
        return self.receiver_leg.maturity

    @property
    def receiver_index(self) -> Optional[ReferenceIndex]:
        return self.receiver_leg.index

    @property
    def payer_index(self) -> Optional[ReferenceIndex]:
        return self.payer_leg.index

    @property
    def is_fixed_and_floating(self) -> bool:
        return self.receiver_leg.floating != self.payer_leg.floating

    def resolve(self, asof: date) -> "Swap":
        return replace(
            self,
            receiver_leg=self.receiver_leg.resolve(asof),
            payer_leg=self.payer_leg.resolve(asof),
        )

    def with_quote(self, quote: float) -> "Swap":
        """Fixed rate for fixed/floating swaps, otherwise the basis spread."""
        if not self.receiver_leg.floating or (
            self.payer_leg.floating and self.spread_on_receiver
        ):
            return replace(self, receiver_leg=replace(self.receiver_leg, coupon=quote))
        return replace(self, payer_leg=replace(self.payer_leg, coupon=quote))

    def curve_date(self) -> date:
        return max(self.receiver_leg.curve_date(), self.payer_leg.curve_date())


def _match_index(leg_index: Optional[ReferenceIndex], index: Optional[ReferenceIndex]) -> bool:
    """A missing index matches only a fixed leg."""
    return leg_index is None if index is None else index == leg_index


@dataclass(frozen=True)
class SwapChain(Product):
    """Synthetic instrument made of the first ``count`` swaps of a chain.

    The chain links ``target_index`` through intermediate indices to a known
    index or a fixed leg; the inner legs cancel pairwise.
    """

    swaps: Tuple[Swap, ...]
    count: int
    target_index: Optional[ReferenceIndex] = None
    name: str = ""

    def __post_init__(self):
        if not 0 < self.count <= len(self.swaps):
            raise CalibrationError(f"Invalid swap chain length {self.count}")

    @property
    def instrument_type(self) -> InstrumentType:
        return InstrumentType.BASIS_SWAP

    @property
    def effective(self) -> Optional[date]:
        return self.swaps[0].effective

    @property
    def maturity(self) -> DateOrTenor:
        return self.swaps[0].maturity

    @property
    def description(self) -> str:
        return self.name or self.swaps[0].description

    def resolve(self, asof: date) -> "SwapChain":
        return replace(self, swaps=tuple(s.resolve(asof) for s in self.swaps))

    def with_quote(self, quote: float) -> "SwapChain":
        swaps = list(self.swaps)
        swaps[0] = swaps[0].with_quote(quote)
        return replace(self, swaps=tuple(swaps))

    def curve_date(self) -> date:
        return max(s.curve_date() for s in self.swaps[: self.count])

    def leg_pairs(self) -> Iterator[Tuple[SwapLeg, SwapLeg]]:
        """Yield (target-side leg, far-side leg) along the chain.

        Raises:
            CalibrationError: If consecutive swaps do not share an index
        """
        lhs_index = self.target_index
        for swap in self.swaps[: self.count]:
            if _match_index(swap.receiver_index, lhs_index):
                lhs, rhs = swap.receiver_leg, swap.payer_leg
            elif _match_index(swap.payer_index, lhs_index):
                lhs, rhs = swap.payer_leg, swap.receiver_leg
            else:
                raise CalibrationError("Invalid swap chain")
            yield lhs, rhs
            lhs_index = rhs.index
