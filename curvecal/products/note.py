"""Money-market deposit."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

from curvecal.conventions.types import InstrumentType

from .base import DateOrTenor, Product, resolve_dates


@dataclass(frozen=True)
class Note(Product):
    """Deposit paying ``1 + coupon * tau`` at maturity against 1 at effective."""

    maturity: DateOrTenor
    coupon: float = 0.0
    effective: Optional[date] = None
    day_count: str = "ACT/360"
    name: str = ""

    @property
    def instrument_type(self) -> InstrumentType:
        return InstrumentType.MM

    def resolve(self, asof: date) -> "Note":
        effective, maturity = resolve_dates(asof, self.effective, self.maturity)
        return replace(self, effective=effective, maturity=maturity)

    def with_quote(self, quote: float) -> "Note":
        return replace(self, coupon=quote)

    def curve_date(self) -> date:
        if isinstance(self.maturity, str):
            raise ValueError(f"{self.description} has unresolved maturity")
        return self.maturity
