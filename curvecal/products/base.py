"""Product base class."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional, Union

from curvecal.conventions.tenor import add_tenor
from curvecal.conventions.types import InstrumentType

DateOrTenor = Union[date, str]


def resolve_dates(asof: date, effective: Optional[date], maturity: DateOrTenor):
    """Resolve an optional effective date and a tenor-or-date maturity."""
    effective = asof if effective is None else effective
    if isinstance(maturity, str):
        maturity = add_tenor(effective, maturity)
    return effective, maturity


class Product(ABC):
    """Calibration instrument.

    Concrete products expose ``effective`` (None until resolved) and
    ``maturity`` (a date, or a tenor string until resolved).
    """

    name: str = ""
    effective: Optional[date]
    maturity: DateOrTenor

    @property
    @abstractmethod
    def instrument_type(self) -> InstrumentType:
        pass

    @abstractmethod
    def resolve(self, asof: date) -> "Product":
        """Return a copy whose dates are concrete as of ``asof``."""
        pass

    @abstractmethod
    def with_quote(self, quote: float) -> "Product":
        """Return a copy carrying ``quote`` as its market rate or spread."""
        pass

    @abstractmethod
    def curve_date(self) -> date:
        """Date at which this instrument pins the curve."""
        pass

    @property
    def description(self) -> str:
        return self.name or f"{self.__class__.__name__}({self.maturity})"
