"""Calibration tenors attached to a calibrated curve."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Union

from curvecal.conventions.types import InstrumentType
from curvecal.products.base import Product

logger = logging.getLogger(__name__)


@dataclass
class CurveTenor:
    """One calibration instrument.

    Attributes:
        name: Tenor label, unique within a collection ("3M", "5Y", ...)
        product: Instrument as quoted; dates may still be tenor strings
        market_pv: Target full price the fit reproduces; None means par
        weight: Fit weight; zero excludes the tenor
        quote: Current market quote applied to the product, if any
        original_quote: Quote at construction, used to propagate bumps
        curve_date: Curve x-axis key, set when the product is resolved
        model_pv: Model price written back after each fit
        resolved_product: Product with concrete dates and current quote
    """

    name: str
    product: Product
    market_pv: Optional[float] = None
    weight: float = 1.0
    quote: Optional[float] = None
    original_quote: Optional[float] = None
    curve_date: Optional[date] = None
    model_pv: float = 0.0
    resolved_product: Optional[Product] = None

    def __post_init__(self):
        if self.weight < 0:
            raise ValueError(f"Tenor {self.name} has negative weight {self.weight}")
        if self.original_quote is None:
            self.original_quote = self.quote

    @property
    def instrument_type(self) -> InstrumentType:
        return self.product.instrument_type

    def set_quote(self, value: float) -> None:
        self.quote = value
        self.resolved_product = None

    def update_product(self, asof: date) -> Product:
        """Resolve the product as of ``asof`` and refresh the curve date."""
        product = self.product if self.quote is None else self.product.with_quote(self.quote)
        product = product.resolve(asof)
        self.resolved_product = product
        self.curve_date = product.curve_date()
        return product

    @property
    def current_product(self) -> Product:
        return self.resolved_product if self.resolved_product is not None else self.product


class CurveTenorCollection:
    """Ordered collection of tenors addressable by position or name."""

    def __init__(self, tenors: Optional[Iterable[CurveTenor]] = None):
        self._tenors: List[CurveTenor] = []
        for tenor in tenors or ():
            self.add(tenor)

    def add(self, tenor: CurveTenor) -> None:
        if self.contains_tenor(tenor.name):
            raise ValueError(f"Duplicate tenor name: {tenor.name}")
        self._tenors.append(tenor)

    def remove(self, name: str) -> None:
        self._tenors.remove(self[name])

    def clear(self) -> None:
        self._tenors.clear()

    def contains_tenor(self, name: str) -> bool:
        return any(t.name == name for t in self._tenors)

    def index_of(self, name: str) -> int:
        for i, tenor in enumerate(self._tenors):
            if tenor.name == name:
                return i
        return -1

    def __getitem__(self, key: Union[int, str]) -> CurveTenor:
        if isinstance(key, str):
            idx = self.index_of(key)
            if idx < 0:
                raise KeyError(key)
            return self._tenors[idx]
        return self._tenors[key]

    def __len__(self) -> int:
        return len(self._tenors)

    def __iter__(self) -> Iterator[CurveTenor]:
        return iter(self._tenors)

    @property
    def count(self) -> int:
        return len(self._tenors)

    def sort_by_curve_date(self) -> None:
        """Stable sort on curve date; unresolved tenors go last."""
        self._tenors.sort(key=lambda t: (t.curve_date is None, t.curve_date or date.max))

    def resolve_overlap(self, priority_order: Sequence[Union[InstrumentType, str]]) -> List[str]:
        """Drop tenors that share a curve date with a higher-priority instrument.

        Instrument types earlier in ``priority_order`` win. Types not listed
        rank after all listed ones; ties keep the first tenor.

        Returns:
            Names of the removed tenors
        """
        if not priority_order:
            return []
        order = [InstrumentType(p) if isinstance(p, str) else p for p in priority_order]

        def rank(tenor: CurveTenor) -> int:
            kind = tenor.instrument_type
            return order.index(kind) if kind in order else len(order)

        best: Dict[date, CurveTenor] = {}
        for tenor in self._tenors:
            if tenor.curve_date is None:
                continue
            incumbent = best.get(tenor.curve_date)
            if incumbent is None or rank(tenor) < rank(incumbent):
                best[tenor.curve_date] = tenor
        removed = [
            t.name for t in self._tenors
            if t.curve_date is not None and best[t.curve_date] is not t
        ]
        if removed:
            logger.debug("Overlap treatment removed tenors %s", removed)
        self._tenors = [t for t in self._tenors if t.name not in removed]
        return removed
