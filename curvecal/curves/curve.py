"""
Ordered date/value curve with pluggable interpolation.

The curve being calibrated is mutated in place by the fitter (points are
added, overwritten and truncated while solving), so readers must not share a
curve with a running calibration.
"""
from __future__ import annotations

import copy
import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterator, List, Optional, Union

from curvecal.conventions.daycount import DayCountConvention, get_day_count_convention
from curvecal.conventions.types import Frequency
from curvecal.interpolation import (
    Interpolator,
    discount_factor_to_zero_rate,
    interpolator_class,
)

from .parametric import ParametricCurveFn

logger = logging.getLogger(__name__)


@dataclass
class CurvePoint:
    """Single curve node."""

    date: date
    value: float


class Curve:
    """Strictly increasing sequence of (date, value) points.

    Discount-style curves carry an ``anchor`` value (1.0) at the as-of date
    which takes part in interpolation without being a stored point. Weight
    and volatility curves are built with ``anchor=None``.
    """

    def __init__(
        self,
        asof: date,
        interp: str = "WEIGHTED",
        day_count: Union[str, DayCountConvention] = "ACT/365F",
        frequency: Frequency = Frequency.CONTINUOUS,
        name: str = "",
        anchor: Optional[float] = 1.0,
        parametric: Optional[ParametricCurveFn] = None,
    ):
        """
        Initialize curve.

        Args:
            asof: Curve as-of date; curve time is measured from here
            interp: Interpolation method name (see ``curvecal.interpolation``)
            day_count: Day count used to convert dates to curve time
            frequency: Compounding frequency of the curve values
            name: Optional curve name for identification
            anchor: Value implied at the as-of date, or None for no anchor
            parametric: Functional form replacing point interpolation
        """
        interpolator_class(interp)
        self._asof = asof
        self._interp = interp.upper()
        self.day_count = get_day_count_convention(day_count)
        self.frequency = frequency
        self.name = name
        self.anchor = anchor
        self.parametric = parametric
        self.jump_date: Optional[date] = None
        self._points: List[CurvePoint] = []
        self._interpolator: Optional[Interpolator] = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def asof(self) -> date:
        return self._asof

    @asof.setter
    def asof(self, value: date) -> None:
        self._asof = value
        self._invalidate()

    @property
    def interp(self) -> str:
        return self._interp

    @interp.setter
    def interp(self, method: str) -> None:
        interpolator_class(method)
        self._interp = method.upper()
        self._invalidate()

    @property
    def is_smooth(self) -> bool:
        return interpolator_class(self._interp).is_smooth

    @property
    def points(self) -> List[CurvePoint]:
        return [CurvePoint(p.date, p.value) for p in self._points]

    @property
    def count(self) -> int:
        return len(self._points)

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[CurvePoint]:
        return iter(self.points)

    # ------------------------------------------------------------------
    # Point management
    # ------------------------------------------------------------------
    def add(self, dt: date, value: float) -> None:
        """Insert a point keeping dates strictly increasing."""
        idx = len(self._points)
        while idx > 0 and self._points[idx - 1].date > dt:
            idx -= 1
        if idx > 0 and self._points[idx - 1].date == dt:
            raise ValueError(f"Curve {self.name or '<unnamed>'} already has a point at {dt}")
        self._points.insert(idx, CurvePoint(dt, float(value)))
        self._invalidate()

    def set_val(self, idx: int, value: float) -> None:
        self._points[idx].value = float(value)
        self._invalidate()

    def get_val(self, idx: int) -> float:
        return self._points[idx].value

    def get_dt(self, idx: int) -> date:
        return self._points[idx].date

    def clear(self) -> None:
        self._points.clear()
        self._invalidate()

    def shrink(self, n: int) -> None:
        """Keep only the first ``n`` points."""
        del self._points[max(n, 0):]
        self._invalidate()

    def clone(self) -> "Curve":
        """Independent copy sharing no point storage with this curve."""
        other = copy.copy(self)
        other._points = [CurvePoint(p.date, p.value) for p in self._points]
        other._interpolator = None
        if self.parametric is not None:
            other.parametric = self.parametric.clone()
        return other

    def set(self, other: "Curve") -> None:
        """Copy as-of, interpolation and points from another curve."""
        self._asof = other.asof
        self._interp = other.interp
        self._points = [CurvePoint(p.date, p.value) for p in other._points]
        self._invalidate()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def time(self, dt: date) -> float:
        """Curve time of a date in years from the as-of date."""
        return self.day_count.year_fraction(self._asof, dt)

    def interpolate(self, dt: date) -> float:
        """Curve value at a date."""
        if self.parametric is not None:
            return self.parametric.discount_factor(self.time(dt))
        if not self._points:
            if self.anchor is None:
                raise ValueError(f"Curve {self.name or '<unnamed>'} has no points")
            return self.anchor
        return self._get_interpolator().interpolate(self.time(dt))

    def zero_rate(self, dt: date) -> float:
        """Continuously compounded zero rate implied by the curve value."""
        return discount_factor_to_zero_rate(self.interpolate(dt), self.time(dt))

    def forward_rate(self, start: date, end: date, day_count: Union[str, DayCountConvention]) -> float:
        """Simply compounded forward rate between two dates."""
        alpha = get_day_count_convention(day_count).year_fraction(start, end)
        if alpha <= 0:
            raise ValueError("Forward period must be positive")
        return (self.interpolate(start) / self.interpolate(end) - 1.0) / alpha

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _get_interpolator(self) -> Interpolator:
        if self._interpolator is None:
            times = [self.time(p.date) for p in self._points]
            values = [p.value for p in self._points]
            if self.anchor is not None and 0.0 not in times:
                times.insert(0, 0.0)
                values.insert(0, self.anchor)
            self._interpolator = interpolator_class(self._interp)(times, values)
        return self._interpolator

    def _invalidate(self) -> None:
        self._interpolator = None

    def __str__(self) -> str:
        return (
            f"{self.__class__.__name__}({self.name})"
            if self.name
            else self.__class__.__name__
        )
