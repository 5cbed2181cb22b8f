"""
QuantLib-backed day count conventions.

Curve time (the x-axis used by interpolation and by the smoothing penalties)
and accrual fractions of interest payments are both measured through these
conventions.
"""

from datetime import date, datetime
from typing import Union

import QuantLib as ql


def to_date(dt: Union[date, datetime]) -> date:
    """Convert datetime to date if needed."""
    return dt.date() if isinstance(dt, datetime) else dt


def _to_ql_date(dt: Union[date, datetime]) -> ql.Date:
    """Convert Python date/datetime to QuantLib Date."""
    py_date = to_date(dt)
    return ql.Date(py_date.day, py_date.month, py_date.year)


class DayCountConvention:
    """Base class for QuantLib-backed day count conventions."""

    def __init__(self, name: str, ql_daycount: ql.DayCounter):
        self.name = name
        self._ql_daycount = ql_daycount

    def year_fraction(
        self, start: Union[date, datetime], end: Union[date, datetime]
    ) -> float:
        """Calculate year fraction between two dates using QuantLib.

        Negative when ``end`` precedes ``start``.
        """
        start_d, end_d = to_date(start), to_date(end)
        if start_d == end_d:
            return 0.0
        if end_d < start_d:
            return -self._ql_daycount.yearFraction(_to_ql_date(end_d), _to_ql_date(start_d))
        return self._ql_daycount.yearFraction(_to_ql_date(start_d), _to_ql_date(end_d))

    def day_count(
        self, start: Union[date, datetime], end: Union[date, datetime]
    ) -> int:
        """Calculate number of days between two dates."""
        return self._ql_daycount.dayCount(_to_ql_date(start), _to_ql_date(end))

    def __eq__(self, other) -> bool:
        if isinstance(other, DayCountConvention):
            return self.name == other.name
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return self.name


class Actual360(DayCountConvention):
    """ACT/360, used by money-market instruments and most floating legs."""

    def __init__(self):
        super().__init__("ACT/360", ql.Actual360())


class Actual365Fixed(DayCountConvention):
    """ACT/365F, the default curve-time basis."""

    def __init__(self):
        super().__init__("ACT/365F", ql.Actual365Fixed())


class Thirty360European(DayCountConvention):
    """30E/360 (30/360 European)."""

    def __init__(self):
        super().__init__("30E/360", ql.Thirty360(ql.Thirty360.European))


class Thirty360US(DayCountConvention):
    """30U/360 (30/360 US - Bond Basis)."""

    def __init__(self):
        super().__init__("30U/360", ql.Thirty360(ql.Thirty360.BondBasis))


class ActualActualISDA(DayCountConvention):
    """ACT/ACT ISDA."""

    def __init__(self):
        super().__init__("ACT/ACT", ql.ActualActual(ql.ActualActual.ISDA))


# Pre-defined day count convention instances
ACT_360 = Actual360()
ACT_365F = Actual365Fixed()
THIRTY_360E = Thirty360European()
THIRTY_360U = Thirty360US()
ACT_ACT = ActualActualISDA()

# Registry
DAY_COUNT_CONVENTIONS = {
    "ACT/360": ACT_360,
    "ACTUAL/360": ACT_360,
    "ACT/365F": ACT_365F,
    "ACT/365": ACT_365F,
    "ACTUAL/365F": ACT_365F,
    "30E/360": THIRTY_360E,
    "30/360E": THIRTY_360E,
    "30U/360": THIRTY_360U,
    "30/360": THIRTY_360U,
    "ACT/ACT": ACT_ACT,
    "ACTUAL/ACTUAL": ACT_ACT,
}


def get_day_count_convention(name: Union[str, DayCountConvention]) -> DayCountConvention:
    """Get a day count convention by name (instances pass through)."""
    if isinstance(name, DayCountConvention):
        return name
    name_upper = name.upper()
    if name_upper not in DAY_COUNT_CONVENTIONS:
        raise ValueError(
            f"Unknown day count convention: {name}. "
            f"Available: {list(DAY_COUNT_CONVENTIONS.keys())}"
        )
    return DAY_COUNT_CONVENTIONS[name_upper]
