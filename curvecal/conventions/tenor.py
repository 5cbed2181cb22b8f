"""Tenor strings such as ``"3M"`` or ``"10Y"``."""

from __future__ import annotations

import re
from datetime import date

from dateutil.relativedelta import relativedelta

_TENOR_PATTERN = re.compile(r"^\s*(\d+)\s*([DWMY])\s*$", re.IGNORECASE)


def parse_tenor(tenor: str) -> relativedelta:
    """Parse a tenor string into a ``relativedelta``.

    Args:
        tenor: Count followed by D, W, M or Y (case-insensitive)

    Returns:
        Offset representing the tenor

    Raises:
        ValueError: If the string is not a valid tenor
    """
    match = _TENOR_PATTERN.match(tenor)
    if match is None:
        raise ValueError(f"Invalid tenor: {tenor!r}")
    count, unit = int(match.group(1)), match.group(2).upper()
    if unit == "D":
        return relativedelta(days=count)
    if unit == "W":
        return relativedelta(weeks=count)
    if unit == "M":
        return relativedelta(months=count)
    return relativedelta(years=count)


def add_tenor(start: date, tenor: str) -> date:
    """Return ``start`` rolled forward by ``tenor`` (no business-day adjustment)."""
    return start + parse_tenor(tenor)


def tenor_months(tenor: str) -> int:
    """Length of a month/year tenor in months."""
    offset = parse_tenor(tenor)
    if offset.days or offset.weeks:
        raise ValueError(f"Tenor {tenor!r} is not a whole number of months")
    return offset.years * 12 + offset.months
