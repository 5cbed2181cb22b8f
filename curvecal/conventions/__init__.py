"""Market conventions: day counts, frequencies and tenors."""

from .daycount import (
    ACT_360,
    ACT_365F,
    DayCountConvention,
    get_day_count_convention,
    to_date,
)
from .tenor import add_tenor, parse_tenor, tenor_months
from .types import Frequency, InstrumentType

__all__ = [
    "ACT_360",
    "ACT_365F",
    "DayCountConvention",
    "Frequency",
    "InstrumentType",
    "add_tenor",
    "get_day_count_convention",
    "parse_tenor",
    "tenor_months",
    "to_date",
]
