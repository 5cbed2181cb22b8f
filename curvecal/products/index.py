"""Reference (floating-rate) indices."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ReferenceIndex:
    """Floating-rate index such as ``EURIBOR3M`` or ``ESTR``.

    Attributes:
        name: Index name; two indices match when all fields match
        tenor: Reset tenor string ("1D" for overnight indices)
        day_count: Accrual day count of coupons on this index
    """

    name: str
    tenor: str = "3M"
    day_count: str = "ACT/360"

    def __str__(self) -> str:
        return self.name
