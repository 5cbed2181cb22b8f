"""
Basic enums shared by curves and schedules.
"""

from enum import Enum


class Frequency(Enum):
    """Compounding / payment frequencies, valued in months.

    ``CONTINUOUS`` and ``NONE`` have no month length.
    """

    NONE = -1
    CONTINUOUS = 0
    ANNUAL = 12
    SEMIANNUAL = 6
    QUARTERLY = 3
    MONTHLY = 1

    def months(self) -> int:
        if self.value <= 0:
            raise ValueError(f"Frequency {self.name} has no period length")
        return self.value


class InstrumentType(Enum):
    """Calibration instrument families, used for overlap priority."""

    MM = "MM"
    SWAP = "SWAP"
    BASIS_SWAP = "BASIS_SWAP"
