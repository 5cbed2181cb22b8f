"""Calibration instruments."""

from .base import Product
from .index import ReferenceIndex
from .note import Note
from .swap import Swap, SwapChain, SwapLeg

__all__ = [
    "Note",
    "Product",
    "ReferenceIndex",
    "Swap",
    "SwapChain",
    "SwapLeg",
]
