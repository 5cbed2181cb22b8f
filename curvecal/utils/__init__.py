"""Numerical helpers."""

from .rootfinding import RootFindingError, RootResult, find_bracket, solve

__all__ = ["RootFindingError", "RootResult", "find_bracket", "solve"]
