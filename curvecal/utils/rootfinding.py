"""Root-finding utilities for one-dimensional curve solves (bracketed Brent)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from scipy.optimize import brentq

logger = logging.getLogger(__name__)

Func = Callable[[float], float]


@dataclass
class RootResult:
    root: float
    iterations: int
    converged: bool
    method: str


class RootFindingError(RuntimeError):
    """Raised when root-finding fails to converge."""


def _evaluate(func: Func, x: float) -> Optional[float]:
    """Evaluate ``func`` at ``x``, returning None where it is undefined."""
    try:
        return func(x)
    except (ValueError, ArithmeticError) as exc:
        logger.debug("Objective undefined at %s: %s", x, exc)
        return None


def _step_towards(func: Func, x: float, valid: float, max_halvings: int) -> Tuple[float, float]:
    """Pull ``x`` back towards ``valid`` until ``func`` is defined there."""
    for _ in range(max_halvings):
        f_x = _evaluate(func, x)
        if f_x is not None:
            return x, f_x
        x = 0.5 * (x + valid)
    raise RootFindingError(f"Objective undefined between {x} and {valid}")


def find_bracket(
    func: Func,
    a: float,
    b: float,
    lower: float = float("-inf"),
    upper: float = float("inf"),
    expansion: float = 1.6,
    max_iter: int = 50,
    max_halvings: int = 60,
) -> Tuple[float, float]:
    """Widen ``[a, b]`` until ``func`` changes sign, staying inside the bounds.

    An expanded end where ``func`` raises ``ValueError`` or ``ArithmeticError``
    is pulled back towards the end it was expanded from.

    Raises:
        RootFindingError: If no sign change is found before both ends hit
            the bounds or ``max_iter`` expansions are used, or if ``func`` is
            undefined on the initial bracket
    """
    a, b = max(a, lower), min(b, upper)
    if a >= b:
        raise RootFindingError(f"Empty bracket [{a}, {b}]")
    f_a, f_b = _evaluate(func, a), _evaluate(func, b)
    if f_a is None or f_b is None:
        raise RootFindingError(f"Objective undefined on the initial bracket [{a}, {b}]")
    for _ in range(max_iter):
        if f_a == 0.0:
            return a, a
        if f_b == 0.0:
            return b, b
        if f_a * f_b < 0:
            return a, b
        if a <= lower and b >= upper:
            break
        width = b - a
        if b >= upper or (abs(f_a) < abs(f_b) and a > lower):
            a, f_a = _step_towards(func, max(a - expansion * width, lower), a, max_halvings)
        else:
            b, f_b = _step_towards(func, min(b + expansion * width, upper), b, max_halvings)
    raise RootFindingError(f"Failed to bracket the root in [{lower}, {upper}]")


def solve(
    func: Func,
    target: float,
    a: float,
    b: float,
    *,
    lower: float = float("-inf"),
    upper: float = float("inf"),
    tol: float = 1e-12,
    max_iter: int = 100,
) -> RootResult:
    """Find ``x`` in ``[lower, upper]`` with ``func(x) == target``.

    Args:
        func: Scalar objective
        target: Value to hit
        a: Initial bracket left end
        b: Initial bracket right end
        lower: Hard lower bound on the solution
        upper: Hard upper bound on the solution
        tol: Absolute tolerance on ``x``
        max_iter: Maximum Brent iterations

    Returns:
        RootResult with the solution

    Raises:
        RootFindingError: If the root cannot be bracketed or Brent fails
    """

    def shifted(x: float) -> float:
        return func(x) - target

    a, b = find_bracket(shifted, a, b, lower=lower, upper=upper)
    if a == b:
        return RootResult(a, 0, True, "bracket")
    try:
        root, info = brentq(shifted, a, b, xtol=tol, maxiter=max_iter, full_output=True, disp=False)
    except (ValueError, RuntimeError) as exc:
        raise RootFindingError(str(exc)) from exc
    logger.debug("Brent solve on [%s, %s]: root=%s iterations=%s", a, b, root, info.iterations)
    if not info.converged:
        raise RootFindingError(f"Brent failed to converge after {info.iterations} iterations")
    return RootResult(root, info.iterations, True, "brent")
