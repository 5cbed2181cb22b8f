"""
Basis swap chain discovery.

When a curve's reference index is not quoted directly against a known index
or a fixed leg, a chain of basis swaps sharing one index pairwise
(target/B, B/C, ..., Y/known) prices the same exposure. The search is a
backtracking depth-first walk that moves each picked item to the front of
the unpicked range.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from operator import attrgetter
from typing import Callable, Dict, List, Optional, Sequence, TypeVar, Union

from curvecal.curves.tenor import CurveTenor
from curvecal.errors import CalibrationError
from curvecal.products import ReferenceIndex, Swap, SwapChain

logger = logging.getLogger(__name__)

T = TypeVar("T")
IndexGetter = Callable[[T], Optional[ReferenceIndex]]
Targets = Union[Optional[ReferenceIndex], Sequence[Optional[ReferenceIndex]]]


def match_index(leg_index: Optional[ReferenceIndex], index: Optional[ReferenceIndex]) -> bool:
    """A missing index matches only a fixed leg (no index)."""
    if index is None:
        return leg_index is None
    return index == leg_index


def _search(items: List[T], get_receiver: IndexGetter, get_payer: IndexGetter, first: int,
            targets: Sequence[Optional[ReferenceIndex]], known: Optional[ReferenceIndex]) -> int:
    for i in range(len(items) - 1, first - 1, -1):
        item = items[i]
        if any(match_index(get_receiver(item), t) for t in targets):
            other = get_payer(item)
        elif any(match_index(get_payer(item), t) for t in targets):
            other = get_receiver(item)
        else:
            continue
        items[first], items[i] = items[i], items[first]
        if match_index(known, other):
            return first + 1
        count = _search(items, get_receiver, get_payer, first + 1, [other], known)
        if count > 0:
            return count
        items[first], items[i] = items[i], items[first]
    return 0


def find_chain(
    items: List[T],
    target: Targets,
    known_indices: Optional[Sequence[ReferenceIndex]] = None,
    get_receiver: IndexGetter = attrgetter("receiver_index"),
    get_payer: IndexGetter = attrgetter("payer_index"),
) -> int:
    """Find a chain linking ``target`` to a fixed leg or a known index.

    A fixed-leg terminal is tried first, then each known index in order. On
    success ``items`` is reordered in place so that ``items[:count]`` is the
    chain starting from the target; otherwise ``items`` is left untouched.

    Args:
        items: Swaps (or anything the getters understand)
        target: Target index, or a sequence of acceptable target indices
        known_indices: Alternative terminal indices
        get_receiver: Receiver-leg index of an item
        get_payer: Payer-leg index of an item

    Returns:
        Length of the chain found, 0 if none exists
    """
    targets = list(target) if isinstance(target, (list, tuple)) else [target]
    for known in [None, *(known_indices or ())]:
        work = list(items)
        count = _search(work, get_receiver, get_payer, 0, targets, known)
        if count > 0:
            items[:] = work
            return count
    return 0


def has_reference_index(tenor: Optional[CurveTenor], index: Optional[ReferenceIndex]) -> bool:
    """True if the tenor's product references ``index``.

    A product without any index, or a request for no particular index,
    always matches.
    """
    if tenor is None:
        return False
    product = tenor.current_product
    indices = [getattr(product, "receiver_index", None), getattr(product, "payer_index", None)]
    indices = [i for i in indices if i is not None]
    if not indices or index is None:
        return True
    return any(match_index(i, index) for i in indices)


def compose_swap_chain(
    tenors: Sequence[CurveTenor],
    target_index: ReferenceIndex,
    known_indices: Optional[Sequence[ReferenceIndex]] = None,
    chained_swap_approach: bool = True,
) -> List[CurveTenor]:
    """Replace the swaps of each maturity by one calibration tenor.

    Non-swap tenors are kept when they reference the target index. Swaps are
    grouped by maturity and each group contributes a chain starting at the
    target index; groups without a chain are dropped.

    Raises:
        CalibrationError: If no tenor is left to calibrate with
    """
    composed: List[CurveTenor] = []
    groups: Dict[object, List[CurveTenor]] = defaultdict(list)
    for tenor in tenors:
        product = tenor.current_product
        if isinstance(product, Swap):
            groups[product.maturity].append(tenor)
        elif has_reference_index(tenor, target_index):
            composed.append(tenor)

    for maturity in sorted(groups):
        group = groups[maturity]
        count = find_chain(
            group,
            target_index,
            known_indices,
            get_receiver=lambda t: t.current_product.receiver_index,
            get_payer=lambda t: t.current_product.payer_index,
        )
        if count == 0:
            logger.info("No swap chain found at %s for target index %s", maturity, target_index)
            continue
        swaps = tuple(t.current_product for t in group)
        if count == 1 or not chained_swap_approach:
            product = swaps[0]
        else:
            product = SwapChain(swaps, count, target_index, name=group[0].name)
        composed.append(CurveTenor(
            name=group[0].name,
            product=product,
            weight=1.0,
            curve_date=product.curve_date(),
            resolved_product=product,
        ))

    if not composed:
        raise CalibrationError(f"No eligible tenor to calibrate curve with target index {target_index}")
    return composed
