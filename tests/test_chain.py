"""
Unit tests for basis swap chain discovery.

Tests verify correctness of:
- Index matching with fixed legs
- Chain search on receiver and payer sides, fixed and known terminals
- Input left untouched when no chain exists
- Composition of calibration tenors per maturity
- Leg pairing along a swap chain
- Reference index matching of calibration tenors
"""

from datetime import date

import pytest

from curvecal.calibrators import compose_swap_chain, find_chain, match_index
from curvecal.calibrators.chain import has_reference_index
from curvecal.curves import CurveTenor
from curvecal.errors import CalibrationError
from curvecal.products import Note, ReferenceIndex, Swap, SwapChain, SwapLeg

ASOF = date(2024, 1, 2)

ESTR = ReferenceIndex("ESTR", "1D")
EUR3M = ReferenceIndex("EURIBOR3M", "3M")
EUR6M = ReferenceIndex("EURIBOR6M", "6M")
EUR12M = ReferenceIndex("EURIBOR12M", "12M")


def leg(index, maturity="5Y", coupon=0.0):
    frequency = "1Y" if index is None or index.tenor == "1D" else index.tenor
    return SwapLeg(maturity, coupon, frequency=frequency, index=index)


def swap(receiver, payer, maturity="5Y", name="") -> Swap:
    return Swap(leg(receiver, maturity), leg(payer, maturity), name=name)


def tenor(name, product) -> CurveTenor:
    t = CurveTenor(name, product)
    t.update_product(ASOF)
    return t


# ------------------------------------------------------------------
# Matching
# ------------------------------------------------------------------

class TestMatchIndex:
    """Tests for index matching."""

    def test_fixed_matches_only_fixed(self):
        assert match_index(None, None)
        assert not match_index(EUR3M, None)

    def test_same_index(self):
        assert match_index(EUR3M, ReferenceIndex("EURIBOR3M", "3M"))
        assert not match_index(EUR6M, EUR3M)
        assert not match_index(None, EUR3M)


# ------------------------------------------------------------------
# Search
# ------------------------------------------------------------------

class TestFindChain:
    """Tests for the backtracking chain search."""

    def test_two_swaps_to_known_index(self):
        ab, bc = swap(EUR6M, EUR3M), swap(EUR3M, ESTR)
        items = [ab, bc]
        assert find_chain(items, EUR6M, [ESTR]) == 2
        assert items[:2] == [ab, bc]

    def test_reorders_to_chain_order(self):
        ab, bc = swap(EUR6M, EUR3M), swap(EUR3M, ESTR)
        items = [bc, ab]
        assert find_chain(items, EUR6M, [ESTR]) == 2
        assert items[0] is ab
        assert items[1] is bc

    def test_fixed_leg_terminal(self):
        items = [swap(EUR6M, None)]
        assert find_chain(items, EUR6M) == 1

    def test_payer_side_match(self):
        """The target may sit on either leg of every link."""
        first, second = swap(EUR3M, EUR6M), swap(None, EUR3M)
        items = [first, second]
        assert find_chain(items, EUR6M) == 2
        assert items == [first, second]

    def test_fixed_terminal_preferred(self):
        """A fixed-leg chain is found before one ending on a known index."""
        to_fixed, to_estr = swap(EUR6M, None), swap(EUR6M, ESTR)
        items = [to_fixed, to_estr]
        assert find_chain(items, EUR6M, [ESTR]) == 1
        assert items[0] is to_fixed

    def test_no_chain_leaves_items(self):
        ab, cd = swap(EUR6M, EUR3M), swap(EUR12M, ESTR)
        items = [cd, ab]
        assert find_chain(items, EUR6M, [ESTR]) == 0
        assert items == [cd, ab]

    def test_backtracks_dead_end(self):
        """A branch that never reaches a terminal is undone."""
        dead_end = swap(EUR6M, EUR12M)
        good = swap(EUR6M, EUR3M)
        last = swap(EUR3M, ESTR)
        items = [good, last, dead_end]
        assert find_chain(items, EUR6M, [ESTR]) == 2
        assert items[:2] == [good, last]
        assert items[2] is dead_end

    def test_several_targets(self):
        items = [swap(EUR3M, None)]
        assert find_chain(items, [EUR6M, EUR3M]) == 1

    def test_custom_getters(self):
        pairs = [("B", "C"), ("A", "B")]
        count = find_chain(
            pairs, "A", ["C"],
            get_receiver=lambda p: p[0], get_payer=lambda p: p[1],
        )
        assert count == 2
        assert pairs == [("A", "B"), ("B", "C")]


# ------------------------------------------------------------------
# Composition
# ------------------------------------------------------------------

class TestComposeSwapChain:
    """Tests for per-maturity chain composition."""

    def test_chain_per_maturity(self):
        tenors = [
            tenor("6M_DEPO", Note("6M")),
            tenor("5Y_BASIS", swap(EUR6M, EUR3M, "5Y")),
            tenor("5Y_SWAP", swap(None, EUR3M, "5Y")),
            tenor("10Y_ORPHAN", swap(EUR6M, EUR12M, "10Y")),
        ]
        composed = compose_swap_chain(tenors, EUR6M)
        assert [t.name for t in composed] == ["6M_DEPO", "5Y_BASIS"]
        chain = composed[1].product
        assert isinstance(chain, SwapChain)
        assert chain.count == 2
        assert chain.target_index == EUR6M
        assert composed[1].curve_date == tenors[1].curve_date
        assert composed[1].weight == 1.0

    def test_single_swap_kept_as_swap(self):
        tenors = [tenor("5Y", swap(None, EUR6M, "5Y"))]
        composed = compose_swap_chain(tenors, EUR6M)
        assert isinstance(composed[0].product, Swap)

    def test_chaining_disabled(self):
        tenors = [
            tenor("5Y_BASIS", swap(EUR6M, EUR3M, "5Y")),
            tenor("5Y_SWAP", swap(None, EUR3M, "5Y")),
        ]
        composed = compose_swap_chain(tenors, EUR6M, chained_swap_approach=False)
        assert composed[0].product is tenors[0].current_product

    def test_nothing_eligible(self):
        tenors = [tenor("5Y", swap(EUR12M, EUR3M, "5Y"))]
        with pytest.raises(CalibrationError, match="No eligible tenor"):
            compose_swap_chain(tenors, EUR6M)


class TestSwapChain:
    """Tests for the synthetic chain product."""

    def test_leg_pairs_follow_chain(self):
        basis = swap(EUR6M, EUR3M).resolve(ASOF)
        fixed = swap(None, EUR3M).resolve(ASOF)
        chain = SwapChain((basis, fixed), 2, EUR6M)
        pairs = list(chain.leg_pairs())
        assert pairs[0] == (basis.receiver_leg, basis.payer_leg)
        assert pairs[1] == (fixed.payer_leg, fixed.receiver_leg)

    def test_broken_chain(self):
        chain = SwapChain((swap(EUR6M, EUR3M), swap(EUR12M, ESTR)), 2, EUR6M)
        with pytest.raises(CalibrationError, match="Invalid swap chain"):
            list(chain.leg_pairs())

    def test_invalid_count(self):
        with pytest.raises(CalibrationError, match="Invalid swap chain length"):
            SwapChain((swap(EUR6M, None),), 2, EUR6M)

    def test_quote_goes_to_first_swap(self):
        chain = SwapChain((swap(EUR6M, EUR3M), swap(None, EUR3M)), 2, EUR6M)
        quoted = chain.with_quote(0.0015)
        assert quoted.swaps[0].receiver_leg.coupon == 0.0015
        assert quoted.swaps[1] is chain.swaps[1]


class TestHasReferenceIndex:
    """Tests for matching a tenor against a requested index."""

    def test_matches_either_leg(self):
        basis = tenor("5Y", swap(EUR6M, EUR3M))
        assert has_reference_index(basis, EUR3M)
        assert has_reference_index(basis, EUR6M)
        assert not has_reference_index(basis, EUR12M)

    def test_no_requested_index_matches(self):
        assert has_reference_index(tenor("5Y", swap(EUR12M, EUR3M)), None)

    def test_product_without_index_matches(self):
        assert has_reference_index(tenor("6M", Note("6M")), EUR6M)

    def test_missing_tenor(self):
        assert not has_reference_index(None, EUR6M)
