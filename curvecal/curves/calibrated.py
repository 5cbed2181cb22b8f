"""
Calibrated curves and the curve registry.

Curves refer to each other only through integer ids: a calibrator keeps the
ids of the curves its fit reads (parents) and each curve keeps the ids of the
curves that read it (dependents). Ids resolve through a process-wide weak
registry, so the relation never keeps a curve alive.
"""
from __future__ import annotations

import itertools
import logging
import weakref
from datetime import date
from typing import TYPE_CHECKING, Iterable, Iterator, List, Optional, Set

from curvecal.conventions.types import Frequency
from curvecal.errors import CalibrationError

from .curve import Curve
from .tenor import CurveTenor, CurveTenorCollection

if TYPE_CHECKING:
    from curvecal.calibrators.base import Calibrator
    from curvecal.products.base import Product
    from curvecal.products.index import ReferenceIndex

logger = logging.getLogger(__name__)

_ids = itertools.count(1)
_registry: "weakref.WeakValueDictionary[int, CalibratedCurve]" = weakref.WeakValueDictionary()


def get_curve(curve_id: int) -> Optional["CalibratedCurve"]:
    """Look up a live calibrated curve by id."""
    return _registry.get(curve_id)


def get_curves(curve_ids: Iterable[int]) -> List["CalibratedCurve"]:
    """Resolve ids in order, skipping curves that no longer exist."""
    curves = []
    for curve_id in curve_ids:
        curve = _registry.get(curve_id)
        if curve is not None:
            curves.append(curve)
    return curves


class CalibratedCurve(Curve):
    """Curve fitted to market tenors by a calibrator."""

    def __init__(
        self,
        asof: date,
        calibrator: Optional["Calibrator"] = None,
        tenors: Optional[Iterable[CurveTenor]] = None,
        interp: str = "WEIGHTED",
        day_count="ACT/365F",
        frequency: Frequency = Frequency.CONTINUOUS,
        name: str = "",
        reference_index: Optional["ReferenceIndex"] = None,
        parametric=None,
    ):
        super().__init__(
            asof,
            interp=interp,
            day_count=day_count,
            frequency=frequency,
            name=name,
            anchor=1.0,
            parametric=parametric,
        )
        self.id = next(_ids)
        _registry[self.id] = self
        self.calibrator = calibrator
        self.tenors = CurveTenorCollection(tenors)
        self.reference_index = reference_index
        self.dependent_ids: Set[int] = set()

    # ------------------------------------------------------------------
    # Tenors and relations
    # ------------------------------------------------------------------
    def add_tenor(self, tenor: CurveTenor) -> None:
        self.tenors.add(tenor)

    @property
    def dependent_curves(self) -> List["CalibratedCurve"]:
        """Curves whose calibration reads this curve, in id order."""
        return get_curves(sorted(self.dependent_ids))

    @property
    def parent_curve_ids(self) -> List[int]:
        return [] if self.calibrator is None else list(self.calibrator.parent_curve_ids)

    def enumerate_component_curves(self) -> Iterator["CalibratedCurve"]:
        if self.calibrator is None:
            return iter(())
        return self.calibrator.enumerate_parent_curves()

    # ------------------------------------------------------------------
    # Calibration
    # ------------------------------------------------------------------
    def fit(self) -> None:
        """Clear and recalibrate this curve from all of its tenors."""
        self._require_calibrator().fit(self)

    def refit(self, from_idx: int = 0) -> None:
        """Refit from ``from_idx`` and then every dependent curve.

        Points before ``from_idx`` are assumed unchanged. Quote shifts on this
        curve's tenors carry over to same-named tenors of dependents.
        """
        logger.debug("Begin refit %s/%s", self.name, self.id)
        _refit_recursive(self, self.tenors, from_idx, set())
        logger.debug("End refit %s/%s", self.name, self.id)

    def pv(self, product: "Product") -> float:
        """Price a product the same way calibration priced the tenors."""
        return self._require_calibrator().get_pricer(self, product).pv()

    def _require_calibrator(self) -> "Calibrator":
        if self.calibrator is None:
            raise CalibrationError(f"Curve {self.name or self.id} has no calibrator")
        return self.calibrator


def _refit_recursive(curve: CalibratedCurve, tenors: CurveTenorCollection,
                     from_idx: int, visited: Set[int]) -> None:
    if curve.id in visited:
        return
    visited.add(curve.id)
    curve._require_calibrator().refit(curve, from_idx)
    for dependent in curve.dependent_curves:
        for tenor in tenors:
            if tenor.quote is None or not dependent.tenors.contains_tenor(tenor.name):
                continue
            target = dependent.tenors[tenor.name]
            if target.original_quote is not None:
                target.set_quote(target.original_quote + (tenor.quote - tenor.original_quote))
        logger.debug("Refit dependent %s/%s of %s", dependent.name, dependent.id, curve.name)
        _refit_recursive(dependent, tenors, from_idx, visited)
