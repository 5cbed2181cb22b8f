"""
Calibration orchestrator protocol.

A calibrator owns the fit/refit sequence of a calibrated curve, builds pricers
consistent with calibration, and declares which other curves its fit reads.
Parent and dependent relations are stored as curve ids.
"""
from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from datetime import date
from typing import TYPE_CHECKING, Iterable, Iterator, List, Optional, Set

import numpy as np

from curvecal.curves.calibrated import get_curve

from .settings import OptimizerStatus

if TYPE_CHECKING:
    from curvecal.curves.calibrated import CalibratedCurve
    from curvecal.products.base import Product

logger = logging.getLogger(__name__)


class Calibrator(ABC):
    """Base class of curve calibrators.

    Attributes:
        asof: Pricing date tenors are resolved against
        settle: Settlement date of the calibration
        parent_curve_ids: Ids of curves this calibrator's fit reads
        last_status: Status of the last fit, None before any fit
        price_errors: Absolute pricing errors of the last fit's records
        elapsed: Seconds spent in the last fit
    """

    def __init__(self, asof: date, settle: Optional[date] = None):
        self.asof = asof
        self.settle = asof if settle is None else settle
        self.parent_curve_ids: List[int] = []
        self.last_status: Optional[OptimizerStatus] = None
        self.price_errors = np.zeros(0)
        self.elapsed = 0.0

    # ------------------------------------------------------------------
    # Fit protocol
    # ------------------------------------------------------------------
    def fit(self, curve: "CalibratedCurve") -> None:
        """Clear ``curve`` and calibrate it from all of its tenors.

        A jump (default) date set on the curve survives the fit.
        """
        jump_date = curve.jump_date
        curve.clear()
        self._run(curve, 0)
        curve.jump_date = jump_date

    def refit(self, curve: "CalibratedCurve", from_idx: int = 0) -> None:
        """Calibrate again without clearing, starting at ``from_idx``.

        Points before ``from_idx`` must still be valid. When the curve no
        longer has one point per tenor a full fit is run instead.
        """
        if curve.count != len(curve.tenors):
            logger.debug(
                "Curve %s has %s points for %s tenors; running a full fit",
                curve.name, curve.count, len(curve.tenors),
            )
            self.fit(curve)
            return
        jump_date = curve.jump_date
        self._run(curve, from_idx)
        curve.jump_date = jump_date

    def _run(self, curve: "CalibratedCurve", from_idx: int) -> None:
        self.update_tenors(curve)
        self.pre_process(curve)
        started = time.perf_counter()
        self.fit_from(curve, from_idx)
        self.elapsed = time.perf_counter() - started
        self.post_process(curve)
        logger.info("Fitted %s in %.3f seconds", curve.name or curve.id, self.elapsed)

    def update_tenors(self, curve: "CalibratedCurve") -> None:
        """Resolve every tenor's product as of the pricing date."""
        for tenor in curve.tenors:
            tenor.update_product(self.asof)
        curve.tenors.sort_by_curve_date()

    def pre_process(self, curve: "CalibratedCurve") -> None:
        pass

    def post_process(self, curve: "CalibratedCurve") -> None:
        pass

    @abstractmethod
    def fit_from(self, curve: "CalibratedCurve", from_idx: int) -> None:
        """Strategy-specific fit writing points from ``from_idx`` on."""
        pass

    @abstractmethod
    def get_pricer(self, curve: "CalibratedCurve", product: "Product"):
        """Pricer configured exactly as in calibration.

        Raises:
            ProductNotSupportedError: If the product type cannot be priced
        """
        pass

    def enumerate_parent_curves(self) -> Iterator["CalibratedCurve"]:
        """Curves this calibrator's fit reads; none by default."""
        return iter(())

    # ------------------------------------------------------------------
    # Parent / dependent bookkeeping
    # ------------------------------------------------------------------
    @staticmethod
    def set_parent_curves(parent_ids: List[int], *curves: Optional["CalibratedCurve"]) -> None:
        """Append curve ids to ``parent_ids`` skipping indirect parents.

        A curve already reachable through the parents of an existing entry
        is not added again.
        """
        for curve in curves:
            if curve is None or curve.id in parent_ids:
                continue
            if any(_reaches(pid, curve.id, set()) for pid in parent_ids):
                logger.debug("Skipping indirect parent %s", curve.id)
                continue
            parent_ids.append(curve.id)

    @staticmethod
    def set_dependent_curves(curve: "CalibratedCurve", *parents: Optional["CalibratedCurve"]) -> None:
        """Register ``curve`` as a dependent of each direct parent.

        Only parents already present in the curve's parent id list qualify.
        """
        if curve.calibrator is None:
            return
        parent_ids = curve.calibrator.parent_curve_ids
        for parent in parents:
            if parent is not None and parent.id in parent_ids:
                parent.dependent_ids.add(curve.id)


def _reaches(from_id: int, target_id: int, visited: Set[int]) -> bool:
    """True if ``target_id`` is a direct or indirect parent of ``from_id``."""
    if from_id in visited:
        return False
    visited.add(from_id)
    curve = get_curve(from_id)
    if curve is None or curve.calibrator is None:
        return False
    parents: Iterable[int] = curve.calibrator.parent_curve_ids
    for pid in parents:
        if pid == target_id or _reaches(pid, target_id, visited):
            return True
    return False
