"""
Unit tests for curve dependency bookkeeping.

Tests verify correctness of:
- Direct parents only (indirect parents are left out)
- Dependent registration on parents
- Restoration of names, dependents and parent ids on exit and on error
- Cycle handling in tolerant and strict modes
- Generic dependency ordering and cycle detection
- Fitting in dependency order and refit propagation of quote shifts
"""

import logging
from datetime import date

import pytest

from curvecal.calibrators import (
    Calibrator,
    CurveDependencyGraph,
    DependencyGraph,
    fit_in_dependency_order,
)
from curvecal.curves import CalibratedCurve, CurveTenor, get_curve, get_curves
from curvecal.errors import CalibrationError, CircularDependencyError
from curvecal.products import Note

ASOF = date(2024, 1, 2)


class RecordingCalibrator(Calibrator):
    """Calibrator reading fixed parents and logging each fit."""

    def __init__(self, parents=(), log=None):
        super().__init__(ASOF)
        self.parents = list(parents)
        self.log = [] if log is None else log

    def enumerate_parent_curves(self):
        return iter(self.parents)

    def fit_from(self, curve, from_idx):
        self.log.append((curve.name, from_idx))

    def get_pricer(self, curve, product):
        raise NotImplementedError


def make_curve(name, parents=(), log=None, tenors=None) -> CalibratedCurve:
    return CalibratedCurve(ASOF, calibrator=RecordingCalibrator(parents, log), name=name, tenors=tenors)


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------

@pytest.fixture
def triangle():
    """A reads B and C, B reads C."""
    c = make_curve("C")
    b = make_curve("B", [c])
    a = make_curve("A", [b, c])
    return a, b, c


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------

class TestRegistry:
    """Tests for id lookup of calibrated curves."""

    def test_ids_are_unique(self, triangle):
        ids = {curve.id for curve in triangle}
        assert len(ids) == 3

    def test_lookup(self, triangle):
        a, b, c = triangle
        assert get_curve(a.id) is a
        assert get_curves([c.id, 10 ** 9, b.id]) == [c, b]


# ------------------------------------------------------------------
# Parent bookkeeping
# ------------------------------------------------------------------

class TestParentCurves:
    """Tests for the static parent/dependent helpers."""

    def test_skips_none_and_duplicates(self, triangle):
        a, b, c = triangle
        ids = []
        Calibrator.set_parent_curves(ids, None, c, c)
        assert ids == [c.id]

    def test_skips_indirect_parent(self, triangle):
        a, b, c = triangle
        b.calibrator.parent_curve_ids = [c.id]
        ids = [b.id]
        Calibrator.set_parent_curves(ids, c)
        assert ids == [b.id]

    def test_dependents_only_for_listed_parents(self, triangle):
        a, b, c = triangle
        a.calibrator.parent_curve_ids = [b.id]
        Calibrator.set_dependent_curves(a, b, c)
        assert b.dependent_ids == {a.id}
        assert c.dependent_ids == set()


# ------------------------------------------------------------------
# Scoped graph
# ------------------------------------------------------------------

class TestCurveDependencyGraph:
    """Tests for the scoped dependency graph."""

    def test_transitive_reduction(self, triangle):
        a, b, c = triangle
        with CurveDependencyGraph([a]) as graph:
            assert a.calibrator.parent_curve_ids == [b.id]
            assert b.calibrator.parent_curve_ids == [c.id]
            assert c.dependent_ids == {b.id}
            assert b.dependent_ids == {a.id}
            assert a.parent_curve_ids == [b.id]
            assert graph.curves == [c, b, a]

    def test_dependent_curves_in_id_order(self, triangle):
        a, b, c = triangle
        d = make_curve("D", [c])
        with CurveDependencyGraph([a, d]):
            assert c.dependent_curves == [b, d]

    def test_restores_on_exit(self, triangle):
        a, b, c = triangle
        c.dependent_ids = {12345}
        a.calibrator.parent_curve_ids = [999]
        saved_dependents = c.dependent_ids
        with CurveDependencyGraph([a]):
            assert 12345 not in c.dependent_ids
        assert c.dependent_ids is saved_dependents
        assert c.dependent_ids == {12345}
        assert a.calibrator.parent_curve_ids == [999]
        assert b.dependent_ids == set()

    def test_restores_on_error(self, triangle):
        a, b, c = triangle
        with pytest.raises(RuntimeError):
            with CurveDependencyGraph([a]):
                raise RuntimeError("fit failed")
        assert c.dependent_ids == set()
        assert a.calibrator.parent_curve_ids == []

    def test_temporary_names(self):
        parent = make_curve("")
        child = make_curve("child", [parent])
        with CurveDependencyGraph([child]):
            assert parent.name == f"[CalibratedCurve/{parent.id}]"
        assert parent.name == ""

    def test_skips_none_and_curves_without_calibrator(self):
        market = CalibratedCurve(ASOF, name="market")
        child = make_curve("child", [market])
        with CurveDependencyGraph([None, child]) as graph:
            assert market.dependent_ids == {child.id}
            assert graph.curves == [market, child]

    def test_cycle_tolerated(self, caplog):
        a = make_curve("A")
        b = make_curve("B", [a])
        a.calibrator.parents.append(b)
        with caplog.at_level(logging.WARNING, logger="curvecal.calibrators.dependency"):
            with CurveDependencyGraph([a]) as graph:
                assert len(graph.curves) == 2
        assert "Circular parent curve" in caplog.text
        assert a.dependent_ids == set()

    def test_cycle_strict(self):
        a = make_curve("A")
        b = make_curve("B", [a])
        a.calibrator.parents.append(b)
        with pytest.raises(CircularDependencyError, match="Circular parent curve A"):
            with CurveDependencyGraph([a], strict=True):
                pass
        assert a.calibrator.parent_curve_ids == []
        assert b.dependent_ids == set()


# ------------------------------------------------------------------
# Generic graph
# ------------------------------------------------------------------

DEPENDENCIES = {
    "app": ["db", "cache"],
    "cache": ["db"],
    "db": [],
}


def string_graph(deps):
    return DependencyGraph.from_nodes(["app"], get_id=lambda s: s, get_children=lambda s: deps[s])


class TestDependencyGraph:
    """Tests for generic dependency ordering."""

    def test_dependencies_first(self):
        graph = string_graph(DEPENDENCIES)
        assert list(graph) == ["db", "cache", "app"]
        assert graph.reverse_ordered() == ["app", "cache", "db"]

    def test_lookup(self):
        graph = string_graph(DEPENDENCIES)
        assert len(graph) == 3
        assert "cache" in graph
        assert "web" not in graph
        assert graph["db"] == "db"

    def test_descendants(self):
        graph = string_graph(DEPENDENCIES)
        assert sorted(graph.get_descendants("app")) == ["cache", "db"]
        assert graph.get_descendants("db") == []

    def test_cycle(self):
        deps = {"app": ["db"], "db": ["app"]}
        graph = string_graph(deps)
        assert graph.has_cyclic_dependency()
        with pytest.raises(CircularDependencyError, match="Cyclic dependency"):
            list(graph)

    def test_acyclic(self):
        assert not string_graph(DEPENDENCIES).has_cyclic_dependency()


# ------------------------------------------------------------------
# Fitting order and refit
# ------------------------------------------------------------------

class TestFitting:
    """Tests for ordered fitting and refit propagation."""

    def test_fit_in_dependency_order(self):
        log = []
        c = make_curve("C", log=log)
        b = make_curve("B", [c], log=log)
        a = make_curve("A", [b, c], log=log)
        fitted = fit_in_dependency_order([a, b])
        assert fitted == [b, a]
        assert [name for name, _ in log] == ["B", "A"]

    def test_fit_keeps_jump_date(self):
        curve = make_curve("A")
        curve.jump_date = date(2030, 1, 1)
        curve.fit()
        assert curve.jump_date == date(2030, 1, 1)

    def test_fit_without_calibrator(self):
        with pytest.raises(CalibrationError, match="has no calibrator"):
            CalibratedCurve(ASOF, name="bare").fit()

    def test_refit_shifts_dependent_quotes(self):
        log = []
        parent = make_curve("parent", log=log, tenors=[CurveTenor("1Y", Note("1Y"), quote=0.030)])
        child = make_curve("child", [parent], log=log, tenors=[
            CurveTenor("1Y", Note("1Y"), quote=0.032),
            CurveTenor("2Y", Note("2Y"), quote=0.033),
        ])
        parent.dependent_ids.add(child.id)
        parent.tenors["1Y"].set_quote(0.031)
        parent.refit()
        assert child.tenors["1Y"].quote == pytest.approx(0.033)
        assert child.tenors["2Y"].quote == pytest.approx(0.033)
        assert [name for name, _ in log] == ["parent", "child"]

    def test_refit_stops_on_cycle(self):
        log = []
        a = make_curve("A", log=log)
        b = make_curve("B", log=log)
        a.dependent_ids.add(b.id)
        b.dependent_ids.add(a.id)
        a.refit()
        assert [name for name, _ in log] == ["A", "B"]
