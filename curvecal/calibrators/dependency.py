"""
Dependency bookkeeping across calibrated curves.

``CurveDependencyGraph`` rebuilds the parent/dependent relation of a batch of
curves from their calibrators and restores every touched curve on exit.
``DependencyGraph`` orders arbitrary nodes so that dependencies come first.
"""
from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import (
    Callable,
    Dict,
    Generic,
    Hashable,
    Iterable,
    Iterator,
    List,
    Optional,
    Set,
    TypeVar,
)

from curvecal.curves.calibrated import CalibratedCurve
from curvecal.errors import CircularDependencyError

from .base import Calibrator

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _SavedState:
    name: str
    dependent_ids: Set[int]
    parent_curve_ids: Optional[List[int]]


class CurveDependencyGraph:
    """Scoped parent/dependent relation over a batch of curves.

    Usage::

        with CurveDependencyGraph([ois, euribor3m, euribor6m]) as graph:
            for curve in graph.curves:
                ...

    On entry each reachable curve has its dependent set and its
    calibrator's parent ids reset and rebuilt depth-first from
    ``enumerate_parent_curves``, with indirect parents left out. Unnamed
    curves get a temporary ``[Type/id]`` name. On exit names, dependent sets
    and parent id lists are put back exactly as they were.

    A curve reached again while its own parents are still being visited
    closes a cycle. The visit is cut short with a warning, or
    :class:`CircularDependencyError` is raised when ``strict`` is set.
    """

    def __init__(self, curves: Iterable[Optional[CalibratedCurve]], strict: bool = False):
        self._roots = [c for c in curves if c is not None]
        self.strict = strict
        self._saved: Dict[int, _SavedState] = {}
        self._touched: List[CalibratedCurve] = []
        self._in_progress: Set[int] = set()
        self._order: List[CalibratedCurve] = []

    def __enter__(self) -> "CurveDependencyGraph":
        try:
            for curve in self._roots:
                self._visit(curve)
        except BaseException:
            self._restore()
            raise
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._restore()

    @property
    def curves(self) -> List[CalibratedCurve]:
        """Touched curves with every parent listed before its dependents."""
        return list(self._order)

    def _visit(self, curve: CalibratedCurve) -> None:
        if curve.id in self._saved:
            if curve.id in self._in_progress:
                if self.strict:
                    raise CircularDependencyError(f"Circular parent curve {curve.name}")
                logger.warning("Circular parent curve %s", curve.name)
            return

        calibrator = curve.calibrator
        self._saved[curve.id] = _SavedState(
            curve.name,
            curve.dependent_ids,
            None if calibrator is None else calibrator.parent_curve_ids,
        )
        self._touched.append(curve)
        if not curve.name:
            curve.name = f"[{type(curve).__name__}/{curve.id}]"
        curve.dependent_ids = set()
        if calibrator is None:
            self._order.append(curve)
            return
        calibrator.parent_curve_ids = []
        self._in_progress.add(curve.id)
        logger.debug("Visiting parents of %s", curve.name)

        parents = [p for p in calibrator.enumerate_parent_curves() if p is not None]
        for parent in parents:
            self._visit(parent)
        Calibrator.set_parent_curves(calibrator.parent_curve_ids, *parents)
        Calibrator.set_dependent_curves(curve, *parents)

        self._in_progress.discard(curve.id)
        self._order.append(curve)

    def _restore(self) -> None:
        for curve in reversed(self._touched):
            saved = self._saved[curve.id]
            curve.name = saved.name
            curve.dependent_ids = saved.dependent_ids
            if curve.calibrator is not None and saved.parent_curve_ids is not None:
                curve.calibrator.parent_curve_ids = saved.parent_curve_ids
        self._saved.clear()
        self._touched.clear()
        self._in_progress.clear()


class DependencyGraph(Generic[T]):
    """Nodes ordered so that each node follows everything it depends on.

    Args:
        nodes: Starting nodes; their dependencies are pulled in recursively
        get_id: Hashable identity of a node
        get_children: Nodes a node depends on
    """

    def __init__(self, nodes: Iterable[T], get_id: Callable[[T], Hashable],
                 get_children: Callable[[T], Iterable[T]]):
        self._nodes: Dict[Hashable, T] = {}
        self._children: Dict[Hashable, List[Hashable]] = {}
        pending = list(nodes)
        while pending:
            node = pending.pop()
            key = get_id(node)
            if key in self._nodes:
                continue
            self._nodes[key] = node
            children = [c for c in get_children(node) if c is not None]
            self._children[key] = []
            for child in children:
                child_key = get_id(child)
                if child_key not in self._children[key]:
                    self._children[key].append(child_key)
                pending.append(child)
        self._ordered: Optional[List[T]] = None

    @classmethod
    def from_nodes(cls, nodes: Iterable[T], get_id: Callable[[T], Hashable],
                   get_children: Callable[[T], Iterable[T]]) -> "DependencyGraph[T]":
        return cls(nodes, get_id, get_children)

    def _order(self) -> List[T]:
        if self._ordered is None:
            remaining = {key: len(children) for key, children in self._children.items()}
            dependents: Dict[Hashable, List[Hashable]] = {key: [] for key in self._nodes}
            for key, children in self._children.items():
                for child in children:
                    dependents[child].append(key)
            ready = deque(key for key, count in remaining.items() if count == 0)
            ordered: List[T] = []
            while ready:
                key = ready.popleft()
                ordered.append(self._nodes[key])
                for parent in dependents[key]:
                    remaining[parent] -= 1
                    if remaining[parent] == 0:
                        ready.append(parent)
            if len(ordered) != len(self._nodes):
                raise CircularDependencyError("Cyclic dependency detected")
            self._ordered = ordered
        return self._ordered

    def __iter__(self) -> Iterator[T]:
        return iter(self._order())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._nodes

    def __getitem__(self, key: Hashable) -> T:
        return self._nodes[key]

    def reverse_ordered(self) -> List[T]:
        """Dependents before their dependencies."""
        return list(reversed(self._order()))

    def get_descendants(self, key: Hashable) -> List[T]:
        """Every node ``key`` depends on, directly or not."""
        seen: Set[Hashable] = set()
        stack = list(self._children.get(key, ()))
        result: List[T] = []
        while stack:
            child = stack.pop()
            if child in seen:
                continue
            seen.add(child)
            result.append(self._nodes[child])
            stack.extend(self._children[child])
        return result

    def has_cyclic_dependency(self) -> bool:
        visiting: Set[Hashable] = set()
        done: Set[Hashable] = set()

        def visit(key: Hashable) -> bool:
            if key in done:
                return False
            if key in visiting:
                return True
            visiting.add(key)
            if any(visit(child) for child in self._children[key]):
                return True
            visiting.discard(key)
            done.add(key)
            return False

        return any(visit(key) for key in self._nodes)


def fit_in_dependency_order(curves: Iterable[CalibratedCurve]) -> List[CalibratedCurve]:
    """Fit the given curves so that each is fitted after its parents.

    Parents outside ``curves`` are used as they are and not refitted.

    Returns:
        The fitted curves in fitting order
    """
    requested = {c.id: c for c in curves if c is not None}
    graph = DependencyGraph.from_nodes(
        requested.values(),
        get_id=lambda c: c.id,
        get_children=lambda c: list(c.enumerate_component_curves()),
    )
    fitted = []
    for curve in graph:
        if curve.id in requested:
            curve.fit()
            fitted.append(curve)
    return fitted
