"""Dependency graph for formula cells with cycle-aware topological ordering."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable

from gridcalc.calc._protocol import Address, RecalcPlan

logger = logging.getLogger(__name__)


class CircularReferenceError(ValueError):
    """A formula would depend on its own cell."""


class DependencyGraph:
    """Tracks which formula cells read which other cells.

    Cells are ``(row, col)`` tuples. An edge ``source -> dependent`` means the
    dependent's formula reads the source's value.
    """

    __slots__ = ("dependencies", "dependents")

    def __init__(self) -> None:
        # cell -> set of cells it reads from
        self.dependencies: dict[Address, set[Address]] = {}
        # cell -> set of cells that read from it (reverse edges)
        self.dependents: dict[Address, set[Address]] = {}

    def add_edge(self, source: Address, dependent: Address) -> None:
        """Record that *dependent* reads *source*. Adding an existing edge is a no-op."""
        if source == dependent:
            raise CircularReferenceError(f"Cell {source} cannot depend on itself")
        self.dependencies.setdefault(dependent, set()).add(source)
        self.dependents.setdefault(source, set()).add(dependent)

    def remove_all_edges_from(self, dependent: Address) -> None:
        """Drop every edge whose dependent side is *dependent*."""
        for source in self.dependencies.pop(dependent, set()):
            readers = self.dependents.get(source)
            if readers is None:
                continue
            readers.discard(dependent)
            if not readers:
                del self.dependents[source]

    def dependents_of(self, source: Address) -> frozenset[Address]:
        return frozenset(self.dependents.get(source, ()))

    def dependencies_of(self, dependent: Address) -> frozenset[Address]:
        return frozenset(self.dependencies.get(dependent, ()))

    @property
    def edge_count(self) -> int:
        return sum(len(sources) for sources in self.dependencies.values())

    def __contains__(self, cell: object) -> bool:
        return cell in self.dependencies or cell in self.dependents

    def __len__(self) -> int:
        """Number of formula cells with at least one dependency."""
        return len(self.dependencies)

    # ------------------------------------------------------------------
    # Ordering
    # ------------------------------------------------------------------

    def _reachable(self, roots: Iterable[Address]) -> set[Address]:
        """All cells reachable from *roots* through dependents (roots only if re-reached)."""
        reached: set[Address] = set()
        queue: deque[Address] = deque(roots)
        while queue:
            cell = queue.popleft()
            for dep in self.dependents.get(cell, ()):
                if dep not in reached:
                    reached.add(dep)
                    queue.append(dep)
        return reached

    def _on_cycle(self, cell: Address, within: set[Address]) -> bool:
        """True if *cell* can reach itself using only cells in *within*."""
        seen: set[Address] = set()
        stack = [cell]
        while stack:
            current = stack.pop()
            for dep in self.dependents.get(current, ()):
                if dep == cell:
                    return True
                if dep in within and dep not in seen:
                    seen.add(dep)
                    stack.append(dep)
        return False

    def topological_order(self, cells: set[Address]) -> RecalcPlan:
        """Order *cells* so dependencies come first (Kahn's algorithm).

        Cells on a cycle are reported in ``circular`` and released so that
        cells downstream of the cycle still get an order. Ties are broken in
        row-major address order.
        """
        if not cells:
            return RecalcPlan()

        # Compute in-degrees within the given cells only
        in_degree: dict[Address, int] = {
            cell: len(self.dependencies.get(cell, set()) & cells) for cell in cells
        }
        ready = sorted(cell for cell in cells if in_degree[cell] == 0)
        queue: deque[Address] = deque(ready)

        order: list[Address] = []
        circular: set[Address] = set()
        done: set[Address] = set()

        def release(cell: Address) -> None:
            # Reduce in-degree for dependents inside the given cells
            freed: list[Address] = []
            for dep in self.dependents.get(cell, ()):
                if dep in cells and dep not in done:
                    in_degree[dep] -= 1
                    if in_degree[dep] == 0:
                        freed.append(dep)
            queue.extend(sorted(freed))

        while True:
            while queue:
                cell = queue.popleft()
                if cell in done:
                    continue
                done.add(cell)
                order.append(cell)
                release(cell)

            remaining = cells - done
            if not remaining:
                break
            # Everything left sits on a cycle or downstream of one
            stuck = {cell for cell in remaining if self._on_cycle(cell, remaining)}
            logger.debug("Circular reference detected involving: %s", sorted(stuck))
            circular |= stuck
            done |= stuck
            for cell in sorted(stuck):
                release(cell)

        return RecalcPlan(order=tuple(order), circular=frozenset(circular))

    def affected_cells(self, changed: Iterable[Address]) -> RecalcPlan:
        """Plan the propagation pass for a change to *changed*.

        Collects every cell transitively reading a changed cell, then orders
        them. A changed cell appears in the plan only when it reaches itself,
        in which case it is circular.
        """
        changed = set(changed)
        reached = self._reachable(changed)
        plan = self.topological_order(reached)
        if changed & set(plan.order):
            # A changed cell reached without a cycle is re-evaluated by the
            # caller already; keep it out of the order.
            plan = RecalcPlan(
                order=tuple(c for c in plan.order if c not in changed),
                circular=plan.circular,
            )
        return plan

    def max_depth(self, roots: Iterable[Address]) -> int:
        """Longest dependency chain from root cells, ignoring cycles."""
        roots = set(roots)
        if not roots:
            return 0

        plan = self.topological_order(self._reachable(roots) | roots)
        depth: dict[Address, int] = {r: 0 for r in roots}
        max_d = 0
        for cell in plan.order:
            if cell not in depth:
                continue
            for dep in self.dependents.get(cell, ()):
                if dep in plan.circular or dep in roots:
                    continue
                new_depth = depth[cell] + 1
                if new_depth > depth.get(dep, -1):
                    depth[dep] = new_depth
                    max_d = max(max_d, new_depth)
        return max_d
