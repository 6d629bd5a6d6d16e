"""RecalcEngine: applies edits to a grid and propagates them to dependents."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from gridcalc._utils import rowcol_to_a1
from gridcalc.calc._functions import CellError, FunctionRegistry
from gridcalc.calc._graph import DependencyGraph
from gridcalc.calc._protocol import Address, CellDelta, ExpressionEvaluator, RecalcResult
from gridcalc.calc._resolver import ReferenceResolver

if TYPE_CHECKING:
    from gridcalc._cell import Cell
    from gridcalc._grid import Grid

logger = logging.getLogger(__name__)

FORMULA_PREFIX = "="

Listener = Callable[[RecalcResult], Any]


def _values_differ(a: Any, b: Any) -> bool:
    if type(a) is not type(b) and not (
        isinstance(a, (int, float)) and isinstance(b, (int, float))
    ):
        return True
    return a != b


class RecalcEngine:
    """Owns the dependency graph for a grid and keeps formula cells current.

    Every edit runs to completion (write, then full transitive propagation)
    before :meth:`submit` returns; listeners are notified afterwards.

    Usage::

        engine = RecalcEngine(Grid())
        engine.submit(0, 0, "2")
        engine.submit(0, 1, "=A1*2")
        result = engine.submit(0, 0, "10")   # B1 becomes 20
    """

    def __init__(
        self,
        grid: Grid,
        evaluator: ExpressionEvaluator | None = None,
        functions: FunctionRegistry | None = None,
        *,
        strict_ranges: bool = False,
        propagate_errors: bool = False,
    ) -> None:
        self._grid = grid
        self._graph = DependencyGraph()
        self._resolver = ReferenceResolver(
            grid,
            self._graph,
            functions,
            evaluator,
            strict_ranges=strict_ranges,
            propagate_errors=propagate_errors,
        )
        self._listeners: list[Listener] = []

    @property
    def grid(self) -> Grid:
        return self._grid

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    @property
    def evaluator(self) -> ExpressionEvaluator:
        return self._resolver.evaluator

    @evaluator.setter
    def evaluator(self, evaluator: ExpressionEvaluator) -> None:
        """Swap the arithmetic evaluator. Call :meth:`recalculate_all` to refresh values."""
        self._resolver.evaluator = evaluator

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._listeners.remove(listener)

    def _notify(self, result: RecalcResult) -> None:
        for listener in list(self._listeners):
            listener(result)

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def submit(self, row: int, col: int, text: str) -> RecalcResult:
        """Store *text* at (row, col) and recompute everything that depends on it.

        Text starting with ``=`` is a formula; anything else is a literal,
        stored exactly as given. Raises OutOfBoundsError before touching any
        state when the address is outside the grid.
        """
        if not isinstance(text, str):
            raise TypeError(f"Entry text must be a string, got {type(text).__name__}")
        cell = (row, col)
        touched: dict[Address, Cell] = {cell: self._grid.get_cell(row, col)}

        # Stale edges from the previous formula must go before re-parsing
        self._graph.remove_all_edges_from(cell)
        self_referencing = False
        if text.startswith(FORMULA_PREFIX):
            value, resolution = self._resolver.resolve_and_evaluate(text[len(FORMULA_PREFIX):], cell)
            self_referencing = resolution.self_reference
            self._grid.set_cell(row, col, value, text)
        else:
            self._grid.set_cell(row, col, text, "")

        recomputed, circular = self._propagate({cell}, touched)
        if self_referencing:
            circular = circular | {cell}
        result = RecalcResult(
            origin=cell,
            deltas=self._collect_deltas(touched),
            recomputed=recomputed,
            circular=circular,
            max_chain_depth=self._graph.max_depth({cell}),
        )
        logger.debug(
            "Edit at %s: %d recomputed, %d circular, %d changed",
            rowcol_to_a1(row, col), len(recomputed), len(circular), len(result.deltas),
        )
        self._notify(result)
        return result

    def clear(self, row: int, col: int) -> RecalcResult:
        """Empty a cell, dropping its formula and dependencies."""
        return self.submit(row, col, "")

    def recalculate_all(self) -> RecalcResult:
        """Re-evaluate every formula cell in dependency order."""
        formula_cells = {(c.row, c.col) for c in self._grid.formula_cells()}
        plan = self._graph.topological_order(formula_cells)
        touched: dict[Address, Cell] = {}
        circular = set(plan.circular)
        for cell in sorted(plan.circular):
            self._write(cell, CellError.CIRCULAR, touched)
        for cell in plan.order:
            value, self_referencing = self._reevaluate(cell)
            self._write(cell, value, touched)
            if self_referencing:
                circular.add(cell)
        result = RecalcResult(
            origin=None,
            deltas=self._collect_deltas(touched),
            recomputed=plan.order,
            circular=frozenset(circular),
        )
        self._notify(result)
        return result

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def _propagate(
        self, changed: set[Address], touched: dict[Address, Cell],
    ) -> tuple[tuple[Address, ...], frozenset[Address]]:
        """Recompute every transitive dependent of *changed* once, in order."""
        plan = self._graph.affected_cells(changed)
        for cell in sorted(plan.circular):
            self._write(cell, CellError.CIRCULAR, touched)

        circular = set(plan.circular)
        visited: set[Address] = set(plan.circular)
        recomputed: list[Address] = []
        for cell in plan.order:
            if cell in visited:
                continue
            visited.add(cell)
            if not self._grid.get_cell(*cell).formula:
                continue
            value, self_referencing = self._reevaluate(cell)
            self._write(cell, value, touched)
            recomputed.append(cell)
            if self_referencing:
                circular.add(cell)
        return tuple(recomputed), frozenset(circular)

    def _reevaluate(self, cell: Address) -> tuple[int | float | CellError, bool]:
        """New value of a formula cell, and whether it reads its own cell."""
        formula = self._grid.get_cell(*cell).formula
        self._graph.remove_all_edges_from(cell)
        value, resolution = self._resolver.resolve_and_evaluate(formula[len(FORMULA_PREFIX):], cell)
        return value, resolution.self_reference

    def _write(self, cell: Address, value: Any, touched: dict[Address, Cell]) -> None:
        old = self._grid.get_cell(*cell)
        touched.setdefault(cell, old)
        self._grid.set_cell(cell[0], cell[1], value, old.formula)

    def _collect_deltas(self, touched: dict[Address, Cell]) -> tuple[CellDelta, ...]:
        """Deltas for touched cells whose value or formula differs from before the edit."""
        deltas: list[CellDelta] = []
        for (row, col), before in touched.items():
            after = self._grid.get_cell(row, col)
            if _values_differ(before.display_value, after.display_value) or before.formula != after.formula:
                deltas.append(CellDelta(
                    row=row,
                    col=col,
                    coordinate=after.coordinate,
                    old_value=before.display_value,
                    new_value=after.display_value,
                    formula=after.formula,
                ))
        return tuple(deltas)
