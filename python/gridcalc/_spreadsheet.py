"""Spreadsheet - the surface a UI layer talks to.

Owns one :class:`Grid` and one :class:`RecalcEngine`. A UI submits entry text
for a cell, then renders display values and, for the selected cell, the
formula-bar text.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from gridcalc._cell import Cell
from gridcalc._grid import DEFAULT_COLS, DEFAULT_ROWS, Grid
from gridcalc._utils import a1_to_rowcol
from gridcalc.calc._engine import Listener, RecalcEngine
from gridcalc.calc._functions import FunctionRegistry
from gridcalc.calc._graph import DependencyGraph
from gridcalc.calc._protocol import ExpressionEvaluator, RecalcResult


class Spreadsheet:
    """In-memory spreadsheet with formula recalculation."""

    def __init__(
        self,
        rows: int = DEFAULT_ROWS,
        cols: int = DEFAULT_COLS,
        *,
        evaluator: ExpressionEvaluator | None = None,
        functions: FunctionRegistry | None = None,
        strict_ranges: bool = False,
        propagate_errors: bool = False,
    ) -> None:
        self._grid = Grid(rows, cols)
        self._engine = RecalcEngine(
            self._grid,
            evaluator,
            functions,
            strict_ranges=strict_ranges,
            propagate_errors=propagate_errors,
        )

    # ------------------------------------------------------------------
    # Dimensions
    # ------------------------------------------------------------------

    @property
    def rows(self) -> int:
        return self._grid.rows

    @property
    def cols(self) -> int:
        return self._grid.cols

    @property
    def column_labels(self) -> list[str]:
        return self._grid.column_labels

    @property
    def graph(self) -> DependencyGraph:
        return self._engine.graph

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def submit_entry(self, row: int, col: int, text: str) -> RecalcResult:
        """Enter *text* (a literal, or a formula starting with ``=``) at (row, col)."""
        return self._engine.submit(row, col, text)

    def submit_entry_at(self, ref: str, text: str) -> RecalcResult:
        """``sheet.submit_entry_at("B2", "=A1*2")``."""
        row, col = a1_to_rowcol(ref)
        return self._engine.submit(row, col, text)

    def clear_cell(self, row: int, col: int) -> RecalcResult:
        return self._engine.clear(row, col)

    def recalculate(self) -> RecalcResult:
        return self._engine.recalculate_all()

    def set_evaluator(self, evaluator: ExpressionEvaluator) -> RecalcResult:
        """Swap the arithmetic evaluator and refresh every formula with it."""
        self._engine.evaluator = evaluator
        return self._engine.recalculate_all()

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def get_cell(self, row: int, col: int) -> Cell:
        return self._grid.get_cell(row, col)

    def __getitem__(self, ref: str) -> Cell:
        """``sheet['A1']`` -> Cell."""
        return self._grid[ref]

    def display_value(self, row: int, col: int) -> Any:
        return self._grid.get_cell(row, col).display_value

    def formula(self, row: int, col: int) -> str:
        return self._grid.get_cell(row, col).formula

    def entry_text(self, row: int, col: int) -> str:
        """Text a formula bar shows when (row, col) is selected."""
        return self._grid.get_cell(row, col).entry_text

    def iter_rows(self, values_only: bool = True) -> Iterator[tuple[Any, ...]]:
        return self._grid.iter_rows(values_only=values_only)

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> None:
        """Call *listener* with the RecalcResult of every completed edit."""
        self._engine.subscribe(listener)

    def unsubscribe(self, listener: Listener) -> None:
        self._engine.unsubscribe(listener)

    def __repr__(self) -> str:
        return f"<Spreadsheet {self.rows}x{self.cols}>"
