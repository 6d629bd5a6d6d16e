"""Grid store: a fixed-size matrix of cells with bounds-checked access."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from gridcalc._cell import Cell
from gridcalc._utils import MAX_COLS, a1_to_rowcol, column_letter

DEFAULT_ROWS = 10
DEFAULT_COLS = 10


class OutOfBoundsError(IndexError):
    """A cell address lies outside the grid dimensions."""

    def __init__(self, row: int, col: int, rows: int, cols: int) -> None:
        super().__init__(
            f"Cell ({row}, {col}) is outside the {rows}x{cols} grid"
        )
        self.row = row
        self.col = col


class Grid:
    """Owns a ``rows x cols`` matrix of :class:`Cell` objects.

    The grid is fully populated with empty cells on construction and never
    resized. It is pure storage: writing a cell never triggers recalculation.
    """

    __slots__ = ("_rows", "_cols", "_cells")

    def __init__(self, rows: int = DEFAULT_ROWS, cols: int = DEFAULT_COLS) -> None:
        if rows < 1:
            raise ValueError(f"Grid needs at least one row, got {rows}")
        if cols < 1 or cols > MAX_COLS:
            raise ValueError(f"Grid columns must be between 1 and {MAX_COLS}, got {cols}")
        self._rows = rows
        self._cols = cols
        self._cells: list[list[Cell]] = [
            [Cell(r, c) for c in range(cols)] for r in range(rows)
        ]

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def cols(self) -> int:
        return self._cols

    @property
    def column_labels(self) -> list[str]:
        return [column_letter(c) for c in range(self._cols)]

    # ------------------------------------------------------------------
    # Cell access
    # ------------------------------------------------------------------

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self._rows and 0 <= col < self._cols

    def _check(self, row: int, col: int) -> None:
        if not self.in_bounds(row, col):
            raise OutOfBoundsError(row, col, self._rows, self._cols)

    def get_cell(self, row: int, col: int) -> Cell:
        self._check(row, col)
        return self._cells[row][col]

    def set_cell(self, row: int, col: int, display_value: Any, formula: str = "") -> Cell:
        """Replace the cell at (row, col). Both fields change in one assignment."""
        self._check(row, col)
        cell = Cell(row, col, display_value, formula)
        self._cells[row][col] = cell
        return cell

    def value_at(self, row: int, col: int) -> Any:
        """Display value at (row, col), or None when outside the grid."""
        if not self.in_bounds(row, col):
            return None
        return self._cells[row][col].display_value

    def __getitem__(self, key: str) -> Cell:
        """``grid['A1']`` -> Cell."""
        row, col = a1_to_rowcol(key)
        return self.get_cell(row, col)

    # ------------------------------------------------------------------
    # Iteration
    # ------------------------------------------------------------------

    def iter_rows(self, values_only: bool = False) -> Iterator[tuple[Any, ...]]:
        """Yield each row as a tuple of cells, or of display values."""
        for row in self._cells:
            if values_only:
                yield tuple(cell.display_value for cell in row)
            else:
                yield tuple(row)

    def formula_cells(self) -> Iterator[Cell]:
        for row in self._cells:
            for cell in row:
                if cell.formula:
                    yield cell

    def __repr__(self) -> str:
        return f"<Grid {self._rows}x{self._cols}>"
