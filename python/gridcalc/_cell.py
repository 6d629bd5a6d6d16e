"""Cell: one grid location holding a display value and an optional formula."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from gridcalc._utils import rowcol_to_a1


@dataclass(frozen=True)
class Cell:
    """Immutable snapshot of a grid cell.

    ``formula`` is ``""`` for a literal entry, otherwise the full entry text
    including the leading ``=``. ``display_value`` is the literal text as
    entered, or the last evaluation result / error marker for a formula.
    """

    row: int
    col: int
    display_value: Any = ""
    formula: str = ""

    @property
    def coordinate(self) -> str:
        return rowcol_to_a1(self.row, self.col)

    @property
    def is_formula(self) -> bool:
        return bool(self.formula)

    @property
    def is_error(self) -> bool:
        from gridcalc.calc._functions import is_error

        return is_error(self.display_value)

    @property
    def entry_text(self) -> str:
        """What a formula bar shows for this cell: the formula, else the value."""
        if self.formula:
            return self.formula
        return str(self.display_value)

    def __repr__(self) -> str:
        if self.formula:
            return f"<Cell {self.coordinate} {self.formula!r} -> {self.display_value!r}>"
        return f"<Cell {self.coordinate} {self.display_value!r}>"
