"""gridcalc - a small in-memory spreadsheet calculation engine.

Usage::

    from gridcalc import Spreadsheet

    sheet = Spreadsheet()              # 10 x 10 grid, columns A..J
    sheet.submit_entry(0, 0, "2")      # A1
    sheet.submit_entry(0, 1, "=A1*2")  # B1 -> 4
    sheet.submit_entry(0, 2, "=B1+1")  # C1 -> 5
    sheet.submit_entry(0, 0, "10")     # B1 -> 20, C1 -> 21
    print(sheet["C1"].display_value, sheet.entry_text(0, 2))
"""

from gridcalc._cell import Cell
from gridcalc._grid import DEFAULT_COLS, DEFAULT_ROWS, Grid, OutOfBoundsError
from gridcalc._spreadsheet import Spreadsheet
from gridcalc._utils import MAX_COLS, a1_to_rowcol, rowcol_to_a1
from gridcalc.calc import CellError, RecalcResult, is_error

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "Cell",
    "CellError",
    "DEFAULT_COLS",
    "DEFAULT_ROWS",
    "Grid",
    "MAX_COLS",
    "OutOfBoundsError",
    "RecalcResult",
    "Spreadsheet",
    "a1_to_rowcol",
    "is_error",
    "rowcol_to_a1",
]
