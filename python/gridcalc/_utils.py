"""A1-style address helpers for single-letter column grids."""

from __future__ import annotations

MAX_COLS = 26


def column_letter(col: int) -> str:
    """Zero-based column index -> letter (0 -> "A")."""
    if col < 0 or col >= MAX_COLS:
        raise ValueError(f"Column index out of range: {col}")
    return chr(ord("A") + col)


def column_index(letter: str) -> int:
    """Column letter -> zero-based index ("A" -> 0). Case-insensitive."""
    if len(letter) != 1 or not letter.isalpha() or not letter.isascii():
        raise ValueError(f"Invalid column letter: {letter!r}")
    return ord(letter.upper()) - ord("A")


def a1_to_rowcol(ref: str) -> tuple[int, int]:
    """Convert "B3" to zero-based ``(row, col)`` ``(2, 1)``.

    Raises ValueError for anything that is not a single letter followed by a
    positive row number.
    """
    ref = ref.strip()
    if len(ref) < 2:
        raise ValueError(f"Invalid cell reference: {ref!r}")
    digits = ref[1:]
    if not digits.isdigit() or not digits.isascii():
        raise ValueError(f"Invalid cell reference: {ref!r}")
    row = int(digits)
    if row < 1:
        raise ValueError(f"Invalid cell reference: {ref!r}")
    return row - 1, column_index(ref[0])


def rowcol_to_a1(row: int, col: int) -> str:
    """Convert zero-based ``(row, col)`` to "A1" notation."""
    if row < 0:
        raise ValueError(f"Row index out of range: {row}")
    return f"{column_letter(col)}{row + 1}"
