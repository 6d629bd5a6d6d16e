"""Range aggregate functions and the cell error marker."""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from itertools import repeat
from typing import Any, Callable


# ---------------------------------------------------------------------------
# CellError: marker values shown in place of a failed result
# ---------------------------------------------------------------------------


class CellError:
    """Error marker stored as a cell's display value.

    Use ``CellError.of(code)`` to get a cached singleton for each code.
    Markers only compare equal to other markers with the same code, so no
    number or text entry can ever be mistaken for one.
    """

    __slots__ = ("code",)
    _cache: dict[str, CellError] = {}

    ERROR: CellError
    DIV0: CellError
    CIRCULAR: CellError
    REF: CellError

    def __init__(self, code: str) -> None:
        self.code = code

    @classmethod
    def of(cls, code: str) -> CellError:
        canon = code.upper()
        if canon not in cls._cache:
            cls._cache[canon] = cls(canon)
        return cls._cache[canon]

    def __repr__(self) -> str:
        return self.code

    def __str__(self) -> str:
        return self.code

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CellError):
            return self.code == other.code
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.code)


# Singletons
CellError.ERROR = CellError.of("#ERROR!")
CellError.DIV0 = CellError.of("#DIV/0!")
CellError.CIRCULAR = CellError.of("#CIRCULAR!")
CellError.REF = CellError.of("#REF!")


def is_error(val: Any) -> bool:
    """Return True if *val* is a CellError marker."""
    return isinstance(val, CellError)


def to_number(val: Any) -> int | float | None:
    """Numeric value of a cell's display value, or None when it has none.

    Numbers pass through; text is parsed as a decimal literal, and whole
    numbers keep every digit. Empty cells, error markers, booleans,
    unparseable text and non-finite values give None.
    """
    if isinstance(val, bool) or val is None or isinstance(val, CellError):
        return None
    if isinstance(val, int):
        return val
    if isinstance(val, float):
        return val if math.isfinite(val) else None
    if isinstance(val, str):
        text = val.strip()
        if not text or "_" in text or not text.isascii():
            return None
        digits = text[1:] if text[0] in "+-" else text
        if digits.isdigit():
            try:
                return int(text)
            except ValueError:
                # Past the interpreter's int string conversion limit
                return None
        try:
            num = float(text)
        except ValueError:
            return None
        if not math.isfinite(num):
            return None
        return num
    return None


# ---------------------------------------------------------------------------
# Range values
# ---------------------------------------------------------------------------


class RangeValues(Sequence):
    """Numeric values of a rectangular range in row-major order.

    Only the block of the range that overlaps the grid is stored; every
    other position reads 0. Length and indexing cover the whole rectangle,
    so a range running far past the grid costs nothing until iterated.
    """

    __slots__ = ("_present", "_inner_width", "_inner_height", "_width", "_height")

    def __init__(
        self,
        present: list[int | float],
        inner_shape: tuple[int, int],
        shape: tuple[int, int],
    ) -> None:
        self._present = present
        self._inner_height, self._inner_width = inner_shape
        self._height, self._width = shape

    @property
    def present(self) -> list[int | float]:
        """Values of the cells inside the grid."""
        return self._present

    @property
    def missing(self) -> int:
        """Number of addressed cells outside the grid."""
        return len(self) - len(self._present)

    def __len__(self) -> int:
        return self._height * self._width

    def __getitem__(self, index: Any) -> Any:
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(len(self)))]
        size = len(self)
        if index < 0:
            index += size
        if not 0 <= index < size:
            raise IndexError("range index out of range")
        row, col = divmod(index, self._width)
        if row < self._inner_height and col < self._inner_width:
            return self._present[row * self._inner_width + col]
        return 0

    def __iter__(self) -> Iterator[int | float]:
        for row in range(self._height):
            if row < self._inner_height:
                start = row * self._inner_width
                yield from self._present[start : start + self._inner_width]
                yield from repeat(0, self._width - self._inner_width)
            else:
                yield from repeat(0, self._width)

    def __repr__(self) -> str:
        return f"<RangeValues {self._height}x{self._width}, {len(self._present)} in grid>"


def _split(values: Sequence[float]) -> tuple[list[float], int]:
    """In-grid values and the count of implicit zeros."""
    if isinstance(values, RangeValues):
        return values.present, values.missing
    return list(values), 0


# ---------------------------------------------------------------------------
# Builtin range aggregates.
# Each takes the numeric values of every addressed cell (missing ones as 0).
# ---------------------------------------------------------------------------


def _builtin_sum(values: Sequence[float]) -> float:
    present, _ = _split(values)
    return sum(present)


def _builtin_average(values: Sequence[float]) -> float:
    if not len(values):
        return 0
    present, _ = _split(values)
    return sum(present) / len(values)


def _builtin_min(values: Sequence[float]) -> float:
    present, missing = _split(values)
    if missing:
        present = [*present, 0]
    if not present:
        return 0
    return min(present)


def _builtin_max(values: Sequence[float]) -> float:
    present, missing = _split(values)
    if missing:
        present = [*present, 0]
    if not present:
        return 0
    return max(present)


def _builtin_count(values: Sequence[float]) -> int:
    """COUNT - number of addressed cells, empty ones included."""
    return len(values)


_BUILTINS: dict[str, Callable[[Sequence[float]], Any]] = {
    "SUM": _builtin_sum,
    "AVERAGE": _builtin_average,
    "MIN": _builtin_min,
    "MAX": _builtin_max,
    "COUNT": _builtin_count,
}

RANGE_FUNCTIONS: frozenset[str] = frozenset(_BUILTINS)


class FunctionRegistry:
    """Registry of range aggregate implementations.

    Starts with the builtins and can be extended with custom aggregates.
    Names are case-insensitive and must be plain identifiers.
    """

    def __init__(self) -> None:
        self._functions: dict[str, Callable[[Sequence[float]], Any]] = dict(_BUILTINS)

    def register(self, name: str, func: Callable[[Sequence[float]], Any]) -> None:
        if not name.isidentifier() or not name.isascii():
            raise ValueError(f"Invalid function name: {name!r}")
        self._functions[name.upper()] = func

    def get(self, name: str) -> Callable[[Sequence[float]], Any] | None:
        return self._functions.get(name.upper())

    def has(self, name: str) -> bool:
        return name.upper() in self._functions

    @property
    def supported_functions(self) -> frozenset[str]:
        return frozenset(self._functions.keys())
