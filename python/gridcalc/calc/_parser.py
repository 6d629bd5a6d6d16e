"""Formula scanner: locates range-function calls and bare cell addresses.

A single left-to-right pass classifies the formula text into identifier runs,
number literals and punctuation, so ``1E5`` is never read as column ``E`` and
``SUM`` is never read as an address. Positions are returned so callers can
splice substitutions into the original text.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from gridcalc._utils import a1_to_rowcol

Address = tuple[int, int]


@dataclass(frozen=True)
class AddressToken:
    """A bare ``<col><row>`` address at ``text[start:end]``."""

    start: int
    end: int
    row: int
    col: int


@dataclass(frozen=True)
class RangeCall:
    """A ``NAME(argument)`` call spanning ``text[start:end]``."""

    start: int
    end: int
    name: str
    argument: str


# ---------------------------------------------------------------------------
# Low-level scanning
# ---------------------------------------------------------------------------


def _is_ident_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == "_")


def _number_end(text: str, i: int) -> int:
    """End index of the number literal starting at *text[i]*."""
    n = len(text)
    while i < n and (text[i].isdigit() or text[i] == "."):
        i += 1
    # Exponent: 1e5, 2.5E-3
    if i < n and text[i] in ("e", "E"):
        j = i + 1
        if j < n and text[j] in ("+", "-"):
            j += 1
        if j < n and text[j].isdigit():
            while j < n and text[j].isdigit():
                j += 1
            return j
    return i


def _words(text: str) -> Iterator[tuple[int, int]]:
    """Yield ``(start, end)`` of every identifier run not glued to a number."""
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch.isdigit() or ch == ".":
            i = _number_end(text, i)
            # An identifier glued to a number (``2A1``) is not a word
            while i < n and _is_ident_char(text[i]):
                i += 1
        elif _is_ident_char(ch):
            j = i
            while j < n and _is_ident_char(text[j]):
                j += 1
            yield i, j
            i = j
        else:
            i += 1


def find_matching_paren(text: str, start: int) -> int:
    """Index of the ``')'`` matching the ``'('`` at *text[start]*, or -1."""
    depth = 1
    i = start + 1
    while i < len(text):
        ch = text[i]
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


# ---------------------------------------------------------------------------
# Token extraction
# ---------------------------------------------------------------------------


def scan_addresses(text: str) -> list[AddressToken]:
    """Find every bare single-letter cell address in *text*.

    Addresses are case-insensitive. A word followed by ``(`` is a function
    name, never an address.
    """
    tokens: list[AddressToken] = []
    for start, end in _words(text):
        word = text[start:end]
        if len(word) < 2 or not word[0].isalpha() or not word[1:].isdigit():
            continue
        rest = text[end:].lstrip()
        if rest.startswith("("):
            continue
        try:
            row, col = a1_to_rowcol(word)
        except ValueError:
            # A0 and friends: shaped like an address but never inside a grid
            row, col = -1, -1
        tokens.append(AddressToken(start, end, row, col))
    return tokens


def scan_range_calls(text: str, names: Iterable[str]) -> list[RangeCall]:
    """Find ``NAME(...)`` calls for the given function names.

    Names match case-insensitively. The argument runs to the balanced closing
    parenthesis; a call with no closing parenthesis is not reported.
    """
    wanted = {name.upper() for name in names}
    calls: list[RangeCall] = []
    skip_until = 0
    for start, end in _words(text):
        if start < skip_until:
            continue
        name = text[start:end].upper()
        if name not in wanted:
            continue
        open_idx = end
        while open_idx < len(text) and text[open_idx] == " ":
            open_idx += 1
        if open_idx >= len(text) or text[open_idx] != "(":
            continue
        close_idx = find_matching_paren(text, open_idx)
        if close_idx < 0:
            continue
        calls.append(RangeCall(start, close_idx + 1, name, text[open_idx + 1 : close_idx]))
        skip_until = close_idx + 1
    return calls


# ---------------------------------------------------------------------------
# Ranges
# ---------------------------------------------------------------------------


def parse_range(argument: str) -> tuple[Address, Address] | None:
    """Parse ``<col><row>:<col><row>`` into two corner addresses, or None."""
    parts = argument.strip().split(":")
    if len(parts) != 2:
        return None
    try:
        start = a1_to_rowcol(parts[0])
        end = a1_to_rowcol(parts[1])
    except ValueError:
        return None
    return start, end


def expand_range(range_ref: str) -> list[Address]:
    """Expand "A1:B2" into every ``(row, col)`` of the rectangle, row-major.

    The corners may be given in either order. Raises ValueError for a
    malformed range.
    """
    corners = parse_range(range_ref)
    if corners is None:
        raise ValueError(f"Invalid range: {range_ref!r}")
    (r1, c1), (r2, c2) = corners
    r_min, r_max = min(r1, r2), max(r1, r2)
    c_min, c_max = min(c1, c2), max(c1, c2)
    return [(r, c) for r in range(r_min, r_max + 1) for c in range(c_min, c_max + 1)]
