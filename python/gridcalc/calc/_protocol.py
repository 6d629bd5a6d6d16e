"""Evaluator protocol and recalculation result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

Address = tuple[int, int]


@runtime_checkable
class ExpressionEvaluator(Protocol):
    """Evaluates a purely numeric expression string.

    Implementations raise ``EvaluationError`` for anything they cannot
    evaluate; cell addresses never reach them.
    """

    def evaluate(self, expression: str) -> int | float:
        ...


@dataclass(frozen=True)
class CellDelta:
    """A single cell's change from one edit or propagation pass."""

    row: int
    col: int
    coordinate: str  # "A1"
    old_value: Any
    new_value: Any
    formula: str = ""  # the formula that produced new_value


@dataclass(frozen=True)
class RecalcPlan:
    """Cells a propagation pass must touch.

    ``order`` lists cells to recompute, dependencies before dependents.
    ``circular`` holds cells lying on a dependency cycle; they are flagged,
    never recomputed.
    """

    order: tuple[Address, ...] = ()
    circular: frozenset[Address] = field(default_factory=frozenset)


@dataclass(frozen=True)
class RecalcResult:
    """Outcome of one edit: the write itself plus everything it propagated to."""

    origin: Address | None  # None for a full recalculation
    deltas: tuple[CellDelta, ...]  # cells whose value or formula changed
    recomputed: tuple[Address, ...] = ()  # dependents re-evaluated, in order
    circular: frozenset[Address] = field(default_factory=frozenset)
    max_chain_depth: int = 0  # longest dependency chain from the origin

    @property
    def changed(self) -> frozenset[Address]:
        return frozenset((d.row, d.col) for d in self.deltas)

    @property
    def has_cycle(self) -> bool:
        return bool(self.circular)
