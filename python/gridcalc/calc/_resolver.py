"""ReferenceResolver: turns a formula body into a numeric expression and evaluates it.

Two substitution passes run against the grid's current values:

1. Range-function calls such as ``SUM(A1:B3)`` become the aggregate value.
2. Remaining bare addresses such as ``A1`` become the referenced cell's value.

The resulting expression goes to the arithmetic evaluator. Every in-grid cell
the formula names is registered as a dependency of the cell being evaluated,
even when the formula ends up as an error.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from gridcalc.calc._arith import ArithmeticEvaluator, EvaluationError
from gridcalc.calc._functions import CellError, FunctionRegistry, RangeValues, to_number
from gridcalc.calc._graph import CircularReferenceError, DependencyGraph
from gridcalc.calc._parser import parse_range, scan_addresses, scan_range_calls
from gridcalc.calc._protocol import Address, ExpressionEvaluator

if TYPE_CHECKING:
    from gridcalc._grid import Grid

logger = logging.getLogger(__name__)

_ZERO = "(0)"


@dataclass
class Resolution:
    """A formula body after substitution.

    ``error`` is set when substitution already decided the outcome: a
    malformed range in strict mode, a failing aggregate, or a referenced
    error marker when errors propagate.
    """

    expression: str
    references: set[Address] = field(default_factory=set)
    self_reference: bool = False
    error: CellError | None = None

    def fail(self, marker: CellError) -> None:
        if self.error is None:
            self.error = marker


def _format_number(value: int | float) -> str:
    """Render a substituted value as a parenthesized operand.

    The parentheses keep neighbouring text from merging into the number, so
    ``SUM(A1:B1)SUM(A1:B1)`` fails instead of reading as one literal.
    """
    if isinstance(value, float) and value.is_integer() and abs(value) < 2**53:
        value = int(value)
    return f"({value!r})"


class ReferenceResolver:
    """Substitutes cell references into formula bodies and evaluates them.

    Usage::

        resolver = ReferenceResolver(grid, graph)
        value = resolver.evaluate("SUM(A1:A3)*B1", (0, 2))
    """

    def __init__(
        self,
        grid: Grid,
        graph: DependencyGraph,
        functions: FunctionRegistry | None = None,
        evaluator: ExpressionEvaluator | None = None,
        *,
        strict_ranges: bool = False,
        propagate_errors: bool = False,
    ) -> None:
        self._grid = grid
        self._graph = graph
        self._functions = functions if functions is not None else FunctionRegistry()
        self._evaluator: ExpressionEvaluator = (
            evaluator if evaluator is not None else ArithmeticEvaluator()
        )
        self._strict_ranges = strict_ranges
        self._propagate_errors = propagate_errors

    @property
    def evaluator(self) -> ExpressionEvaluator:
        return self._evaluator

    @evaluator.setter
    def evaluator(self, evaluator: ExpressionEvaluator) -> None:
        self._evaluator = evaluator

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, body: str, dependent: Address) -> int | float | CellError:
        """Evaluate a formula body (no leading ``=``) for the cell *dependent*.

        Never raises for formula mistakes: failures come back as a
        :class:`CellError` marker.
        """
        return self.resolve_and_evaluate(body, dependent)[0]

    def resolve_and_evaluate(
        self, body: str, dependent: Address,
    ) -> tuple[int | float | CellError, Resolution]:
        """Like :meth:`evaluate`, also returning the :class:`Resolution`."""
        resolution = self.resolve(body, dependent)
        if resolution.self_reference:
            logger.debug("Self reference in %r at %s", body, dependent)
            return CellError.CIRCULAR, resolution
        if resolution.error is not None:
            return resolution.error, resolution
        try:
            return self._evaluator.evaluate(resolution.expression), resolution
        except EvaluationError as e:
            logger.debug(
                "Cannot evaluate %r (from %r) at %s: %s",
                resolution.expression, body, dependent, e,
            )
            return e.code, resolution
        except Exception as e:
            # Evaluators outside this package may raise anything
            logger.debug(
                "Evaluator %s failed on %r at %s: %r",
                type(self._evaluator).__name__, resolution.expression, dependent, e,
            )
            return CellError.ERROR, resolution

    def resolve(self, body: str, dependent: Address) -> Resolution:
        """Run both substitution passes, registering dependencies of *dependent*."""
        resolution = Resolution(expression=body)
        resolution.expression = self._substitute_ranges(body, dependent, resolution)
        resolution.expression = self._substitute_cells(resolution.expression, dependent, resolution)
        return resolution

    # ------------------------------------------------------------------
    # Substitution passes
    # ------------------------------------------------------------------

    def _substitute_ranges(self, text: str, dependent: Address, resolution: Resolution) -> str:
        calls = scan_range_calls(text, self._functions.supported_functions)
        if not calls:
            return text
        parts: list[str] = []
        pos = 0
        for call in calls:
            parts.append(text[pos : call.start])
            parts.append(self._aggregate(call.name, call.argument, dependent, resolution))
            pos = call.end
        parts.append(text[pos:])
        return "".join(parts)

    def _aggregate(self, name: str, argument: str, dependent: Address, resolution: Resolution) -> str:
        corners = parse_range(argument)
        if corners is None:
            logger.debug("Malformed range %s(%s); substituting 0", name, argument)
            if self._strict_ranges:
                resolution.fail(CellError.REF)
            return _ZERO
        values = self._range_values(corners, dependent, resolution)

        func = self._functions.get(name)
        if func is None:
            return _ZERO
        try:
            result = func(values)
        except Exception as e:
            logger.debug("Error evaluating %s: %s", name, e)
            resolution.fail(CellError.ERROR)
            return _ZERO
        if (
            isinstance(result, bool)
            or not isinstance(result, (int, float))
            or (isinstance(result, float) and not math.isfinite(result))
        ):
            logger.debug("%s returned non-numeric %r", name, result)
            resolution.fail(CellError.ERROR)
            return _ZERO
        return _format_number(result)

    def _substitute_cells(self, text: str, dependent: Address, resolution: Resolution) -> str:
        tokens = scan_addresses(text)
        if not tokens:
            return text
        parts: list[str] = []
        pos = 0
        for token in tokens:
            parts.append(text[pos : token.start])
            parts.append(_format_number(self._read(token.row, token.col, dependent, resolution)))
            pos = token.end
        parts.append(text[pos:])
        return "".join(parts)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _range_values(
        self, corners: tuple[Address, Address], dependent: Address, resolution: Resolution,
    ) -> RangeValues:
        """Read the in-grid block of a range; cells past the grid edge stay implicit."""
        (r1, c1), (r2, c2) = corners
        r_min, r_max = min(r1, r2), max(r1, r2)
        c_min, c_max = min(c1, c2), max(c1, c2)
        inner_height = max(0, min(r_max, self._grid.rows - 1) - r_min + 1)
        inner_width = max(0, min(c_max, self._grid.cols - 1) - c_min + 1)
        if not inner_width:
            inner_height = 0

        # Reread every cell now; values are never cached between passes
        present = [
            self._read(row, col, dependent, resolution)
            for row in range(r_min, r_min + inner_height)
            for col in range(c_min, c_min + inner_width)
        ]
        return RangeValues(
            present,
            (inner_height, inner_width),
            (r_max - r_min + 1, c_max - c_min + 1),
        )

    def _read(self, row: int, col: int, dependent: Address, resolution: Resolution) -> int | float:
        """Numeric value of (row, col), registering it as a dependency when in the grid."""
        if not self._grid.in_bounds(row, col):
            return 0
        source = (row, col)
        try:
            self._graph.add_edge(source, dependent)
        except CircularReferenceError:
            resolution.self_reference = True
        else:
            resolution.references.add(source)
        return self._numeric(self._grid.value_at(row, col), resolution)

    def _numeric(self, raw: Any, resolution: Resolution) -> int | float:
        if self._propagate_errors and isinstance(raw, CellError):
            resolution.fail(raw)
        num = to_number(raw)
        return 0 if num is None else num
