"""Arithmetic evaluators for fully substituted numeric expressions.

The engine hands these a string such as ``(2+3)*4.5/-1`` once every cell
address and range function has been replaced by a number. Two evaluators are
provided:

* :class:`ArithmeticEvaluator` - builtin recursive descent over
  ``+ - * / ^``, unary signs and parentheses.
* :class:`FormulasEvaluator` - delegates to the ``formulas`` library
  (install via ``gridcalc[calc]``) for Excel operator semantics.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any

from gridcalc.calc._functions import CellError
from gridcalc.calc._parser import find_matching_paren

logger = logging.getLogger(__name__)

_NUMBER_RE = re.compile(r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INT_RE = re.compile(r"\d+")
# Integer results stay well under the interpreter's int/str digit limit
_MAX_INT_BITS = 8192


class EvaluationError(ValueError):
    """The evaluator rejected an expression.

    ``code`` is the marker the failing cell should display.
    """

    def __init__(self, message: str, code: CellError = CellError.ERROR) -> None:
        super().__init__(message)
        self.code = code


# ---------------------------------------------------------------------------
# Expression parsing helpers
# ---------------------------------------------------------------------------


def _split_top_level(expr: str, ops: tuple[str, ...]) -> tuple[list[str], list[str]]:
    """Split *expr* at every binary operator from *ops* at paren depth 0.

    Returns ``(operands, operators)``; *operators* is empty when there is no
    split. Operators that follow another operator or an opening paren are
    unary and skipped, as are the signs of an exponent (``2.5e-1``).
    """
    operands: list[str] = []
    operators: list[str] = []
    depth = 0
    last = 0
    for i, ch in enumerate(expr):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif depth == 0 and ch in ops:
            j = i - 1
            while j >= 0 and expr[j] == " ":
                j -= 1
            is_binary = j >= 0 and expr[j] not in ("(", "+", "-", "*", "/", "^")
            if is_binary and ch in ("+", "-") and expr[j] in ("e", "E"):
                # Sign of an exponent when the 'e' follows a digit or '.'
                if j >= 1 and (expr[j - 1].isdigit() or expr[j - 1] == "."):
                    is_binary = False
            if is_binary:
                operands.append(expr[last:i].strip())
                operators.append(ch)
                last = i + 1
    operands.append(expr[last:].strip())
    return operands, operators


def _find_power_split(expr: str) -> tuple[str, str] | None:
    """Split at the leftmost ``^`` at depth 0 (``^`` is right-associative)."""
    depth = 0
    for i, ch in enumerate(expr):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "^" and depth == 0:
            left = expr[:i].strip()
            right = expr[i + 1 :].strip()
            if left and right:
                return left, right
            break
    return None


def _binary_op(left: int | float, op: str, right: int | float) -> int | float:
    if op == "+":
        return left + right
    if op == "-":
        return left - right
    if op == "*":
        return left * right
    if op == "/":
        if right == 0:
            raise EvaluationError("Division by zero", CellError.DIV0)
        return left / right
    raise EvaluationError(f"Unknown operator: {op!r}")


def _power(base: int | float, exponent: int | float) -> int | float:
    try:
        result = float(base) ** exponent
    except ZeroDivisionError:
        raise EvaluationError("Zero raised to a negative power", CellError.DIV0) from None
    except OverflowError:
        raise EvaluationError("Numeric overflow") from None
    if isinstance(result, complex):
        raise EvaluationError("Fractional power of a negative number")
    if (
        isinstance(base, int)
        and isinstance(exponent, int)
        and exponent >= 0
        and result.is_integer()
        and abs(result) < 2**53
    ):
        return int(result)
    return result


# ---------------------------------------------------------------------------
# Builtin evaluator
# ---------------------------------------------------------------------------


class ArithmeticEvaluator:
    """Recursive descent evaluator for numeric expressions.

    Precedence (lowest to highest): ``+ -``, ``* /``, unary sign, ``^``.
    Integer literals stay ``int`` until an operation produces a float.
    """

    def evaluate(self, expression: str) -> int | float:
        expr = expression.strip()
        if not expr:
            raise EvaluationError("Empty expression")
        try:
            result = self._eval(expr)
        except EvaluationError:
            raise
        except RecursionError:
            raise EvaluationError("Expression nested too deeply") from None
        except OverflowError:
            raise EvaluationError("Numeric overflow") from None
        except ValueError:
            # int() past the interpreter's digit limit
            raise EvaluationError(f"Number too large in {expression!r}") from None
        if isinstance(result, int) and result.bit_length() > _MAX_INT_BITS:
            raise EvaluationError(f"Numeric overflow in {expression!r}")
        if isinstance(result, float) and not math.isfinite(result):
            raise EvaluationError(f"Non-finite result for {expression!r}")
        return result

    def _eval(self, expr: str) -> int | float:
        expr = expr.strip()
        if not expr:
            raise EvaluationError("Missing operand")

        # 1. Binary split (additive -> multiplicative), folded left to right
        for ops in (("+", "-"), ("*", "/")):
            operands, operators = _split_top_level(expr, ops)
            if operators:
                result = self._eval(operands[0])
                for op, operand in zip(operators, operands[1:]):
                    result = _binary_op(result, op, self._eval(operand))
                return result

        # 2. Unary sign binds looser than ^, so -2^2 == -4
        if expr[0] == "-":
            return -self._eval(expr[1:])
        if expr[0] == "+":
            return self._eval(expr[1:])

        # 3. Power
        power = _find_power_split(expr)
        if power:
            return _power(self._eval(power[0]), self._eval(power[1]))

        # 4. Parenthesized sub-expression
        if expr[0] == "(":
            close = find_matching_paren(expr, 0)
            if close == len(expr) - 1:
                return self._eval(expr[1:close])
            raise EvaluationError(f"Unbalanced parentheses in {expr!r}")

        # 5. Numeric literal
        if _NUMBER_RE.fullmatch(expr):
            if _INT_RE.fullmatch(expr):
                return int(expr)
            return float(expr)

        raise EvaluationError(f"Unexpected token {expr!r}")


# ---------------------------------------------------------------------------
# formulas library adapter
# ---------------------------------------------------------------------------


class FormulasEvaluator:
    """Evaluates expressions with the ``formulas`` library's Excel parser.

    Compiled expressions are cached. Excel error results (``#DIV/0!`` and
    friends) and parse failures raise :class:`EvaluationError`.
    """

    def __init__(self) -> None:
        import formulas

        self._parser = formulas.Parser()
        self._compiled_cache: dict[str, Any] = {}

    def evaluate(self, expression: str) -> int | float:
        compiled = self._compiled_cache.get(expression)
        if compiled is None:
            try:
                ast = self._parser.ast(f"={expression}")
                compiled = ast[1].compile()
            except Exception as e:
                logger.debug("formulas: cannot compile %r: %s", expression, e)
                raise EvaluationError(f"Cannot parse {expression!r}") from e
            self._compiled_cache[expression] = compiled
        try:
            raw = compiled()
        except Exception as e:
            logger.debug("formulas: error evaluating %r: %s", expression, e)
            raise EvaluationError(f"Cannot evaluate {expression!r}") from e
        return self._normalize_result(raw, expression)

    @staticmethod
    def _normalize_result(raw: Any, expression: str) -> int | float:
        """Convert a ``formulas`` result (numpy array or scalar) to a number."""
        import numpy as np

        flat = np.asarray(raw, dtype=object).ravel()
        if flat.size != 1:
            raise EvaluationError(f"Expected a single value from {expression!r}")
        val = flat[0]
        if hasattr(val, "item"):
            val = val.item()
        if isinstance(val, bool) or not isinstance(val, (int, float)):
            code = str(val)
            if code.startswith("#"):
                raise EvaluationError(f"{expression!r} evaluated to {code}", CellError.of(code))
            raise EvaluationError(f"Non-numeric result {val!r} for {expression!r}")
        if isinstance(val, float):
            if not math.isfinite(val):
                raise EvaluationError(f"Non-finite result for {expression!r}")
            if val.is_integer() and abs(val) < 2**53:
                return int(val)
        return val
