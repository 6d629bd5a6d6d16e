"""Tests for gridcalc.calc arithmetic evaluators."""

from __future__ import annotations

import pytest

from gridcalc.calc._arith import ArithmeticEvaluator, EvaluationError
from gridcalc.calc._functions import CellError
from gridcalc.calc._protocol import ExpressionEvaluator


@pytest.fixture
def ev() -> ArithmeticEvaluator:
    return ArithmeticEvaluator()


class TestArithmeticEvaluator:
    def test_satisfies_protocol(self, ev: ArithmeticEvaluator) -> None:
        assert isinstance(ev, ExpressionEvaluator)

    @pytest.mark.parametrize(
        ("expr", "expected"),
        [
            ("5+3", 8),
            ("2+3*4", 14),
            ("(2+3)*4", 20),
            ("10-4-3", 3),
            ("8/4/2", 1),
            ("7/2", 3.5),
            ("2^3", 8),
            ("2^3^2", 512),
            ("-2^2", -4),
            ("(-2)^2", 4),
            ("2^-1", 0.5),
            ("2*-3", -6),
            ("2--3", 5),
            ("-(1+2)", -3),
            ("+4", 4),
            (" 1 + 2 ", 3),
            ("1.5e2+1", 151.0),
            ("2.5E-1*4", 1.0),
            (".5+.5", 1.0),
            ("((((1))))", 1),
        ],
    )
    def test_values(self, ev: ArithmeticEvaluator, expr: str, expected: float) -> None:
        assert ev.evaluate(expr) == expected

    def test_int_preserved(self, ev: ArithmeticEvaluator) -> None:
        assert isinstance(ev.evaluate("2+3*4"), int)
        assert isinstance(ev.evaluate("2^10"), int)

    def test_division_by_zero(self, ev: ArithmeticEvaluator) -> None:
        with pytest.raises(EvaluationError) as exc:
            ev.evaluate("1/0")
        assert exc.value.code is CellError.DIV0

    def test_division_by_zero_expression(self, ev: ArithmeticEvaluator) -> None:
        with pytest.raises(EvaluationError):
            ev.evaluate("4/(2-2)")

    @pytest.mark.parametrize(
        "expr",
        ["", "1+", "*2", "(1+2", "1+2)", "A1+1", "1 2", "SUM(1)", "1..2", "(-8)^0.5", "inf", "nan"],
    )
    def test_rejected(self, ev: ArithmeticEvaluator, expr: str) -> None:
        with pytest.raises(EvaluationError):
            ev.evaluate(expr)

    def test_generic_failure_code(self, ev: ArithmeticEvaluator) -> None:
        with pytest.raises(EvaluationError) as exc:
            ev.evaluate("1+")
        assert exc.value.code is CellError.ERROR

    def test_overflow(self, ev: ArithmeticEvaluator) -> None:
        with pytest.raises(EvaluationError):
            ev.evaluate("10^400")

    def test_long_term_chains(self, ev: ArithmeticEvaluator) -> None:
        assert ev.evaluate("+".join(["1"] * 5000)) == 5000
        assert ev.evaluate("-".join(["1"] * 3000)) == -2998
        assert ev.evaluate("*".join(["1"] * 5000)) == 1
        assert ev.evaluate("64" + "/2" * 6) == 1

    def test_large_integers_exact(self, ev: ArithmeticEvaluator) -> None:
        assert ev.evaluate("(9007199254740993)-9007199254740992") == 1

    def test_integer_overflow(self, ev: ArithmeticEvaluator) -> None:
        with pytest.raises(EvaluationError):
            ev.evaluate("*".join(["(10" + "0" * 300 + ")"] * 30))

    def test_division_by_zero_code_survives_nesting(self, ev: ArithmeticEvaluator) -> None:
        with pytest.raises(EvaluationError) as exc:
            ev.evaluate("1+(2*(3/0))")
        assert exc.value.code is CellError.DIV0

    def test_evaluation_error_is_value_error(self) -> None:
        assert issubclass(EvaluationError, ValueError)
