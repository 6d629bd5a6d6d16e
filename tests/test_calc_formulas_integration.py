"""Tests for the formulas library evaluator.

Skipped unless the ``calc`` extra (``formulas`` + ``numpy``) is installed.
"""

from __future__ import annotations

import pytest

pytest.importorskip("formulas")

from gridcalc import Spreadsheet  # noqa: E402
from gridcalc.calc import CellError, EvaluationError, FormulasEvaluator  # noqa: E402


@pytest.fixture(scope="module")
def ev() -> FormulasEvaluator:
    return FormulasEvaluator()


class TestFormulasEvaluator:
    def test_precedence(self, ev: FormulasEvaluator) -> None:
        assert ev.evaluate("1+2*3") == 7

    def test_parentheses(self, ev: FormulasEvaluator) -> None:
        assert ev.evaluate("(1+2)*3") == 9

    def test_fraction(self, ev: FormulasEvaluator) -> None:
        assert ev.evaluate("7/2") == pytest.approx(3.5)

    def test_plain_python_number(self, ev: FormulasEvaluator) -> None:
        assert type(ev.evaluate("2*3")) in (int, float)

    def test_division_by_zero(self, ev: FormulasEvaluator) -> None:
        with pytest.raises(EvaluationError):
            ev.evaluate("1/0")

    def test_parse_failure(self, ev: FormulasEvaluator) -> None:
        with pytest.raises(EvaluationError):
            ev.evaluate("1+")


class TestSpreadsheetWithFormulas:
    def test_chain(self) -> None:
        sheet = Spreadsheet(evaluator=FormulasEvaluator())
        sheet.submit_entry_at("A1", "2")
        sheet.submit_entry_at("B1", "=A1*2")
        sheet.submit_entry_at("C1", "=SUM(A1:B1)+1")
        assert sheet["C1"].display_value == 7
        sheet.submit_entry_at("A1", "10")
        assert sheet["C1"].display_value == 31

    def test_error_marker(self) -> None:
        sheet = Spreadsheet(evaluator=FormulasEvaluator())
        sheet.submit_entry_at("A1", "=1/0")
        assert isinstance(sheet["A1"].display_value, CellError)
