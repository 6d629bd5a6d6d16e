"""Integration tests for the Spreadsheet facade."""

from __future__ import annotations

import pytest

import gridcalc
from gridcalc import CellError, OutOfBoundsError, RecalcResult, Spreadsheet


@pytest.fixture
def sheet() -> Spreadsheet:
    return Spreadsheet()


class TestSubmitEntry:
    def test_literal(self, sheet: Spreadsheet) -> None:
        sheet.submit_entry(0, 0, "42")
        assert sheet.display_value(0, 0) == "42"
        assert sheet.formula(0, 0) == ""
        assert sheet.entry_text(0, 0) == "42"

    def test_formula(self, sheet: Spreadsheet) -> None:
        sheet.submit_entry(0, 0, "5")
        sheet.submit_entry(0, 1, "3")
        sheet.submit_entry(0, 2, "=A1+B1")
        assert sheet.display_value(0, 2) == 8
        assert sheet.entry_text(0, 2) == "=A1+B1"

    def test_a1_entry(self, sheet: Spreadsheet) -> None:
        sheet.submit_entry_at("B2", "7")
        sheet.submit_entry_at("C3", "=B2*B2")
        assert sheet["C3"].display_value == 49

    def test_out_of_bounds(self, sheet: Spreadsheet) -> None:
        with pytest.raises(OutOfBoundsError):
            sheet.submit_entry(10, 10, "1")
        with pytest.raises(OutOfBoundsError):
            sheet.get_cell(0, 10)

    def test_clear(self, sheet: Spreadsheet) -> None:
        sheet.submit_entry(0, 0, "=1+1")
        sheet.clear_cell(0, 0)
        assert sheet.entry_text(0, 0) == ""


class TestWorkedExamples:
    def test_chain_updates_without_resubmitting(self, sheet: Spreadsheet) -> None:
        sheet.submit_entry_at("A1", "2")
        sheet.submit_entry_at("B1", "=A1*2")
        sheet.submit_entry_at("C1", "=B1+1")
        result = sheet.submit_entry_at("A1", "10")
        assert sheet["B1"].display_value == 20
        assert sheet["C1"].display_value == 21
        assert {d.coordinate for d in result.deltas} == {"A1", "B1", "C1"}

    def test_totals_row(self, sheet: Spreadsheet) -> None:
        for row, amount in enumerate(["120", "80", "", "oops", "50"]):
            sheet.submit_entry(row, 0, amount)
        sheet.submit_entry_at("B1", "=SUM(A1:A5)")
        sheet.submit_entry_at("B2", "=AVERAGE(A1:A5)")
        sheet.submit_entry_at("B3", "=COUNT(A1:A5)")
        sheet.submit_entry_at("B4", "=MAX(A1:A5)-MIN(A1:A5)")
        assert sheet["B1"].display_value == 250
        assert sheet["B2"].display_value == 50
        assert sheet["B3"].display_value == 5
        assert sheet["B4"].display_value == 120

    def test_cycle_then_fix(self, sheet: Spreadsheet) -> None:
        sheet.submit_entry_at("A1", "=B1+1")
        sheet.submit_entry_at("B1", "=A1+1")
        assert sheet["A1"].display_value is CellError.CIRCULAR
        assert sheet["B1"].display_value is CellError.CIRCULAR
        sheet.submit_entry_at("B1", "1")
        assert sheet["A1"].display_value == 2

    def test_range_far_past_grid(self, sheet: Spreadsheet) -> None:
        sheet.submit_entry_at("A1", "7")
        sheet.submit_entry_at("J1", "=SUM(A1:I9999999)+COUNT(A2:I9999999)")
        assert sheet["J1"].display_value == 7 + 9 * 9999998

    def test_large_integers_stay_exact(self, sheet: Spreadsheet) -> None:
        sheet.submit_entry_at("A1", "9007199254740993")
        sheet.submit_entry_at("B1", "=A1-9007199254740992")
        assert sheet["B1"].display_value == 1

    def test_juxtaposed_functions_are_an_error(self, sheet: Spreadsheet) -> None:
        sheet.submit_entry_at("A1", "4")
        sheet.submit_entry_at("B1", "4")
        sheet.submit_entry_at("C1", "=SUM(A1:B1)SUM(A1:B1)")
        assert sheet["C1"].display_value is CellError.ERROR


class TestRendering:
    def test_column_labels(self) -> None:
        assert Spreadsheet(rows=2, cols=3).column_labels == ["A", "B", "C"]

    def test_iter_rows(self) -> None:
        sheet = Spreadsheet(rows=2, cols=2)
        sheet.submit_entry(0, 0, "1")
        sheet.submit_entry(1, 1, "=A1+1")
        assert list(sheet.iter_rows()) == [("1", ""), ("", 2)]

    def test_repr(self) -> None:
        assert repr(Spreadsheet(rows=4, cols=5)) == "<Spreadsheet 4x5>"


class TestNotifications:
    def test_subscribe(self, sheet: Spreadsheet) -> None:
        results: list[RecalcResult] = []
        sheet.subscribe(results.append)
        sheet.submit_entry(0, 0, "1")
        sheet.submit_entry(0, 1, "=A1")
        sheet.submit_entry(0, 0, "2")
        assert len(results) == 3
        assert results[-1].changed == {(0, 0), (0, 1)}
        sheet.unsubscribe(results.append)
        sheet.submit_entry(0, 0, "3")
        assert len(results) == 3

    def test_listener_may_submit_follow_up_edit(self, sheet: Spreadsheet) -> None:
        def mirror(result: RecalcResult) -> None:
            if result.origin == (0, 0):
                sheet.submit_entry(5, 5, sheet.entry_text(0, 0))

        sheet.subscribe(mirror)
        sheet.submit_entry(0, 0, "9")
        assert sheet.display_value(5, 5) == "9"


class TestConfiguration:
    def test_custom_dimensions(self) -> None:
        sheet = Spreadsheet(rows=3, cols=26)
        sheet.submit_entry_at("Z3", "1")
        assert sheet.rows == 3
        assert sheet.cols == 26

    def test_custom_function(self) -> None:
        functions = gridcalc.calc.FunctionRegistry()
        functions.register("SPAN", lambda values: max(values) - min(values) if values else 0)
        sheet = Spreadsheet(functions=functions)
        sheet.submit_entry_at("A1", "3")
        sheet.submit_entry_at("A2", "10")
        sheet.submit_entry_at("B1", "=SPAN(A1:A2)")
        assert sheet["B1"].display_value == 7

    def test_swap_evaluator(self, sheet: Spreadsheet) -> None:
        class Constant:
            def evaluate(self, expression: str) -> int:
                return 1

        sheet.submit_entry_at("A1", "=2+2")
        result = sheet.set_evaluator(Constant())
        assert sheet["A1"].display_value == 1
        assert result.changed == {(0, 0)}

    def test_version(self) -> None:
        assert gridcalc.__version__ == "0.1.0"
