"""Tests for the Spreadsheet session object."""

from __future__ import annotations

import pytest

from formulagrid import CellError, Grid, Spreadsheet, load_spreadsheet
from formulagrid.calc import FunctionRegistry


@pytest.fixture
def sheet() -> Spreadsheet:
    """3x3 sheet: A1:A3 = 1, 2, 3."""
    s = Spreadsheet(Grid.blank(3, 3))
    for i, v in enumerate((1, 2, 3), start=1):
        s[f"A{i}"] = v
    return s


class TestContent:
    def test_blank_by_default(self) -> None:
        s = Spreadsheet()
        assert s.grid.shape == (20, 10)
        assert s["A1"] == ""
        assert not s.is_modified

    def test_set_and_read(self, sheet: Spreadsheet) -> None:
        sheet["B1"] = "=SUM(A1:A3)"
        assert sheet["B1"] == 6
        assert sheet.raw("B1") == "=SUM(A1:A3)"

    def test_dependents_recomputed(self, sheet: Spreadsheet) -> None:
        sheet["B1"] = "=A1*10"
        result = sheet.set_cell(1, "A", 5)
        assert sheet["B1"] == 50
        assert set(result.changed_refs) == {"A1", "B1"}
        delta = next(d for d in result.deltas if d.cell_ref == "B1")
        assert (delta.old_value, delta.new_value, delta.formula) == (10, 50, "=A1*10")

    def test_recalc_counts(self, sheet: Spreadsheet) -> None:
        result = sheet.set_cell(2, "B", "=1/0")
        assert result.total_cells == 9
        assert result.formula_cells == 1
        assert result.error_cells == 1
        assert sheet["B2"] is CellError.DIV0

    def test_unchanged_value_has_no_delta(self, sheet: Spreadsheet) -> None:
        result = sheet.set_cell(1, "A", 1.0)
        assert not result.changed

    def test_unknown_cell(self, sheet: Spreadsheet) -> None:
        with pytest.raises(KeyError):
            sheet.set_cell(99, "A", 1)
        with pytest.raises(KeyError):
            sheet.set_cell(1, "Z", 1)
        with pytest.raises(KeyError):
            sheet["A10"] = 1
        with pytest.raises(ValueError):
            sheet["10"] = 1

    def test_precedents(self, sheet: Spreadsheet) -> None:
        sheet["C1"] = "=SUM(A1:A2)+B3"
        assert sheet.precedents("C1") == ["A1", "A2", "B3"]

    def test_custom_functions(self) -> None:
        registry = FunctionRegistry()
        registry.register("COUNT", len)
        s = Spreadsheet(Grid.from_rows([[1, "x"], [2, ""]]), functions=registry)
        s["B2"] = "=COUNT(A1:A2)"
        assert s["B2"] == 2


class TestRowHeight:
    def test_set_height(self, sheet: Spreadsheet) -> None:
        sheet.set_row_height([1, 3], 40)
        assert [r.height for r in sheet.grid.rows] == [40, 26, 40]
        assert sheet.values.rows[0].height == 40
        assert sheet.is_modified

    @pytest.mark.parametrize("height", [0, -5, "40", 2.5, True])
    def test_invalid_height(self, sheet: Spreadsheet, height: object) -> None:
        with pytest.raises(ValueError):
            sheet.set_row_height([1], height)


class TestStructuralEdits:
    def test_delete_row(self, sheet: Spreadsheet) -> None:
        sheet["B3"] = "=A2+A3"
        result = sheet.delete_rows([2])
        assert result.applied
        assert sheet.raw("B2") == "=#REF!+A2"
        assert sheet["B2"] is CellError.REF

    def test_insert_row(self, sheet: Spreadsheet) -> None:
        sheet["B1"] = "=A2*A3"
        sheet.insert_row(2, 0)
        assert sheet.raw("B1") == "=A3*A4"
        assert sheet["B1"] == 6
        assert sheet.grid.shape == (4, 3)

    def test_insert_column(self, sheet: Spreadsheet) -> None:
        sheet["C1"] = "=A1+A2"
        sheet.insert_column("A", 0)
        assert sheet.grid.fields == ["A", "B", "C", "D"]
        assert sheet.raw("D1") == "=B1+B2"
        assert sheet["D1"] == 3

    def test_delete_columns(self, sheet: Spreadsheet) -> None:
        sheet["C1"] = "=A1*2"
        sheet.delete_columns(["B"])
        assert sheet.raw("B1") == "=A1*2"
        assert sheet["B1"] == 2

    def test_delete_all_columns_refused(self, sheet: Spreadsheet) -> None:
        before = sheet.grid
        result = sheet.delete_columns(["A", "B", "C"])
        assert not result.applied
        assert result.edit.message == "Cannot delete all columns"
        assert sheet.grid is before

    def test_add_row_and_column(self, sheet: Spreadsheet) -> None:
        sheet.add_row()
        sheet.add_column()
        assert sheet.grid.shape == (4, 4)
        assert sheet.grid.rows[-1].id == 4
        assert sheet["D4"] == ""


class TestFiles:
    def test_save_and_load(self, sheet: Spreadsheet, tmp_path) -> None:
        sheet["B1"] = "=SUM(A1:A3)"
        assert sheet.is_modified
        path = sheet.save(tmp_path / "numbers")
        assert sheet.filename == "numbers.json"
        assert not sheet.is_modified

        loaded = load_spreadsheet(path)
        assert loaded["B1"] == 6
        assert loaded.filename == "numbers.json"
        assert loaded.grid == sheet.grid
        assert not loaded.is_modified

    def test_new_resets(self, sheet: Spreadsheet) -> None:
        sheet.filename = "other.json"
        sheet.new()
        assert sheet.grid == Grid.blank()
        assert sheet.filename == "spreadsheet.json"
        assert not sheet.is_modified

    def test_edit_then_revert_is_unmodified(self, sheet: Spreadsheet) -> None:
        start = Spreadsheet(sheet.grid.copy())
        start["A1"] = 9
        assert start.is_modified
        start["A1"] = 1
        assert not start.is_modified

    def test_load_string_ids_then_add_rows(self, tmp_path) -> None:
        path = tmp_path / "ids.json"
        path.write_text(
            '{"columns": [{"field": "A"}],'
            ' "rawData": [{"id": "r1", "A": 5}, {"id": "r2", "A": "=A1*2"}]}'
        )
        sheet = load_spreadsheet(path)
        sheet.insert_row("r1", 0)
        sheet.add_row()
        assert [r.id for r in sheet.grid.rows] == [1, "r1", "r2", 2]
        assert sheet.raw("A3") == "=A2*2"
        assert sheet["A3"] == 10

    def test_huge_integer_in_file(self, tmp_path) -> None:
        path = tmp_path / "big.json"
        path.write_text(
            '{"columns": [{"field": "A"}, {"field": "B"}],'
            ' "rawData": [{"id": 1, "A": 1' + "0" * 400 + ', "B": "=A1/2"}]}'
        )
        sheet = load_spreadsheet(path)
        assert sheet["B1"] == 0
