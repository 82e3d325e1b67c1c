"""Tests for workbook persistence (load, save, describe) against real .xlsx files."""

import sys
from pathlib import Path

# Add project root to path (tests/grid/ -> tests/ -> project root)
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest
from openpyxl import Workbook, load_workbook

from services.grid_engine import (
    FormatError,
    MergeRange,
    NotFoundError,
    describe_workbook,
    flatten,
    load_sheet,
    project,
    save_grid,
)


@pytest.fixture
def workbook_path(tmp_path):
    wb = Workbook()
    ws = wb.active
    ws.title = "Inventory"
    ws.append(["Item", "Count"])
    ws.append(["Bolts", 12])
    ws.append([None, None])
    ws.append(["Nuts", 0])
    ws["C1"] = "=SUM(B2:B4)"
    path = tmp_path / "inventory.xlsx"
    wb.save(path)
    return path


class TestLoadSheet:

    def test_reads_first_sheet(self, workbook_path):
        sheet = load_sheet(workbook_path)
        assert sheet.name == "Inventory"
        assert sheet.row_count == 4
        assert sheet.column_count == 3

    def test_flattened_values(self, workbook_path):
        grid = flatten(load_sheet(workbook_path))
        # openpyxl never computes formulas, so there is no cached value
        assert grid == [["Item", "Count", ""], ["Bolts", "12", ""], ["Nuts", "0", ""]]

    def test_missing_file(self, tmp_path):
        with pytest.raises(NotFoundError):
            load_sheet(tmp_path / "absent.xlsx")

    def test_not_a_workbook(self, tmp_path):
        bogus = tmp_path / "bogus.xlsx"
        bogus.write_text("definitely not a zip archive")
        with pytest.raises(FormatError):
            load_sheet(bogus)


class TestSaveGrid:

    def test_round_trip_through_disk(self, workbook_path):
        grid = [["Item", "Count"], ["Washers", "40"]]
        assert save_grid(workbook_path, grid) == 2
        assert flatten(load_sheet(workbook_path)) == grid

    def test_leading_equals_text_survives_disk(self, workbook_path):
        grid = [["Name", "Note"], ["a", "=total"], ["b", "== see above"]]
        save_grid(workbook_path, grid)

        assert flatten(load_sheet(workbook_path)) == grid
        cell = load_workbook(workbook_path).worksheets[0]["B2"]
        assert (cell.value, cell.data_type) == ("=total", "s")

    def test_keeps_sheet_title(self, workbook_path):
        save_grid(workbook_path, [["x"]])
        assert load_workbook(workbook_path).worksheets[0].title == "Inventory"

    def test_other_sheets_untouched(self, workbook_path):
        wb = load_workbook(workbook_path)
        wb.create_sheet("Notes")["A1"] = "keep me"
        wb.save(workbook_path)

        save_grid(workbook_path, [["replaced"]])

        reloaded = load_workbook(workbook_path)
        assert reloaded["Notes"]["A1"].value == "keep me"

    def test_merges_persisted(self, workbook_path):
        grid = [["Title", "Title"], ["a", "b"]]
        save_grid(workbook_path, grid, [{"top": 1, "left": 1, "bottom": 1, "right": 2}])

        payload = project(load_sheet(workbook_path))
        assert payload.data == grid
        assert payload.merged_cells == [MergeRange(top=1, left=1, bottom=1, right=2)]

    def test_creates_missing_file(self, tmp_path):
        path = tmp_path / "nested" / "new.xlsx"
        save_grid(path, [["fresh"]])
        assert flatten(load_sheet(path)) == [["fresh"]]

    def test_rejected_grid_leaves_file_alone(self, workbook_path):
        before = workbook_path.read_bytes()
        with pytest.raises(FormatError):
            save_grid(workbook_path, [["ok"], "nope"])
        assert workbook_path.read_bytes() == before


class TestDescribeWorkbook:

    def test_inventory(self, workbook_path):
        wb = load_workbook(workbook_path)
        wb.create_sheet("Empty")
        wb.save(workbook_path)

        info = describe_workbook(workbook_path).to_dict()

        assert info["worksheetCount"] == 2
        assert info["worksheets"][0] == {"id": 1, "name": "Inventory", "rowCount": 4, "columnCount": 3}
        assert info["worksheets"][1]["name"] == "Empty"

    def test_missing_file(self, tmp_path):
        with pytest.raises(NotFoundError):
            describe_workbook(tmp_path / "absent.xlsx")
