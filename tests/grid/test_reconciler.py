"""Tests for grid reconciliation.

Validates:
- Whole-grid replace of previous rows and merges
- Blank/whitespace row filtering mirrors the flattener
- Flatten -> reconcile round trip
- FormatError / ValidationError on bad input, before the sheet is touched
"""

import sys
from pathlib import Path

# Add project root to path (tests/grid/ -> tests/ -> project root)
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest
from openpyxl import Workbook

from services.grid_engine import (
    FormatError,
    MergeRange,
    ValidationError,
    flatten,
    project,
    reconcile,
    snapshot_worksheet,
)
from services.grid_engine.reconciler import validate_merge_ranges


@pytest.fixture
def worksheet():
    return Workbook().active


def _flatten(ws):
    return flatten(snapshot_worksheet(ws))


class TestReconcile:

    def test_round_trip(self, worksheet):
        grid = [
            ["Name", "Qty", "Note"],
            ["Widget", "3", ""],
            ["Gadget", "0", "fragile"],
        ]
        assert reconcile(worksheet, grid) == 3
        assert _flatten(worksheet) == grid

    def test_round_trip_keeps_trailing_blank_column(self, worksheet):
        grid = [["a", ""], ["b", ""]]
        reconcile(worksheet, grid)
        assert _flatten(worksheet) == grid

    def test_round_trip_is_idempotent(self, worksheet):
        grid = [["h1", "h2"], ["", "x"]]
        reconcile(worksheet, grid)
        once = _flatten(worksheet)
        reconcile(worksheet, once)
        assert _flatten(worksheet) == once == grid

    def test_replaces_previous_content(self, worksheet):
        for r in range(1, 6):
            for c in range(1, 5):
                worksheet.cell(row=r, column=c, value=f"old{r}{c}")
        worksheet.merge_cells("A1:B2")

        reconcile(worksheet, [["new"]])

        assert _flatten(worksheet) == [["new"]]
        assert not worksheet.merged_cells.ranges

    def test_blank_and_whitespace_rows_dropped(self, worksheet):
        grid = [["a", "b"], ["", ""], ["  ", "\t"], [None, None], ["c", "d"]]
        assert reconcile(worksheet, grid) == 2
        assert _flatten(worksheet) == [["a", "b"], ["c", "d"]]

    def test_scalars_written_as_given(self, worksheet):
        reconcile(worksheet, [["text", 5, 2.5, True, None]])
        assert worksheet["A1"].value == "text"
        assert worksheet["B1"].value == 5
        assert worksheet["C1"].value == 2.5
        assert worksheet["D1"].value is True
        assert worksheet["E1"].value is None

    def test_leading_equals_stays_text(self, worksheet):
        grid = [["Name", "Note"], ["a", "=total"], ["b", "== see above"]]
        reconcile(worksheet, grid)
        assert worksheet["B2"].data_type == "s"
        assert worksheet["B3"].value == "== see above"
        assert _flatten(worksheet) == grid

    def test_merges_applied(self, worksheet):
        grid = [["X", "X"], ["X", "X"], ["y", "z"]]
        reconcile(worksheet, grid, [{"top": 1, "left": 1, "bottom": 2, "right": 2}])

        assert [str(r) for r in worksheet.merged_cells.ranges] == ["A1:B2"]
        payload = project(snapshot_worksheet(worksheet))
        assert payload.data == grid
        assert payload.merged_cells == [MergeRange(top=1, left=1, bottom=2, right=2)]

    def test_merges_remapped_past_dropped_rows(self, worksheet):
        grid = [["head", ""], ["", ""], ["M", "M"], ["M", "M"]]
        reconcile(worksheet, grid, [MergeRange(top=3, left=1, bottom=4, right=2)])
        assert [str(r) for r in worksheet.merged_cells.ranges] == ["A2:B3"]

    def test_empty_grid_clears_sheet(self, worksheet):
        worksheet["A1"] = "old"
        assert reconcile(worksheet, []) == 0
        assert _flatten(worksheet) == [["", "", "", ""]]


class TestReconcileErrors:

    @pytest.mark.parametrize(
        "grid",
        [
            "not a grid",
            {"data": []},
            [["ok"], "row"],
            [["ok", {"nested": 1}]],
            [[["deep"]]],
        ],
    )
    def test_bad_shapes(self, worksheet, grid):
        with pytest.raises(FormatError):
            reconcile(worksheet, grid)

    def test_row_too_long(self, worksheet):
        with pytest.raises(FormatError):
            reconcile(worksheet, [["x"] * 11], max_row_length=10)

    def test_too_many_rows(self, worksheet):
        with pytest.raises(FormatError):
            reconcile(worksheet, [["x"]] * 6, max_rows=5)

    def test_malformed_merge_range(self, worksheet):
        with pytest.raises(FormatError):
            reconcile(worksheet, [["a"]], [{"top": 1, "left": 1}])

    def test_overlapping_merges_rejected_before_write(self, worksheet):
        worksheet["A1"] = "keep"
        grid = [["a", "b", "c"], ["d", "e", "f"]]
        merges = [
            {"top": 1, "left": 1, "bottom": 2, "right": 2},
            {"top": 2, "left": 2, "bottom": 2, "right": 3},
        ]
        with pytest.raises(ValidationError):
            reconcile(worksheet, grid, merges)
        assert worksheet["A1"].value == "keep"

    def test_out_of_grid_merge_rejected(self, worksheet):
        with pytest.raises(ValidationError):
            reconcile(worksheet, [["a", "b"]], [{"top": 1, "left": 1, "bottom": 2, "right": 2}])

    def test_inverted_merge_rejected(self, worksheet):
        with pytest.raises(ValidationError):
            reconcile(worksheet, [["a", "b"], ["c", "d"]], [{"top": 2, "left": 1, "bottom": 1, "right": 2}])


class TestValidateMergeRanges:

    def test_adjacent_ranges_do_not_overlap(self):
        validate_merge_ranges(
            [
                MergeRange(top=1, left=1, bottom=2, right=2),
                MergeRange(top=1, left=3, bottom=2, right=4),
                MergeRange(top=3, left=1, bottom=3, right=4),
            ],
            row_count=3,
            column_count=4,
        )

    def test_non_positive_bounds(self):
        with pytest.raises(ValidationError):
            validate_merge_ranges([MergeRange(top=0, left=1, bottom=1, right=1)], 2, 2)
