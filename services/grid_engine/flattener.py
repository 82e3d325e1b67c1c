"""Grid flattening.

Projects a worksheet snapshot onto a dense, rectangular grid of display
strings suitable for a spreadsheet-like UI editor:
1. Every populated cell goes through the extractor
2. Merged ranges are filled from their anchor (top-left) cell
3. Entirely blank rows are dropped, order is otherwise preserved
"""

from __future__ import annotations

from typing import List, Tuple

from .extractor import extract
from .schemas import Grid, GridPayload, MergeRange, RowMap, SheetSnapshot, remap_merge_ranges


DEFAULT_COLUMN_COUNT = 10
PLACEHOLDER_ROW_WIDTH = 4


def placeholder_grid() -> Grid:
    """Single empty row handed to the editor when a sheet has no data."""
    return [[""] * PLACEHOLDER_ROW_WIDTH]


def is_blank_row(row: List[str]) -> bool:
    return all(value == "" for value in row)


def _dense_grid(sheet: SheetSnapshot, default_columns: int) -> Grid:
    row_count = max(sheet.row_count, 0)
    column_count = sheet.column_count if sheet.column_count > 0 else default_columns

    grid: Grid = [[""] * column_count for _ in range(row_count)]

    for (row, col), cell in sheet.cells.items():
        if 1 <= row <= row_count and 1 <= col <= column_count:
            grid[row - 1][col - 1] = extract(cell)

    return grid


def _fill_merged_ranges(grid: Grid, ranges: List[MergeRange]) -> None:
    """Copy each anchor value across its range, anchor included.

    Must run after the grid holds extracted values so the anchor is real.
    Parts of a range that fall outside the grid are ignored.
    """
    if not grid:
        return
    row_count = len(grid)
    column_count = len(grid[0])

    for rng in ranges:
        if not (1 <= rng.top <= row_count and 1 <= rng.left <= column_count):
            continue
        anchor = grid[rng.top - 1][rng.left - 1]
        for r in range(rng.top, min(rng.bottom, row_count) + 1):
            for c in range(rng.left, min(rng.right, column_count) + 1):
                grid[r - 1][c - 1] = anchor


def _drop_blank_rows(grid: Grid) -> Tuple[Grid, RowMap]:
    kept: Grid = []
    row_map: RowMap = {}
    for index, row in enumerate(grid, start=1):
        if is_blank_row(row):
            continue
        kept.append(row)
        row_map[index] = len(kept)
    return kept, row_map


def project(sheet: SheetSnapshot, default_columns: int = DEFAULT_COLUMN_COUNT) -> GridPayload:
    """Flatten a sheet and report its merges relative to the flattened grid."""
    grid = _dense_grid(sheet, default_columns)
    _fill_merged_ranges(grid, sheet.merged_ranges)
    kept, row_map = _drop_blank_rows(grid)

    if not kept:
        return GridPayload(data=placeholder_grid(), merged_cells=[])

    width = len(kept[0])
    merges = [
        MergeRange(top=m.top, left=m.left, bottom=m.bottom, right=min(m.right, width))
        for m in remap_merge_ranges(sheet.merged_ranges, row_map)
        if m.left <= width
    ]
    return GridPayload(data=kept, merged_cells=merges)


def flatten(sheet: SheetSnapshot, default_columns: int = DEFAULT_COLUMN_COUNT) -> Grid:
    """Dense rectangular grid of display strings for a sheet."""
    return project(sheet, default_columns).data
