"""Spreadsheet persistence via openpyxl.

Every call reopens the file from disk; no workbook instance outlives a
request. Only the first worksheet is ever read or written.
"""

from __future__ import annotations

import logging
import zipfile
from pathlib import Path
from typing import Any, Iterable, Optional

from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import MergedCell
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.worksheet import Worksheet

from .errors import FormatError, NotFoundError
from .extractor import cell_from_openpyxl
from .reconciler import MAX_GRID_ROWS, MAX_ROW_LENGTH, reconcile
from .schemas import (
    EmptyCell,
    SheetSnapshot,
    WorkbookInfo,
    WorksheetInfo,
    merge_range_from_bounds,
)


logger = logging.getLogger(__name__)

DEFAULT_SHEET_TITLE = "Sheet1"


def _require_file(path: Path) -> None:
    if not path.exists():
        raise NotFoundError("Excel file not found. Please upload a file first.")


def _open(path: Path, **kwargs: Any) -> Workbook:
    try:
        return load_workbook(filename=path, **kwargs)
    except (InvalidFileException, zipfile.BadZipFile, KeyError) as e:
        raise FormatError(f"Not a readable .xlsx workbook: {e}") from e


def _first_worksheet(workbook: Workbook) -> Worksheet:
    if not workbook.worksheets:
        raise NotFoundError(
            "No worksheets found in the Excel file. Please check the file content."
        )
    return workbook.worksheets[0]


def _is_blank_sheet(worksheet: Worksheet) -> bool:
    """openpyxl reports 1 x 1 for a sheet that has never held a cell."""
    if worksheet.max_row > 1 or worksheet.max_column > 1 or worksheet.merged_cells.ranges:
        return False
    return worksheet["A1"].value is None


def snapshot_worksheet(
    worksheet: Worksheet,
    computed_worksheet: Optional[Worksheet] = None,
) -> SheetSnapshot:
    """Convert an openpyxl worksheet into the engine's cell model.

    ``computed_worksheet`` is the same sheet loaded with ``data_only=True`` and
    supplies cached formula results. Bounds follow the worksheet dimensions;
    a sheet with no cells at all reports 0 x 0.
    """
    snapshot = SheetSnapshot(name=worksheet.title)
    if _is_blank_sheet(worksheet):
        max_row = max_col = 0
    else:
        max_row = worksheet.max_row
        max_col = worksheet.max_column

    for row in worksheet.iter_rows():
        for cell in row:
            if isinstance(cell, MergedCell) or cell.value is None:
                continue
            cached = None
            if computed_worksheet is not None:
                cached = computed_worksheet.cell(row=cell.row, column=cell.column).value
            converted = cell_from_openpyxl(cell, cached)
            if isinstance(converted, EmptyCell):
                continue
            snapshot.cells[(cell.row, cell.column)] = converted

    for merged in worksheet.merged_cells.ranges:
        rng = merge_range_from_bounds(merged.bounds)
        snapshot.merged_ranges.append(rng)
        max_row = max(max_row, rng.bottom)
        max_col = max(max_col, rng.right)

    snapshot.row_count = max_row
    snapshot.column_count = max_col
    return snapshot


def load_sheet(path: Path) -> SheetSnapshot:
    """Open a workbook and snapshot its first worksheet."""
    path = Path(path)
    _require_file(path)

    # Load twice: once for formulas and rich text, once for cached values
    workbook = _open(path, rich_text=True)
    computed = _open(path, data_only=True)

    worksheet = _first_worksheet(workbook)
    computed_worksheet = computed[worksheet.title]

    logger.info(
        f"[DATA] Found worksheet: {worksheet.title} with {worksheet.max_row} rows "
        f"and {worksheet.max_column} columns"
    )
    return snapshot_worksheet(worksheet, computed_worksheet)


def save_grid(
    path: Path,
    grid: Any,
    merge_ranges: Optional[Iterable[Any]] = None,
    *,
    max_row_length: int = MAX_ROW_LENGTH,
    max_rows: int = MAX_GRID_ROWS,
) -> int:
    """Reconcile ``grid`` into the workbook at ``path`` and save it.

    A missing file yields a fresh single-sheet workbook.

    Returns: number of rows written
    """
    path = Path(path)
    if path.exists():
        workbook = _open(path)
    else:
        workbook = Workbook()

    if workbook.worksheets:
        worksheet = workbook.worksheets[0]
    else:
        worksheet = workbook.create_sheet(DEFAULT_SHEET_TITLE)

    row_count = reconcile(
        worksheet,
        grid,
        merge_ranges,
        max_row_length=max_row_length,
        max_rows=max_rows,
    )

    path.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(path)
    return row_count


def describe_workbook(path: Path) -> WorkbookInfo:
    """Sheet inventory for the debug endpoint."""
    path = Path(path)
    _require_file(path)
    workbook = _open(path)

    return WorkbookInfo(
        worksheet_count=len(workbook.worksheets),
        worksheets=[
            WorksheetInfo(
                id=index,
                name=ws.title,
                row_count=ws.max_row,
                column_count=ws.max_column,
            )
            for index, ws in enumerate(workbook.worksheets, start=1)
        ],
    )
