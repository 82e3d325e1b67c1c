"""Grid reconciliation - writes an edited grid back into a worksheet.

Save is a whole-grid overwrite: every existing row and merge on the worksheet
is removed and the submitted grid is written in its place. No cell-level
diffing is attempted.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from openpyxl.worksheet.worksheet import Worksheet

from .errors import FormatError, ValidationError
from .schemas import MergeRange, RowMap, remap_merge_ranges


logger = logging.getLogger(__name__)

MAX_ROW_LENGTH = 1000
MAX_GRID_ROWS = 100_000

_SCALAR_TYPES = (str, int, float, bool)


# =============================================================================
# INPUT VALIDATION
# =============================================================================

def validate_grid(
    grid: Any,
    max_row_length: int = MAX_ROW_LENGTH,
    max_rows: int = MAX_GRID_ROWS,
) -> List[List[Any]]:
    """Check the grid is a list of lists of scalars within size bounds."""
    if not isinstance(grid, list):
        raise FormatError("Invalid data format. Expected an array of rows.")
    if len(grid) > max_rows:
        raise FormatError(f"Grid has {len(grid)} rows; at most {max_rows} are accepted.")

    for row_index, row in enumerate(grid):
        if not isinstance(row, list):
            raise FormatError(f"Row {row_index} is not an array.")
        if len(row) > max_row_length:
            raise FormatError(
                f"Row {row_index} has {len(row)} cells; at most {max_row_length} are accepted."
            )
        for col_index, value in enumerate(row):
            if value is not None and not isinstance(value, _SCALAR_TYPES):
                raise FormatError(
                    f"Cell at row {row_index}, column {col_index} is not a scalar value."
                )
    return grid


def parse_merge_ranges(raw: Optional[Iterable[Any]]) -> Optional[List[MergeRange]]:
    """Coerce client-supplied merge ranges into ``MergeRange`` objects."""
    if raw is None:
        return None
    if not isinstance(raw, (list, tuple)):
        raise FormatError("mergedCells must be an array of {top, left, bottom, right}.")

    ranges: List[MergeRange] = []
    for index, item in enumerate(raw):
        if isinstance(item, MergeRange):
            ranges.append(item)
            continue
        if not isinstance(item, dict):
            raise FormatError(f"Merge range {index} is not an object.")
        try:
            bounds = {key: item[key] for key in ("top", "left", "bottom", "right")}
        except KeyError as e:
            raise FormatError(f"Merge range {index} is missing '{e.args[0]}'.") from e
        if not all(isinstance(v, int) and not isinstance(v, bool) for v in bounds.values()):
            raise FormatError(f"Merge range {index} bounds must be integers.")
        ranges.append(MergeRange(**bounds))
    return ranges


def validate_merge_ranges(
    ranges: Sequence[MergeRange],
    row_count: int,
    column_count: int,
) -> None:
    """Reject inverted, out-of-grid or overlapping ranges."""
    for index, rng in enumerate(ranges):
        if rng.top < 1 or rng.left < 1:
            raise ValidationError(f"Merge range {index} has non-positive bounds.")
        if rng.top > rng.bottom or rng.left > rng.right:
            raise ValidationError(f"Merge range {index} is inverted.")
        if rng.bottom > row_count or rng.right > column_count:
            raise ValidationError(
                f"Merge range {index} ({rng.top},{rng.left})-({rng.bottom},{rng.right}) "
                f"falls outside the {row_count}x{column_count} grid."
            )

    for i, first in enumerate(ranges):
        for j in range(i + 1, len(ranges)):
            if first.overlaps(ranges[j]):
                raise ValidationError(f"Merge ranges {i} and {j} overlap.")


# =============================================================================
# RECONCILE
# =============================================================================

def is_blank_value(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _keep_rows(grid: List[List[Any]]) -> Tuple[List[List[Any]], RowMap]:
    """Drop empty/whitespace-only rows, mirroring the flattener's policy."""
    kept: List[List[Any]] = []
    row_map: RowMap = {}
    for index, row in enumerate(grid, start=1):
        if all(is_blank_value(v) for v in row):
            continue
        kept.append(row)
        row_map[index] = len(kept)
    return kept, row_map


def clear_worksheet(worksheet: Worksheet) -> None:
    """Remove every merge and every row from a worksheet."""
    for merged in list(worksheet.merged_cells.ranges):
        worksheet.unmerge_cells(str(merged))
    if worksheet.max_row:
        worksheet.delete_rows(1, worksheet.max_row)


def reconcile(
    worksheet: Worksheet,
    grid: Any,
    merge_ranges: Optional[Iterable[Any]] = None,
    *,
    max_row_length: int = MAX_ROW_LENGTH,
    max_rows: int = MAX_GRID_ROWS,
) -> int:
    """Replace a worksheet's content with ``grid``.

    Merge ranges are relative to the submitted grid (1-based). They are
    validated before the worksheet is touched and re-applied after blank rows
    are dropped.

    Returns: number of rows written
    """
    rows = validate_grid(grid, max_row_length=max_row_length, max_rows=max_rows)
    ranges = parse_merge_ranges(merge_ranges)

    if ranges:
        column_count = max((len(row) for row in rows), default=0)
        validate_merge_ranges(ranges, len(rows), column_count)

    kept, row_map = _keep_rows(rows)

    clear_worksheet(worksheet)

    for row_number, row in enumerate(kept, start=1):
        for col_number, value in enumerate(row, start=1):
            if value is None:
                continue
            cell = worksheet.cell(row=row_number, column=col_number, value=value)
            # Grid values are display text; openpyxl would store "=..." as a formula
            if isinstance(value, str) and value.startswith("="):
                cell.data_type = "s"

    if ranges:
        for rng in remap_merge_ranges(ranges, row_map):
            if rng.top == rng.bottom and rng.left == rng.right:
                continue
            worksheet.merge_cells(
                start_row=rng.top,
                start_column=rng.left,
                end_row=rng.bottom,
                end_column=rng.right,
            )

    logger.info(
        f"[SAVE] Reconciled {len(kept)} rows into '{worksheet.title}' "
        f"({len(rows) - len(kept)} blank rows dropped, {len(ranges or [])} merges)"
    )
    return len(kept)
