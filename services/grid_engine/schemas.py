"""Schemas for the grid engine.

Two families live here:
- Pydantic models for the cell union and the JSON wire shape
- Dataclasses for in-process structures (sheet snapshots, laid out pages)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Annotated, Any, Dict, List, Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field


Grid = List[List[str]]


# =============================================================================
# CELL VARIANTS
# =============================================================================

class TextRun(BaseModel):
    """One run of a rich text cell. Only the text matters for the grid."""
    text: str = ""


class EmptyCell(BaseModel):
    kind: Literal["empty"] = "empty"


class LiteralCell(BaseModel):
    """A plain stored value: string, number, boolean or date/time."""
    kind: Literal["literal"] = "literal"
    value: Any = None


class FormulaCell(BaseModel):
    """A formula and the result Excel cached for it on last save."""
    kind: Literal["formula"] = "formula"
    expression: str
    cached_result: Any = None


class RichTextCell(BaseModel):
    kind: Literal["rich_text"] = "rich_text"
    runs: List[TextRun] = []


Cell = Annotated[
    Union[EmptyCell, LiteralCell, FormulaCell, RichTextCell],
    Field(discriminator="kind"),
]


# =============================================================================
# WIRE SHAPE
# =============================================================================

class MergeRange(BaseModel):
    """Merged rectangle, 1-based and inclusive on both ends."""
    top: int
    left: int
    bottom: int
    right: int

    def contains(self, row: int, col: int) -> bool:
        return self.top <= row <= self.bottom and self.left <= col <= self.right

    def overlaps(self, other: "MergeRange") -> bool:
        return not (
            other.left > self.right
            or other.right < self.left
            or other.top > self.bottom
            or other.bottom < self.top
        )


class GridPayload(BaseModel):
    """What ``/data`` returns and ``/save`` accepts."""
    model_config = ConfigDict(populate_by_name=True)

    data: Grid
    merged_cells: List[MergeRange] = Field(default_factory=list, alias="mergedCells")


# =============================================================================
# SHEET SNAPSHOT
# =============================================================================

@dataclass
class SheetSnapshot:
    """Worksheet contents as the flattener sees them.

    ``cells`` is sparse and keyed by 1-based (row, col).
    """
    name: str
    cells: Dict[Tuple[int, int], Union[EmptyCell, LiteralCell, FormulaCell, RichTextCell]] = field(default_factory=dict)
    merged_ranges: List[MergeRange] = field(default_factory=list)
    row_count: int = 0
    column_count: int = 0


# =============================================================================
# LAYOUT
# =============================================================================

@dataclass
class DrawInstruction:
    text: str
    x: float
    y: float
    font_size: float


@dataclass
class RuleInstruction:
    """Horizontal separator under a header row."""
    x1: float
    y1: float
    x2: float
    y2: float
    thickness: float = 1.0


@dataclass
class Page:
    number: int
    title: str
    instructions: List[DrawInstruction] = field(default_factory=list)
    rules: List[RuleInstruction] = field(default_factory=list)


@dataclass
class PageSize:
    width: float = 600
    height: float = 800

    def as_tuple(self) -> Tuple[float, float]:
        return (self.width, self.height)


@dataclass
class WorksheetInfo:
    id: int
    name: str
    row_count: int
    column_count: int


@dataclass
class WorkbookInfo:
    worksheet_count: int
    worksheets: List[WorksheetInfo] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "worksheetCount": self.worksheet_count,
            "worksheets": [
                {
                    "id": ws.id,
                    "name": ws.name,
                    "rowCount": ws.row_count,
                    "columnCount": ws.column_count,
                }
                for ws in self.worksheets
            ],
        }


RowMap = Dict[int, int]
"""Maps a 1-based source row onto its 1-based row in a filtered grid."""


def remap_merge_ranges(ranges: List[MergeRange], row_map: RowMap) -> List[MergeRange]:
    """Shift merge ranges onto a grid that had some rows filtered out.

    Ranges whose rows were all dropped disappear. Others shrink to the kept
    rows they span, which are contiguous in the filtered grid.
    """
    remapped: List[MergeRange] = []
    for rng in ranges:
        kept = [row_map[r] for r in range(rng.top, rng.bottom + 1) if r in row_map]
        if not kept:
            continue
        remapped.append(MergeRange(
            top=min(kept),
            left=rng.left,
            bottom=max(kept),
            right=rng.right,
        ))
    return remapped


def merge_range_from_bounds(bounds: Tuple[int, int, int, int]) -> MergeRange:
    """Build a range from openpyxl-style ``(min_col, min_row, max_col, max_row)``."""
    min_col, min_row, max_col, max_row = bounds
    return MergeRange(top=min_row, left=min_col, bottom=max_row, right=max_col)
