"""Grid Engine - spreadsheet to editable grid and back, plus PDF layout.

This module handles:
1. Flattening the first worksheet of an XLSX file into a rectangular grid
2. Reconciling an edited grid back into the worksheet (whole-grid replace)
3. Laying the grid out as a paginated table and rendering it to PDF
"""

from .errors import (
    DrawError,
    FormatError,
    GridEngineError,
    NotFoundError,
    ValidationError,
)
from .schemas import (
    Cell,
    DrawInstruction,
    EmptyCell,
    FormulaCell,
    Grid,
    GridPayload,
    LiteralCell,
    MergeRange,
    Page,
    PageSize,
    RichTextCell,
    RuleInstruction,
    SheetSnapshot,
    TextRun,
    WorkbookInfo,
)
from .extractor import cell_from_openpyxl, extract
from .flattener import flatten, project
from .reconciler import reconcile
from .layout import layout
from .renderer import PdfCanvas, render_pdf
from .store import describe_workbook, load_sheet, save_grid, snapshot_worksheet

__all__ = [
    # Errors
    "GridEngineError",
    "NotFoundError",
    "FormatError",
    "ValidationError",
    "DrawError",
    # Schemas
    "Cell",
    "EmptyCell",
    "LiteralCell",
    "FormulaCell",
    "RichTextCell",
    "TextRun",
    "Grid",
    "GridPayload",
    "MergeRange",
    "SheetSnapshot",
    "DrawInstruction",
    "RuleInstruction",
    "Page",
    "PageSize",
    "WorkbookInfo",
    # Functions
    "extract",
    "cell_from_openpyxl",
    "flatten",
    "project",
    "reconcile",
    "layout",
    "render_pdf",
    "PdfCanvas",
    "load_sheet",
    "save_grid",
    "describe_workbook",
    "snapshot_worksheet",
]
