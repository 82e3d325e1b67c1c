"""Cell value extraction.

Turns a single cell into the one string the grid editor shows for it. The grid
is a value view, so formulas surface their cached result and never their text.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Any, Union

from openpyxl.cell.rich_text import CellRichText, TextBlock
from openpyxl.worksheet.formula import ArrayFormula, DataTableFormula

from .schemas import EmptyCell, FormulaCell, LiteralCell, RichTextCell, TextRun


AnyCell = Union[EmptyCell, LiteralCell, FormulaCell, RichTextCell]


def stringify(value: Any) -> str:
    """Render a stored scalar the way a spreadsheet displays it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def extract(cell: AnyCell | None) -> str:
    """Return the display string for a cell. Never raises."""
    if cell is None:
        return ""
    if isinstance(cell, FormulaCell):
        return stringify(cell.cached_result)
    if isinstance(cell, RichTextCell):
        return "".join(run.text for run in cell.runs)
    if isinstance(cell, LiteralCell):
        return stringify(cell.value)
    return ""


def _runs_from_rich_text(value: CellRichText) -> list[TextRun]:
    runs = []
    for part in value:
        if isinstance(part, TextBlock):
            runs.append(TextRun(text=part.text or ""))
        else:
            runs.append(TextRun(text=str(part)))
    return runs


def cell_from_openpyxl(cell: Any, cached_value: Any = None) -> AnyCell:
    """Build the cell union from an openpyxl cell.

    ``cached_value`` is the value of the same coordinate in a workbook loaded
    with ``data_only=True``; it is only consulted for formula cells.
    """
    value = getattr(cell, "value", None)

    if isinstance(value, (ArrayFormula, DataTableFormula)):
        expression = getattr(value, "text", None) or str(value)
        return FormulaCell(expression=str(expression), cached_result=cached_value)
    if getattr(cell, "data_type", None) == "f" and value is not None:
        return FormulaCell(expression=str(value), cached_result=cached_value)

    if isinstance(value, CellRichText):
        return RichTextCell(runs=_runs_from_rich_text(value))

    if value is None or value == "":
        return EmptyCell()

    return LiteralCell(value=value)
