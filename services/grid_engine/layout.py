"""Paginated table layout for PDF export.

Re-flows a flattened grid into pages of positioned text instructions. The
first grid row is the header; it is repeated on every continuation page.
Column widths are driven by the longest value anywhere in the column so long
data values are not clipped by a narrow header.
"""

from __future__ import annotations

from datetime import date
from typing import Any, List, Optional, Sequence

from .schemas import DrawInstruction, Page, PageSize, RuleInstruction


LEFT_MARGIN = 50
RIGHT_MARGIN = 50
BOTTOM_MARGIN = 50

# Offsets from the top edge of the page
TITLE_OFFSET = 20
DATE_OFFSET = 40
FIRST_TABLE_OFFSET = 70
CONTINUED_TABLE_OFFSET = 50

TITLE_FONT_SIZE = 16
CONTINUED_TITLE_FONT_SIZE = 14
DATE_FONT_SIZE = 10
HEADER_FONT_SIZE = 11
DATA_FONT_SIZE = 10
NO_DATA_FONT_SIZE = 12

HEADER_TO_RULE = 15
HEADER_TO_FIRST_ROW = 30
LINE_HEIGHT = 15

MAX_COLUMN_WIDTH = 100
PER_CHAR_WIDTH = 7
COLUMN_PADDING = 10
FALLBACK_COLUMN_WIDTH = 100

HEADER_CHAR_CAP = 15
DATA_CHAR_CAP = 20

DEFAULT_ROWS_PER_PAGE = 30
NO_DATA_TEXT = "No data found in spreadsheet"


def printable(text: str) -> str:
    """Replace anything outside printable ASCII with a space."""
    return "".join(ch if 32 <= ord(ch) <= 126 else " " for ch in text)


def rows_that_fit(page_size: PageSize) -> int:
    """Data rows a page can hold above the bottom margin.

    The first page has the lowest first row, so its capacity bounds every page.
    """
    first_row_y = page_size.height - FIRST_TABLE_OFFSET - HEADER_TO_FIRST_ROW
    return max(1, int((first_row_y - BOTTOM_MARGIN) // LINE_HEIGHT) + 1)


def _cell_text(value: Any) -> str:
    return "" if value is None else str(value)


def _clip(value: Any, cap: int) -> str:
    return printable(_cell_text(value)[:cap])


def column_widths(grid: Sequence[Sequence[Any]]) -> List[float]:
    """Width per column from its longest value across every row, header included."""
    column_count = max((len(row) for row in grid), default=0)
    longest = [0] * column_count
    for row in grid:
        for index, value in enumerate(row):
            longest[index] = max(longest[index], len(_cell_text(value)))
    return [
        min(MAX_COLUMN_WIDTH, chars * PER_CHAR_WIDTH + COLUMN_PADDING)
        for chars in longest
    ]


def _draw_row(
    page: Page,
    row: Sequence[Any],
    widths: Sequence[float],
    y: float,
    font_size: float,
    cap: int,
) -> None:
    x = LEFT_MARGIN
    for index, value in enumerate(row):
        page.instructions.append(DrawInstruction(
            text=_clip(value, cap),
            x=x,
            y=y,
            font_size=font_size,
        ))
        x += widths[index] if index < len(widths) and widths[index] else FALLBACK_COLUMN_WIDTH


def _draw_header(page: Page, header: Sequence[Any], widths: Sequence[float], y: float, page_size: PageSize) -> float:
    """Header row plus separator rule. Returns the y of the first data row."""
    _draw_row(page, header, widths, y, HEADER_FONT_SIZE, HEADER_CHAR_CAP)
    rule_y = y - HEADER_TO_RULE
    page.rules.append(RuleInstruction(
        x1=LEFT_MARGIN,
        y1=rule_y,
        x2=page_size.width - RIGHT_MARGIN,
        y2=rule_y,
    ))
    return y - HEADER_TO_FIRST_ROW


def _first_page(sheet_name: str, generated_on: date, page_size: PageSize) -> Page:
    title = printable(f"Excel Data Export - {sheet_name}")
    page = Page(number=1, title=title)
    page.instructions.append(DrawInstruction(
        text=title,
        x=LEFT_MARGIN,
        y=page_size.height - TITLE_OFFSET,
        font_size=TITLE_FONT_SIZE,
    ))
    page.instructions.append(DrawInstruction(
        text=f"Generated on: {generated_on.isoformat()}",
        x=LEFT_MARGIN,
        y=page_size.height - DATE_OFFSET,
        font_size=DATE_FONT_SIZE,
    ))
    return page


def _continuation_page(number: int, page_size: PageSize) -> Page:
    title = f"Excel Data Export (continued) - Page {number}"
    page = Page(number=number, title=title)
    page.instructions.append(DrawInstruction(
        text=title,
        x=LEFT_MARGIN,
        y=page_size.height - TITLE_OFFSET,
        font_size=CONTINUED_TITLE_FONT_SIZE,
    ))
    return page


def layout(
    grid: Sequence[Sequence[Any]],
    page_size: Optional[PageSize] = None,
    rows_per_page: int = DEFAULT_ROWS_PER_PAGE,
    *,
    sheet_name: str = "Sheet1",
    generated_on: Optional[date] = None,
) -> List[Page]:
    """Lay a grid out as pages of draw instructions.

    A grid with no non-blank rows produces a single "no data" page; a grid
    holding only a header row produces a header-only page. ``rows_per_page``
    is capped at what fits above the bottom margin.
    """
    if rows_per_page < 1:
        raise ValueError("rows_per_page must be at least 1")

    page_size = page_size or PageSize()
    generated_on = generated_on or date.today()

    rows = [row for row in grid if any(_cell_text(v) != "" for v in row)]

    page = _first_page(sheet_name, generated_on, page_size)
    pages = [page]

    if not rows:
        page.instructions.append(DrawInstruction(
            text=NO_DATA_TEXT,
            x=LEFT_MARGIN,
            y=page_size.height - FIRST_TABLE_OFFSET,
            font_size=NO_DATA_FONT_SIZE,
        ))
        return pages

    rows_per_page = min(rows_per_page, rows_that_fit(page_size))
    header, data_rows = rows[0], rows[1:]
    widths = column_widths(rows)

    y = _draw_header(page, header, widths, page_size.height - FIRST_TABLE_OFFSET, page_size)

    for index, row in enumerate(data_rows):
        if index and index % rows_per_page == 0:
            page = _continuation_page(len(pages) + 1, page_size)
            pages.append(page)
            y = _draw_header(page, header, widths, page_size.height - CONTINUED_TABLE_OFFSET, page_size)

        _draw_row(page, row, widths, y, DATA_FONT_SIZE, DATA_CHAR_CAP)
        y -= LINE_HEIGHT

    return pages
