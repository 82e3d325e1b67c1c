"""Tests for PDF page layout.

Validates:
- Pagination (rows per page, continuation titles, repeated header)
- Column widths from the longest value in each column
- Header/data truncation and printable-ASCII substitution
- "No data" and header-only pages
"""

import sys
from datetime import date
from pathlib import Path

# Add project root to path (tests/grid/ -> tests/ -> project root)
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

import pytest

from services.grid_engine import PageSize, layout
from services.grid_engine.layout import (
    BOTTOM_MARGIN,
    DATA_FONT_SIZE,
    HEADER_FONT_SIZE,
    NO_DATA_TEXT,
    column_widths,
    printable,
    rows_that_fit,
)


GENERATED = date(2024, 5, 1)


def _layout(grid, **kwargs):
    kwargs.setdefault("generated_on", GENERATED)
    return layout(grid, **kwargs)


def _texts(page):
    return [i.text for i in page.instructions]


def _data_instructions(page):
    return [i for i in page.instructions if i.font_size == DATA_FONT_SIZE and i.y <= 700]


def _grid(data_rows):
    return [["Header"]] + [[f"row{n}"] for n in range(data_rows)]


class TestPagination:

    def test_single_page(self):
        pages = _layout(_grid(5))
        assert len(pages) == 1
        assert pages[0].title == "Excel Data Export - Sheet1"

    def test_page_count_follows_rows_per_page(self):
        pages = _layout(_grid(61), rows_per_page=30)
        assert len(pages) == 3
        assert [p.number for p in pages] == [1, 2, 3]

    def test_exact_multiple_does_not_add_empty_page(self):
        assert len(_layout(_grid(60), rows_per_page=30)) == 2

    def test_continuation_title_and_header(self):
        pages = _layout(_grid(4), rows_per_page=2)
        second = pages[1]
        assert second.title == "Excel Data Export (continued) - Page 2"
        assert "Header" in _texts(second)
        assert _texts(second)[-2:] == ["row2", "row3"]
        assert len(second.rules) == 1

    def test_continuation_table_starts_higher(self):
        first, second = _layout(_grid(2), rows_per_page=1)
        first_header = next(i for i in first.instructions if i.text == "Header")
        second_header = next(i for i in second.instructions if i.text == "Header")
        assert first_header.y == 730
        assert second_header.y == 750

    def test_rows_step_down_by_line_height(self):
        page = _layout(_grid(3))[0]
        ys = [i.y for i in page.instructions if i.text.startswith("row")]
        assert ys == [700, 685, 670]

    def test_every_data_row_placed_once(self):
        pages = _layout(_grid(45), rows_per_page=10)
        placed = [t for p in pages for t in _texts(p) if t.startswith("row")]
        assert placed == [f"row{n}" for n in range(45)]

    def test_invalid_rows_per_page(self):
        with pytest.raises(ValueError):
            _layout(_grid(1), rows_per_page=0)

    def test_rows_that_fit_default_page(self):
        assert rows_that_fit(PageSize()) == 44

    def test_oversized_rows_per_page_stays_on_page(self):
        pages = _layout(_grid(120), rows_per_page=60)
        assert len(pages) == 3
        for page in pages:
            rows = [i for i in page.instructions if i.text.startswith("row")]
            assert len(rows) <= 44
            assert all(i.y >= BOTTOM_MARGIN for i in rows)

    def test_tiny_page_still_places_a_row(self):
        pages = _layout(_grid(2), page_size=PageSize(width=300, height=100))
        assert rows_that_fit(PageSize(width=300, height=100)) == 1
        assert len(pages) == 2

    def test_custom_page_size(self):
        page = _layout(_grid(1), page_size=PageSize(width=400, height=500))[0]
        assert page.instructions[0].y == 480
        assert page.rules[0].x2 == 350


class TestFirstPage:

    def test_title_and_date(self):
        page = _layout(_grid(1), sheet_name="Budget")[0]
        title, generated = page.instructions[:2]
        assert (title.text, title.y, title.font_size) == ("Excel Data Export - Budget", 780, 16)
        assert (generated.text, generated.y, generated.font_size) == ("Generated on: 2024-05-01", 760, 10)

    def test_header_rule(self):
        rule = _layout(_grid(1))[0].rules[0]
        assert (rule.x1, rule.y1, rule.x2, rule.y2) == (50, 715, 550, 715)

    def test_no_data_page(self):
        pages = _layout([["", ""], ["", ""]])
        assert len(pages) == 1
        last = pages[0].instructions[-1]
        assert (last.text, last.y, last.font_size) == (NO_DATA_TEXT, 730, 12)
        assert pages[0].rules == []

    def test_placeholder_grid_is_no_data(self):
        assert _texts(_layout([["", "", "", ""]])[0])[-1] == NO_DATA_TEXT

    def test_header_only(self):
        pages = _layout([["A", "B"]])
        assert len(pages) == 1
        header = [i for i in pages[0].instructions if i.font_size == HEADER_FONT_SIZE]
        assert [i.text for i in header] == ["A", "B"]
        assert len(pages[0].rules) == 1


class TestColumns:

    def test_width_formula_and_cap(self):
        assert column_widths([["ab", "x" * 50]]) == [24, 100]

    def test_widths_use_longest_value_not_header(self):
        widths = column_widths([["id", "n"], ["1234567890", "n"]])
        assert widths[0] == 80

    def test_widening_a_value_never_narrows(self):
        before = column_widths([["h"], ["abc"]])
        after = column_widths([["h"], ["abcdef"]])
        assert after[0] >= before[0]

    def test_x_positions_accumulate(self):
        page = _layout([["aaa", "b", "c"], ["1", "2", "3"]])[0]
        header = [i for i in page.instructions if i.font_size == HEADER_FONT_SIZE]
        assert [i.x for i in header] == [50, 81, 98]

    def test_ragged_rows(self):
        page = _layout([["a", "b", "c"], ["only"]])[0]
        assert [i.text for i in _data_instructions(page)] == ["only"]


class TestText:

    def test_header_truncated(self):
        page = _layout([["H" * 30], ["v"]])[0]
        header = next(i for i in page.instructions if i.font_size == HEADER_FONT_SIZE)
        assert header.text == "H" * 15

    def test_data_truncated(self):
        page = _layout([["h"], ["d" * 30]])[0]
        assert _data_instructions(page)[0].text == "d" * 20

    def test_non_ascii_replaced(self):
        page = _layout([["Café"], ["naïve\tx"]])[0]
        texts = _texts(page)
        assert "Caf " in texts
        assert "na ve x" in texts

    def test_printable(self):
        assert printable("ok~") == "ok~"
        assert printable("€\n") == "  "
