"""PDF rendering of laid out pages with reportlab.

A cell that fails to render is logged and skipped; one bad glyph never
aborts the whole export.
"""

from __future__ import annotations

import logging
from io import BytesIO
from typing import Iterable, Optional

from reportlab.pdfgen import canvas

from .errors import DrawError
from .schemas import Page, PageSize


logger = logging.getLogger(__name__)

FONT_NAME = "Helvetica"


class PdfCanvas:
    """Thin wrapper over a reportlab canvas writing into memory."""

    def __init__(self, page_size: Optional[PageSize] = None, font_name: str = FONT_NAME, title: Optional[str] = None):
        self.page_size = page_size or PageSize()
        self.font_name = font_name
        self._buffer = BytesIO()
        self._canvas = canvas.Canvas(self._buffer, pagesize=self.page_size.as_tuple())
        if title:
            self._canvas.setTitle(title)
        self._page_open = False
        self.page_count = 0

    def new_page(self) -> None:
        if self._page_open:
            self._canvas.showPage()
        self._page_open = True
        self.page_count += 1

    def draw_text(self, text: str, x: float, y: float, size: float) -> None:
        try:
            self._canvas.setFont(self.font_name, size)
            self._canvas.drawString(x, y, text)
        except (UnicodeError, ValueError, KeyError, TypeError) as e:
            raise DrawError(f"Could not draw {text!r} at ({x}, {y}): {e}") from e

    def draw_rule(self, x1: float, y1: float, x2: float, y2: float, thickness: float = 1.0) -> None:
        self._canvas.setLineWidth(thickness)
        self._canvas.line(x1, y1, x2, y2)

    def finish(self) -> bytes:
        if self._page_open:
            self._canvas.showPage()
            self._page_open = False
        self._canvas.save()
        return self._buffer.getvalue()


def render_pdf(
    pages: Iterable[Page],
    page_size: Optional[PageSize] = None,
    *,
    pdf_canvas: Optional[PdfCanvas] = None,
    title: Optional[str] = None,
) -> bytes:
    """Draw every page and return the finished PDF bytes."""
    pdf = pdf_canvas or PdfCanvas(page_size, title=title)
    skipped = 0

    for page in pages:
        pdf.new_page()
        for instruction in page.instructions:
            try:
                pdf.draw_text(instruction.text, instruction.x, instruction.y, instruction.font_size)
            except DrawError as e:
                skipped += 1
                logger.warning(f"[RENDER] Skipping cell on page {page.number}: {e.message}")
        for rule in page.rules:
            pdf.draw_rule(rule.x1, rule.y1, rule.x2, rule.y2, rule.thickness)

    if skipped:
        logger.info(f"[RENDER] {skipped} instructions skipped across {pdf.page_count} pages")
    return pdf.finish()
