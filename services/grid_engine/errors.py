"""Error taxonomy for the grid engine.

Every error carries a ``kind`` so the HTTP layer can hand it back as a
structured failure instead of a bare 500.
"""

from __future__ import annotations

from typing import Dict


class GridEngineError(Exception):
    """Base class for all grid engine failures."""

    kind = "grid_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.kind, "detail": self.message}


class NotFoundError(GridEngineError):
    """Source spreadsheet, worksheet or upload id does not exist."""

    kind = "not_found"


class FormatError(GridEngineError):
    """Submitted grid is not a list of lists of scalars, or is too large."""

    kind = "format_error"


class ValidationError(GridEngineError):
    """Merge ranges are inverted, out of the grid, or overlap."""

    kind = "validation_error"


class DrawError(GridEngineError):
    """A single draw instruction could not be rendered."""

    kind = "draw_error"
