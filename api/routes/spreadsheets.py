"""API routes for spreadsheet grid editing.

- Upload XLSX -> registered under an id
- Read the first worksheet as a flat grid
- Save an edited grid back into the workbook
- Export the grid as a paginated PDF table
"""
from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Any

from fastapi import APIRouter, Body, File, HTTPException, UploadFile
from fastapi.responses import FileResponse, Response

from services.config import get_settings
from services.db import get_spreadsheet, list_spreadsheets, record_save, register_spreadsheet
from services.grid_engine import (
    FormatError,
    GridEngineError,
    describe_workbook,
    layout,
    load_sheet,
    project,
    render_pdf,
    save_grid,
)

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/spreadsheets", tags=["spreadsheets"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _spreadsheet_path(spreadsheet_id: str) -> Path:
    return Path(get_spreadsheet(spreadsheet_id).path)


def _split_save_body(body: Any) -> tuple[Any, Any]:
    """Accept ``{data, mergedCells?}`` or a bare array of rows."""
    if isinstance(body, list):
        return body, None
    if isinstance(body, dict):
        if "data" not in body:
            raise FormatError("Invalid data format. Expected {data: [[...]], mergedCells?: [...]}.")
        return body["data"], body.get("mergedCells")
    raise FormatError("Invalid data format. Expected an array.")


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post("/", response_model=dict)
async def upload_spreadsheet(file: UploadFile = File(...)):
    """Store an uploaded XLSX file and register it under a fresh id."""
    if not file.filename:
        raise HTTPException(400, "No file uploaded")

    if not file.filename.lower().endswith(".xlsx"):
        raise HTTPException(400, "Only .xlsx files are supported")

    settings = get_settings()
    settings.upload_dir.mkdir(parents=True, exist_ok=True)

    spreadsheet_id = uuid.uuid4().hex[:12]
    file_path = settings.upload_dir / f"{spreadsheet_id}.xlsx"

    content = await file.read()
    file_path.write_bytes(content)

    try:
        register_spreadsheet(spreadsheet_id, file.filename, file_path)
    except Exception as e:
        if file_path.exists():
            file_path.unlink()
        logger.exception(f"[UPLOAD] Failed to register {file.filename}")
        raise HTTPException(500, f"Failed to register spreadsheet: {e}")

    logger.info(f"[UPLOAD] Stored {file.filename} as {spreadsheet_id} ({len(content):,} bytes)")
    return {
        "id": spreadsheet_id,
        "message": "File uploaded successfully",
        "file": file.filename,
    }


@router.get("/")
async def get_spreadsheets():
    """List registered uploads, newest first."""
    return [
        {
            "id": record.id,
            "filename": record.filename,
            "rowCount": record.row_count,
            "created": record.created_at.isoformat(),
            "updated": record.updated_at.isoformat(),
        }
        for record in list_spreadsheets()
    ]


@router.get("/{spreadsheet_id}/data")
async def get_grid(spreadsheet_id: str):
    """Flatten the first worksheet into ``{data, mergedCells}``."""
    path = _spreadsheet_path(spreadsheet_id)
    settings = get_settings()

    try:
        sheet = load_sheet(path)
        payload = project(sheet, default_columns=settings.default_column_count)
    except GridEngineError:
        raise
    except Exception as e:
        logger.exception(f"[DATA] Data fetch failed for {spreadsheet_id}")
        raise HTTPException(500, f"Data fetch failed: {e}")

    logger.info(f"[DATA] Processed {len(payload.data)} data rows for {spreadsheet_id}")
    return payload.model_dump(by_alias=True)


@router.post("/{spreadsheet_id}/save")
async def save_spreadsheet(spreadsheet_id: str, body: Any = Body(...)):
    """Overwrite the first worksheet with the submitted grid."""
    path = _spreadsheet_path(spreadsheet_id)
    settings = get_settings()
    grid, merged_cells = _split_save_body(body)

    try:
        row_count = save_grid(
            path,
            grid,
            merged_cells,
            max_row_length=settings.max_row_length,
            max_rows=settings.max_grid_rows,
        )
    except GridEngineError:
        raise
    except Exception as e:
        logger.exception(f"[SAVE] Save failed for {spreadsheet_id}")
        raise HTTPException(500, f"Save failed: {e}")

    record_save(spreadsheet_id, row_count)
    return {"message": "Saved successfully", "rowCount": row_count}


@router.get("/{spreadsheet_id}/export-pdf")
async def export_pdf(spreadsheet_id: str):
    """Render the current grid as a paginated PDF table."""
    path = _spreadsheet_path(spreadsheet_id)
    settings = get_settings()

    try:
        sheet = load_sheet(path)
        payload = project(sheet, default_columns=settings.default_column_count)
        pages = layout(
            payload.data,
            settings.page_size,
            settings.rows_per_page,
            sheet_name=sheet.name,
        )
        pdf_bytes = render_pdf(pages, settings.page_size, title=f"Excel Data Export - {sheet.name}")
    except GridEngineError:
        raise
    except Exception as e:
        logger.exception(f"[EXPORT] PDF generation failed for {spreadsheet_id}")
        raise HTTPException(500, f"PDF generation failed: {e}")

    logger.info(f"[EXPORT] Rendered {len(pages)} pages for {spreadsheet_id}")
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": 'attachment; filename="excel_export.pdf"'},
    )


@router.get("/{spreadsheet_id}/debug")
async def debug_spreadsheet(spreadsheet_id: str):
    """Which worksheets the stored workbook holds."""
    path = _spreadsheet_path(spreadsheet_id)
    return describe_workbook(path).to_dict()


@router.get("/{spreadsheet_id}/file")
async def download_spreadsheet(spreadsheet_id: str):
    """Download the stored workbook as last saved."""
    record = get_spreadsheet(spreadsheet_id)
    path = Path(record.path)
    if not path.exists():
        raise HTTPException(404, "Excel file not found. Please upload a file first.")
    return FileResponse(path=str(path), filename=record.filename, media_type=XLSX_MEDIA_TYPE)
