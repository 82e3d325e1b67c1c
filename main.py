from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might need env vars
load_dotenv()

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from api.routes.spreadsheets import router as spreadsheets_router
from middleware.rate_limit import RateLimitMiddleware, RateLimitConfig
from services.config import get_settings
from services.db import init_db
from services.grid_engine import FormatError, GridEngineError, NotFoundError, ValidationError


PUBLIC_DIR = Path(__file__).parent / "public"

_STATUS_BY_ERROR = {
    NotFoundError: 404,
    FormatError: 400,
    ValidationError: 422,
}

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


app = FastAPI(title="Sheet Grid Editor")

# Rate limiting (can be disabled in dev with DISABLE_RATE_LIMIT=1)
if settings.rate_limit_enabled:
    app.add_middleware(RateLimitMiddleware, config=RateLimitConfig())

# Allow any origin in local dev mode.
# This should be tightened for production.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GridEngineError)
async def grid_engine_error_handler(request: Request, exc: GridEngineError):
    status = _STATUS_BY_ERROR.get(type(exc), 500)
    logger.warning(f"{request.method} {request.url.path} -> {status} {exc.kind}: {exc.message}")
    return JSONResponse(status_code=status, content=exc.to_dict())


# Ensure DB schema exists
init_db()

app.include_router(spreadsheets_router)


@app.get("/status")
async def status():
    upload_dir = get_settings().upload_dir
    files = sorted(p.name for p in upload_dir.iterdir()) if upload_dir.exists() else []
    return {
        "status": "Server running",
        "uploadedFiles": files,
        "uploadsFolderExists": upload_dir.exists(),
    }


@app.get("/")
async def root():
    index = PUBLIC_DIR / "index.html"
    if index.exists():
        return FileResponse(str(index))
    return {"status": "ok"}


if PUBLIC_DIR.is_dir():
    app.mount("/static", StaticFiles(directory=str(PUBLIC_DIR)), name="static")
