"""Centralized application configuration.

Single source of truth for storage paths, grid guardrails and PDF export
settings. Reads from environment variables with sensible defaults; main.py
loads ``.env`` before anything imports this module.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from services.grid_engine.schemas import PageSize


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer, got {raw!r}")


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    """Settings loaded from environment.

    Usage:
        settings = get_settings()
        print(settings.upload_dir)      # data/uploads
        print(settings.rows_per_page)   # 30
    """
    data_dir: Path = Path("data")

    # Grid guardrails
    max_row_length: int = 1000
    max_grid_rows: int = 100_000
    default_column_count: int = 10

    # PDF export
    rows_per_page: int = 30
    page_size: PageSize = field(default_factory=PageSize)

    # Ops
    rate_limit_enabled: bool = True
    log_level: str = "INFO"

    @property
    def upload_dir(self) -> Path:
        return self.data_dir / "uploads"

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.data_dir / 'app.db'}"


def _load_settings_from_env() -> Settings:
    return Settings(
        data_dir=Path(os.getenv("DATA_DIR", "data")),
        max_row_length=_env_int("MAX_ROW_LENGTH", 1000),
        max_grid_rows=_env_int("MAX_GRID_ROWS", 100_000),
        default_column_count=_env_int("DEFAULT_COLUMN_COUNT", 10),
        rows_per_page=_env_int("ROWS_PER_PAGE", 30),
        page_size=PageSize(
            width=_env_int("PDF_PAGE_WIDTH", 600),
            height=_env_int("PDF_PAGE_HEIGHT", 800),
        ),
        rate_limit_enabled=not _env_flag("DISABLE_RATE_LIMIT"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings (call ``get_settings.cache_clear()`` to reload)."""
    return _load_settings_from_env()
