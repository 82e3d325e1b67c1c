from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional

from sqlalchemy import Column, DateTime, Integer, String, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from services.config import get_settings
from services.grid_engine.errors import NotFoundError


Base = declarative_base()


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None


class Spreadsheet(Base):
    """An uploaded workbook. The id is the handle every request passes around."""

    __tablename__ = "spreadsheets"

    id = Column(String, primary_key=True, index=True)
    filename = Column(String, nullable=False)
    path = Column(String, nullable=False)
    row_count = Column(Integer, nullable=True)  # rows written by the last save
    created_at = Column(DateTime, default=utc_now, nullable=False)
    updated_at = Column(
        DateTime,
        default=utc_now,
        onupdate=utc_now,
        nullable=False,
    )


def get_engine() -> Engine:
    global _engine, _SessionLocal
    if _engine is None:
        settings = get_settings()
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        _engine = create_engine(
            settings.database_url,
            connect_args={"check_same_thread": False},  # SQLite-specific
        )
        _SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=_engine,
        )
    return _engine


def reset_engine() -> None:
    """Drop the cached engine so the next call picks up fresh settings."""
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionLocal = None


def init_db() -> None:
    """Create tables if they don't exist."""

    Base.metadata.create_all(bind=get_engine())


@contextmanager
def get_session() -> Iterator[Session]:
    get_engine()
    db = _SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


# =============================================================================
# REGISTRY HELPERS
# =============================================================================

def register_spreadsheet(spreadsheet_id: str, filename: str, path: Path) -> Spreadsheet:
    record = Spreadsheet(id=spreadsheet_id, filename=filename, path=str(path))
    with get_session() as db:
        db.add(record)
    return record


def get_spreadsheet(spreadsheet_id: str) -> Spreadsheet:
    with get_session() as db:
        record = db.get(Spreadsheet, spreadsheet_id)
    if record is None:
        raise NotFoundError(f"Spreadsheet not found: {spreadsheet_id}")
    return record


def record_save(spreadsheet_id: str, row_count: int) -> None:
    with get_session() as db:
        record = db.get(Spreadsheet, spreadsheet_id)
        if record is None:
            raise NotFoundError(f"Spreadsheet not found: {spreadsheet_id}")
        record.row_count = row_count
        record.updated_at = utc_now()


def list_spreadsheets() -> List[Spreadsheet]:
    with get_session() as db:
        return list(db.query(Spreadsheet).order_by(Spreadsheet.created_at.desc()).all())
