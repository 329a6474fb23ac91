# app/api/v1/db_inspect.py
"""
Read-only database inspection endpoints.

- /db/ping: connectivity check with the server version string.
- /db/columns: what the SchemaProbe currently reports per hierarchy table.
- /db/counts: raw row counts (active and inactive) per hierarchy table.
"""

from __future__ import annotations

from typing import Dict, List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from app.core.deps import get_db_engine
from app.db.schema import OPTIONAL_COLUMNS, SchemaProbe
from app.services.dedup import quick_counts
from app.services.kinds import LocationKind

router = APIRouter(prefix="/db")


@router.get("/ping")
def db_ping(engine: Engine = Depends(get_db_engine)):
    """
    Test DB connectivity and return the server version.
    """
    try:
        with engine.connect() as conn:
            if engine.dialect.name == "sqlite":
                ver = conn.execute(text("SELECT sqlite_version()")).scalar()
            else:
                ver = conn.execute(text("SELECT version()")).scalar()
        return {"ok": True, "version": ver}
    except SQLAlchemyError as e:
        raise HTTPException(500, f"DB error: {e}") from e


@router.get("/columns")
def list_columns(engine: Engine = Depends(get_db_engine)) -> Dict[str, Dict[str, List[str]]]:
    """
    Return {table: {"present": [...], "missing_optional": [...]}}.
    """
    probe = SchemaProbe()
    result: Dict[str, Dict[str, List[str]]] = {}

    with engine.connect() as conn:
        for kind in LocationKind:
            cols = probe.columns(conn, kind.table)
            result[kind.table] = {
                "present": sorted(cols),
                "missing_optional": sorted(set(OPTIONAL_COLUMNS) - cols),
            }
    return result


@router.get("/counts")
def table_counts(engine: Engine = Depends(get_db_engine)):
    """
    Return total row counts per hierarchy table, soft-deleted rows included.
    """
    try:
        with engine.connect() as conn:
            return quick_counts(conn)
    except SQLAlchemyError as e:
        raise HTTPException(500, f"DB error: {e}") from e
