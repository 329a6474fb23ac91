# app/core/deps.py
"""
Common FastAPI dependencies:

- Shared engine (`get_db_engine`)
- Location registry service (`get_location_service`)
- Acting identity for audit columns (`get_actor`)
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.engine import Engine

from app.core.config import get_settings
from app.db.schema import SchemaProbe
from app.db.session import get_engine
from app.services.locations import LocationService


def get_db_engine() -> Engine:
    """Thin wrapper so tests can override the engine in one place."""
    return get_engine()


def get_location_service(engine: Engine = Depends(get_db_engine)) -> LocationService:
    """
    Provide a LocationService bound to the request's engine.

    The service opens and closes its own transaction per call.
    """
    return LocationService(engine, probe=SchemaProbe())


def get_actor(x_modified_by: Optional[str] = Header(default=None)) -> str:
    """
    Identity written to `modified_by`.

    Taken from the `X-Modified-By` header, falling back to
    Settings.DEFAULT_ACTOR.
    """
    if x_modified_by and x_modified_by.strip():
        return x_modified_by.strip()
    return get_settings().DEFAULT_ACTOR
