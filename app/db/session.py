# app/db/session.py
from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import event, func, select
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

from app.core.config import get_settings

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------

_settings = get_settings()

# SQLite is only used for local runs; FastAPI's threadpool needs cross-thread access
_connect_args = (
    {"check_same_thread": False} if _settings.DATABASE_URL.startswith("sqlite") else {}
)


def _unicode_lower(value):
    return value.casefold() if isinstance(value, str) else value


def install_sqlite_functions(bind: Engine) -> Engine:
    """
    Replace SQLite's ASCII-only lower() with a Unicode-aware one on every
    new connection, so "Parañaque" and "PARAÑAQUE" compare equal in the
    duplicate check and in the unique name indexes alike.

    No-op for other dialects (PostgreSQL's lower() already folds Unicode).
    """
    if bind.dialect.name != "sqlite":
        return bind

    @event.listens_for(bind, "connect")
    def _register_lower(dbapi_conn, _record):
        # Must be deterministic to be usable inside an index expression.
        dbapi_conn.create_function("lower", 1, _unicode_lower, deterministic=True)

    return bind


engine = install_sqlite_functions(
    create_engine(
        _settings.DATABASE_URL,
        echo=_settings.DEBUG,
        pool_pre_ping=True,
        connect_args=_connect_args,
    )
)


def get_engine() -> Engine:
    """Return the shared engine instance."""
    return engine


# ---------------------------------------------------------------------
# Demo hierarchy (region -> city -> barangays)
# ---------------------------------------------------------------------
DEMO_LOCATIONS = {
    "NCR": {
        "Manila": ["Tondo", "Ermita", "Malate", "Sampaloc"],
        "Quezon City": ["Bagong Pag-asa", "Batasan Hills", "Commonwealth"],
    },
    "Region IV-A": {
        "Calamba": ["Canlubang", "Real"],
        "Antipolo": ["Dela Paz", "San Roque"],
    },
    "Region VII": {
        "Cebu City": ["Lahug", "Mabolo", "Guadalupe"],
    },
}


# ---------------------------------------------------------------------
# Schema initialization (non-destructive + idempotent seed)
# ---------------------------------------------------------------------
def init_db(bind: Optional[Engine] = None, seed: Optional[bool] = None) -> None:
    """
    Create the hierarchy tables if they don't exist and optionally seed demo data.

    - Non-destructive: existing tables are not dropped or altered
      (new columns come from run_minimal_migrations()).
    - Idempotent: demo data is inserted only when no region exists yet.
    """
    # Import models so that SQLModel sees all table definitions
    from app.db import models  # noqa: F401
    from app.services.locations import LocationService

    bind = bind or engine
    SQLModel.metadata.create_all(bind)

    if seed is None:
        seed = get_settings().SEED_DEMO_DATA
    if not seed:
        return

    with bind.connect() as conn:
        existing = conn.execute(
            select(func.count()).select_from(models.Region.__table__)
        ).scalar_one()
    if existing:
        # DB already has regions → skip seeding to avoid duplicates
        return

    service = LocationService(bind)
    actor = get_settings().DEFAULT_ACTOR
    for region_name, cities in DEMO_LOCATIONS.items():
        region = service.add_region(region_name, modified_by=actor)
        for city_name, barangays in cities.items():
            city = service.add_city(region["id"], city_name, modified_by=actor)
            for barangay_name in barangays:
                service.add_barangay(city["id"], barangay_name, modified_by=actor)

    log.info("Seeded demo locations: %d regions", len(DEMO_LOCATIONS))
