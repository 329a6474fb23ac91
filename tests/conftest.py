# tests/conftest.py

import os

# Keep the app's module-level engine off the developer's database.
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine

from app.core.deps import get_db_engine
from app.db.migrations import run_minimal_migrations
from app.db.session import init_db, install_sqlite_functions
from app.main import app
from app.services.kinds import LocationKind
from app.services.locations import LocationService
from app.services.store import LocationStore


def _memory_engine() -> Engine:
    """
    Fresh in-memory SQLite database.

    StaticPool keeps a single connection so every session sees the same data;
    foreign keys are switched on so orphaned rows fail loudly, and lower()
    folds Unicode the same way the app engine does.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(engine, "connect")
    def _enable_fk(dbapi_conn, _record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return install_sqlite_functions(engine)


# --- Database fixtures ---
@pytest.fixture
def legacy_engine() -> Engine:
    """Base tables only: no code / description / modified_* columns."""
    engine = _memory_engine()
    init_db(engine, seed=False)
    yield engine
    engine.dispose()


@pytest.fixture
def engine() -> Engine:
    """Base tables plus every migration (optional columns, unique indexes)."""
    engine = _memory_engine()
    init_db(engine, seed=False)
    run_minimal_migrations(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def service(engine) -> LocationService:
    return LocationService(engine)


@pytest.fixture
def hierarchy(service):
    """
    NCR > Manila > Tondo, Ermita
    NCR > Quezon City > Commonwealth
    Region VII > Cebu City (no barangays)
    """
    ncr = service.add_region("NCR")
    manila = service.add_city(ncr["id"], "Manila")
    qc = service.add_city(ncr["id"], "Quezon City")
    tondo = service.add_barangay(manila["id"], "Tondo")
    ermita = service.add_barangay(manila["id"], "Ermita")
    commonwealth = service.add_barangay(qc["id"], "Commonwealth")
    r7 = service.add_region("Region VII")
    cebu = service.add_city(r7["id"], "Cebu City")
    return {
        "ncr": ncr,
        "manila": manila,
        "qc": qc,
        "tondo": tondo,
        "ermita": ermita,
        "commonwealth": commonwealth,
        "r7": r7,
        "cebu": cebu,
    }


@pytest.fixture
def find(engine):
    """find(kind, id) -> row or None, read outside the service's transactions."""
    def _find(kind: LocationKind, node_id: int):
        with engine.connect() as conn:
            return LocationStore(conn).find_by_id(kind, node_id)

    return _find


@pytest.fixture
def client(engine) -> TestClient:
    """
    API client wired to the test engine.

    Not used as a context manager, so the startup hook (which targets the
    app's own engine) does not run.
    """
    app.dependency_overrides[get_db_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()
