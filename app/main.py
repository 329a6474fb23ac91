# app/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.api.v1.db_inspect import router as db_router
from app.api.v1.locations import router as locations_router
from app.core.config import get_settings
from app.db.migrations import run_minimal_migrations
from app.db.session import get_engine, init_db
from app.services.errors import (
    NotFound,
    ParentNotFound,
    StorageError,
    ValidationError,
)

# -----------------------------------------------------------------------------
# Logging: make sure we see clear startup errors in the console
# -----------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
log = logging.getLogger("app")

# -----------------------------------------------------------------------------
# App
# -----------------------------------------------------------------------------
app = FastAPI(title="Location Registry", debug=get_settings().DEBUG)

# -----------------------------------------------------------------------------
# Routers
# -----------------------------------------------------------------------------
app.include_router(db_router, prefix="/api/v1", tags=["db"])
app.include_router(locations_router, prefix="/api/v1", tags=["locations"])


# -----------------------------------------------------------------------------
# Startup: create tables if missing (non-destructive) + minimal migrations
# -----------------------------------------------------------------------------
@app.on_event("startup")
def _startup() -> None:
    """
    On startup, ensure that the hierarchy tables exist and run minimal migrations.

    - init_db() creates missing tables with the base columns only.
    - run_minimal_migrations() adds optional columns and the unique
      sibling-name indexes in an idempotent way.

    Works for fresh databases and for older ones missing recent columns.
    """
    try:
        engine = get_engine()
        init_db(engine)
        run_minimal_migrations(engine)
        log.info("DB init + minimal migrations completed.")
    except Exception as e:
        # Never crash the app on init errors; log and keep /ping alive.
        log.exception("DB init or migrations failed: %s", e)


# -----------------------------------------------------------------------------
# Minimal health endpoint
# -----------------------------------------------------------------------------
@app.get("/ping")
def ping():
    """Simple liveness check."""
    return {"ok": True}


# -----------------------------------------------------------------------------
# Exception handlers
# -----------------------------------------------------------------------------
@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"success": False, "message": exc.message})


@app.exception_handler(ValidationError)
async def location_validation_handler(request: Request, exc: ValidationError):
    """DuplicateName and ParentNotFound: detected before any write."""
    content = {"success": False, "message": exc.message}
    if isinstance(exc, ParentNotFound):
        content["parent_id"] = exc.parent_id
    return JSONResponse(status_code=422, content=content)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    # Details stay in the log; the caller gets a generic failure.
    log.error("Storage failure on %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Storage operation failed"},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Field-level request errors (422)."""
    return JSONResponse(
        status_code=422,
        content={"success": False, "message": "Validation error", "errors": jsonable_encoder(exc.errors())},
    )
