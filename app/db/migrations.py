"""
Minimal migrations module.

Brings an existing database up to the current location schema without
dropping anything:

- adds the optional columns (`code`, `description`, `modified_by`,
  `modified_at`) to each hierarchy table when they are missing,
- creates partial unique indexes on (parent, lower(name)) among active
  rows, the storage-level guard behind the duplicate-name check.

Every step is idempotent and safe to run on each startup.
"""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.engine import Engine

from app.db.schema import OPTIONAL_COLUMNS, SchemaProbe
from app.services.dedup import preview_duplicates
from app.services.kinds import LocationKind

log = logging.getLogger(__name__)


def add_missing_columns(engine: Engine, probe: SchemaProbe | None = None) -> list[str]:
    """
    Add optional columns that the live tables do not have yet.

    Returns "table.column" for every column added.
    """
    probe = probe or SchemaProbe()
    added: list[str] = []

    with engine.begin() as conn:
        for kind in LocationKind:
            present = probe.columns(conn, kind.table)
            for col, col_type in OPTIONAL_COLUMNS.items():
                if col in present:
                    continue
                ddl = col_type.compile(dialect=engine.dialect)
                conn.execute(text(f"ALTER TABLE {kind.table} ADD COLUMN {col} {ddl}"))
                added.append(f"{kind.table}.{col}")

    if added:
        log.info("Added columns: %s", ", ".join(added))
    return added


def create_sibling_name_indexes(engine: Engine) -> list[str]:
    """
    Create one partial unique index per table on (parent FK, lower(name))
    WHERE is_active.

    A table that already holds duplicate active siblings is skipped with a
    warning; see app.services.dedup for the preview.
    """
    created: list[str] = []

    with engine.begin() as conn:
        for kind in LocationKind:
            dups = preview_duplicates(conn, kind)
            if dups:
                log.warning(
                    "Skipping unique name index on %s: %d duplicate group(s) %s",
                    kind.table,
                    len(dups),
                    [d["ids"] for d in dups],
                )
                continue

            index_name = f"uq_{kind.table}_active_name"
            scope = ", ".join(
                c for c in (kind.parent_column, "LOWER(name)") if c
            )
            conn.execute(
                text(
                    f"""
                    CREATE UNIQUE INDEX IF NOT EXISTS {index_name}
                    ON {kind.table} ({scope})
                    WHERE is_active
                    """
                )
            )
            created.append(index_name)

    return created


def run_minimal_migrations(engine: Engine) -> None:
    """
    Run small idempotent migrations for already-created tables.
    """
    add_missing_columns(engine)
    create_sibling_name_indexes(engine)
