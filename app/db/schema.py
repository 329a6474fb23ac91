"""
Live schema probing for the location tables.

The hierarchy tables gain columns through incremental migrations, so a
running database may or may not have `code`, `description`, `modified_by`
or `modified_at` yet. Before composing any statement we ask the database
which columns actually exist and only reference those.
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Union

from sqlalchemy import DateTime, String, inspect
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.types import NullType, TypeEngine
from sqlmodel import SQLModel

from app.db import models  # noqa: F401
from app.services.kinds import kind_for_table, required_columns

log = logging.getLogger(__name__)

# Columns added by run_minimal_migrations(); DDL type per column.
OPTIONAL_COLUMNS: Dict[str, TypeEngine] = {
    "code": String(40),
    "description": String(500),
    "modified_by": String(255),
    "modified_at": DateTime(),
}


def column_type(table: str, name: str) -> TypeEngine:
    """SQL type for a hierarchy column, used to bind/convert values."""
    model_table = SQLModel.metadata.tables.get(table)
    if model_table is not None and name in model_table.c:
        return model_table.c[name].type
    return OPTIONAL_COLUMNS.get(name, NullType())


class SchemaProbe:
    """
    Report the set of column names present on a hierarchy table.

    No caching: a fresh Inspector is built on every call so a column added
    by a migration between two statements is picked up immediately.
    """

    def columns(self, bind: Union[Connection, Engine], table: str) -> FrozenSet[str]:
        # Raises ValueError for tables outside the allow-list.
        kind = kind_for_table(table)

        try:
            insp = inspect(bind)
            return frozenset(c["name"] for c in insp.get_columns(table))
        except SQLAlchemyError as e:
            # Optional columns are treated as absent for this cycle.
            fallback = required_columns(kind)
            log.warning(
                "Schema probe for %s failed (%s); using required columns only: %s",
                table,
                e,
                sorted(fallback),
            )
            return fallback

    def has_column(self, bind: Union[Connection, Engine], table: str, column: str) -> bool:
        return column in self.columns(bind, table)
