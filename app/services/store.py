"""
Row-level primitives over the regions / cities / barangays tables.

- Bound to one SQLAlchemy Connection, i.e. to the caller's transaction.
- Every read and write asks the SchemaProbe first and only references
  columns that currently exist.
- Rows go in and come out as plain dicts.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, func, insert, select, true, update
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.expression import TableClause, column, table

from app.db.schema import SchemaProbe, column_type
from app.services.errors import StorageError
from app.services.kinds import LocationKind

log = logging.getLogger(__name__)

Row = Dict[str, Any]


class LocationStore:
    def __init__(self, conn: Connection, probe: Optional[SchemaProbe] = None):
        self.conn = conn
        self.probe = probe or SchemaProbe()

    # ----------------------------- Helpers -----------------------------

    def columns(self, kind: LocationKind) -> frozenset:
        """Probe result for the kind's table (consulted before every statement)."""
        return self.probe.columns(self.conn, kind.table)

    def _table(self, kind: LocationKind) -> TableClause:
        cols = self.columns(kind)
        return table(
            kind.table,
            *(column(name, column_type(kind.table, name)) for name in sorted(cols)),
        )

    def _execute(self, stmt):
        try:
            return self.conn.execute(stmt)
        except SQLAlchemyError as e:
            raise StorageError(f"Storage failure: {e}") from e

    def _filter_fields(self, kind: LocationKind, t: TableClause, fields: Row) -> Row:
        present = {k: v for k, v in fields.items() if k in t.c}
        dropped = set(fields) - set(present)
        if dropped:
            log.debug("Skipping columns absent from %s: %s", kind.table, sorted(dropped))
        return present

    def _scope(self, kind: LocationKind, t: TableClause, parent_id: Optional[int]):
        if kind.parent_column is None:
            return []
        return [t.c[kind.parent_column] == parent_id]

    # ------------------------------ Reads ------------------------------

    def find_by_id(self, kind: LocationKind, node_id: int) -> Optional[Row]:
        t = self._table(kind)
        row = self._execute(select(t).where(t.c.id == node_id)).mappings().first()
        return dict(row) if row is not None else None

    def find_active_by_id(self, kind: LocationKind, node_id: int) -> Optional[Row]:
        t = self._table(kind)
        row = (
            self._execute(select(t).where(t.c.id == node_id, t.c.is_active == true()))
            .mappings()
            .first()
        )
        return dict(row) if row is not None else None

    def find_active_by_name_in_scope(
        self,
        kind: LocationKind,
        name: str,
        parent_id: Optional[int] = None,
        exclude_id: Optional[int] = None,
    ) -> Optional[Row]:
        """Case-insensitive sibling lookup; parent_id is ignored for regions."""
        t = self._table(kind)
        conditions = [
            func.lower(t.c.name) == func.lower(name),
            t.c.is_active == true(),
            *self._scope(kind, t, parent_id),
        ]
        if exclude_id is not None:
            conditions.append(t.c.id != exclude_id)

        row = (
            self._execute(select(t).where(*conditions).order_by(t.c.id))
            .mappings()
            .first()
        )
        return dict(row) if row is not None else None

    def list_active(self, kind: LocationKind, parent_id: Optional[int] = None) -> List[Row]:
        t = self._table(kind)
        stmt = (
            select(t)
            .where(t.c.is_active == true(), *self._scope(kind, t, parent_id))
            .order_by(t.c.name, t.c.id)
        )
        return [dict(r) for r in self._execute(stmt).mappings().all()]

    def list_active_children(
        self, kind: LocationKind, parent_ids: Iterable[int]
    ) -> List[Row]:
        """Active rows of `kind` whose parent is in parent_ids, ordered by name."""
        parent_ids = list(parent_ids)
        if not parent_ids:
            return []

        t = self._table(kind)
        stmt = (
            select(t)
            .where(t.c.is_active == true(), t.c[kind.parent_column].in_(parent_ids))
            .order_by(t.c.name, t.c.id)
        )
        return [dict(r) for r in self._execute(stmt).mappings().all()]

    def count_active(self, kind: LocationKind, parent_id: Optional[int] = None) -> int:
        t = self._table(kind)
        conditions = [t.c.is_active == true()]
        if parent_id is not None:
            conditions.extend(self._scope(kind, t, parent_id))
        stmt = select(func.count()).select_from(t).where(*conditions)
        return int(self._execute(stmt).scalar_one())

    def child_ids(self, kind: LocationKind, parent_ids: Iterable[int]) -> List[int]:
        """Ids of all rows of `kind` (active or not) under the given parents."""
        parent_ids = list(parent_ids)
        if not parent_ids:
            return []

        t = self._table(kind)
        stmt = (
            select(t.c.id)
            .where(t.c[kind.parent_column].in_(parent_ids))
            .order_by(t.c.id)
        )
        return list(self._execute(stmt).scalars().all())

    # ------------------------------ Writes ------------------------------

    def insert(self, kind: LocationKind, fields: Row) -> int:
        t = self._table(kind)
        values = self._filter_fields(kind, t, fields)
        result = self._execute(insert(t).values(**values).returning(t.c.id))
        return int(result.scalar_one())

    def update(self, kind: LocationKind, node_id: int, fields: Row) -> int:
        t = self._table(kind)
        values = self._filter_fields(kind, t, fields)
        if not values:
            return 0
        result = self._execute(update(t).where(t.c.id == node_id).values(**values))
        return result.rowcount

    def delete_row(self, kind: LocationKind, node_id: int) -> int:
        return self.delete_rows(kind, [node_id])

    def delete_rows(self, kind: LocationKind, ids: Iterable[int]) -> int:
        ids = list(ids)
        if not ids:
            return 0
        t = self._table(kind)
        result = self._execute(delete(t).where(t.c.id.in_(ids)))
        return result.rowcount
