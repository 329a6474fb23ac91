# Preview-only duplicate analysis. No writes, no deletes.
from typing import Any, Dict, List

from sqlalchemy import text
from sqlalchemy.engine import Connection

from app.services.kinds import LocationKind


def preview_duplicates(conn: Connection, kind: LocationKind) -> List[Dict[str, Any]]:
    """
    Return groups of active siblings sharing a normalized name.
    Each item: {"parent_id": <id|None>, "name": "<lower(name)>", "ids": [...], "keep_id": min_id}
    """
    # Table and column names come from LocationKind, never from the caller.
    parent_expr = kind.parent_column or "NULL"
    group_by = ", ".join(c for c in (kind.parent_column, "LOWER(name)") if c)
    rows = conn.execute(
        text(
            f"""
            SELECT {parent_expr} AS parent_id,
                   LOWER(name) AS nname,
                   MIN(id) AS keep_id,
                   COUNT(*) AS n
            FROM {kind.table}
            WHERE is_active = :active
            GROUP BY {group_by}
            HAVING COUNT(*) > 1
            ORDER BY nname
            """
        ),
        {"active": True},
    ).all()

    groups = []
    for parent_id, nname, keep_id, _n in rows:
        ids_stmt = (
            f"SELECT id FROM {kind.table} "
            "WHERE is_active = :active AND LOWER(name) = :nname"
        )
        params: Dict[str, Any] = {"active": True, "nname": nname}
        if kind.parent_column:
            ids_stmt += f" AND {kind.parent_column} = :parent_id"
            params["parent_id"] = parent_id
        ids = conn.execute(text(ids_stmt + " ORDER BY id"), params).scalars().all()
        groups.append(
            {"parent_id": parent_id, "name": nname, "ids": list(ids), "keep_id": keep_id}
        )
    return groups


def quick_counts(conn: Connection) -> dict:
    counts = {}
    for kind in LocationKind:
        n = conn.execute(text(f"SELECT COUNT(*) FROM {kind.table}")).one()[0]
        counts[kind.table] = n
    return counts
