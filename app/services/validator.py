from __future__ import annotations

from typing import Optional

from app.services.errors import DuplicateName, ParentNotFound
from app.services.kinds import LocationKind
from app.services.store import LocationStore


class HierarchyValidator:
    """
    Read-then-decide checks run before any write.

    These are a fast reject; the partial unique indexes created by the
    migrations remain the authoritative guard against concurrent inserts.
    """

    def __init__(self, store: LocationStore):
        self.store = store

    def validate_parent(self, kind: LocationKind, parent_id: Optional[int]) -> Optional[dict]:
        """
        Ensure the parent of a city/barangay exists and is active.

        Returns the parent row (None for regions).
        Raises ParentNotFound otherwise.
        """
        parent_kind = kind.parent
        if parent_kind is None:
            return None

        parent = None
        if parent_id is not None:
            parent = self.store.find_active_by_id(parent_kind, parent_id)
        if parent is None:
            raise ParentNotFound(parent_kind, parent_id)
        return parent

    def validate_unique_name(
        self,
        kind: LocationKind,
        name: str,
        parent_id: Optional[int] = None,
        exclude_id: Optional[int] = None,
    ) -> None:
        existing = self.store.find_active_by_name_in_scope(
            kind, name, parent_id=parent_id, exclude_id=exclude_id
        )
        if existing is None:
            return

        scope_name = None
        if kind.parent is not None:
            parent = self.store.find_by_id(kind.parent, parent_id)
            scope_name = parent["name"] if parent else None
        raise DuplicateName(kind, existing["name"], scope_name=scope_name)
