"""
The closed set of location kinds and the table/column facts each one carries.

Everything that needs to know "which table" or "which parent column" asks
the kind instead of branching on strings.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class LocationKind(str, Enum):
    region = "region"
    city = "city"
    barangay = "barangay"

    @property
    def table(self) -> str:
        return _TABLES[self]

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def plural(self) -> str:
        return "cities" if self is LocationKind.city else f"{self.value}s"

    @property
    def parent(self) -> Optional["LocationKind"]:
        return _PARENTS[self]

    @property
    def child(self) -> Optional["LocationKind"]:
        return _CHILDREN[self]

    @property
    def parent_column(self) -> Optional[str]:
        """FK column pointing at the parent level (None for regions)."""
        parent = self.parent
        return f"{parent.value}_id" if parent is not None else None

    @property
    def code_prefix(self) -> str:
        return self.value[0].upper()


_TABLES = {
    LocationKind.region: "regions",
    LocationKind.city: "cities",
    LocationKind.barangay: "barangays",
}

_PARENTS = {
    LocationKind.region: None,
    LocationKind.city: LocationKind.region,
    LocationKind.barangay: LocationKind.city,
}

_CHILDREN = {
    LocationKind.region: LocationKind.city,
    LocationKind.city: LocationKind.barangay,
    LocationKind.barangay: None,
}

# Columns every hierarchy table must have for the registry to work at all.
BASE_COLUMNS = frozenset({"id", "name", "is_active"})


def required_columns(kind: LocationKind) -> frozenset:
    if kind.parent_column is None:
        return BASE_COLUMNS
    return BASE_COLUMNS | {kind.parent_column}


def kind_for_table(table: str) -> LocationKind:
    """Reverse lookup; raises ValueError for anything outside the hierarchy."""
    for kind, name in _TABLES.items():
        if name == table:
            return kind
    raise ValueError(f"Unknown location table '{table}'")
