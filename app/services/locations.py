"""
Location registry service: the public operations behind the locations API.

Each call opens exactly one transaction, runs validator / planner / store
against it, then commits. Any StorageError rolls the whole call back.
"""

from __future__ import annotations

import logging
import re
import secrets
import time
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from app.db.schema import SchemaProbe
from app.services.deletion import CascadeDeletionPlanner, DependencyReport
from app.services.errors import NotFound, StorageError
from app.services.kinds import LocationKind
from app.services.store import LocationStore
from app.services.validator import HierarchyValidator

log = logging.getLogger(__name__)

StoreFactory = Callable[[Connection, SchemaProbe], LocationStore]


def generate_code(kind: LocationKind, name: str) -> str:
    """
    Derived code: R_NCR_1718000000A1F3.

    Prefix letter per kind, up to 10 uppercased alphanumerics of the name,
    then unix seconds plus a short random suffix. Not guaranteed unique;
    the storage layer decides.
    """
    slug = re.sub(r"[^A-Za-z0-9]", "", name).upper()[:10]
    return f"{kind.code_prefix}_{slug}_{int(time.time())}{secrets.token_hex(2).upper()}"


@dataclass
class Deleted:
    kind: LocationKind
    id: int
    name: str
    city_count: int
    barangay_count: int
    message: str


@dataclass
class Blocked:
    report: DependencyReport
    message: str


DeletionOutcome = Union[Deleted, Blocked]


def _blocked_message(report: DependencyReport) -> str:
    if report.kind is LocationKind.region:
        return (
            f"Cannot delete region '{report.name}' that contains "
            f"{report.city_count} cities and {report.barangay_count} barangays."
        )
    return (
        f"Cannot delete {report.kind.value} '{report.name}' that contains "
        f"{report.barangay_count} barangays."
    )


def _deleted_message(report: DependencyReport) -> str:
    head = f"{report.kind.label} '{report.name}'"
    if not report.has_dependents:
        return f"{head} deleted successfully"
    if report.kind is LocationKind.region:
        return (
            f"{head} and all its {report.city_count} cities and "
            f"{report.barangay_count} barangays deleted successfully"
        )
    return f"{head} and all its {report.barangay_count} barangays deleted successfully"


class LocationService:
    def __init__(
        self,
        engine: Engine,
        probe: Optional[SchemaProbe] = None,
        store_factory: StoreFactory = LocationStore,
    ):
        self.engine = engine
        self.probe = probe or SchemaProbe()
        self.store_factory = store_factory

    @contextmanager
    def _transaction(self) -> Iterator[LocationStore]:
        """One transaction per public call; rolled back on any exception."""
        try:
            with self.engine.begin() as conn:
                yield self.store_factory(conn, self.probe)
        except SQLAlchemyError as e:
            # begin()/commit() failures; statement failures arrive as StorageError
            raise StorageError(f"Transaction failed: {e}") from e

    # ------------------------------ Reads ------------------------------

    def list_all(self) -> List[Dict[str, Any]]:
        """Active regions -> cities -> barangays, each level ordered by name."""
        with self._transaction() as store:
            regions = store.list_active(LocationKind.region)
            cities = store.list_active_children(
                LocationKind.city, [r["id"] for r in regions]
            )
            barangays = store.list_active_children(
                LocationKind.barangay, [c["id"] for c in cities]
            )

        barangays_by_city: Dict[int, List[dict]] = {}
        for b in barangays:
            barangays_by_city.setdefault(b["city_id"], []).append(b)

        cities_by_region: Dict[int, List[dict]] = {}
        for c in cities:
            c["barangays"] = barangays_by_city.get(c["id"], [])
            cities_by_region.setdefault(c["region_id"], []).append(c)

        for r in regions:
            r["cities"] = cities_by_region.get(r["id"], [])
        return regions

    def list_regions(self) -> List[Dict[str, Any]]:
        with self._transaction() as store:
            return store.list_active(LocationKind.region)

    def list_cities(self, region_id: int) -> List[Dict[str, Any]]:
        with self._transaction() as store:
            return store.list_active(LocationKind.city, parent_id=region_id)

    def list_barangays(self, city_id: int) -> List[Dict[str, Any]]:
        with self._transaction() as store:
            return store.list_active(LocationKind.barangay, parent_id=city_id)

    def get_statistics(self) -> Dict[str, int]:
        with self._transaction() as store:
            stats = {
                kind.plural: store.count_active(kind) for kind in LocationKind
            }
        stats["total"] = sum(stats.values())
        return stats

    # ------------------------------ Create ------------------------------

    def add_region(
        self, name: str, description: Optional[str] = None, modified_by: Optional[str] = None
    ) -> Dict[str, Any]:
        return self._add(LocationKind.region, name, None, description, modified_by)

    def add_city(
        self,
        region_id: int,
        name: str,
        description: Optional[str] = None,
        modified_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._add(LocationKind.city, name, region_id, description, modified_by)

    def add_barangay(
        self,
        city_id: int,
        name: str,
        description: Optional[str] = None,
        modified_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        return self._add(LocationKind.barangay, name, city_id, description, modified_by)

    def _add(
        self,
        kind: LocationKind,
        name: str,
        parent_id: Optional[int],
        description: Optional[str],
        modified_by: Optional[str],
    ) -> Dict[str, Any]:
        with self._transaction() as store:
            validator = HierarchyValidator(store)
            validator.validate_parent(kind, parent_id)
            validator.validate_unique_name(kind, name, parent_id=parent_id)

            cols = store.columns(kind)
            fields: Dict[str, Any] = {"name": name, "is_active": True}
            if kind.parent_column is not None:
                fields[kind.parent_column] = parent_id
            if "description" in cols:
                fields["description"] = description
            if "code" in cols:
                fields["code"] = generate_code(kind, name)
            fields.update(self._audit_fields(cols, modified_by))

            new_id = store.insert(kind, fields)
            row = store.find_by_id(kind, new_id)

        log.info("Added %s %s (%s)", kind.value, new_id, name)
        return row

    # ------------------------------ Update ------------------------------

    def update_node(
        self,
        kind: LocationKind,
        node_id: int,
        name: str,
        description: Optional[str] = None,
        parent_id: Optional[int] = None,
        modified_by: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Rename a node (and optionally move a city/barangay to another parent).

        Without parent_id the node keeps its current parent, which is also
        the scope of the duplicate check.
        """
        with self._transaction() as store:
            node = store.find_by_id(kind, node_id)
            if node is None:
                raise NotFound(kind, node_id)

            scope_id = None
            if kind.parent_column is not None:
                scope_id = parent_id if parent_id is not None else node.get(kind.parent_column)

            validator = HierarchyValidator(store)
            validator.validate_parent(kind, scope_id)
            validator.validate_unique_name(
                kind, name, parent_id=scope_id, exclude_id=node_id
            )

            cols = store.columns(kind)
            fields: Dict[str, Any] = {"name": name}
            if kind.parent_column is not None:
                fields[kind.parent_column] = scope_id
            if "description" in cols:
                fields["description"] = description
            fields.update(self._audit_fields(cols, modified_by))

            store.update(kind, node_id, fields)
            row = store.find_by_id(kind, node_id)

        log.info("Updated %s %s (%s)", kind.value, node_id, name)
        return row

    # ------------------------------ Delete ------------------------------

    def delete_node(
        self, kind: LocationKind, node_id: int, cascade: bool = False
    ) -> DeletionOutcome:
        with self._transaction() as store:
            plan = CascadeDeletionPlanner(store).plan(kind, node_id, cascade)
            report = plan.report

            if plan.blocked:
                return Blocked(report=report, message=_blocked_message(report))

            for step in plan.steps:
                store.delete_rows(step.kind, step.ids)

        log.info(
            "Deleted %s %s (%s), cascade=%s, steps=%s",
            kind.value,
            node_id,
            report.name,
            cascade,
            [(s.kind.value, len(s.ids)) for s in plan.steps],
        )
        return Deleted(
            kind=kind,
            id=node_id,
            name=report.name,
            city_count=report.city_count or 0,
            barangay_count=report.barangay_count,
            message=_deleted_message(report),
        )

    # ------------------------------ Helpers ------------------------------

    @staticmethod
    def _audit_fields(cols: frozenset, modified_by: Optional[str]) -> Dict[str, Any]:
        fields: Dict[str, Any] = {}
        if "modified_by" in cols and modified_by is not None:
            fields["modified_by"] = modified_by
        if "modified_at" in cols:
            fields["modified_at"] = datetime.now(timezone.utc)
        return fields
