"""
Deletion planning for location nodes.

The planner only reads. It decides whether a delete may run, must be
blocked until the caller confirms a cascade, or must cascade, and it
returns the ordered list of row deletions. LocationService executes the
plan inside its own transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from app.services.errors import NotFound
from app.services.kinds import LocationKind
from app.services.store import LocationStore

log = logging.getLogger(__name__)


class DeletionAction(str, Enum):
    EXECUTE = "execute"
    BLOCKED = "blocked"
    EXECUTE_CASCADE = "execute_cascade"


@dataclass
class DependencyReport:
    """
    Active dependents of a node.

    Attributes:
        kind: Kind of the node being deleted.
        id: Node id.
        name: Node name, for the confirmation prompt.
        city_count: Direct active cities (regions only).
        barangay_count: Active barangays directly under a city, or summed
            over the active cities of a region.
    """

    kind: LocationKind
    id: int
    name: str
    city_count: Optional[int] = None
    barangay_count: int = 0

    @property
    def has_dependents(self) -> bool:
        return bool(self.city_count) or bool(self.barangay_count)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "can_cascade": True,
            "type": self.kind.value,
            "id": self.id,
            "name": self.name,
        }
        if self.kind is LocationKind.region:
            data["city_count"] = self.city_count or 0
        data["barangay_count"] = self.barangay_count
        return data


@dataclass
class DeletionStep:
    kind: LocationKind
    ids: List[int]


@dataclass
class DeletionPlan:
    action: DeletionAction
    kind: LocationKind
    target: Dict[str, Any]
    report: DependencyReport
    steps: List[DeletionStep] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return self.action is DeletionAction.BLOCKED


class CascadeDeletionPlanner:
    def __init__(self, store: LocationStore):
        self.store = store

    def dependency_report(self, kind: LocationKind, target: Dict[str, Any]) -> DependencyReport:
        report = DependencyReport(kind=kind, id=target["id"], name=target["name"])

        if kind is LocationKind.region:
            cities = self.store.list_active(LocationKind.city, parent_id=target["id"])
            report.city_count = len(cities)
            report.barangay_count = sum(
                self.store.count_active(LocationKind.barangay, parent_id=c["id"])
                for c in cities
            )
        elif kind is LocationKind.city:
            report.barangay_count = self.store.count_active(
                LocationKind.barangay, parent_id=target["id"]
            )
        return report

    def plan(self, kind: LocationKind, node_id: int, cascade_requested: bool) -> DeletionPlan:
        target = self.store.find_by_id(kind, node_id)
        if target is None:
            raise NotFound(kind, node_id)

        report = self.dependency_report(kind, target)

        if report.has_dependents and not cascade_requested:
            log.info(
                "Delete of %s %s blocked: %s", kind.value, node_id, report.to_dict()
            )
            return DeletionPlan(
                action=DeletionAction.BLOCKED, kind=kind, target=target, report=report
            )

        action = (
            DeletionAction.EXECUTE_CASCADE
            if report.has_dependents
            else DeletionAction.EXECUTE
        )
        return DeletionPlan(
            action=action,
            kind=kind,
            target=target,
            report=report,
            steps=self._steps(kind, node_id),
        )

    def _steps(self, kind: LocationKind, node_id: int) -> List[DeletionStep]:
        """
        Deepest level first, target last.

        Descendant rows are collected regardless of is_active so that no
        row is left referencing a deleted parent.
        """
        levels = [DeletionStep(kind, [node_id])]
        parent_ids = [node_id]
        child = kind.child
        while child is not None:
            ids = self.store.child_ids(child, parent_ids)
            if not ids:
                break
            levels.append(DeletionStep(child, ids))
            parent_ids = ids
            child = child.child

        return list(reversed(levels))
