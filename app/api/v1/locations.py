"""
Location registry endpoints.

- Listing (full hierarchy, per level) and statistics.
- Create region / city / barangay.
- Update and delete by kind, with an explicit `cascade` flag on delete.

Field-level validation happens here (pydantic models); everything else is
delegated to LocationService. Errors are mapped in app/main.py.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.core.deps import get_actor, get_location_service
from app.services.dedup import preview_duplicates
from app.services.kinds import LocationKind
from app.services.locations import Blocked, LocationService

router = APIRouter(prefix="/locations")


# ----------------------------- Payloads -----------------------------


class RegionIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=500)


class CityIn(RegionIn):
    region_id: int


class BarangayIn(RegionIn):
    city_id: int


class LocationUpdate(RegionIn):
    # Parent to move a city/barangay to; ignored for regions.
    region_id: Optional[int] = None
    city_id: Optional[int] = None


# ------------------------------ Reads ------------------------------


@router.get("")
def list_locations(service: LocationService = Depends(get_location_service)):
    """Full hierarchy: active regions with nested cities and barangays."""
    return {"success": True, "data": service.list_all()}


@router.get("/regions")
def list_regions(service: LocationService = Depends(get_location_service)):
    return {"success": True, "data": service.list_regions()}


@router.get("/regions/{region_id}/cities")
def list_cities(region_id: int, service: LocationService = Depends(get_location_service)):
    return {"success": True, "data": service.list_cities(region_id)}


@router.get("/cities/{city_id}/barangays")
def list_barangays(city_id: int, service: LocationService = Depends(get_location_service)):
    return {"success": True, "data": service.list_barangays(city_id)}


@router.get("/statistics")
def location_statistics(service: LocationService = Depends(get_location_service)):
    return {"success": True, "data": service.get_statistics()}


@router.get("/duplicates/{kind}")
def duplicate_preview(
    kind: LocationKind, service: LocationService = Depends(get_location_service)
):
    """Preview active siblings sharing a name (read-only diagnostics)."""
    with service.engine.connect() as conn:
        return {"success": True, "data": preview_duplicates(conn, kind)}


# ------------------------------ Create ------------------------------


@router.post("/regions", status_code=201)
def add_region(
    payload: RegionIn,
    service: LocationService = Depends(get_location_service),
    actor: str = Depends(get_actor),
):
    region = service.add_region(payload.name, payload.description, modified_by=actor)
    return {"success": True, "message": "Region added successfully", "data": region}


@router.post("/cities", status_code=201)
def add_city(
    payload: CityIn,
    service: LocationService = Depends(get_location_service),
    actor: str = Depends(get_actor),
):
    city = service.add_city(
        payload.region_id, payload.name, payload.description, modified_by=actor
    )
    return {"success": True, "message": "City added successfully", "data": city}


@router.post("/barangays", status_code=201)
def add_barangay(
    payload: BarangayIn,
    service: LocationService = Depends(get_location_service),
    actor: str = Depends(get_actor),
):
    barangay = service.add_barangay(
        payload.city_id, payload.name, payload.description, modified_by=actor
    )
    return {"success": True, "message": "Barangay added successfully", "data": barangay}


# --------------------------- Update / Delete ---------------------------


@router.put("/{kind}/{node_id}")
def update_location(
    kind: LocationKind,
    node_id: int,
    payload: LocationUpdate,
    service: LocationService = Depends(get_location_service),
    actor: str = Depends(get_actor),
):
    parent_id = None
    if kind is LocationKind.city:
        parent_id = payload.region_id
    elif kind is LocationKind.barangay:
        parent_id = payload.city_id

    node = service.update_node(
        kind,
        node_id,
        payload.name,
        payload.description,
        parent_id=parent_id,
        modified_by=actor,
    )
    return {"success": True, "message": f"{kind.label} updated successfully", "data": node}


@router.delete("/{kind}/{node_id}")
def delete_location(
    kind: LocationKind,
    node_id: int,
    cascade: bool = Query(False),
    service: LocationService = Depends(get_location_service),
):
    """
    Delete a node.

    With children and cascade=false → 422 with the dependency report so the
    caller can confirm and retry with cascade=true.
    """
    outcome = service.delete_node(kind, node_id, cascade=cascade)

    if isinstance(outcome, Blocked):
        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "message": outcome.message,
                "data": outcome.report.to_dict(),
            },
        )

    return {"success": True, "message": outcome.message}
