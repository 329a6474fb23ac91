# tests/test_locations_api.py

"""
HTTP mapping of the registry outcomes:

- 201 on create, 422 on duplicate / missing parent, 404 on unknown node
- 422 + dependency report on a blocked delete, 200 after cascade
- 500 with a generic message on storage failure
"""

from app.services.errors import StorageError
from app.services.locations import LocationService


def _create(client, path, **payload):
    response = client.post(f"/api/v1/locations/{path}", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_ping(client):
    assert client.get("/ping").json() == {"ok": True}


def test_region_create_and_duplicate(client):
    region = _create(client, "regions", name="NCR")
    assert region["id"] == 1
    assert region["name"] == "NCR"

    response = client.post("/api/v1/locations/regions", json={"name": "ncr"})
    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "A region with this name already exists: NCR"


def test_city_scope_and_missing_parent(client):
    r1 = _create(client, "regions", name="NCR")
    r2 = _create(client, "regions", name="Region VII")
    _create(client, "cities", region_id=r1["id"], name="Manila")

    dup = client.post(
        "/api/v1/locations/cities", json={"region_id": r1["id"], "name": "manila"}
    )
    assert dup.status_code == 422

    other = _create(client, "cities", region_id=r2["id"], name="Manila")
    assert other["region_id"] == r2["id"]

    missing = client.post(
        "/api/v1/locations/cities", json={"region_id": 99, "name": "Ghost Town"}
    )
    assert missing.status_code == 422
    assert missing.json()["parent_id"] == 99


def test_request_field_validation(client):
    response = client.post("/api/v1/locations/regions", json={"name": ""})
    assert response.status_code == 422
    assert response.json()["message"] == "Validation error"


def test_modified_by_comes_from_header_or_default(client):
    with_header = client.post(
        "/api/v1/locations/regions",
        json={"name": "NCR"},
        headers={"X-Modified-By": "jdoe"},
    ).json()["data"]
    assert with_header["modified_by"] == "jdoe"

    default = _create(client, "regions", name="Region VII")
    assert default["modified_by"] == "system"


def test_update_and_not_found(client):
    region = _create(client, "regions", name="NCR")
    city = _create(client, "cities", region_id=region["id"], name="Manila")

    response = client.put(
        f"/api/v1/locations/city/{city['id']}",
        json={"name": "City of Manila", "description": "Capital"},
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "City of Manila"
    assert data["region_id"] == region["id"]
    assert response.json()["message"] == "City updated successfully"

    missing = client.put("/api/v1/locations/region/404", json={"name": "X"})
    assert missing.status_code == 404
    assert missing.json()["message"] == "Region not found"


def test_unknown_kind_is_rejected(client):
    response = client.delete("/api/v1/locations/province/1")
    assert response.status_code == 422


def test_delete_flow_blocked_then_cascade(client):
    region = _create(client, "regions", name="NCR")
    city = _create(client, "cities", region_id=region["id"], name="Manila")
    barangay = _create(client, "barangays", city_id=city["id"], name="Tondo")

    blocked = client.delete(f"/api/v1/locations/city/{city['id']}")
    assert blocked.status_code == 422
    assert blocked.json()["data"] == {
        "can_cascade": True,
        "type": "city",
        "id": city["id"],
        "name": "Manila",
        "barangay_count": 1,
    }

    blocked = client.delete(
        f"/api/v1/locations/region/{region['id']}", params={"cascade": "false"}
    )
    assert blocked.status_code == 422
    report = blocked.json()["data"]
    assert (report["city_count"], report["barangay_count"]) == (1, 1)

    done = client.delete(
        f"/api/v1/locations/region/{region['id']}", params={"cascade": "true"}
    )
    assert done.status_code == 200
    assert done.json()["success"] is True

    assert client.get("/api/v1/locations").json()["data"] == []
    assert client.get(f"/api/v1/locations/cities/{city['id']}/barangays").json()[
        "data"
    ] == []
    stats = client.get("/api/v1/locations/statistics").json()["data"]
    assert stats == {"regions": 0, "cities": 0, "barangays": 0, "total": 0}

    gone = client.delete(f"/api/v1/locations/barangay/{barangay['id']}")
    assert gone.status_code == 404


def test_hierarchy_listing(client):
    region = _create(client, "regions", name="NCR")
    manila = _create(client, "cities", region_id=region["id"], name="Manila")
    _create(client, "barangays", city_id=manila["id"], name="Tondo")
    _create(client, "barangays", city_id=manila["id"], name="Ermita")

    data = client.get("/api/v1/locations").json()["data"]
    assert data[0]["name"] == "NCR"
    assert [b["name"] for b in data[0]["cities"][0]["barangays"]] == ["Ermita", "Tondo"]

    regions = client.get("/api/v1/locations/regions").json()["data"]
    assert [r["name"] for r in regions] == ["NCR"]
    cities = client.get(f"/api/v1/locations/regions/{region['id']}/cities").json()["data"]
    assert [c["name"] for c in cities] == ["Manila"]


def test_storage_failure_maps_to_500(client, monkeypatch):
    def boom(self, *args, **kwargs):
        raise StorageError("connection reset")

    monkeypatch.setattr(LocationService, "get_statistics", boom)
    response = client.get("/api/v1/locations/statistics")
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Storage operation failed"}


def test_duplicate_preview_and_db_inspection(client):
    _create(client, "regions", name="NCR")

    assert client.get("/api/v1/locations/duplicates/region").json()["data"] == []

    assert client.get("/api/v1/db/ping").json()["ok"] is True
    columns = client.get("/api/v1/db/columns").json()
    assert columns["barangays"]["missing_optional"] == []
    assert "city_id" in columns["barangays"]["present"]
    assert client.get("/api/v1/db/counts").json() == {
        "regions": 1,
        "cities": 0,
        "barangays": 0,
    }
