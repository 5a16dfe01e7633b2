import pytest
from httpx import AsyncClient

from conftest import auth_headers, pickup_payload

pytestmark = pytest.mark.anyio


async def _create(ac: AsyncClient, who, **overrides) -> dict:
    r = await ac.post("/api/pickups", headers=auth_headers(who), json=pickup_payload(**overrides))
    assert r.status_code == 201, r.text
    return r.json()


async def test_requires_bearer_token(test_client: AsyncClient):
    r = await test_client.get("/api/pickups")
    assert r.status_code == 401
    assert r.json()["kind"] == "unauthorized"

    r = await test_client.get("/api/pickups", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Invalid token"

async def test_create_and_read_back(test_client: AsyncClient, people):
    created = await _create(test_client, people["owner"], description="Old newspapers", waste_type="paper")
    assert created["status"] == "pending"
    assert created["owner"]["email"] == "owner@example.com"
    assert created["assigned_collector"] is None

    r = await test_client.get(f"/api/pickups/{created['id']}", headers=auth_headers(people["owner"]))
    assert r.status_code == 200
    assert r.json()["description"] == "Old newspapers"

async def test_create_rejects_unknown_waste_type(test_client: AsyncClient, people):
    r = await test_client.post("/api/pickups", headers=auth_headers(people["owner"]),
                               json=pickup_payload(waste_type="asbestos"))
    assert r.status_code == 422
    assert r.json()["kind"] == "validation_error"

async def test_full_lifecycle_over_http(test_client: AsyncClient, people):
    p = await _create(test_client, people["owner"])
    pid = p["id"]
    collector = auth_headers(people["collector"])

    r = await test_client.patch(f"/api/pickups/{pid}/assign", headers=collector,
                                json={"collector_id": people["collector"].user_id})
    assert r.status_code == 200, r.text
    assert r.json()["status"] == "assigned"
    assert r.json()["assigned_collector"]["name"] == "Collector"

    r = await test_client.patch(f"/api/pickups/{pid}/status", headers=collector, json={"status": "in-progress"})
    assert r.json()["status"] == "in-progress"

    r = await test_client.patch(f"/api/pickups/{pid}/status", headers=collector,
                                json={"status": "completed", "actual_duration": 25})
    body = r.json()
    assert body["status"] == "completed"
    assert body["completed_date"] is not None
    assert body["actual_duration"] == 25

    owner = auth_headers(people["owner"])
    r = await test_client.patch(f"/api/pickups/{pid}/rate", headers=owner, json={"score": 4, "comment": "Good"})
    assert r.status_code == 200
    assert r.json()["rating"]["score"] == 4

    r = await test_client.patch(f"/api/pickups/{pid}/rate", headers=owner, json={"score": 5})
    assert r.status_code == 409
    assert r.json()["kind"] == "conflict"

async def test_non_assignee_collector_gets_403(test_client: AsyncClient, people):
    p = await _create(test_client, people["owner"])
    r = await test_client.patch(f"/api/pickups/{p['id']}/status", headers=auth_headers(people["rival"]),
                                json={"status": "in-progress"})
    assert r.status_code == 403
    assert r.json()["kind"] == "forbidden"

    r = await test_client.patch(f"/api/pickups/{p['id']}/cancel", headers=auth_headers(people["owner"]))
    assert r.json()["status"] == "cancelled"

    r = await test_client.patch(f"/api/pickups/{p['id']}/status", headers=auth_headers(people["admin"]),
                                json={"status": "in-progress"})
    assert r.status_code == 409
    assert r.json()["kind"] == "invalid_transition"

async def test_admin_assign_to_plain_user_is_rejected(test_client: AsyncClient, people):
    p = await _create(test_client, people["owner"])
    r = await test_client.patch(f"/api/pickups/{p['id']}/assign", headers=auth_headers(people["admin"]),
                                json={"collector_id": people["neighbour"].user_id})
    assert r.status_code == 403
    r = await test_client.get(f"/api/pickups/{p['id']}", headers=auth_headers(people["admin"]))
    assert r.json()["status"] == "pending"

async def test_rate_before_completion(test_client: AsyncClient, people):
    p = await _create(test_client, people["owner"])
    r = await test_client.patch(f"/api/pickups/{p['id']}/rate", headers=auth_headers(people["owner"]),
                                json={"score": 3})
    assert r.status_code == 400
    assert r.json()["kind"] == "precondition_failed"

async def test_missing_pickup_is_404(test_client: AsyncClient, people):
    r = await test_client.patch("/api/pickups/000000000000000000000000/cancel", headers=auth_headers(people["admin"]))
    assert r.status_code == 404
    assert r.json() == {"detail": "Pickup not found", "kind": "not_found"}

async def test_listing_scope_and_pages(test_client: AsyncClient, people):
    for _ in range(3):
        await _create(test_client, people["owner"])
    await _create(test_client, people["neighbour"])

    r = await test_client.get("/api/pickups", headers=auth_headers(people["owner"]), params={"limit": 2})
    page = r.json()
    assert page["total"] == 3
    assert page["total_pages"] == 2
    assert page["current_page"] == 1
    assert len(page["pickups"]) == 2

    r = await test_client.get("/api/pickups", headers=auth_headers(people["collector"]),
                              params={"status": "pending"})
    assert r.json()["total"] == 4

    r = await test_client.get("/api/pickups/mine", headers=auth_headers(people["neighbour"]))
    assert len(r.json()) == 1

    r = await test_client.get("/api/pickups", headers=auth_headers(people["owner"]), params={"status": "lost"})
    assert r.status_code == 422

async def test_user_cannot_read_someone_elses_pickup(test_client: AsyncClient, people):
    p = await _create(test_client, people["owner"])
    r = await test_client.get(f"/api/pickups/{p['id']}", headers=auth_headers(people["neighbour"]))
    assert r.status_code == 403
