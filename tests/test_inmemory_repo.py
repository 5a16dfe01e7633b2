import pytest

from wastemap.core.errors import Conflict

pytestmark = pytest.mark.anyio


async def test_conditional_update_only_matches_expected(repo):
    p = await repo.insert_pickup({"status": "pending", "assigned_collector_id": None,
                                  "created_at": 1, "version": 1})

    first = await repo.update_pickup_if(p["_id"], {"status": "pending"}, {"status": "assigned"},
                                        event={"to_status": "assigned"})
    second = await repo.update_pickup_if(p["_id"], {"status": "pending"}, {"status": "cancelled"})

    assert first["status"] == "assigned" and first["version"] == 2
    assert second is None
    stored = await repo.get_pickup(p["_id"])
    assert stored["status"] == "assigned"
    assert stored["history"] == [{"to_status": "assigned"}]

async def test_returned_docs_are_copies(repo):
    p = await repo.insert_pickup({"status": "pending", "created_at": 1})
    got = await repo.get_pickup(p["_id"])
    got["status"] = "completed"
    assert (await repo.get_pickup(p["_id"]))["status"] == "pending"

async def test_list_filters_with_membership(repo):
    for i, status in enumerate(["pending", "assigned", "in-progress", "completed"]):
        await repo.insert_pickup({"status": status, "owner_id": "u1", "created_at": i})
    active = await repo.list_pickups({"status": ["assigned", "in-progress"]})
    assert [p["status"] for p in active] == ["in-progress", "assigned"]
    assert await repo.count_pickups({"owner_id": "u1"}) == 4
    assert [p["status"] for p in await repo.list_pickups({}, skip=1, limit=2)] == ["in-progress", "assigned"]

async def test_unique_email(repo):
    await repo.create_user({"email": "a@example.com", "role": "user"})
    with pytest.raises(Conflict):
        await repo.create_user({"email": "A@example.com", "role": "user"})
