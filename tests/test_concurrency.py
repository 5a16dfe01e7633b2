import anyio
import pytest

from conftest import pickup_payload
from wastemap.core.errors import Conflict, Forbidden, InvalidTransition
from wastemap.repos.inmemory import InMemoryRepo

pytestmark = pytest.mark.anyio


class YieldingRepo(InMemoryRepo):
    """Gives other tasks a chance to run between reading and writing a pickup."""

    async def get_pickup(self, pickup_id):
        doc = await super().get_pickup(pickup_id)
        await anyio.sleep(0)
        return doc


@pytest.fixture
def repo():
    return YieldingRepo()


async def test_racing_advances_apply_once(lifecycle, people):
    p = await lifecycle.create(people["owner"], pickup_payload())
    await lifecycle.assign(p["_id"], people["collector"].user_id, people["collector"])
    outcomes = []

    async def attempt(status):
        try:
            await lifecycle.advance(p["_id"], status, people["collector"])
            outcomes.append("ok")
        except (InvalidTransition, Conflict):
            outcomes.append("rejected")

    async with anyio.create_task_group() as tg:
        tg.start_soon(attempt, "in-progress")
        tg.start_soon(attempt, "in-progress")
        tg.start_soon(attempt, "completed")

    assert outcomes.count("ok") == 1
    assert outcomes.count("rejected") == 2
    stored = await lifecycle.repo.get_pickup(p["_id"])
    assert stored["status"] == "in-progress"
    assert stored["completed_date"] is None
    assert stored["version"] == 3

async def test_racing_claims_first_wins(lifecycle, people):
    p = await lifecycle.create(people["owner"], pickup_payload())
    winners = []

    async def claim(name):
        try:
            await lifecycle.assign(p["_id"], people[name].user_id, people[name])
            winners.append(name)
        except (Forbidden, Conflict):
            pass

    async with anyio.create_task_group() as tg:
        tg.start_soon(claim, "collector")
        tg.start_soon(claim, "rival")

    assert len(winners) == 1
    stored = await lifecycle.repo.get_pickup(p["_id"])
    assert stored["status"] == "assigned"
    assert stored["assigned_collector_id"] == people[winners[0]].user_id

async def test_racing_ratings_store_one(lifecycle, people):
    p = await lifecycle.create(people["owner"], pickup_payload())
    await lifecycle.assign(p["_id"], people["collector"].user_id, people["admin"])
    await lifecycle.advance(p["_id"], "in-progress", people["collector"])
    await lifecycle.advance(p["_id"], "completed", people["collector"])
    results = []

    async def rate(score):
        try:
            await lifecycle.rate(p["_id"], score, None, people["owner"])
            results.append(score)
        except Conflict:
            pass

    async with anyio.create_task_group() as tg:
        tg.start_soon(rate, 5)
        tg.start_soon(rate, 2)

    stored = await lifecycle.repo.get_pickup(p["_id"])
    assert results == [stored["rating"]["score"]]
