# tests/conftest.py
from datetime import datetime, timedelta, timezone

import pytest
from asgi_lifespan import LifespanManager
from httpx import ASGITransport, AsyncClient

from wastemap.core.policy import Identity, Role
from wastemap.core.security import create_token, hash_password
from wastemap.deps import get_repo
from wastemap.main import app
from wastemap.repos.inmemory import InMemoryRepo
from wastemap.services.lifecycle import PickupLifecycle

T0 = datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now=T0):
        self.now = now

    def __call__(self):
        return self.now

    def tick(self, minutes=1):
        self.now += timedelta(minutes=minutes)


@pytest.fixture(scope="session")
def anyio_backend():
    # keep AnyIO on asyncio for the whole test session
    return "asyncio"

@pytest.fixture
def repo():
    return InMemoryRepo()

@pytest.fixture
def clock():
    return FixedClock()

@pytest.fixture
def lifecycle(repo, clock):
    return PickupLifecycle(repo, clock=clock)


async def _add_user(repo, name, role):
    doc = await repo.create_user({
        "name": name.title(),
        "email": f"{name}@example.com",
        "password_hash": hash_password("secret123"),
        "role": role.value,
        "phone": "0712345678",
        "address": None,
        "created_at": T0,
    })
    return Identity(user_id=doc["_id"], role=role)

@pytest.fixture
async def people(repo):
    """owner, neighbour (both users), collector, rival collector and admin."""
    return {
        "owner": await _add_user(repo, "owner", Role.USER),
        "neighbour": await _add_user(repo, "neighbour", Role.USER),
        "collector": await _add_user(repo, "collector", Role.COLLECTOR),
        "rival": await _add_user(repo, "rival", Role.COLLECTOR),
        "admin": await _add_user(repo, "admin", Role.ADMIN),
    }

def auth_headers(identity: Identity) -> dict:
    return {"Authorization": f"Bearer {create_token(identity.user_id)}"}

def pickup_payload(**overrides) -> dict:
    body = {
        "address": {"street": "12 Moi Avenue", "city": "Nairobi", "state": "Nairobi", "zip_code": "00100"},
        "waste_type": "plastic",
        "quantity": "small",
        "description": "Two bags of bottles",
        "scheduled_date": "2026-03-05T08:00:00+00:00",
    }
    body.update(overrides)
    return body

@pytest.fixture
async def test_client(repo):
    app.dependency_overrides[get_repo] = lambda: repo
    async with LifespanManager(app):
        transport = ASGITransport(app=app, raise_app_exceptions=True)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    app.dependency_overrides.clear()
