# wastemap/routers/pickups.py
from typing import Iterable, List, Optional

from fastapi import APIRouter, Depends, Query, status

from wastemap.core.config import settings
from wastemap.core.policy import Identity
from wastemap.core.security import get_identity
from wastemap.core.states import PickupStatus
from wastemap.deps import get_lifecycle
from wastemap.models.pickup import (
    AdvanceIn, AssignIn, PickupCreate, PickupOut, PickupPage, RatingIn,
)
from wastemap.routers.users import to_summary
from wastemap.services.lifecycle import PickupLifecycle

router = APIRouter(prefix="/api/pickups", tags=["pickups"])


def _serialize(doc: dict, people: Optional[dict] = None) -> PickupOut:
    people = people or {}
    owner = people.get(doc.get("owner_id"))
    collector = people.get(doc.get("assigned_collector_id"))
    data = {k: v for k, v in doc.items() if k != "_id"}
    data["id"] = str(doc["_id"])
    data["owner"] = to_summary(owner) if owner else None
    data["assigned_collector"] = to_summary(collector) if collector else None
    return PickupOut.model_validate(data)

async def serialize_many(repo, docs: Iterable[dict]) -> List[PickupOut]:
    """Serialize pickups with owner/collector summaries resolved in one lookup."""
    docs = list(docs)
    ids = set()
    for d in docs:
        ids.add(d.get("owner_id"))
        if d.get("assigned_collector_id"):
            ids.add(d["assigned_collector_id"])
    people = await repo.get_users_by_ids(i for i in ids if i)
    return [_serialize(d, people) for d in docs]

async def serialize_one(repo, doc: dict) -> PickupOut:
    return (await serialize_many(repo, [doc]))[0]


@router.post("", response_model=PickupOut, status_code=status.HTTP_201_CREATED)
async def create_pickup(
    body: PickupCreate,
    identity: Identity = Depends(get_identity),
    lifecycle: PickupLifecycle = Depends(get_lifecycle),
):
    saved = await lifecycle.create(identity, body)
    return await serialize_one(lifecycle.repo, saved)

@router.get("", response_model=PickupPage)
async def list_pickups(
    status_q: Optional[PickupStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_limit, ge=1),
    identity: Identity = Depends(get_identity),
    lifecycle: PickupLifecycle = Depends(get_lifecycle),
):
    result = await lifecycle.list_pickups(identity, status=status_q, page=page, limit=limit,
                                          max_limit=settings.max_page_limit)
    result["pickups"] = await serialize_many(lifecycle.repo, result["pickups"])
    return result

@router.get("/mine", response_model=List[PickupOut])
async def my_pickups(
    identity: Identity = Depends(get_identity),
    lifecycle: PickupLifecycle = Depends(get_lifecycle),
):
    return await serialize_many(lifecycle.repo, await lifecycle.list_mine(identity))

@router.get("/{pickup_id}", response_model=PickupOut)
async def get_pickup(
    pickup_id: str,
    identity: Identity = Depends(get_identity),
    lifecycle: PickupLifecycle = Depends(get_lifecycle),
):
    return await serialize_one(lifecycle.repo, await lifecycle.get(pickup_id, identity))

@router.patch("/{pickup_id}/assign", response_model=PickupOut)
async def assign_collector(
    pickup_id: str,
    body: AssignIn,
    identity: Identity = Depends(get_identity),
    lifecycle: PickupLifecycle = Depends(get_lifecycle),
):
    updated = await lifecycle.assign(pickup_id, body.collector_id, identity)
    return await serialize_one(lifecycle.repo, updated)

@router.patch("/{pickup_id}/status", response_model=PickupOut)
async def advance_status(
    pickup_id: str,
    body: AdvanceIn,
    identity: Identity = Depends(get_identity),
    lifecycle: PickupLifecycle = Depends(get_lifecycle),
):
    updated = await lifecycle.advance(pickup_id, body.status, identity, actual_duration=body.actual_duration)
    return await serialize_one(lifecycle.repo, updated)

@router.patch("/{pickup_id}/cancel", response_model=PickupOut)
async def cancel_pickup(
    pickup_id: str,
    identity: Identity = Depends(get_identity),
    lifecycle: PickupLifecycle = Depends(get_lifecycle),
):
    return await serialize_one(lifecycle.repo, await lifecycle.cancel(pickup_id, identity))

@router.patch("/{pickup_id}/rate", response_model=PickupOut)
async def rate_pickup(
    pickup_id: str,
    body: RatingIn,
    identity: Identity = Depends(get_identity),
    lifecycle: PickupLifecycle = Depends(get_lifecycle),
):
    updated = await lifecycle.rate(pickup_id, body.score, body.comment, identity)
    return await serialize_one(lifecycle.repo, updated)
