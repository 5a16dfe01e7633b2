# wastemap/routers/admin.py
from typing import List

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from wastemap.core.errors import Conflict, NotFound
from wastemap.core.policy import Identity, Role
from wastemap.core.security import require_admin
from wastemap.core.states import ASSIGNED_STATES
from wastemap.deps import get_lifecycle, get_repo
from wastemap.models.pickup import AdminStats, OverrideIn, PickupOut
from wastemap.models.user import RoleUpdate, UserOut
from wastemap.routers.pickups import serialize_many, serialize_one
from wastemap.routers.users import to_out
from wastemap.services.lifecycle import PickupLifecycle
from wastemap.services.stats import compute_overview, plot_status_png

router = APIRouter(prefix="/api/admin", tags=["admin"])

@router.get("/users", response_model=List[UserOut])
async def list_users(admin: Identity = Depends(require_admin), repo=Depends(get_repo)):
    return [to_out(u) for u in await repo.list_users()]

@router.put("/users/{user_id}/role", response_model=UserOut)
async def update_role(user_id: str, body: RoleUpdate, admin: Identity = Depends(require_admin), repo=Depends(get_repo)):
    user = await repo.get_user(user_id)
    if not user:
        raise NotFound("User not found")

    # assignments must always point at a collector
    if user.get("role") == Role.COLLECTOR.value and body.role is not Role.COLLECTOR:
        held = await repo.count_pickups({
            "assigned_collector_id": user_id,
            "status": sorted(s.value for s in ASSIGNED_STATES),
        })
        if held:
            raise Conflict(f"Collector still holds {held} assigned pickup(s)")

    user = await repo.update_user(user_id, {"role": body.role.value})
    if not user:
        raise NotFound("User not found")
    return to_out(user)

@router.get("/stats", response_model=AdminStats)
async def stats(admin: Identity = Depends(require_admin), repo=Depends(get_repo)):
    overview = await compute_overview(repo)
    recent = await serialize_many(repo, overview["recent_pickups"])
    overview["recent_pickups"] = [p.model_dump(mode="json", exclude={"history"}) for p in recent]
    return overview

@router.get("/stats/status.png")
async def stats_chart(admin: Identity = Depends(require_admin), repo=Depends(get_repo)):
    buf = await plot_status_png(repo)
    return StreamingResponse(buf, media_type="image/png")

@router.patch("/pickups/{pickup_id}/status", response_model=PickupOut)
async def override_status(
    pickup_id: str,
    body: OverrideIn,
    admin: Identity = Depends(require_admin),
    lifecycle: PickupLifecycle = Depends(get_lifecycle),
):
    updated = await lifecycle.override_status(pickup_id, body.status, admin, note=body.note)
    return await serialize_one(lifecycle.repo, updated)
