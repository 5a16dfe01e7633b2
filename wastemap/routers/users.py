# wastemap/routers/users.py
from typing import List

from fastapi import APIRouter, Depends

from wastemap.core.errors import NotFound
from wastemap.core.policy import Identity, Role
from wastemap.core.security import get_identity
from wastemap.deps import get_repo
from wastemap.models.pickup import UserSummary
from wastemap.models.user import ProfileUpdate, UserOut

router = APIRouter(prefix="/api/users", tags=["users"])

# helper to convert stored user docs to UserOut (never exposes password_hash)
def to_out(doc: dict) -> UserOut:
    return UserOut(
        id=str(doc["_id"]),
        name=doc.get("name", ""),
        email=doc["email"],
        role=doc.get("role", Role.USER.value),
        phone=doc.get("phone"),
        address=doc.get("address"),
        created_at=doc.get("created_at"),
    )

def to_summary(doc: dict) -> UserSummary:
    return UserSummary(id=str(doc["_id"]), name=doc.get("name"), email=doc.get("email"), phone=doc.get("phone"))


@router.get("/profile", response_model=UserOut)
async def get_profile(identity: Identity = Depends(get_identity), repo=Depends(get_repo)):
    user = await repo.get_user(identity.user_id)
    if not user:
        raise NotFound("User not found")
    return to_out(user)

@router.put("/profile", response_model=UserOut)
async def update_profile(body: ProfileUpdate, identity: Identity = Depends(get_identity), repo=Depends(get_repo)):
    fields = body.model_dump(exclude_unset=True)
    if not fields:
        user = await repo.get_user(identity.user_id)
    else:
        user = await repo.update_user(identity.user_id, fields)
    if not user:
        raise NotFound("User not found")
    return to_out(user)

@router.get("/collectors", response_model=List[UserSummary])
async def list_collectors(identity: Identity = Depends(get_identity), repo=Depends(get_repo)):
    return [to_summary(u) for u in await repo.list_users(Role.COLLECTOR.value)]
