# wastemap/routers/auth.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, status

from wastemap.core.errors import Unauthorized
from wastemap.core.policy import Role
from wastemap.core.security import create_token, hash_password, verify_password
from wastemap.deps import get_repo
from wastemap.models.user import LoginIn, RegisterIn, TokenOut
from wastemap.routers.users import to_out

router = APIRouter(prefix="/api/auth", tags=["auth"])

@router.post("/register", response_model=TokenOut, status_code=status.HTTP_201_CREATED)
async def register(body: RegisterIn, repo=Depends(get_repo)):
    # every account starts as a plain user; roles change through /api/admin
    doc = await repo.create_user({
        "name": body.name.strip(),
        "email": body.email,
        "password_hash": hash_password(body.password),
        "role": Role.USER.value,
        "phone": body.phone,
        "address": body.address.model_dump() if body.address else None,
        "created_at": datetime.now(timezone.utc),
    })
    return {"access_token": create_token(doc["_id"]), "user": to_out(doc)}

@router.post("/login", response_model=TokenOut)
async def login(body: LoginIn, repo=Depends(get_repo)):
    user = await repo.find_user_by_email(body.email)
    if not user or not verify_password(body.password, user.get("password_hash", "")):
        raise Unauthorized("Invalid credentials")
    return {"access_token": create_token(user["_id"]), "user": to_out(user)}
