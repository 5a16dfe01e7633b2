# wastemap/core/security.py
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, ExpiredSignatureError, JWTError
from passlib.context import CryptContext

from wastemap.core.config import settings
from wastemap.core.errors import Forbidden, Unauthorized
from wastemap.core.policy import Identity, Role
from wastemap.deps import get_repo

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password or "")

def verify_password(password: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(password or "", hashed)
    except (ValueError, TypeError):
        # empty or legacy hash formats
        return False

def create_token(sub: str, minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    payload: Dict[str, Any] = {
        "sub": sub,
        "iat": now,
        "exp": now + timedelta(minutes=minutes or settings.access_ttl_min),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)

def decode_token(token: str) -> str:
    try:
        data = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
    except ExpiredSignatureError:
        raise Unauthorized("Token expired")
    except JWTError:
        raise Unauthorized("Invalid token")
    sub = data.get("sub")
    if not sub:
        raise Unauthorized("Invalid token")
    return sub


async def get_identity(request: Request, token: Optional[str] = Depends(oauth2_scheme),
                       repo=Depends(get_repo)) -> Identity:
    """Resolve the bearer token to a verified Identity.

    The role comes from the stored user, never from the token payload.
    """
    if not token:
        raise Unauthorized("Missing token")
    user = await repo.get_user(decode_token(token))
    if not user:
        raise Unauthorized("User not found")
    request.state.user_id = user["_id"]
    return Identity(user_id=user["_id"], role=Role(user["role"]))


async def require_admin(identity: Identity = Depends(get_identity)) -> Identity:
    if not identity.is_admin:
        raise Forbidden("Admin access required")
    return identity
