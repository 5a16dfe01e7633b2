# wastemap/core/policy.py
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Role(str, Enum):
    USER = "user"
    COLLECTOR = "collector"
    ADMIN = "admin"


ROLE_SCOPES = {
    "admin": ["*"],
    "collector": ["pickups:create", "pickups:view_all", "pickups:self_assign", "pickups:advance"],
    "user": ["pickups:create"],
}


@dataclass(frozen=True)
class Identity:
    """Verified caller, built by the auth gate from the stored user record."""
    user_id: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_collector(self) -> bool:
        return self.role == Role.COLLECTOR


def has_scope(identity: Identity, scope: str) -> bool:
    scopes = ROLE_SCOPES.get(identity.role.value, [])
    return "*" in scopes or scope in scopes


def can_view_all(identity: Identity) -> bool:
    return has_scope(identity, "pickups:view_all")


def can_view(identity: Identity, pickup: dict) -> bool:
    return can_view_all(identity) or pickup.get("owner_id") == identity.user_id


def is_assignee(identity: Identity, pickup: dict) -> bool:
    return identity.is_collector and pickup.get("assigned_collector_id") == identity.user_id


def can_assign(identity: Identity, collector_id: str) -> bool:
    # admins assign anyone; collectors only claim for themselves
    if identity.is_admin:
        return True
    return has_scope(identity, "pickups:self_assign") and collector_id == identity.user_id


def can_advance(identity: Identity, pickup: dict) -> bool:
    return identity.is_admin or (has_scope(identity, "pickups:advance") and is_assignee(identity, pickup))


def can_cancel(identity: Identity, pickup: dict) -> bool:
    return identity.is_admin or pickup.get("owner_id") == identity.user_id or is_assignee(identity, pickup)


def can_rate(identity: Identity, pickup: dict) -> bool:
    return pickup.get("owner_id") == identity.user_id


def can_override(identity: Identity) -> bool:
    return identity.is_admin


def owner_scope(identity: Identity) -> Optional[str]:
    """Owner filter to apply to listings; None means unrestricted."""
    return None if can_view_all(identity) else identity.user_id
