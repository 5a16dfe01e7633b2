# wastemap/services/lifecycle.py
"""
Pickup lifecycle: the only place that writes status, assignment or rating.

Every write is a conditional update keyed on the status (and, where it
matters, the assignment or rating) that was read, so two requests racing
from the same prior state cannot both succeed.
"""
import logging
import math
from datetime import datetime, timezone
from typing import Callable, Optional, Union

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError as PydanticValidationError

from wastemap.core.errors import (
    Conflict, Forbidden, InvalidTransition, NotFound, PreconditionFailed, ValidationError,
)
from wastemap.core.policy import (
    Identity, Role, can_advance, can_assign, can_cancel, can_override, can_rate, can_view,
    has_scope, is_assignee, owner_scope,
)
from wastemap.core.states import ASSIGNED_STATES, TERMINAL, PickupStatus, can_transition
from wastemap.models.pickup import PickupCreate
from wastemap.repos import new_id
from wastemap.services.geo_enrich import ensure_coordinates

logger = logging.getLogger(__name__)


def _utcnow():
    return datetime.now(timezone.utc)


def _parse_status(value) -> PickupStatus:
    try:
        return PickupStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown status {value!r}")


def _describe(ex: PydanticValidationError) -> str:
    parts = []
    for err in ex.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()))
        parts.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
    return "; ".join(parts) or "Invalid pickup"


class PickupLifecycle:
    def __init__(self, repo, clock: Callable[[], datetime] = _utcnow, geocode: bool = False):
        self.repo = repo
        self.clock = clock
        self.geocode = geocode

    async def _load(self, pickup_id: str) -> dict:
        pickup = await self.repo.get_pickup(pickup_id)
        if not pickup:
            raise NotFound("Pickup not found")
        return pickup

    async def _write(self, pickup: dict, identity: Identity, fields: dict, *,
                     to_status: Optional[PickupStatus] = None, expected: Optional[dict] = None,
                     note: Optional[str] = None, override: bool = False,
                     now: Optional[datetime] = None) -> dict:
        now = now or self.clock()
        fields = {**fields, "updated_at": now}
        event = None
        if to_status is not None:
            fields["status"] = to_status.value
            event = {
                "at": now, "by_user": identity.user_id,
                "from_status": pickup["status"], "to_status": to_status.value,
                "note": note, "override": override,
            }
        cond = {"status": pickup["status"], **(expected or {})}
        updated = await self.repo.update_pickup_if(pickup["_id"], cond, fields, event=event)
        if updated is None:
            raise Conflict("Pickup was modified by another request. Refresh and retry.")
        return updated

    # ---------- Create ----------
    async def create(self, identity: Identity, data: Union[PickupCreate, dict]) -> dict:
        if not has_scope(identity, "pickups:create"):
            raise Forbidden("Not allowed to request pickups")
        if isinstance(data, PickupCreate):
            body = data
        else:
            try:
                body = PickupCreate.model_validate(data or {})
            except PydanticValidationError as ex:
                raise ValidationError(_describe(ex))

        address = body.address.model_dump(exclude_none=True)
        if self.geocode:
            address = await run_in_threadpool(ensure_coordinates, address)

        now = self.clock()
        doc = {
            "_id": new_id(),
            "owner_id": identity.user_id,
            "address": address,
            "waste_type": body.waste_type,
            "quantity": body.quantity,
            "description": body.description,
            "images": list(body.images),
            "status": PickupStatus.PENDING.value,
            "assigned_collector_id": None,
            "scheduled_date": body.scheduled_date,
            "completed_date": None,
            "estimated_duration": body.estimated_duration,
            "actual_duration": None,
            "rating": None,
            "version": 1,
            "history": [{
                "at": now, "by_user": identity.user_id,
                "from_status": None, "to_status": PickupStatus.PENDING.value,
                "note": "created", "override": False,
            }],
            "created_at": now,
            "updated_at": now,
        }
        saved = await self.repo.insert_pickup(doc)
        logger.info("Pickup %s created by %s (%s, %s)", saved["_id"], identity.user_id,
                    body.waste_type, body.quantity)
        return saved

    # ---------- Assign ----------
    async def assign(self, pickup_id: str, collector_id: str, identity: Identity) -> dict:
        pickup = await self._load(pickup_id)
        if not can_assign(identity, collector_id):
            raise Forbidden("Not authorized to assign this pickup")

        collector = await self.repo.get_user(collector_id)
        if not collector:
            raise NotFound("Collector not found")
        if collector.get("role") != Role.COLLECTOR.value:
            raise Forbidden("Invalid collector: user does not have the collector role")

        src = PickupStatus(pickup["status"])
        if src in TERMINAL:
            raise Conflict(f"Pickup is already {src.value}")
        if src is PickupStatus.PENDING:
            to_status = PickupStatus.ASSIGNED
        elif identity.is_admin:
            # admin re-assignment keeps the current status
            to_status = None
        else:
            raise Forbidden("Only pending pickups can be claimed")

        updated = await self._write(
            pickup, identity, {"assigned_collector_id": collector_id},
            to_status=to_status,
            expected={"assigned_collector_id": pickup.get("assigned_collector_id")},
            note=f"assigned to {collector_id}",
        )
        logger.info("Pickup %s assigned to collector %s by %s", pickup_id, collector_id, identity.user_id)
        return updated

    # ---------- Advance ----------
    async def advance(self, pickup_id: str, new_status, identity: Identity,
                      actual_duration: Optional[int] = None) -> dict:
        target = _parse_status(new_status)
        pickup = await self._load(pickup_id)

        src = PickupStatus(pickup["status"])
        if src in TERMINAL:
            raise InvalidTransition(f"Pickup is {src.value}; no further transitions are allowed")
        if not can_advance(identity, pickup):
            raise Forbidden("Not authorized to update this pickup")
        if not can_transition(src, target, "advance"):
            raise InvalidTransition(f"Cannot move pickup from {src.value} to {target.value}")
        if actual_duration is not None and actual_duration < 0:
            raise ValidationError("actual_duration must be zero or more minutes")

        now = self.clock()
        fields = {}
        if target is PickupStatus.COMPLETED:
            fields["completed_date"] = now
            if actual_duration is not None:
                fields["actual_duration"] = actual_duration

        updated = await self._write(pickup, identity, fields, to_status=target, now=now)
        logger.info("Pickup %s %s -> %s by %s", pickup_id, src.value, target.value, identity.user_id)
        return updated

    # ---------- Cancel ----------
    async def cancel(self, pickup_id: str, identity: Identity) -> dict:
        pickup = await self._load(pickup_id)

        src = PickupStatus(pickup["status"])
        if src in TERMINAL:
            raise Conflict(f"Pickup is already {src.value}")
        if not can_cancel(identity, pickup):
            raise Forbidden("Not authorized to cancel this pickup")

        note = "cancelled"
        if is_assignee(identity, pickup) and pickup.get("owner_id") != identity.user_id:
            note = "collector resigned"
        updated = await self._write(pickup, identity, {}, to_status=PickupStatus.CANCELLED, note=note)
        logger.info("Pickup %s cancelled by %s (%s)", pickup_id, identity.user_id, note)
        return updated

    # ---------- Rate ----------
    async def rate(self, pickup_id: str, score: int, comment: Optional[str], identity: Identity) -> dict:
        if isinstance(score, bool) or not isinstance(score, int) or not 1 <= score <= 5:
            raise ValidationError("Rating score must be an integer from 1 to 5")
        pickup = await self._load(pickup_id)

        if not can_rate(identity, pickup):
            raise Forbidden("Not authorized to rate this pickup")
        if pickup["status"] != PickupStatus.COMPLETED.value:
            raise PreconditionFailed("Can only rate completed pickups")
        if pickup.get("rating"):
            raise Conflict("Pickup has already been rated")

        now = self.clock()
        rating = {"score": score, "comment": comment, "rated_at": now}
        return await self._write(pickup, identity, {"rating": rating}, expected={"rating": None}, now=now)

    # ---------- Admin override ----------
    async def override_status(self, pickup_id: str, new_status, identity: Identity,
                              note: Optional[str] = None) -> dict:
        if not can_override(identity):
            raise Forbidden("Admin access required")
        target = _parse_status(new_status)
        pickup = await self._load(pickup_id)
        src = PickupStatus(pickup["status"])

        if target in ASSIGNED_STATES and not pickup.get("assigned_collector_id"):
            raise ValidationError(f"Status {target.value} requires an assigned collector")
        if target in ASSIGNED_STATES:
            assignee = await self.repo.get_user(pickup["assigned_collector_id"])
            if not assignee or assignee.get("role") != Role.COLLECTOR.value:
                raise ValidationError(f"Status {target.value} requires the assignee to be a collector")

        now = self.clock()
        fields = {}
        if target is PickupStatus.PENDING:
            fields["assigned_collector_id"] = None
        if target is PickupStatus.COMPLETED:
            if src is not PickupStatus.COMPLETED:
                fields["completed_date"] = now
        else:
            fields["completed_date"] = None
            if src is PickupStatus.COMPLETED:
                # ratings exist only on completed pickups
                fields["rating"] = None

        logger.warning("Admin override on pickup %s: %s -> %s by %s", pickup_id, src.value,
                       target.value, identity.user_id)
        return await self._write(pickup, identity, fields, to_status=target,
                                 note=note or "admin override", override=True, now=now)

    # ---------- Reads ----------
    async def get(self, pickup_id: str, identity: Identity) -> dict:
        pickup = await self._load(pickup_id)
        if not can_view(identity, pickup):
            raise Forbidden("Not authorized to view this pickup")
        return pickup

    async def list_pickups(self, identity: Identity, status=None, page: int = 1,
                           limit: int = 50, max_limit: int = 200) -> dict:
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")
        limit = min(limit, max_limit)

        query = {}
        owner = owner_scope(identity)
        if owner:
            query["owner_id"] = owner
        if status:
            query["status"] = _parse_status(status).value

        total = await self.repo.count_pickups(query)
        items = await self.repo.list_pickups(query, skip=(page - 1) * limit, limit=limit)
        return {
            "pickups": items,
            "total": total,
            "total_pages": math.ceil(total / limit),
            "current_page": page,
            "limit": limit,
        }

    async def list_mine(self, identity: Identity) -> list:
        return await self.repo.list_pickups({"owner_id": identity.user_id})
