# wastemap/core/states.py
from enum import Enum


class PickupStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


PICKUP_STATES = [s.value for s in PickupStatus]

TERMINAL = {PickupStatus.COMPLETED, PickupStatus.CANCELLED}

# statuses that carry an assigned collector
ASSIGNED_STATES = {PickupStatus.ASSIGNED, PickupStatus.IN_PROGRESS, PickupStatus.COMPLETED}

# (src, dst) -> operation allowed to take the edge
TRANSITIONS = {
    (PickupStatus.PENDING, PickupStatus.ASSIGNED): "assign",

    (PickupStatus.ASSIGNED, PickupStatus.IN_PROGRESS): "advance",
    (PickupStatus.IN_PROGRESS, PickupStatus.COMPLETED): "advance",

    (PickupStatus.PENDING, PickupStatus.CANCELLED): "cancel",
    (PickupStatus.ASSIGNED, PickupStatus.CANCELLED): "cancel",
    (PickupStatus.IN_PROGRESS, PickupStatus.CANCELLED): "cancel",
}


def is_terminal(status) -> bool:
    return PickupStatus(status) in TERMINAL


def can_transition(src, dst, operation: str) -> bool:
    return TRANSITIONS.get((PickupStatus(src), PickupStatus(dst))) == operation
