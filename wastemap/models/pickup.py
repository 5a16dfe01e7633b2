from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, Field

from wastemap.core.states import PickupStatus

WasteType = Literal["plastic", "paper", "glass", "metal", "organic", "electronic", "other"]
Quantity = Literal["small", "medium", "large"]


class Coordinates(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

class Address(BaseModel):
    street: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    zip_code: str = Field(..., min_length=1)
    coordinates: Optional[Coordinates] = None

class PickupCreate(BaseModel):
    address: Address
    waste_type: WasteType
    quantity: Quantity
    description: Optional[str] = None
    images: List[str] = []
    scheduled_date: datetime
    estimated_duration: Optional[int] = Field(None, ge=0, description="minutes")

class AssignIn(BaseModel):
    collector_id: str

class AdvanceIn(BaseModel):
    status: PickupStatus
    actual_duration: Optional[int] = Field(None, ge=0, description="minutes")

class RatingIn(BaseModel):
    score: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None

class OverrideIn(BaseModel):
    status: PickupStatus
    note: Optional[str] = None


class Rating(BaseModel):
    score: int
    comment: Optional[str] = None
    rated_at: Optional[datetime] = None

class StatusEvent(BaseModel):
    at: datetime
    by_user: str
    from_status: Optional[PickupStatus] = None
    to_status: PickupStatus
    note: Optional[str] = None
    override: bool = False

class UserSummary(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

class PickupOut(BaseModel):
    id: str
    owner_id: str
    owner: Optional[UserSummary] = None
    address: Address
    waste_type: WasteType
    quantity: Quantity
    description: Optional[str] = None
    images: List[str] = []
    status: PickupStatus
    assigned_collector_id: Optional[str] = None
    assigned_collector: Optional[UserSummary] = None
    scheduled_date: datetime
    completed_date: Optional[datetime] = None
    estimated_duration: Optional[int] = None
    actual_duration: Optional[int] = None
    rating: Optional[Rating] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    version: int = 1
    history: List[StatusEvent] = []

class PickupPage(BaseModel):
    pickups: List[PickupOut]
    total: int
    total_pages: int
    current_page: int
    limit: int

class AdminStats(BaseModel):
    total_users: int
    total_collectors: int
    total_pickups: int
    completed_pickups: int
    pending_pickups: int
    by_status: dict[str, int]
    recent_pickups: List[dict[str, Any]]
