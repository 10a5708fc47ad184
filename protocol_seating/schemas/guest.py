"""
Guest-related Pydantic schemas
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field

class GuestStatus(str, Enum):
    ARRIVED = "arrived"
    NOT_ARRIVED = "not_arrived"
    CANCELLED = "cancelled"

class GuestType(str, Enum):
    VIP = "vip"
    REGULAR = "regular"
    STAFF = "staff"
    PRESS = "press"

class GuestRecord(BaseModel):
    """A guest of one event, as held by a seating session.

    ``seat_number`` is the raw identifier string exactly as stored (for example
    ``"A-1"``). It may be unparseable, in which case the guest simply has no
    place on the seating grid.
    """
    id: str
    event_id: str
    name: str
    organization: str = ""
    position: str = ""
    guest_type: GuestType = GuestType.REGULAR
    status: GuestStatus = GuestStatus.NOT_ARRIVED
    seat_number: Optional[str] = None
    biography: Optional[str] = None
    protocol_notes: List[str] = Field(default_factory=list)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    version: int = 0

    class Config:
        from_attributes = True

class GuestCreate(BaseModel):
    """Schema for creating a guest"""
    name: str
    organization: str = ""
    position: str = ""
    guest_type: GuestType = GuestType.REGULAR
    status: GuestStatus = GuestStatus.NOT_ARRIVED
    seat_number: Optional[str] = None
    biography: Optional[str] = None
    protocol_notes: List[str] = Field(default_factory=list)

class GuestUpdate(BaseModel):
    """Schema for updating a guest (seat changes go through the seat endpoint)"""
    name: Optional[str] = None
    organization: Optional[str] = None
    position: Optional[str] = None
    guest_type: Optional[GuestType] = None
    status: Optional[GuestStatus] = None
    biography: Optional[str] = None
    protocol_notes: Optional[List[str]] = None

class SeatAssignRequest(BaseModel):
    """Seat assignment request; a null or empty seat unassigns"""
    seat_id: Optional[str] = None

class StatusUpdateRequest(BaseModel):
    """Arrival status change"""
    status: GuestStatus
    release_seat: bool = False
