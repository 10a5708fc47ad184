"""
Event-related Pydantic schemas
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel

from .layout import GridLayout

class EventStatus(str, Enum):
    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    COMPLETED = "completed"

class EventCreate(BaseModel):
    """Schema for creating an event"""
    title: str
    date: datetime
    location: str = ""
    description: str = ""
    status: EventStatus = EventStatus.UPCOMING

class EventUpdate(BaseModel):
    """Schema for updating an event"""
    title: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[str] = None
    description: Optional[str] = None
    status: Optional[EventStatus] = None

class EventResponse(BaseModel):
    """Basic event response"""
    id: str
    title: str
    date: datetime
    location: str = ""
    description: str = ""
    status: EventStatus = EventStatus.UPCOMING
    seat_layout: Optional[GridLayout] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
