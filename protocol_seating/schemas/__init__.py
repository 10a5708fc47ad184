"""
Pydantic schemas package
"""

from .common import *
from .event import *
from .guest import *
from .layout import *

__all__ = [
    "StandardResponse",
    "ErrorResponse",
    "EventStatus",
    "EventCreate",
    "EventUpdate",
    "EventResponse",
    "GuestStatus",
    "GuestType",
    "GuestRecord",
    "GuestCreate",
    "GuestUpdate",
    "SeatAssignRequest",
    "StatusUpdateRequest",
    "GridLayout",
]
