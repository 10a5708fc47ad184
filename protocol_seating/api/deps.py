"""
Shared dependencies for the API routers
"""

from functools import lru_cache

from protocol_seating.schemas.event import EventResponse
from protocol_seating.services.session_service import SessionRegistry
from protocol_seating.utils.responses import not_found_error

@lru_cache(maxsize=1)
def get_session_registry() -> SessionRegistry:
    """Process-wide registry of per-event seating sessions"""
    return SessionRegistry()

def require_event(registry: SessionRegistry, event_id: str) -> EventResponse:
    event = registry.event_repo.get_event(event_id)
    if not event:
        raise not_found_error("Event")
    return event
