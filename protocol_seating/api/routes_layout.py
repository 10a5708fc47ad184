"""
Seat assignment and seat layout routes - requires authentication
"""

from fastapi import APIRouter, Depends

from protocol_seating.api.deps import get_session_registry, require_event
from protocol_seating.api.routes_admin import conflict_response, mutation_data
from protocol_seating.schemas.guest import SeatAssignRequest, StatusUpdateRequest
from protocol_seating.schemas.layout import GridLayout
from protocol_seating.services.errors import GuestNotFoundError
from protocol_seating.services.layout_service import LayoutService
from protocol_seating.services.session_service import SessionRegistry
from protocol_seating.utils.security import verify_admin_token
from protocol_seating.utils.responses import success_response, not_found_error

router = APIRouter(dependencies=[Depends(verify_admin_token)])

@router.put("/events/{event_id}/guests/{guest_id}/seat")
async def assign_seat(
    event_id: str,
    guest_id: str,
    request: SeatAssignRequest,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Assign a guest to a seat, or unassign with a null seat"""
    require_event(registry, event_id)

    try:
        with registry.session(event_id) as session:
            result = session.assign_seat(guest_id, request.seat_id)
    except GuestNotFoundError:
        raise not_found_error("Guest")

    if not result.ok:
        return conflict_response(request.seat_id, result)

    if result.assignment.no_op:
        message = "Seat unchanged"
    elif result.guest.seat_number:
        message = f"Seat {result.guest.seat_number} assigned"
    else:
        message = "Seat unassigned"
    return success_response(
        message=message,
        data=mutation_data(result, vacated=result.assignment.vacated, no_op=result.assignment.no_op)
    )

@router.put("/events/{event_id}/guests/{guest_id}/status")
async def update_guest_status(
    event_id: str,
    guest_id: str,
    request: StatusUpdateRequest,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Change arrival status; cancelled guests can release their seat"""
    require_event(registry, event_id)

    try:
        with registry.session(event_id) as session:
            result = session.update_status(guest_id, request.status, release_seat=request.release_seat)
    except GuestNotFoundError:
        raise not_found_error("Guest")

    return success_response(message="Guest status updated", data=mutation_data(result))

@router.get("/events/{event_id}/layout")
async def get_layout(
    event_id: str,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Seating grid with occupancy; ``layout`` is null when none can be derived"""
    require_event(registry, event_id)

    with registry.session(event_id) as session:
        grid = session.grid()
        if grid.is_empty:
            return success_response(message="No seat layout available", data={"layout": None})
        names = {g.id: g.name for g in session.guests}
        layout = grid.to_dict()

    for seat in layout["seats"]:
        seat["guest_name"] = names.get(seat["guest_id"])
    return success_response(message="Seat layout retrieved", data={"layout": layout})

@router.get("/events/{event_id}/layout/summary")
async def get_layout_summary(
    event_id: str,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Group counts derived from seat numbers"""
    require_event(registry, event_id)

    with registry.session(event_id) as session:
        summary = LayoutService.summarize(session.guests)
        size = LayoutService.compute_grid_size(session.guests)

    summary["grid"] = {"rows": size.rows, "cols": size.cols}
    return success_response(message="Seat layout summary", data=summary)

@router.put("/events/{event_id}/layout")
async def import_layout(
    event_id: str,
    layout: GridLayout,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Use explicit grid dimensions instead of inferring them"""
    require_event(registry, event_id)

    with registry.session(event_id) as session:
        result = session.import_layout(layout)
        grid = session.grid()

    return success_response(
        message=f"Seat layout set to {layout.rows} rows x {layout.cols} columns",
        data=mutation_data(result, layout=grid.to_dict())
    )

@router.delete("/events/{event_id}/layout")
async def clear_layout(
    event_id: str,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Drop the imported layout and infer it from seat numbers again"""
    require_event(registry, event_id)

    with registry.session(event_id) as session:
        result = session.clear_layout()
        grid = session.grid()

    return success_response(
        message="Seat layout reset to inferred",
        data=mutation_data(result, layout=None if grid.is_empty else grid.to_dict())
    )
