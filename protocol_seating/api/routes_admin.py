"""
Admin API routes - requires authentication
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, UploadFile, File, Query, Request
from fastapi.responses import Response

from protocol_seating.api.deps import get_session_registry, require_event
from protocol_seating.api.routes_public import XLSX_MEDIA_TYPE
from protocol_seating.core.config import settings
from protocol_seating.schemas.event import EventCreate, EventUpdate
from protocol_seating.schemas.guest import GuestCreate, GuestRecord, GuestUpdate, GuestStatus, GuestType
from protocol_seating.services.errors import CommandNotFoundError, ExcelImportError, GuestNotFoundError, SeatingError
from protocol_seating.services.excel_service import ExcelService
from protocol_seating.services.repositories import new_id
from protocol_seating.services.search import search_guests
from protocol_seating.services.session_service import SessionRegistry, SessionResult
from protocol_seating.utils.security import verify_admin_token, rate_limit_check, get_client_ip
from protocol_seating.utils.responses import success_response, error_response, not_found_error, rate_limit_error

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_admin_token)])

def conflict_response(seat_id: Optional[str], result: SessionResult):
    return error_response(
        message=f"Seat {seat_id} is already taken by {result.assignment.occupant_name}",
        error_code="seat_conflict",
        details={
            "seat_id": seat_id,
            "occupant_id": result.assignment.occupant_id,
            "occupant_name": result.assignment.occupant_name,
        },
        status_code=409
    )

def mutation_data(result: SessionResult, **extra) -> dict:
    data = {
        "guest": result.guest,
        "command_id": result.command.id if result.command else None,
        "persisted": result.persisted,
        "warning": result.notice,
    }
    data.update(extra)
    return data

# -------- Events --------

@router.get("/events")
async def list_events(registry: SessionRegistry = Depends(get_session_registry)):
    """List all events"""
    events = registry.event_repo.list_events()
    return success_response(message="Events retrieved", data=events)

@router.post("/events")
async def create_event(
    event_data: EventCreate,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Create a new event"""
    event = registry.event_repo.create_event(event_data)
    logger.info("Created event %s (%s)", event.id, event.title)
    return success_response(message="Event created successfully", data=event, status_code=201)

@router.get("/events/{event_id}")
async def get_event_details(
    event_id: str,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Get detailed event information"""
    event = require_event(registry, event_id)

    with registry.session(event_id) as session:
        guests = session.guests
        grid = session.grid()
        seated = [g for g in guests if g.seat_number]
        data = event.model_dump()
        data.update({
            "total_guests": len(guests),
            "seated_guests": len(seated),
            "arrived_count": sum(1 for g in seated if g.status == GuestStatus.ARRIVED),
            "vip_count": sum(1 for g in seated if g.guest_type == GuestType.VIP),
            "vip_arrived_count": sum(
                1 for g in seated if g.guest_type == GuestType.VIP and g.status == GuestStatus.ARRIVED
            ),
            "grid": {"rows": grid.rows, "cols": grid.cols},
        })

    return success_response(message="Event details retrieved", data=data)

@router.patch("/events/{event_id}")
async def update_event(
    event_id: str,
    event_update: EventUpdate,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Update event information"""
    event = registry.event_repo.update_event(event_id, event_update.model_dump(exclude_unset=True))
    if not event:
        raise not_found_error("Event")
    return success_response(message="Event updated successfully", data=event)

@router.delete("/events/{event_id}")
async def delete_event(
    event_id: str,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Delete an event and its guests"""
    deleted = registry.discard(event_id, lambda: registry.event_repo.delete_event(event_id))
    if not deleted:
        raise not_found_error("Event")
    return success_response(
        message="Event deleted successfully",
        data={"deleted_event_id": event_id}
    )

# -------- Guests --------

@router.get("/events/{event_id}/guests")
async def list_guests(
    event_id: str,
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=500),
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Search and list guests for an event"""
    require_event(registry, event_id)

    with registry.session(event_id) as session:
        guests = search_guests(session.guests, search)

    total = len(guests)
    offset = (page - 1) * per_page
    return success_response(
        message="Guests retrieved successfully",
        data={
            "guests": guests[offset:offset + per_page],
            "pagination": {
                "page": page,
                "per_page": per_page,
                "total": total,
                "pages": (total + per_page - 1) // per_page
            }
        }
    )

@router.post("/events/{event_id}/guests")
async def create_guest(
    event_id: str,
    guest_data: GuestCreate,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Add a single guest"""
    require_event(registry, event_id)
    guest = GuestRecord(id=new_id(), event_id=event_id, **guest_data.model_dump())

    with registry.session(event_id) as session:
        result = session.add_guest(guest)

    if not result.ok:
        return conflict_response(guest.seat_number, result)
    return success_response(message="Guest created successfully", data=mutation_data(result), status_code=201)

@router.post("/events/{event_id}/guests/bulk")
async def create_guests_bulk(
    event_id: str,
    guests_data: List[GuestCreate],
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Add several guests; rows whose seat is taken are reported and skipped"""
    require_event(registry, event_id)

    created, conflicts = [], []
    with registry.session(event_id) as session:
        for guest_data in guests_data:
            guest = GuestRecord(id=new_id(), event_id=event_id, **guest_data.model_dump())
            result = session.add_guest(guest)
            if result.ok:
                created.append(result.guest)
            else:
                conflicts.append({
                    "name": guest.name,
                    "seat_id": guest.seat_number,
                    "occupant_name": result.assignment.occupant_name,
                })

    return success_response(
        message=f"{len(created)} guests created",
        data={"created": created, "conflicts": conflicts},
        status_code=201
    )

@router.patch("/events/{event_id}/guests/{guest_id}")
async def update_guest(
    event_id: str,
    guest_id: str,
    guest_update: GuestUpdate,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Update guest information"""
    require_event(registry, event_id)

    try:
        with registry.session(event_id) as session:
            result = session.update_guest(guest_id, guest_update.model_dump(exclude_unset=True))
    except GuestNotFoundError:
        raise not_found_error("Guest")

    return success_response(message="Guest updated successfully", data=mutation_data(result))

@router.delete("/events/{event_id}/guests/{guest_id}")
async def delete_guest(
    event_id: str,
    guest_id: str,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Remove a guest; their seat becomes vacant"""
    require_event(registry, event_id)

    try:
        with registry.session(event_id) as session:
            result = session.delete_guest(guest_id)
    except GuestNotFoundError:
        raise not_found_error("Guest")

    return success_response(message="Guest deleted successfully", data=mutation_data(result, deleted_guest_id=guest_id))

# -------- Excel --------

@router.post("/events/{event_id}/upload")
async def upload_excel(
    event_id: str,
    request: Request,
    file: UploadFile = File(...),
    auto_layout: bool = Query(True),
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Replace the guest list from an Excel file"""
    require_event(registry, event_id)

    if not rate_limit_check(get_client_ip(request), bucket="upload"):
        return rate_limit_error()

    if not file.filename or not file.filename.endswith(('.xlsx', '.xls')):
        return error_response(
            message="Invalid file format. Please upload an Excel file (.xlsx or .xls)",
            status_code=400
        )

    file_content = await file.read()
    if len(file_content) > settings.MAX_UPLOAD_SIZE:
        return error_response(message="File too large", status_code=413)

    try:
        guests, layout = ExcelService.process_upload(file_content, event_id, auto_layout=auto_layout)
    except ExcelImportError as e:
        return error_response(
            message="Excel file validation failed",
            details=[str(e)],
            status_code=422
        )

    with registry.session(event_id) as session:
        result = session.replace_guests(guests, layout)

    return success_response(
        message=f"Excel file processed successfully. {len(guests)} guests imported.",
        data=mutation_data(
            result,
            processed_count=len(guests),
            filename=file.filename,
            layout=layout,
        )
    )

@router.get("/events/{event_id}/export.xlsx")
async def export_excel(
    event_id: str,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Export current guest data to Excel"""
    require_event(registry, event_id)

    with registry.session(event_id) as session:
        excel_content = ExcelService.export_guests(session.guests)

    return Response(
        content=excel_content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename=guest_list_{event_id}.xlsx"}
    )

# -------- Command log --------

@router.get("/events/{event_id}/commands")
async def list_commands(
    event_id: str,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Local edit history with persistence outcome"""
    require_event(registry, event_id)

    with registry.session(event_id) as session:
        commands = [command.to_dict() for command in session.commands]

    return success_response(message="Commands retrieved", data=commands)

@router.post("/events/{event_id}/commands/{command_id}/rollback")
async def rollback_command(
    event_id: str,
    command_id: int,
    registry: SessionRegistry = Depends(get_session_registry)
):
    """Undo a command in memory, e.g. after its save failed"""
    require_event(registry, event_id)

    try:
        with registry.session(event_id) as session:
            command = session.rollback(command_id)
    except CommandNotFoundError:
        raise not_found_error("Command")
    except SeatingError as e:
        return error_response(message=str(e), status_code=409)

    return success_response(message="Command rolled back", data=command.to_dict())
