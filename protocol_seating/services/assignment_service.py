"""
Seat assignment with conflict detection
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from protocol_seating.schemas.guest import GuestRecord
from protocol_seating.services.errors import GuestNotFoundError
from protocol_seating.services.seat_identifier import normalize_seat_id, to_seat_number


@dataclass(frozen=True)
class AssignmentResult:
    """Outcome of an assignment attempt.

    On success ``seat_number`` is the value to store on the guest (None when
    unassigning) and ``vacated`` the seat the guest gives up, if any. On
    conflict nothing should be written; ``occupant_name`` names the guest
    already holding the seat.
    """
    success: bool
    seat_number: Optional[str] = None
    vacated: Optional[str] = None
    no_op: bool = False
    occupant_id: Optional[str] = None
    occupant_name: Optional[str] = None

    @classmethod
    def conflict(cls, occupant: GuestRecord) -> "AssignmentResult":
        return cls(success=False, occupant_id=occupant.id, occupant_name=occupant.name)


class AssignmentService:
    """Guards the one-live-occupant-per-seat rule"""

    @staticmethod
    def find_guest(guest_id: str, guests: Sequence[GuestRecord]) -> GuestRecord:
        for guest in guests:
            if guest.id == guest_id:
                return guest
        raise GuestNotFoundError(guest_id)

    @staticmethod
    def find_occupant(
        seat_id: str,
        guests: Sequence[GuestRecord],
        exclude_guest_id: Optional[str] = None,
    ) -> Optional[GuestRecord]:
        """First guest (in collection order) whose seat matches ``seat_id``"""
        key = normalize_seat_id(seat_id)
        if not key:
            return None
        for guest in guests:
            if guest.id != exclude_guest_id and normalize_seat_id(guest.seat_number) == key:
                return guest
        return None

    @staticmethod
    def assign(
        guest_id: str,
        target_seat_id: Optional[str],
        current_guests: Sequence[GuestRecord],
    ) -> AssignmentResult:
        """Check whether ``guest_id`` may take ``target_seat_id``.

        Pure check; the caller applies the result. ``target_seat_id`` may be a
        grid cell id (``A1``) or a seat number (``A-1``).
        """
        guest = AssignmentService.find_guest(guest_id, current_guests)

        target = target_seat_id.strip() if target_seat_id else ""
        if not target:
            return AssignmentResult(
                success=True,
                vacated=guest.seat_number,
                no_op=guest.seat_number is None,
            )

        if guest.seat_number and normalize_seat_id(guest.seat_number) == normalize_seat_id(target):
            return AssignmentResult(success=True, seat_number=guest.seat_number, no_op=True)

        occupant = AssignmentService.find_occupant(target, current_guests, exclude_guest_id=guest_id)
        if occupant is not None:
            return AssignmentResult.conflict(occupant)

        return AssignmentResult(
            success=True,
            seat_number=to_seat_number(target) or target,
            vacated=guest.seat_number,
        )
