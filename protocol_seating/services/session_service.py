"""
Per-event seating session with an optimistic command log.

Every edit is applied to the in-memory guest collection and seating grid
first, then written to storage. A storage failure is logged and recorded on
the command but the local state is kept; :meth:`SeatingSession.rollback`
lets the caller undo a command locally if it decides to.
"""

import itertools
import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional

from protocol_seating.schemas.guest import GuestRecord, GuestStatus
from protocol_seating.schemas.layout import GridLayout
from protocol_seating.services.assignment_service import AssignmentResult, AssignmentService
from protocol_seating.services.errors import CommandNotFoundError, GuestNotFoundError, RollbackError, SeatingError
from protocol_seating.services.layout_service import LayoutService, SeatGrid
from protocol_seating.services.repositories import get_event_repo, get_guest_repo

logger = logging.getLogger(__name__)

_command_ids = itertools.count(1)


@dataclass
class Command:
    kind: str  # add, update, delete, assign, status, replace, layout
    guest_id: Optional[str] = None
    before: Optional[GuestRecord] = None
    after: Optional[GuestRecord] = None
    index: Optional[int] = None
    before_guests: Optional[List[GuestRecord]] = None
    before_layout: Optional[GridLayout] = None
    after_layout: Optional[GridLayout] = None
    id: int = field(default_factory=lambda: next(_command_ids))
    created_at: datetime = field(default_factory=datetime.utcnow)
    persisted: Optional[bool] = None
    error: Optional[str] = None
    rolled_back: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "guest_id": self.guest_id,
            "created_at": self.created_at.isoformat(),
            "persisted": self.persisted,
            "error": self.error,
            "rolled_back": self.rolled_back,
        }


@dataclass
class SessionResult:
    command: Optional[Command] = None
    assignment: Optional[AssignmentResult] = None
    guest: Optional[GuestRecord] = None

    @property
    def ok(self) -> bool:
        return self.assignment is None or self.assignment.success

    @property
    def persisted(self) -> Optional[bool]:
        return self.command.persisted if self.command else None

    @property
    def notice(self) -> Optional[str]:
        """Non-fatal storage failure message, if any"""
        if self.command and self.command.persisted is False:
            return f"Change kept locally but not saved: {self.command.error}"
        return None


class SeatingSession:
    """Guest collection, seating grid and command log of one event"""

    def __init__(
        self,
        event_id: str,
        guests: List[GuestRecord],
        guest_repo,
        event_repo=None,
        layout: Optional[GridLayout] = None,
    ):
        self.event_id = event_id
        self.guests: List[GuestRecord] = list(guests)
        self.guest_repo = guest_repo
        self.event_repo = event_repo
        self.layout = layout
        self.commands: List[Command] = []
        self._grid: Optional[SeatGrid] = None

    # -------- reads --------

    def grid(self) -> SeatGrid:
        """Current grid, materialized on first use and then kept in sync"""
        if self._grid is None:
            self._grid = LayoutService.materialize(self.guests, self.layout)
        return self._grid

    def get_guest(self, guest_id: str) -> GuestRecord:
        return self.guests[self._index(guest_id)]

    def get_command(self, command_id: int) -> Command:
        for command in self.commands:
            if command.id == command_id:
                return command
        raise CommandNotFoundError(command_id)

    def _index(self, guest_id: str) -> int:
        for i, guest in enumerate(self.guests):
            if guest.id == guest_id:
                return i
        raise GuestNotFoundError(guest_id)

    # -------- helpers --------

    def _reconcile(self, guest_id: str, previous_seat: Optional[str], new_seat: Optional[str]) -> None:
        if self._grid is not None:
            self._grid.reconcile(self.guests, guest_id, previous_seat, new_seat)

    def _record(self, command: Command, action: Callable[[], None]) -> Command:
        self.commands.append(command)
        try:
            action()
        except Exception as exc:
            command.persisted = False
            command.error = str(exc)
            logger.exception("Failed to persist %s command %d for event %s", command.kind, command.id, self.event_id)
        else:
            command.persisted = True
        return command

    @staticmethod
    def _bump(guest: GuestRecord, **changes) -> GuestRecord:
        changes.update(version=guest.version + 1, updated_at=datetime.utcnow())
        return guest.model_copy(update=changes)

    # -------- mutations --------

    def add_guest(self, guest: GuestRecord) -> SessionResult:
        if guest.seat_number:
            occupant = AssignmentService.find_occupant(guest.seat_number, self.guests)
            if occupant is not None:
                return SessionResult(assignment=AssignmentResult.conflict(occupant))

        self.guests.append(guest)
        self._reconcile(guest.id, None, guest.seat_number)
        command = Command(kind="add", guest_id=guest.id, after=guest)
        self._record(command, lambda: self.guest_repo.create_guest(guest))
        return SessionResult(command=command, guest=guest)

    def update_guest(self, guest_id: str, fields: Dict[str, Any]) -> SessionResult:
        """Change non-seat fields; seats go through :meth:`assign_seat`"""
        if "seat_number" in fields:
            raise SeatingError("Seat changes must go through seat assignment")
        index = self._index(guest_id)
        before = self.guests[index]
        after = self._bump(before, **fields)
        self.guests[index] = after
        command = Command(kind="update", guest_id=guest_id, before=before, after=after)
        payload = dict(fields, updated_at=after.updated_at)
        self._record(command, lambda: self.guest_repo.update_guest(guest_id, payload))
        return SessionResult(command=command, guest=after)

    def delete_guest(self, guest_id: str) -> SessionResult:
        index = self._index(guest_id)
        before = self.guests.pop(index)
        self._reconcile(guest_id, before.seat_number, None)
        command = Command(kind="delete", guest_id=guest_id, before=before, index=index)
        self._record(command, lambda: self.guest_repo.delete_guest(guest_id))
        return SessionResult(command=command)

    def assign_seat(self, guest_id: str, seat_id: Optional[str]) -> SessionResult:
        result = AssignmentService.assign(guest_id, seat_id, self.guests)
        if not result.success:
            logger.info("Seat %s for guest %s refused, held by %s", seat_id, guest_id, result.occupant_id)
            return SessionResult(assignment=result)
        index = self._index(guest_id)
        if result.no_op:
            return SessionResult(assignment=result, guest=self.guests[index])

        before = self.guests[index]
        after = self._bump(before, seat_number=result.seat_number)
        self.guests[index] = after
        self._reconcile(guest_id, before.seat_number, after.seat_number)
        command = Command(kind="assign", guest_id=guest_id, before=before, after=after)
        payload = {"seat_number": after.seat_number, "updated_at": after.updated_at}
        self._record(command, lambda: self.guest_repo.update_guest(guest_id, payload))
        return SessionResult(command=command, assignment=result, guest=after)

    def update_status(self, guest_id: str, status: GuestStatus, release_seat: bool = False) -> SessionResult:
        """Change arrival status; a cancelled guest may give up the seat too"""
        index = self._index(guest_id)
        before = self.guests[index]
        changes: Dict[str, Any] = {"status": status}
        if status == GuestStatus.CANCELLED and release_seat:
            changes["seat_number"] = None
        after = self._bump(before, **changes)
        self.guests[index] = after
        if "seat_number" in changes:
            self._reconcile(guest_id, before.seat_number, None)
        command = Command(kind="status", guest_id=guest_id, before=before, after=after)
        payload = dict(changes, updated_at=after.updated_at)
        self._record(command, lambda: self.guest_repo.update_guest(guest_id, payload))
        return SessionResult(command=command, guest=after)

    def replace_guests(self, guests: List[GuestRecord], layout: Optional[GridLayout] = None) -> SessionResult:
        """Swap in a freshly imported guest list, optionally with its layout"""
        command = Command(
            kind="replace",
            before_guests=self.guests,
            before_layout=self.layout,
            after_layout=layout,
        )
        self.guests = list(guests)
        self.layout = layout
        self._grid = None

        def persist():
            self.guest_repo.delete_event_guests(self.event_id)
            self.guest_repo.create_guests(self.guests)
            if self.event_repo is not None:
                self.event_repo.set_layout(self.event_id, layout)

        self._record(command, persist)
        return SessionResult(command=command)

    def import_layout(self, layout: Optional[GridLayout]) -> SessionResult:
        """Use explicit grid dimensions, or None to go back to inference"""
        command = Command(kind="layout", before_layout=self.layout, after_layout=layout)
        self.layout = layout
        self._grid = None

        def persist():
            if self.event_repo is not None:
                self.event_repo.set_layout(self.event_id, layout)

        self._record(command, persist)
        return SessionResult(command=command)

    def clear_layout(self) -> SessionResult:
        return self.import_layout(None)

    def _current_index(self, command: Command) -> int:
        try:
            return self._index(command.guest_id)
        except GuestNotFoundError:
            raise RollbackError(
                f"Command {command.id} cannot be rolled back: guest {command.guest_id} "
                "is no longer in the guest list"
            ) from None

    def _check_seat_free(self, command: Command, seat_number: Optional[str]) -> None:
        occupant = AssignmentService.find_occupant(seat_number, self.guests, exclude_guest_id=command.guest_id)
        if occupant is not None:
            raise RollbackError(
                f"Command {command.id} cannot be rolled back: seat {seat_number} "
                f"is now held by {occupant.name}"
            )

    def rollback(self, command_id: int) -> Command:
        """Undo a command in memory only; storage is not touched.

        Guest commands are undone against the guest's current record, so
        later changes are taken into account. A rollback that would put a
        guest back into a seat someone else now holds raises
        :class:`RollbackError` and changes nothing.
        """
        command = self.get_command(command_id)
        if command.rolled_back:
            raise RollbackError(f"Command {command_id} was already rolled back")

        if command.kind in ("replace", "layout"):
            if command.before_guests is not None:
                self.guests = list(command.before_guests)
            self.layout = command.before_layout
            self._grid = None
        elif command.kind == "add":
            current = self.guests.pop(self._current_index(command))
            self._reconcile(command.guest_id, current.seat_number, None)
        elif command.kind == "delete":
            if any(g.id == command.guest_id for g in self.guests):
                raise RollbackError(
                    f"Command {command.id} cannot be rolled back: guest {command.guest_id} is already present"
                )
            self._check_seat_free(command, command.before.seat_number)
            self.guests.insert(min(command.index, len(self.guests)), command.before)
            self._reconcile(command.guest_id, None, command.before.seat_number)
        else:
            index = self._current_index(command)
            current = self.guests[index]
            # seat goes back only when this command moved it
            seat_number = current.seat_number
            if command.before.seat_number != command.after.seat_number:
                seat_number = command.before.seat_number
                self._check_seat_free(command, seat_number)
            restored = command.before.model_copy(update={
                "seat_number": seat_number,
                "version": current.version + 1,
                "updated_at": datetime.utcnow(),
            })
            self.guests[index] = restored
            self._reconcile(command.guest_id, current.seat_number, seat_number)

        command.rolled_back = True
        logger.info("Rolled back %s command %d for event %s", command.kind, command.id, self.event_id)
        return command


class SessionRegistry:
    """One live :class:`SeatingSession` per event, each behind its own lock"""

    def __init__(self, guest_repo=None, event_repo=None):
        self.guest_repo = guest_repo or get_guest_repo()
        self.event_repo = event_repo or get_event_repo()
        self._sessions: Dict[str, SeatingSession] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _load(self, event_id: str) -> SeatingSession:
        event = self.event_repo.get_event(event_id)
        layout = event.seat_layout if event else None
        guests = self.guest_repo.list_guests(event_id)
        logger.info("Loaded %d guests for event %s", len(guests), event_id)
        return SeatingSession(event_id, guests, self.guest_repo, self.event_repo, layout=layout)

    def _lock(self, event_id: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(event_id, threading.Lock())

    @contextmanager
    def session(self, event_id: str) -> Iterator[SeatingSession]:
        """Exclusive access to the event's session, loading it on first use"""
        with self._lock(event_id):
            session = self._sessions.get(event_id)
            if session is None:
                session = self._sessions[event_id] = self._load(event_id)
            yield session

    def discard(self, event_id: str, on_discard: Optional[Callable[[], Any]] = None) -> Any:
        """Drop the event's session under its lock.

        ``on_discard`` (e.g. deleting the event from storage) runs while the
        lock is held, so no request can write to the event in between. Its
        return value is passed through. The lock itself is kept so requests
        already waiting on it stay serialized.
        """
        with self._lock(event_id):
            result = on_discard() if on_discard is not None else None
            self._sessions.pop(event_id, None)
        logger.info("Discarded session for event %s", event_id)
        return result
