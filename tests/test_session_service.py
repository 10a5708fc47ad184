"""
Tests for the seating session command log and registry
"""

import logging
import threading
from datetime import datetime

import pytest

from protocol_seating.schemas.event import EventCreate
from protocol_seating.schemas.guest import GuestStatus
from protocol_seating.schemas.layout import GridLayout
from protocol_seating.services.errors import GuestNotFoundError, RollbackError, SeatingError
from protocol_seating.services.layout_service import LayoutService
from protocol_seating.services.session_service import SeatingSession
from tests.factories import make_guest

def occupancy(grid):
    return {seat.id: seat.guest_id for seat in grid}

@pytest.fixture
def session(recording_repo):
    guests = [
        make_guest("x", "A-1", name="홍길동"),
        make_guest("y", "A-3", name="김철수"),
        make_guest("z", None, name="이영희"),
    ]
    return SeatingSession("EVT1", guests, recording_repo)

def test_assign_updates_guest_grid_and_storage(session, recording_repo):
    grid = session.grid()
    snapshot = occupancy(grid)

    result = session.assign_seat("x", "A2")

    assert result.ok
    assert result.persisted is True
    assert session.get_guest("x").seat_number == "A-2"
    assert session.get_guest("x").version == 1
    current = occupancy(session.grid())
    assert current["A1"] is None
    assert current["A2"] == "x"
    assert {k for k in current if current[k] != snapshot[k]} == {"A1", "A2"}
    assert recording_repo.calls[-1][:2] == ("update_guest", "x")
    assert recording_repo.calls[-1][2]["seat_number"] == "A-2"

def test_conflict_leaves_everything_untouched(session, recording_repo):
    before = [g.model_dump() for g in session.guests]

    result = session.assign_seat("z", "A-3")

    assert not result.ok
    assert result.assignment.occupant_name == "김철수"
    assert [g.model_dump() for g in session.guests] == before
    assert session.commands == []
    assert recording_repo.calls == []

def test_assign_own_seat_is_noop(session, recording_repo):
    grid_before = occupancy(session.grid())

    result = session.assign_seat("y", "A-3")

    assert result.ok
    assert result.assignment.no_op
    assert result.command is None
    assert occupancy(session.grid()) == grid_before
    assert recording_repo.calls == []

def test_storage_failure_keeps_local_change(session, failing_repo, caplog):
    session.guest_repo = failing_repo

    with caplog.at_level(logging.ERROR):
        result = session.assign_seat("z", "A-2")

    assert result.ok
    assert result.persisted is False
    assert "spreadsheet service unavailable" in result.notice
    assert session.get_guest("z").seat_number == "A-2"
    assert session.grid().occupant("A2") == "z"
    assert "Failed to persist assign command" in caplog.text

def test_rollback_restores_previous_seat(session, failing_repo):
    session.guest_repo = failing_repo
    session.grid()
    result = session.assign_seat("x", "A-2")

    session.rollback(result.command.id)

    assert session.get_guest("x").seat_number == "A-1"
    assert session.grid().occupant("A1") == "x"
    assert session.grid().occupant("A2") is None
    assert result.command.rolled_back
    with pytest.raises(SeatingError):
        session.rollback(result.command.id)

def test_delete_guest_frees_seat(session, recording_repo):
    session.grid()

    session.delete_guest("x")

    assert session.grid().occupant("A1") is None
    assert session.grid().occupant("A3") == "y"
    assert ("delete_guest", "x") in recording_repo.calls
    with pytest.raises(GuestNotFoundError):
        session.get_guest("x")

def test_rollback_delete_reinserts_at_same_position(session):
    result = session.delete_guest("y")
    session.rollback(result.command.id)
    assert [g.id for g in session.guests] == ["x", "y", "z"]
    assert session.grid().occupant("A3") == "y"

def test_add_guest_to_taken_seat_is_refused(session, recording_repo):
    result = session.add_guest(make_guest("w", "A-1"))
    assert not result.ok
    assert result.assignment.occupant_id == "x"
    assert len(session.guests) == 3
    assert recording_repo.calls == []

def test_add_guest_extends_grid(session):
    session.grid()
    result = session.add_guest(make_guest("w", "B-5"))
    assert result.ok
    grid = session.grid()
    assert grid.rows == ["A", "B"]
    assert grid.cols == 5
    assert grid.occupant("B5") == "w"

def test_cancel_with_release_frees_seat(session, recording_repo):
    session.grid()
    result = session.update_status("y", GuestStatus.CANCELLED, release_seat=True)

    assert result.guest.status == GuestStatus.CANCELLED
    assert result.guest.seat_number is None
    assert session.grid().occupant("A3") is None
    assert recording_repo.calls[-1][2]["seat_number"] is None

def test_cancel_without_release_keeps_seat(session):
    session.update_status("y", GuestStatus.CANCELLED)
    assert session.get_guest("y").seat_number == "A-3"
    assert session.grid().occupant("A3") == "y"

def test_release_only_applies_to_cancellation(session):
    session.update_status("y", GuestStatus.ARRIVED, release_seat=True)
    assert session.get_guest("y").seat_number == "A-3"

def test_update_guest_rejects_seat_changes(session):
    with pytest.raises(SeatingError):
        session.update_guest("x", {"seat_number": "B-1"})

def test_update_guest_fields(session, recording_repo):
    result = session.update_guest("x", {"position": "국장", "protocol_notes": ["휠체어"]})
    assert result.guest.position == "국장"
    assert result.guest.protocol_notes == ["휠체어"]
    assert recording_repo.calls[-1][2]["position"] == "국장"

def test_import_and_clear_layout(session):
    session.import_layout(GridLayout(rows=2, cols=4, row_labels=["A", "B"]))
    grid = session.grid()
    assert grid.explicit
    assert len(grid) == 8

    session.clear_layout()
    grid = session.grid()
    assert not grid.explicit
    assert grid.rows == ["A"]
    assert grid.cols == 3

def test_replace_guests_resets_grid(session, recording_repo):
    session.grid()
    imported = [make_guest("n1", "C-1"), make_guest("n2", "C-2")]

    session.replace_guests(imported, GridLayout(rows=1, cols=2, row_labels=["C"]))

    assert [g.id for g in session.guests] == ["n1", "n2"]
    assert session.grid().occupant("C2") == "n2"
    assert recording_repo.calls[:2] == [("delete_event_guests", "EVT1"), ("create_guests", ["n1", "n2"])]

def test_registry_loads_session_from_storage(registry, event_repo, guest_repo):
    event = event_repo.create_event(EventCreate(title="체육대상 시상식", date=datetime(2025, 12, 1, 14)))
    guest_repo.create_guests([
        make_guest("g1", "A-1", event_id=event.id),
        make_guest("g2", "A-2", event_id=event.id, protocol_notes=["휠체어", "대리수상"]),
    ])

    with registry.session(event.id) as session:
        assert [g.id for g in session.guests] == ["g1", "g2"]
        assert session.get_guest("g2").protocol_notes == ["휠체어", "대리수상"]
        result = session.assign_seat("g1", "B1")
        assert result.persisted is True

    stored = {g.id: g for g in guest_repo.list_guests(event.id)}
    assert stored["g1"].seat_number == "B-1"

def test_registry_uses_stored_layout(registry, event_repo):
    event = event_repo.create_event(EventCreate(title="Gala", date=datetime(2025, 5, 1)))
    event_repo.set_layout(event.id, GridLayout(rows=1, cols=3, row_labels=["A"]))

    with registry.session(event.id) as session:
        grid = session.grid()

    assert grid.explicit
    assert [seat.id for seat in grid] == ["A1", "A2", "A3"]

def assert_grid_matches_guests(session):
    assert occupancy(session.grid()) == occupancy(LayoutService.materialize(session.guests, session.layout))
    seats = [g.seat_number for g in session.guests if g.seat_number]
    assert len(seats) == len(set(seats))

def test_rollback_add_after_move_clears_current_seat(session):
    session.grid()
    added = session.add_guest(make_guest("w", "B-1"))
    session.assign_seat("w", "A-2")

    session.rollback(added.command.id)

    assert [g.id for g in session.guests] == ["x", "y", "z"]
    assert session.grid().seat_of("w") is None
    assert session.grid().occupant("A2") is None
    assert_grid_matches_guests(session)

def test_rollback_delete_refuses_seat_taken_since(session):
    session.grid()
    deleted = session.delete_guest("x")
    session.assign_seat("z", "A-1")
    before = [g.model_dump() for g in session.guests]

    with pytest.raises(RollbackError, match="이영희"):
        session.rollback(deleted.command.id)

    assert [g.model_dump() for g in session.guests] == before
    assert not deleted.command.rolled_back
    assert session.grid().occupant("A1") == "z"
    assert_grid_matches_guests(session)

def test_rollback_assign_refuses_seat_taken_since(session):
    session.grid()
    moved = session.assign_seat("x", "A-2")
    session.assign_seat("z", "A-1")

    with pytest.raises(RollbackError):
        session.rollback(moved.command.id)

    assert session.get_guest("x").seat_number == "A-2"
    assert_grid_matches_guests(session)

def test_rollback_status_refuses_released_seat_taken_since(session):
    session.grid()
    cancelled = session.update_status("y", GuestStatus.CANCELLED, release_seat=True)
    session.assign_seat("z", "A-3")

    with pytest.raises(RollbackError):
        session.rollback(cancelled.command.id)

    assert session.get_guest("y").status == GuestStatus.CANCELLED
    assert_grid_matches_guests(session)

def test_rollback_update_keeps_later_seat(session):
    session.grid()
    updated = session.update_guest("x", {"position": "국장"})
    session.assign_seat("x", "A-2")

    session.rollback(updated.command.id)

    guest = session.get_guest("x")
    assert guest.position == ""
    assert guest.seat_number == "A-2"
    assert guest.version == 3
    assert_grid_matches_guests(session)

def test_rollback_after_replace_reports_missing_guest(session):
    moved = session.assign_seat("x", "A-2")
    session.replace_guests([make_guest("n1", "C-1")])

    with pytest.raises(RollbackError, match="no longer in the guest list"):
        session.rollback(moved.command.id)

    assert [g.id for g in session.guests] == ["n1"]

def test_discard_runs_under_event_lock(registry, event_repo):
    event = event_repo.create_event(EventCreate(title="Gala", date=datetime(2025, 5, 1)))
    calls = []

    def discard():
        calls.append(registry.discard(event.id, lambda: event_repo.delete_event(event.id)))

    with registry.session(event.id):
        worker = threading.Thread(target=discard)
        worker.start()
        worker.join(timeout=0.2)
        assert worker.is_alive()
        assert calls == []

    worker.join(timeout=5)
    assert calls == [True]
    assert event_repo.get_event(event.id) is None
    with registry.session(event.id) as session:
        assert session.guests == []
