"""
Tests for seat assignment conflict resolution
"""

import pytest

from protocol_seating.services.assignment_service import AssignmentService
from protocol_seating.services.errors import GuestNotFoundError
from tests.factories import make_guest

@pytest.fixture
def guests():
    return [
        make_guest("x", "A-1", name="홍길동"),
        make_guest("y", "B-2", name="김철수"),
        make_guest("z", None, name="이영희"),
    ]

def test_assign_to_free_seat(guests):
    result = AssignmentService.assign("z", "A-2", guests)
    assert result.success
    assert result.seat_number == "A-2"
    assert result.vacated is None
    assert not result.no_op

def test_assign_accepts_grid_cell_id(guests):
    """Cell ids carry no separator; the stored seat number does"""
    result = AssignmentService.assign("z", "C3", guests)
    assert result.success
    assert result.seat_number == "C-3"

def test_assign_to_taken_seat_reports_occupant(guests):
    before = [g.model_dump() for g in guests]

    result = AssignmentService.assign("z", "A1", guests)

    assert not result.success
    assert result.occupant_id == "x"
    assert result.occupant_name == "홍길동"
    assert [g.model_dump() for g in guests] == before

def test_moving_guest_vacates_previous_seat(guests):
    result = AssignmentService.assign("x", "A-2", guests)
    assert result.success
    assert result.seat_number == "A-2"
    assert result.vacated == "A-1"

def test_assign_to_own_seat_is_noop(guests):
    result = AssignmentService.assign("x", "A1", guests)
    assert result.success
    assert result.no_op
    assert result.seat_number == "A-1"

@pytest.mark.parametrize("target", [None, "", "  "])
def test_empty_target_unassigns(guests, target):
    result = AssignmentService.assign("y", target, guests)
    assert result.success
    assert result.seat_number is None
    assert result.vacated == "B-2"

def test_cancelled_guest_still_holding_seat_blocks(guests):
    guests[1] = guests[1].model_copy(update={"status": "cancelled"})
    result = AssignmentService.assign("z", "B-2", guests)
    assert not result.success
    assert result.occupant_name == "김철수"

def test_unknown_guest_raises(guests):
    with pytest.raises(GuestNotFoundError):
        AssignmentService.assign("nobody", "A-1", guests)

def test_find_occupant_uses_collection_order():
    guests = [make_guest("a", "A-1"), make_guest("b", "A-1")]
    assert AssignmentService.find_occupant("A1", guests).id == "a"
    assert AssignmentService.find_occupant("A1", guests, exclude_guest_id="a").id == "b"
    assert AssignmentService.find_occupant("", guests) is None
