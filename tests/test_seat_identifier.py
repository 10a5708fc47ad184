"""
Tests for seat identifier parsing and normalization
"""

import pytest

from protocol_seating.services.seat_identifier import (
    SeatIdentifier,
    normalize_seat_id,
    parse_seat_identifier,
    to_seat_number,
)

@pytest.mark.parametrize("raw, expected", [
    ("A-1", SeatIdentifier("A", 1)),
    ("B-12", SeatIdentifier("B", 12)),
    ("AA-3", SeatIdentifier("AA", 3)),
    ("C-007", SeatIdentifier("C", 7)),
])
def test_parse_valid_identifiers(raw, expected):
    """Uppercase group, hyphen, numeric index"""
    assert parse_seat_identifier(raw) == expected

@pytest.mark.parametrize("raw", [
    None, "", "   ", "a-1", "Ab-1", "A1", "A-", "-1", "A-x", "A--1", " A-1", "A-1 ", "A-1\n", "가-1", 12,
])
def test_parse_rejects_everything_else(raw):
    """Malformed identifiers mean 'no seat', never an exception"""
    assert parse_seat_identifier(raw) is None

def test_render_and_reparse_is_stable():
    """Leading zeros are dropped on render and the result parses the same"""
    parsed = parse_seat_identifier("D-0042")
    assert parsed.render() == "D-42"
    assert parse_seat_identifier(parsed.render()) == parsed
    assert parsed.cell_id == "D42"

def test_normalize_strips_separator():
    assert normalize_seat_id("A-1") == "A1"
    assert normalize_seat_id("A-01") == "A1"
    assert normalize_seat_id("A1") == "A1"
    assert normalize_seat_id("VIP-x") == "VIPx"
    assert normalize_seat_id(None) is None
    assert normalize_seat_id("") is None

def test_to_seat_number_accepts_cell_ids_and_identifiers():
    assert to_seat_number("A1") == "A-1"
    assert to_seat_number("AB12") == "AB-12"
    assert to_seat_number("B-3") == "B-3"
    assert to_seat_number(" C-04 ") == "C-4"
    assert to_seat_number("stage") is None
    assert to_seat_number(None) is None
