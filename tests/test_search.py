"""
Tests for guest search
"""

from protocol_seating.services.search import chosung, hangul_match, search_guests
from tests.factories import make_guest

def test_chosung_extraction():
    assert chosung("홍길동") == "ㅎㄱㄷ"
    assert chosung("김A") == "ㄱA"

def test_hangul_match_plain_and_initials():
    assert hangul_match("홍길동", "길동")
    assert hangul_match("홍길동", "ㅎㄱㄷ")
    assert hangul_match("홍길동", "ㄱㄷ")
    assert not hangul_match("홍길동", "ㅂ")
    assert not hangul_match("홍길동", "김")

def test_search_guests_matches_name_organization_position():
    guests = [
        make_guest("g1", name="홍길동", organization="경기도청", position="국장"),
        make_guest("g2", name="김철수", organization="수원시청", position="과장"),
    ]
    assert [g.id for g in search_guests(guests, "ㄱㅊㅅ")] == ["g2"]
    assert [g.id for g in search_guests(guests, "경기")] == ["g1"]
    assert [g.id for g in search_guests(guests, "과장")] == ["g2"]
    assert len(search_guests(guests, "")) == 2
    assert len(search_guests(guests, None)) == 2
