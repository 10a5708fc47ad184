"""
Guest name search with Hangul initial-consonant (chosung) matching
"""

import re
from typing import Iterable, List

from protocol_seating.schemas.guest import GuestRecord

CHOSUNG = [
    "ㄱ", "ㄲ", "ㄴ", "ㄷ", "ㄸ", "ㄹ", "ㅁ", "ㅂ", "ㅃ", "ㅅ",
    "ㅆ", "ㅇ", "ㅈ", "ㅉ", "ㅊ", "ㅋ", "ㅌ", "ㅍ", "ㅎ",
]
HANGUL_BASE = 0xAC00
HANGUL_SYLLABLES = 11172
JAMO_PATTERN = re.compile(r"[ㄱ-ㅎ]")


def chosung(text: str) -> str:
    """Replace each Hangul syllable with its initial consonant"""
    out = []
    for char in text:
        code = ord(char) - HANGUL_BASE
        out.append(CHOSUNG[code // 588] if 0 <= code < HANGUL_SYLLABLES else char)
    return "".join(out)


def hangul_match(text: str, query: str) -> bool:
    if query in text:
        return True
    if JAMO_PATTERN.search(query):
        return query in chosung(text)
    return False


def search_guests(guests: Iterable[GuestRecord], query: str) -> List[GuestRecord]:
    query = (query or "").strip()
    if not query:
        return list(guests)
    return [
        g for g in guests
        if hangul_match(g.name, query) or query in g.organization or query in g.position
    ]
