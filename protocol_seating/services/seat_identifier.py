"""
Seat identifier parsing.

Guests carry free-form seat strings such as ``"A-1"`` or ``"B-12"``: a group
label of uppercase ASCII letters, a hyphen, and a positive index. Grid cells
are addressed without the separator (``"A1"``). Anything else is treated as
"no seat" by the layout engine while still being stored verbatim.
"""

import re
from typing import NamedTuple, Optional

SEAT_PATTERN = re.compile(r"^([A-Z]+)-([0-9]+)$")
CELL_PATTERN = re.compile(r"^([A-Z]+)([0-9]+)$")


class SeatIdentifier(NamedTuple):
    group: str
    index: int

    def render(self) -> str:
        """Hyphenated storage form, e.g. ``A-1``"""
        return f"{self.group}-{self.index}"

    @property
    def cell_id(self) -> str:
        """Grid cell form, e.g. ``A1``"""
        return f"{self.group}{self.index}"


def parse_seat_identifier(raw) -> Optional[SeatIdentifier]:
    """Parse ``GROUP-INDEX`` or return None. Never raises."""
    if not isinstance(raw, str) or not raw.strip():
        return None
    # fullmatch so a trailing newline is rejected too
    match = SEAT_PATTERN.fullmatch(raw)
    if not match:
        return None
    return SeatIdentifier(match.group(1), int(match.group(2)))


def normalize_seat_id(raw) -> Optional[str]:
    """Comparison key for matching a stored seat string against a cell id."""
    if not isinstance(raw, str) or not raw:
        return None
    parsed = parse_seat_identifier(raw)
    if parsed is not None:
        return parsed.cell_id
    return raw.replace("-", "", 1)


def to_seat_number(value) -> Optional[str]:
    """Convert a cell id or a raw identifier to the hyphenated storage form."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    parsed = parse_seat_identifier(value)
    if parsed is not None:
        return parsed.render()
    match = CELL_PATTERN.fullmatch(value)
    if match:
        return SeatIdentifier(match.group(1), int(match.group(2))).render()
    return None
