"""
Seat layout inference and materialization.

The grid shape is never stored for an event unless a layout was imported
explicitly. Otherwise it is derived from the guests' seat numbers: every
group label becomes a row, and the widest group sets the column count.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Optional, Sequence

from protocol_seating.schemas.guest import GuestRecord
from protocol_seating.schemas.layout import GridLayout
from protocol_seating.services.seat_identifier import normalize_seat_id, parse_seat_identifier

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GridSize:
    rows: List[str]
    cols: int

    @property
    def is_empty(self) -> bool:
        return not self.rows or self.cols == 0

    def to_layout(self) -> GridLayout:
        return GridLayout(rows=len(self.rows), cols=self.cols, row_labels=list(self.rows))


@dataclass
class Seat:
    row: str
    col: int
    guest_id: Optional[str] = None
    disabled: bool = False

    @property
    def id(self) -> str:
        return f"{self.row}{self.col}"

    @property
    def seat_number(self) -> str:
        return f"{self.row}-{self.col}"

    @property
    def occupied(self) -> bool:
        return self.guest_id is not None

    def to_dict(self) -> Dict:
        return {
            "id": self.id,
            "row": self.row,
            "col": self.col,
            "seat_number": self.seat_number,
            "guest_id": self.guest_id,
            "disabled": self.disabled,
        }


@dataclass(frozen=True)
class OccupancyConflict:
    """A guest whose seat number points at a cell someone else already holds"""
    seat_id: str
    occupant_id: str
    guest_id: str


class SeatGrid:
    """Materialized seating grid with per-cell occupancy.

    Built by :meth:`LayoutService.materialize`. Treat it as a cache of the
    pure derivation: :meth:`reconcile` patches single-guest changes in place
    and falls back to a full rebuild when the shape itself moves.
    """

    def __init__(
        self,
        rows: Sequence[str],
        cols: int,
        row_limits: Optional[Dict[str, int]] = None,
    ):
        self._build(rows, cols, row_limits)

    def _build(self, rows: Sequence[str], cols: int, row_limits: Optional[Dict[str, int]]) -> None:
        self.rows: List[str] = list(rows)
        self.cols = cols
        # None means the shape was imported and every cell is usable
        self.row_limits = dict(row_limits) if row_limits is not None else None
        self.conflicts: List[OccupancyConflict] = []
        self._seats: Dict[str, Seat] = {}
        for row in self.rows:
            for col in range(1, cols + 1):
                disabled = self.row_limits is not None and col > self.row_limits.get(row, 0)
                seat = Seat(row=row, col=col, disabled=disabled)
                self._seats[seat.id] = seat

    @property
    def explicit(self) -> bool:
        return self.row_limits is None

    @property
    def is_empty(self) -> bool:
        return not self._seats

    def __iter__(self) -> Iterator[Seat]:
        return iter(self._seats.values())

    def __len__(self) -> int:
        return len(self._seats)

    def seat(self, seat_id: str) -> Optional[Seat]:
        """Look up a cell by cell id (``A1``) or raw seat number (``A-1``)"""
        key = normalize_seat_id(seat_id)
        return self._seats.get(key) if key else None

    def occupant(self, seat_id: str) -> Optional[str]:
        seat = self.seat(seat_id)
        return seat.guest_id if seat else None

    def seat_of(self, guest_id: str) -> Optional[Seat]:
        for seat in self._seats.values():
            if seat.guest_id == guest_id:
                return seat
        return None

    def occupied_seats(self) -> List[Seat]:
        return [seat for seat in self._seats.values() if seat.occupied]

    def place(self, guests: Iterable[GuestRecord]) -> None:
        """Resolve occupancy for every cell from scratch; first claimant wins."""
        for seat in self._seats.values():
            seat.guest_id = None
        self.conflicts = []
        for guest in guests:
            self._occupy(normalize_seat_id(guest.seat_number), guest.id)

    def reconcile(
        self,
        guests: Sequence[GuestRecord],
        guest_id: str,
        previous_seat: Optional[str],
        new_seat: Optional[str],
    ) -> bool:
        """Apply one guest's seat change to the grid.

        ``guests`` is the collection after the change (without the guest if it
        was deleted). Returns True when the shape had to be recomputed.
        """
        if not self.explicit and self._shape_changed(guests, previous_seat, new_seat):
            maxima = LayoutService.analyze(guests)
            size = LayoutService.grid_size_from(maxima)
            logger.debug("Seat layout reshaped to %d rows x %d cols", len(size.rows), size.cols)
            self._build(size.rows, size.cols, maxima)
            self.place(guests)
            return True

        previous_key = normalize_seat_id(previous_seat)
        new_key = normalize_seat_id(new_seat)
        if previous_key and previous_key != new_key:
            self._vacate(previous_key, guest_id, guests)
        if new_key:
            self._occupy(new_key, guest_id)
        return False

    def _shape_changed(
        self,
        guests: Sequence[GuestRecord],
        previous_seat: Optional[str],
        new_seat: Optional[str],
    ) -> bool:
        new = parse_seat_identifier(new_seat)
        if new is not None and new.index > self.row_limits.get(new.group, -1):
            return True
        previous = parse_seat_identifier(previous_seat)
        if previous is not None and previous.index == self.row_limits.get(previous.group):
            # the row's widest seat may have gone away
            return LayoutService.analyze(guests) != self.row_limits
        return False

    def _occupy(self, key: Optional[str], guest_id: str) -> None:
        if not key:
            return
        seat = self._seats.get(key)
        if seat is None or seat.disabled:
            return
        if seat.guest_id is None:
            seat.guest_id = guest_id
        elif seat.guest_id != guest_id:
            conflict = OccupancyConflict(seat_id=seat.id, occupant_id=seat.guest_id, guest_id=guest_id)
            self.conflicts.append(conflict)
            logger.warning(
                "Duplicate seat %s: guest %s also claims it, keeping %s",
                seat.id, guest_id, seat.guest_id,
            )

    def _vacate(self, key: str, guest_id: str, guests: Sequence[GuestRecord]) -> None:
        seat = self._seats.get(key)
        if seat is None:
            return
        self.conflicts = [
            c for c in self.conflicts
            if not (c.seat_id == seat.id and c.guest_id == guest_id)
        ]
        if seat.guest_id != guest_id:
            return
        seat.guest_id = None
        # hand the cell to the next guest still pointing at it
        successor = next(
            (g for g in guests if g.id != guest_id and normalize_seat_id(g.seat_number) == key),
            None,
        )
        if successor is None:
            return
        seat.guest_id = successor.id
        remaining = []
        for c in self.conflicts:
            if c.seat_id != seat.id:
                remaining.append(c)
            elif c.guest_id != successor.id:
                remaining.append(OccupancyConflict(seat.id, successor.id, c.guest_id))
        self.conflicts = remaining

    def to_layout(self) -> GridLayout:
        return GridLayout(rows=len(self.rows), cols=self.cols, row_labels=list(self.rows))

    def to_dict(self) -> Dict:
        return {
            "rows": self.rows,
            "cols": self.cols,
            "source": "imported" if self.explicit else "inferred",
            "seats": [seat.to_dict() for seat in self._seats.values()],
            "conflicts": [
                {"seat_id": c.seat_id, "occupant_id": c.occupant_id, "guest_id": c.guest_id}
                for c in self.conflicts
            ],
        }


class LayoutService:
    """Derives the seating grid from a guest collection"""

    @staticmethod
    def analyze(guests: Iterable[GuestRecord]) -> Dict[str, int]:
        """Highest seat index seen per group; unparseable seats are ignored"""
        maxima: Dict[str, int] = {}
        for guest in guests:
            parsed = parse_seat_identifier(guest.seat_number)
            if parsed is None:
                continue
            maxima[parsed.group] = max(maxima.get(parsed.group, 0), parsed.index)
        return maxima

    @staticmethod
    def grid_size_from(maxima: Dict[str, int]) -> GridSize:
        if not maxima:
            return GridSize(rows=[], cols=0)
        # plain string order: "AA" sorts between "A" and "B"
        return GridSize(rows=sorted(maxima), cols=max(maxima.values()))

    @staticmethod
    def compute_grid_size(guests: Iterable[GuestRecord]) -> GridSize:
        """Rows are the sorted group labels, columns the widest group"""
        return LayoutService.grid_size_from(LayoutService.analyze(guests))

    @staticmethod
    def materialize(
        guests: Iterable[GuestRecord],
        layout: Optional[GridLayout] = None,
    ) -> SeatGrid:
        """Expand the layout into cells and resolve who sits where.

        With an explicit ``layout`` the inference is skipped and every cell of
        ``row_labels x 1..cols`` is usable. Without one, cells past a row's own
        widest seat are marked disabled. An empty guest list (or one with no
        parseable seat numbers) yields an empty grid.
        """
        guests = list(guests)
        if layout is not None:
            grid = SeatGrid(layout.row_labels, layout.cols)
        else:
            maxima = LayoutService.analyze(guests)
            size = LayoutService.grid_size_from(maxima)
            if size.is_empty:
                logger.info("No parseable seat numbers, no layout derivable")
            grid = SeatGrid(size.rows, size.cols, row_limits=maxima)
        grid.place(guests)
        return grid

    @staticmethod
    def summarize(guests: Iterable[GuestRecord]) -> Dict:
        """Per-group seat counts for the upload preview"""
        guests = list(guests)
        maxima = LayoutService.analyze(guests)
        return {
            "total_tables": len(maxima),
            "total_seats": sum(maxima.values()),
            "assigned_seats": sum(1 for g in guests if g.seat_number),
            "table_details": [
                {"table_id": group, "max_seat": maxima[group]}
                for group in sorted(maxima)
            ],
        }
