"""Seat inventory: the cabin layout and per-seat status."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, List, Sequence

from tabulate import tabulate

TOTAL_SEATS = 72
SEATS_PER_ROW = 6


class SeatStatus(str, Enum):
    BOOKED = "booked"
    SELECTED = "selected"
    AVAILABLE = "available"


_STATUS_MARKERS = {
    SeatStatus.BOOKED: "x",
    SeatStatus.SELECTED: "*",
    SeatStatus.AVAILABLE: "",
}


def seat_status(label: str, booked: AbstractSet[str], selected: Sequence[str]) -> SeatStatus:
    if label in booked:
        return SeatStatus.BOOKED
    if label in selected:
        return SeatStatus.SELECTED
    return SeatStatus.AVAILABLE


@dataclass(frozen=True)
class SeatMap:
    """Fixed cabin of ``total_seats`` seats labelled "1".."N", laid out in rows."""

    total_seats: int = TOTAL_SEATS
    seats_per_row: int = SEATS_PER_ROW

    def __post_init__(self) -> None:
        if self.total_seats < 1 or self.seats_per_row < 1:
            raise ValueError("seat map needs at least one seat and one seat per row")

    @property
    def labels(self) -> List[str]:
        return [str(number) for number in range(1, self.total_seats + 1)]

    def __contains__(self, label: object) -> bool:
        return isinstance(label, str) and label.isdigit() and 1 <= int(label) <= self.total_seats

    def rows(self) -> List[List[str]]:
        labels = self.labels
        return [labels[i : i + self.seats_per_row] for i in range(0, len(labels), self.seats_per_row)]

    def available_count(self, booked: AbstractSet[str]) -> int:
        return self.total_seats - sum(1 for label in booked if label in self)

    def render(self, booked: AbstractSet[str], selected: Sequence[str] = ()) -> str:
        """Render the cabin as a text grid; booked seats end in ``x``, selected ones in ``*``."""
        grid = [
            [f"{label}{_STATUS_MARKERS[seat_status(label, booked, selected)]}" for label in row]
            for row in self.rows()
        ]
        return tabulate(grid, tablefmt="plain", stralign="right")
