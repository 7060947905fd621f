"""Seat selection for a multi-passenger booking."""
from __future__ import annotations

from typing import FrozenSet, Iterable, List, Optional, Tuple

from loguru import logger

from .gateway import BackendGateway, GatewayError
from .roster import PassengerRoster
from .seats import SeatMap, SeatStatus, seat_status

BOOKED_SEATS_ERROR = "Could not load booked seats."


class SeatSelectionController:
    """Tracks the current user's seat picks against the seats already sold.

    ``selected`` keeps insertion order, never contains a booked seat and never
    grows beyond the passenger count. Passengers are re-projected onto the
    selection after every change.
    """

    def __init__(
        self,
        seat_map: Optional[SeatMap] = None,
        *,
        booked: Iterable[str] = (),
        roster: Optional[PassengerRoster] = None,
    ) -> None:
        self.seat_map = seat_map or SeatMap()
        self.roster = roster or PassengerRoster(1)
        self._booked: FrozenSet[str] = frozenset(booked)
        self._selected: List[str] = []
        self.error_message = ""
        self.roster.assign_seats(self._selected)

    @property
    def booked(self) -> FrozenSet[str]:
        return self._booked

    @property
    def selected(self) -> Tuple[str, ...]:
        return tuple(self._selected)

    @property
    def passenger_count(self) -> int:
        return len(self.roster)

    @property
    def is_complete(self) -> bool:
        return len(self._selected) == self.passenger_count

    def max_passengers(self) -> int:
        return max(self.seat_map.available_count(self._booked), 1)

    def set_booked(self, labels: Iterable[str]) -> None:
        """Replace the booked set, dropping any selection that is no longer free."""
        self._booked = frozenset(labels)
        kept = [label for label in self._selected if label not in self._booked]
        if len(kept) != len(self._selected):
            logger.info(f"Dropped {len(self._selected) - len(kept)} selected seat(s) that are now booked")
        self._selected = kept
        self.roster.assign_seats(self._selected)

    def mark_booked(self, labels: Iterable[str]) -> None:
        self.set_booked(self._booked | frozenset(labels))

    async def load_booked_seats(self, gateway: BackendGateway, flight_id: int) -> FrozenSet[str]:
        try:
            labels = await gateway.get_booked_seats(flight_id)
        except GatewayError as exc:
            logger.warning(f"Booked seats for flight {flight_id} unavailable: {exc}")
            self.error_message = BOOKED_SEATS_ERROR
            labels = []
        self.set_booked(labels)
        return self._booked

    def set_passenger_count(self, count: int) -> int:
        """Resize the roster to ``count`` (clamped) passengers and clear the selection."""
        clamped = min(max(count, 1), self.max_passengers())
        self.roster.reset(clamped)
        self._selected = []
        self.roster.assign_seats(self._selected)
        logger.debug(f"Passenger count set to {clamped} (requested {count})")
        return clamped

    def toggle_seat(self, label: str) -> SeatStatus:
        if label not in self.seat_map:
            raise ValueError(f"Unknown seat {label!r}")
        if label in self._booked:
            return SeatStatus.BOOKED
        if label in self._selected:
            self._selected.remove(label)
        elif len(self._selected) < self.passenger_count:
            self._selected.append(label)
        self.roster.assign_seats(self._selected)
        return self.seat_status(label)

    def seat_status(self, label: str) -> SeatStatus:
        return seat_status(label, self._booked, self._selected)

    def clear(self) -> None:
        self._selected = []
        self.roster.assign_seats(self._selected)

    def render(self) -> str:
        return self.seat_map.render(self._booked, self._selected)
