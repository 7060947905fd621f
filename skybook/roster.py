"""Passenger roster for a single booking session."""
from __future__ import annotations

from typing import Iterator, List, Sequence

from .models import Gender, MealPreference, Passenger


def project_seats(passengers: Sequence[Passenger], selected: Sequence[str]) -> None:
    """Give passenger ``i`` the ``i``-th selected seat, or no seat when there is none.

    Assignment is positional: dropping an early selection moves every later
    passenger up by one seat.
    """
    for index, passenger in enumerate(passengers):
        passenger.seat = selected[index] if index < len(selected) else ""


class PassengerRoster:
    """Ordered passenger records sized to the chosen passenger count."""

    def __init__(self, count: int = 1) -> None:
        self._passengers: List[Passenger] = []
        self.reset(count)

    def reset(self, count: int) -> None:
        if count < 0:
            raise ValueError("passenger count cannot be negative")
        self._passengers = [Passenger() for _ in range(count)]

    def update(
        self,
        index: int,
        *,
        name: str | None = None,
        age: int | None = None,
        gender: Gender | str | None = None,
        meal: MealPreference | str | None = None,
    ) -> Passenger:
        """Edit the details of passenger ``index``; seats are managed by seat selection."""
        passenger = self._passengers[index]
        if name is not None:
            passenger.name = name
        if age is not None:
            passenger.age = int(age)
        if gender is not None:
            passenger.gender = Gender(gender)
        if meal is not None:
            passenger.meal = MealPreference(meal)
        return passenger

    def assign_seats(self, selected: Sequence[str]) -> None:
        project_seats(self._passengers, selected)

    @property
    def seats(self) -> List[str]:
        return [passenger.seat for passenger in self._passengers]

    def incomplete(self) -> List[int]:
        return [index for index, passenger in enumerate(self._passengers) if not passenger.is_complete()]

    def __len__(self) -> int:
        return len(self._passengers)

    def __iter__(self) -> Iterator[Passenger]:
        return iter(self._passengers)

    def __getitem__(self, index: int) -> Passenger:
        return self._passengers[index]
