"""Client-side representations of flights, passengers and bookings."""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

CANCELLATION_WINDOW = timedelta(hours=24)


class Gender(str, Enum):
    MALE = "MALE"
    FEMALE = "FEMALE"
    OTHER = "OTHER"


class MealPreference(str, Enum):
    NONE = "NONE"
    VEG = "VEG"
    NONVEG = "NONVEG"


class BookingStatus(str, Enum):
    BOOKED = "BOOKED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class Flight:
    id: int
    flight_number: str
    from_city: str
    to_city: str
    departure_time: datetime
    arrival_time: datetime
    cost: float
    seats_available: int

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Flight":
        return cls(
            id=int(payload["id"]),
            flight_number=payload.get("flightNumber", ""),
            from_city=payload.get("fromCity", ""),
            to_city=payload.get("toCity", ""),
            departure_time=datetime.fromisoformat(payload["departureTime"]),
            arrival_time=datetime.fromisoformat(payload.get("arrivalTime") or payload["departureTime"]),
            cost=float(payload.get("cost", 0.0)),
            seats_available=int(payload.get("seatsAvailable", 0)),
        )


@dataclass
class Passenger:
    """A traveller being booked in the current session."""

    name: str = ""
    age: int = 0
    gender: Gender = Gender.MALE
    meal: MealPreference = MealPreference.NONE
    seat: str = ""

    def is_complete(self) -> bool:
        return bool(self.name.strip()) and self.age >= 1


@dataclass(frozen=True)
class BookingConfirmation:
    confirmation_code: str
    booking_id: Optional[int] = None


@dataclass(frozen=True)
class Booking:
    id: int
    flight_id: int
    passenger_name: str
    age: int
    gender: str
    meal: str
    email: str
    number_of_tickets: int
    seat: str
    status: BookingStatus
    pnr: str

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "Booking":
        return cls(
            id=int(payload["id"]),
            flight_id=int(payload["flightId"]),
            passenger_name=payload.get("passengerName", ""),
            age=int(payload.get("age", 0)),
            gender=payload.get("gender", ""),
            meal=payload.get("meal", ""),
            email=payload.get("email", ""),
            number_of_tickets=int(payload.get("numberOfTickets", 1)),
            seat=payload.get("seatNumber") or "",
            status=BookingStatus(payload.get("status", BookingStatus.BOOKED.value)),
            pnr=payload.get("pnr", ""),
        )

    def cancelled(self) -> "Booking":
        return replace(self, status=BookingStatus.CANCELLED)


@dataclass(frozen=True)
class BookingWithFlight:
    """A booking joined with its flight, when the flight could be resolved."""

    booking: Booking
    flight: Optional[Flight] = None

    def is_cancellable(self, now: Optional[datetime] = None) -> bool:
        """Hint for display only; the backend decides on the actual cancellation."""
        if self.booking.status is not BookingStatus.BOOKED:
            return False
        if self.flight is None:
            return True
        now = now or datetime.now()
        return self.flight.departure_time - now >= CANCELLATION_WINDOW
