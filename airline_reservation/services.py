"""Business logic for the reference booking backend."""
from __future__ import annotations

import uuid
from datetime import date, datetime, time, timedelta
from typing import Callable, List, Optional

from loguru import logger
from sqlalchemy import Select, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import Booking, Flight

CABIN_SEATS = 72
CANCELLATION_WINDOW = timedelta(hours=24)

BOOKED = "BOOKED"
CANCELLED = "CANCELLED"


class ReservationError(RuntimeError):
    """Base class for errors raised by the reservation services."""


class FlightNotFoundError(ReservationError):
    pass


class BookingNotFoundError(ReservationError):
    pass


class DuplicateFlightError(ReservationError):
    """Raised when a flight number is already registered."""


class InvalidFlightError(ReservationError):
    """Raised when flight details are inconsistent."""


class SeatUnavailableError(ReservationError):
    """Raised when a seat cannot be sold, or the flight has no seats left."""


class CancellationWindowError(ReservationError):
    """Raised when a cancellation is attempted too close to departure."""


def generate_pnr() -> str:
    return uuid.uuid4().hex[:8].upper()


def add_flight(
    session: Session,
    *,
    flight_number: str,
    from_city: str,
    to_city: str,
    departure_time: datetime,
    arrival_time: datetime,
    cost: float,
    seats_available: int,
    now: Optional[datetime] = None,
) -> Flight:
    """Create a flight entry after checking the schedule is consistent."""

    now = now or datetime.now()
    if session.scalar(select(Flight.id).where(Flight.flight_number == flight_number)) is not None:
        raise DuplicateFlightError("Flight already exists")
    if from_city.strip().lower() == to_city.strip().lower():
        raise InvalidFlightError("From city and To city cannot be the same")
    if departure_time < now:
        raise InvalidFlightError("Departure time cannot be in the past")
    if arrival_time < departure_time:
        raise InvalidFlightError("Arrival time must be after departure time")

    flight = Flight(
        flight_number=flight_number,
        from_city=from_city.strip().upper(),
        to_city=to_city.strip().upper(),
        departure_time=departure_time,
        arrival_time=arrival_time,
        cost=cost,
        seats_available=seats_available,
    )
    session.add(flight)
    session.flush()
    logger.info(f"Added flight {flight_number} ({flight.from_city}->{flight.to_city})")
    return flight


def list_flights(session: Session) -> List[Flight]:
    return list(session.scalars(select(Flight).order_by(Flight.departure_time)))


def get_flight(session: Session, flight_id: int) -> Flight:
    flight = session.get(Flight, flight_id)
    if flight is None:
        raise FlightNotFoundError("Flight Not Found")
    return flight


def search_flights(
    session: Session,
    *,
    from_city: str,
    to_city: str,
    travel_date: date,
) -> List[Flight]:
    """Return flights on ``travel_date`` between two cities, ignoring case."""

    start = datetime.combine(travel_date, time.min)
    end = start + timedelta(days=1)
    stmt: Select[tuple[Flight]] = (
        select(Flight)
        .where(
            func.lower(Flight.from_city) == from_city.strip().lower(),
            func.lower(Flight.to_city) == to_city.strip().lower(),
            Flight.departure_time >= start,
            Flight.departure_time < end,
        )
        .order_by(Flight.departure_time)
    )
    flights = list(session.scalars(stmt))
    if not flights:
        raise FlightNotFoundError(
            f"No flights found from {from_city} to {to_city} on {travel_date.isoformat()}"
        )
    return flights


def _validate_seat(seat_number: str) -> None:
    if not seat_number.isdigit() or not 1 <= int(seat_number) <= CABIN_SEATS:
        raise SeatUnavailableError(f"Seat {seat_number!r} does not exist")


def get_booked_seats(session: Session, flight_id: int) -> List[str]:
    """Return the seat numbers held by active bookings on a flight."""

    stmt = (
        select(Booking.seat_number)
        .where(Booking.flight_id == flight_id, Booking.status == BOOKED)
        .order_by(Booking.id)
    )
    return [seat for seat in session.scalars(stmt) if seat]


def book_ticket(
    session: Session,
    *,
    flight_id: int,
    passenger_name: str,
    age: int,
    gender: str,
    meal: str,
    email: str,
    seat_number: str,
    number_of_tickets: int = 1,
    pnr_factory: Callable[[], str] = generate_pnr,
) -> Booking:
    """Reserve a seat for one passenger and issue a PNR."""

    with session.begin_nested():
        flight = session.get(Flight, flight_id, with_for_update=True)
        if flight is None:
            raise FlightNotFoundError("Flight Not Found")
        if number_of_tickets > flight.seats_available:
            raise SeatUnavailableError("Not enough seats available")
        _validate_seat(seat_number)
        if seat_number in get_booked_seats(session, flight_id):
            raise SeatUnavailableError(f"Seat {seat_number} is already booked")

        booking = Booking(
            flight=flight,
            passenger_name=passenger_name,
            age=age,
            gender=gender,
            meal=meal,
            email=email,
            number_of_tickets=number_of_tickets,
            seat_number=seat_number,
            status=BOOKED,
            pnr=pnr_factory(),
        )
        session.add(booking)
        try:
            session.flush()
        except IntegrityError as exc:
            raise SeatUnavailableError(f"Seat {seat_number} is already booked") from exc
        flight.seats_available -= number_of_tickets
    logger.info(f"Booked seat {seat_number} on flight {flight_id} with PNR {booking.pnr}")
    return booking


def list_bookings_by_email(session: Session, email: str) -> List[Booking]:
    return list(session.scalars(select(Booking).where(Booking.email == email).order_by(Booking.id)))


def get_booking(session: Session, booking_id: int) -> Booking:
    booking = session.get(Booking, booking_id)
    if booking is None:
        raise BookingNotFoundError("Booking not found")
    return booking


def get_booking_by_pnr(session: Session, pnr: str) -> Booking:
    booking = session.scalar(select(Booking).where(Booking.pnr == pnr))
    if booking is None:
        raise BookingNotFoundError("PNR not found")
    return booking


def cancel_booking(session: Session, *, booking_id: int, now: Optional[datetime] = None) -> Booking:
    """Cancel a booking unless its flight departs within the cancellation window."""

    now = now or datetime.now()
    with session.begin_nested():
        booking = session.get(Booking, booking_id, with_for_update=True)
        if booking is None:
            raise BookingNotFoundError("Booking not found")
        if booking.status == CANCELLED:
            return booking
        flight = booking.flight
        if flight.departure_time - now < CANCELLATION_WINDOW:
            raise CancellationWindowError("Cannot cancel less than 24 hours before departure")
        booking.status = CANCELLED
        flight.seats_available += booking.number_of_tickets
    logger.info(f"Cancelled booking {booking_id} (PNR {booking.pnr})")
    return booking
