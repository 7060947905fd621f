from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Dict, List, Optional

import pytest

from skybook.gateway import GatewayError, NotFoundError
from skybook.models import Booking, BookingConfirmation, BookingStatus, Flight


class FakeGateway:
    """Scriptable stand-in for the booking backend that records every call."""

    def __init__(
        self,
        *,
        flights: Optional[Dict[int, Flight]] = None,
        booked: Optional[List[str]] = None,
        bookings: Optional[List[Booking]] = None,
        failures: Optional[Dict[str, Exception]] = None,
        fail_on_booking: Optional[int] = None,
    ) -> None:
        self.flights = flights or {}
        self.booked = booked or []
        self.bookings = bookings or []
        self.failures = failures or {}
        self.fail_on_booking = fail_on_booking
        self.calls: List[tuple] = []

    def _check(self, name: str) -> None:
        if name in self.failures:
            raise self.failures[name]

    async def list_flights(self):
        self.calls.append(("list_flights",))
        self._check("list_flights")
        return list(self.flights.values())

    async def search_flights(self, from_city, to_city, travel_date):
        self.calls.append(("search_flights", from_city, to_city, travel_date))
        self._check("search_flights")
        return [
            flight
            for flight in self.flights.values()
            if flight.from_city == from_city
            and flight.to_city == to_city
            and flight.departure_time.date() == travel_date
        ]

    async def get_flight(self, flight_id):
        self.calls.append(("get_flight", flight_id))
        await asyncio.sleep(0)
        self._check(f"get_flight:{flight_id}")
        if flight_id not in self.flights:
            raise NotFoundError("Flight Not Found", status_code=404)
        return self.flights[flight_id]

    async def get_booked_seats(self, flight_id):
        self.calls.append(("get_booked_seats", flight_id))
        self._check("get_booked_seats")
        return list(self.booked)

    async def create_booking(self, flight_id, passenger, seat, email):
        self.calls.append(("create_booking", passenger.name, seat, email))
        await asyncio.sleep(0)
        count = sum(1 for call in self.calls if call[0] == "create_booking")
        if count == self.fail_on_booking:
            raise GatewayError("Booking rejected", status_code=500)
        self.booked.append(seat)
        return BookingConfirmation(confirmation_code=f"PNR{count}", booking_id=count)

    async def list_bookings_by_email(self, email):
        self.calls.append(("list_bookings_by_email", email))
        self._check("list_bookings_by_email")
        return list(self.bookings)

    async def cancel_booking(self, booking_id):
        self.calls.append(("cancel_booking", booking_id))
        self._check("cancel_booking")
        for booking in self.bookings:
            if booking.id == booking_id:
                return booking.cancelled()
        raise NotFoundError("Booking not found", status_code=404)

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)


def make_flight(flight_id: int, departure: str, **overrides) -> Flight:
    departure_time = datetime.fromisoformat(departure)
    values = dict(
        id=flight_id,
        flight_number=f"SB{flight_id}",
        from_city="DELHI",
        to_city="GOA",
        departure_time=departure_time,
        arrival_time=departure_time,
        cost=4200.0,
        seats_available=72,
    )
    values.update(overrides)
    return Flight(**values)


def make_booking(booking_id: int, flight_id: int, status: str = "BOOKED", **overrides) -> Booking:
    values = dict(
        id=booking_id,
        flight_id=flight_id,
        passenger_name=f"Passenger {booking_id}",
        age=30,
        gender="MALE",
        meal="NONE",
        email="ana@example.com",
        number_of_tickets=1,
        seat=str(booking_id),
        status=BookingStatus(status),
        pnr=f"PNR{booking_id:05d}",
    )
    values.update(overrides)
    return Booking(**values)


@pytest.fixture
def fake_gateway():
    return FakeGateway


@pytest.fixture
def flight_factory():
    return make_flight


@pytest.fixture
def booking_factory():
    return make_booking
