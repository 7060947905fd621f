"""In-process gateway backed directly by the reference reservation services."""
from __future__ import annotations

import asyncio
from contextlib import contextmanager
from datetime import date, datetime
from typing import Callable, Iterator, List, TypeVar

from sqlalchemy.orm import Session, sessionmaker

from airline_reservation import services
from airline_reservation.api import ERROR_RESPONSES, booking_payload, flight_payload
from airline_reservation.database import session_scope

from .gateway import booking_request, error_for_status
from .models import Booking, BookingConfirmation, Flight, Passenger

T = TypeVar("T")


class LocalBackendGateway:
    """Serves gateway calls from a SQLAlchemy session factory in this process.

    Every call opens its own transactional session in a worker thread, so
    concurrent awaits (the history flight join, for one) overlap the way they
    do against the HTTP backend.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.session_factory = session_factory
        self.clock = clock

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with session_scope(self.session_factory) as session:
                yield session
        except services.ReservationError as exc:
            status_code, code = ERROR_RESPONSES.get(type(exc), (400, "REJECTED"))
            raise error_for_status(status_code, {"code": code, "message": str(exc)}) from exc

    def _in_session(self, work: Callable[[Session], T]) -> T:
        with self._session() as session:
            return work(session)

    async def _run(self, work: Callable[[Session], T]) -> T:
        return await asyncio.to_thread(self._in_session, work)

    async def list_flights(self) -> List[Flight]:
        return await self._run(
            lambda session: [Flight.from_payload(flight_payload(flight)) for flight in services.list_flights(session)]
        )

    async def search_flights(self, from_city: str, to_city: str, travel_date: date) -> List[Flight]:
        def work(session: Session) -> List[Flight]:
            flights = services.search_flights(
                session, from_city=from_city, to_city=to_city, travel_date=travel_date
            )
            return [Flight.from_payload(flight_payload(flight)) for flight in flights]

        return await self._run(work)

    async def get_flight(self, flight_id: int) -> Flight:
        return await self._run(
            lambda session: Flight.from_payload(flight_payload(services.get_flight(session, flight_id)))
        )

    async def get_booked_seats(self, flight_id: int) -> List[str]:
        def work(session: Session) -> List[str]:
            services.get_flight(session, flight_id)
            return services.get_booked_seats(session, flight_id)

        return await self._run(work)

    async def create_booking(
        self, flight_id: int, passenger: Passenger, seat: str, email: str
    ) -> BookingConfirmation:
        request = booking_request(flight_id, passenger, seat, email)

        def work(session: Session) -> BookingConfirmation:
            booking = services.book_ticket(
                session,
                flight_id=flight_id,
                passenger_name=request["passengerName"],
                age=request["age"],
                gender=request["gender"],
                meal=request["meal"],
                email=email,
                seat_number=seat,
                number_of_tickets=request["numberOfTickets"],
            )
            return BookingConfirmation(confirmation_code=booking.pnr, booking_id=booking.id)

        return await self._run(work)

    async def list_bookings_by_email(self, email: str) -> List[Booking]:
        def work(session: Session) -> List[Booking]:
            bookings = services.list_bookings_by_email(session, email)
            if not bookings:
                raise services.BookingNotFoundError(f"No bookings found for {email}")
            return [Booking.from_payload(booking_payload(booking)) for booking in bookings]

        return await self._run(work)

    async def cancel_booking(self, booking_id: int) -> Booking:
        now = self.clock()
        return await self._run(
            lambda session: Booking.from_payload(
                booking_payload(services.cancel_booking(session, booking_id=booking_id, now=now))
            )
        )
