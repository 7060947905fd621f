from __future__ import annotations

import asyncio
import tempfile
import threading
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from airline_reservation.database import init_db
from airline_reservation.services import add_flight
from skybook.flights import NO_MATCHES, FlightBrowser
from skybook.gateway import ConflictError, NotFoundError
from skybook.history import CANCEL_WINDOW_MESSAGE, BookingHistoryAggregator
from skybook.local_gateway import LocalBackendGateway
from skybook.models import BookingStatus, Passenger
from skybook.session import CurrentSession
from skybook.submission import BookingSession

NOW = datetime(2030, 3, 1, 9, 0)


def make_gateway():
    db_file = Path(tempfile.mkstemp(prefix="local-gateway", suffix=".db")[1])
    session_factory = init_db(f"sqlite+pysqlite:///{db_file}")
    with session_factory() as session:
        soon = add_flight(
            session,
            flight_number="SB501",
            from_city="Delhi",
            to_city="Goa",
            departure_time=NOW + timedelta(hours=12),
            arrival_time=NOW + timedelta(hours=14),
            cost=3500.0,
            seats_available=72,
            now=NOW,
        )
        later = add_flight(
            session,
            flight_number="SB502",
            from_city="Delhi",
            to_city="Goa",
            departure_time=NOW + timedelta(days=4),
            arrival_time=NOW + timedelta(days=4, hours=2),
            cost=3900.0,
            seats_available=72,
            now=NOW,
        )
        session.commit()
    return LocalBackendGateway(session_factory, clock=lambda: NOW), soon.id, later.id


def _book(gateway, session, flight_id, passengers, seats):
    booking = BookingSession(gateway, session, flight_id)
    asyncio.run(booking.load())
    booking.controller.set_passenger_count(len(passengers))
    for index, (name, age) in enumerate(passengers):
        booking.controller.roster.update(index, name=name, age=age)
    for seat in seats:
        booking.controller.toggle_seat(seat)
    return asyncio.run(booking.submit())


def test_book_review_and_cancel_round_trip():
    gateway, soon_id, later_id = make_gateway()
    session = CurrentSession.for_email("ana@example.com")

    first = _book(gateway, session, later_id, [("Ana", 34), ("Bo", 9)], ["10", "11"])
    second = _book(gateway, session, soon_id, [("Ana", 34)], ["1"])
    assert first.success and second.success
    assert len(first.confirmation_codes) == 2
    assert asyncio.run(gateway.get_booked_seats(later_id)) == ["10", "11"]

    history = BookingHistoryAggregator(gateway, session)
    entries = asyncio.run(history.load())
    assert [entry.flight.flight_number for entry in entries] == ["SB502", "SB502", "SB501"]

    soon_booking = entries[2].booking
    history.request_cancel(soon_booking)
    assert not asyncio.run(history.confirm_cancel())
    assert history.error_message == CANCEL_WINDOW_MESSAGE

    later_booking = entries[0].booking
    history.request_cancel(later_booking)
    assert asyncio.run(history.confirm_cancel())
    assert history.entries[-1].booking.id == later_booking.id
    assert history.entries[-1].booking.status is BookingStatus.CANCELLED

    reloaded = asyncio.run(history.load())
    assert [entry.booking.status for entry in reloaded].count(BookingStatus.CANCELLED) == 1


def test_taken_seat_fails_whole_submission_after_earlier_passengers():
    gateway, _, later_id = make_gateway()
    _book(gateway, CurrentSession.for_email("bo@example.com"), later_id, [("Bo", 40)], ["2"])

    booking = BookingSession(gateway, CurrentSession.for_email("ana@example.com"), later_id)
    booking.controller.set_passenger_count(2)
    booking.controller.roster.update(0, name="Ana", age=34)
    booking.controller.roster.update(1, name="Cy", age=5)
    booking.controller.toggle_seat("1")
    booking.controller.toggle_seat("2")  # booked set not loaded yet, so still selectable
    result = asyncio.run(booking.submit())

    assert not result.success
    # the first passenger's booking stands on the backend
    assert asyncio.run(gateway.get_booked_seats(later_id)) == ["2", "1"]


def test_gateway_errors_are_translated():
    gateway, _, later_id = make_gateway()
    with pytest.raises(NotFoundError):
        asyncio.run(gateway.get_flight(999))
    with pytest.raises(NotFoundError):
        asyncio.run(gateway.list_bookings_by_email("nobody@example.com"))
    asyncio.run(gateway.create_booking(later_id, Passenger(name="Ana", age=3), "5", "ana@example.com"))
    with pytest.raises(ConflictError):
        asyncio.run(gateway.create_booking(later_id, Passenger(name="Bo", age=3), "5", "bo@example.com"))


def test_search_through_browser():
    gateway, soon_id, later_id = make_gateway()
    browser = FlightBrowser(gateway)

    results = asyncio.run(browser.search(" delhi ", "goa", (NOW + timedelta(days=4)).date().isoformat()))
    assert [flight.id for flight in results] == [later_id]

    assert asyncio.run(browser.search("Delhi", "Pune", "2030-03-05")) == []
    assert browser.info_message == NO_MATCHES
    assert browser.error_message == ""

    assert len(asyncio.run(browser.load_all())) == 2
    assert browser.show_all


def test_backend_work_runs_off_the_event_loop_thread():
    gateway, soon_id, later_id = make_gateway()
    factory = gateway.session_factory
    threads = []

    def recording_factory():
        threads.append(threading.get_ident())
        return factory()

    gateway.session_factory = recording_factory

    async def fetch_both():
        return await asyncio.gather(gateway.get_flight(soon_id), gateway.get_flight(later_id))

    flights = asyncio.run(fetch_both())

    assert [flight.flight_number for flight in flights] == ["SB501", "SB502"]
    assert len(threads) == 2
    assert threading.get_ident() not in threads
