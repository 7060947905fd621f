from __future__ import annotations

import tempfile
from datetime import date, datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy import select
from sqlalchemy.pool import StaticPool

from airline_reservation.database import create_session_factory, engine_options, session_scope
from airline_reservation.dataset import generate_sample_data
from airline_reservation.models import Base, Booking, Flight
from airline_reservation.services import (
    CancellationWindowError,
    DuplicateFlightError,
    FlightNotFoundError,
    InvalidFlightError,
    SeatUnavailableError,
    add_flight,
    book_ticket,
    cancel_booking,
    get_booked_seats,
    get_booking_by_pnr,
    list_bookings_by_email,
    search_flights,
)

NOW = datetime(2030, 3, 1, 9, 0)


def make_session_factory():
    db_file = Path(tempfile.mkstemp(prefix="airline-test", suffix=".db")[1])
    engine, session_factory = create_session_factory(f"sqlite+pysqlite:///{db_file}", echo=False)
    Base.metadata.create_all(engine)
    return session_factory


def _add_flight(session, number="SB900", departure=NOW + timedelta(days=3), seats=72):
    return add_flight(
        session,
        flight_number=number,
        from_city="Delhi",
        to_city="Mumbai",
        departure_time=departure,
        arrival_time=departure + timedelta(hours=2),
        cost=4200.0,
        seats_available=seats,
        now=NOW,
    )


def _book(session, flight_id, seat, email="user@example.com", **kwargs):
    return book_ticket(
        session,
        flight_id=flight_id,
        passenger_name="Test User",
        age=30,
        gender="FEMALE",
        meal="VEG",
        email=email,
        seat_number=seat,
        **kwargs,
    )


def test_booking_issues_pnr_and_reduces_seats():
    session_factory = make_session_factory()
    with session_factory() as session:
        flight = _add_flight(session)
        session.commit()
    with session_factory() as session:
        booking = _book(session, flight.id, "12", pnr_factory=lambda: "ABCD1234")
        session.commit()
    with session_factory() as session:
        refreshed = session.get(Flight, flight.id)
        assert refreshed.seats_available == 71
        assert get_booked_seats(session, flight.id) == ["12"]
        assert get_booking_by_pnr(session, "ABCD1234").id == booking.id
    assert booking.status == "BOOKED"


def test_booked_seat_cannot_be_sold_twice():
    session_factory = make_session_factory()
    with session_factory() as session:
        flight = _add_flight(session)
        _book(session, flight.id, "5")
        session.commit()
    with session_factory() as session:
        with pytest.raises(SeatUnavailableError):
            _book(session, flight.id, "5", email="other@example.com")
        session.rollback()
    with session_factory() as session:
        assert session.get(Flight, flight.id).seats_available == 71
        assert len(list_bookings_by_email(session, "other@example.com")) == 0


def test_seat_outside_cabin_and_sold_out_flight_are_rejected():
    session_factory = make_session_factory()
    with session_factory() as session:
        flight = _add_flight(session, seats=1)
        with pytest.raises(SeatUnavailableError):
            _book(session, flight.id, "73")
        _book(session, flight.id, "1")
        with pytest.raises(SeatUnavailableError, match="Not enough seats"):
            _book(session, flight.id, "2")


def test_add_flight_validates_schedule():
    session_factory = make_session_factory()
    with session_factory() as session:
        _add_flight(session)
        with pytest.raises(DuplicateFlightError):
            _add_flight(session)
        with pytest.raises(InvalidFlightError):
            _add_flight(session, number="SB901", departure=NOW - timedelta(hours=1))
        with pytest.raises(InvalidFlightError):
            add_flight(
                session,
                flight_number="SB902",
                from_city="Goa",
                to_city="GOA",
                departure_time=NOW + timedelta(days=1),
                arrival_time=NOW + timedelta(days=1, hours=1),
                cost=100.0,
                seats_available=10,
                now=NOW,
            )


def test_search_matches_day_and_ignores_case():
    session_factory = make_session_factory()
    with session_factory() as session:
        flight = _add_flight(session)
        found = search_flights(session, from_city="delhi", to_city="MUMBAI", travel_date=flight.departure_time.date())
        assert [f.id for f in found] == [flight.id]
        with pytest.raises(FlightNotFoundError):
            search_flights(session, from_city="Delhi", to_city="Mumbai", travel_date=date(2030, 1, 1))


def test_cancel_frees_seat_outside_window():
    session_factory = make_session_factory()
    with session_factory() as session:
        flight = _add_flight(session, departure=NOW + timedelta(hours=25))
        booking = _book(session, flight.id, "7")
        session.commit()
    with session_factory() as session:
        cancelled = cancel_booking(session, booking_id=booking.id, now=NOW)
        session.commit()
        assert cancelled.status == "CANCELLED"
    with session_factory() as session:
        assert get_booked_seats(session, flight.id) == []
        assert session.get(Flight, flight.id).seats_available == 72
        # the seat can be sold again once cancelled
        _book(session, flight.id, "7")
        session.commit()


def test_cancel_within_24_hours_is_rejected():
    session_factory = make_session_factory()
    with session_factory() as session:
        flight = _add_flight(session, departure=NOW + timedelta(hours=23, minutes=59))
        booking = _book(session, flight.id, "8")
        session.commit()
    with session_factory() as session:
        with pytest.raises(CancellationWindowError):
            cancel_booking(session, booking_id=booking.id, now=NOW)
        session.rollback()
    with session_factory() as session:
        assert session.get(Booking, booking.id).status == "BOOKED"


def test_dataset_generator_creates_records():
    session_factory = make_session_factory()
    summary = generate_sample_data(session_factory, flights=4, customers=3, bookings=20, now=NOW)
    with session_factory() as session:
        flight_count = session.query(Flight).count()
        booking_count = session.query(Booking).count()
    assert flight_count == 4
    assert summary["bookings"] == booking_count
    assert booking_count <= 20


def test_engine_options_share_one_connection_for_in_memory_sqlite():
    memory = engine_options("sqlite+pysqlite:///:memory:")
    on_disk = engine_options("sqlite+pysqlite:///bookings.db", {"timeout": 5})
    server = engine_options("postgresql+psycopg://user@localhost/bookings")

    assert memory["poolclass"] is StaticPool
    assert memory["connect_args"] == {"check_same_thread": False}
    assert "poolclass" not in on_disk
    assert on_disk["connect_args"] == {"timeout": 5, "check_same_thread": False}
    assert server["connect_args"] == {}


def test_session_scope_rolls_back_when_the_block_fails():
    session_factory = make_session_factory()

    with pytest.raises(DuplicateFlightError):
        with session_scope(session_factory) as session:
            _add_flight(session, number="SB901")
            _add_flight(session, number="SB901")

    with session_scope(session_factory) as session:
        assert session.scalars(select(Flight)).all() == []
