"""Utilities to populate the database with sample data for tests and demos."""
from __future__ import annotations

import random
from datetime import datetime, timedelta
from typing import Dict, Optional, Sequence

from sqlalchemy.orm import Session, sessionmaker

from .services import (
    CABIN_SEATS,
    ReservationError,
    add_flight,
    book_ticket,
    get_booked_seats,
)

CITIES: Sequence[str] = (
    "DELHI",
    "MUMBAI",
    "CHENNAI",
    "KOLKATA",
    "BENGALURU",
    "HYDERABAD",
    "PUNE",
    "GOA",
)
FIRST_NAMES = ("Ava", "Noah", "Liam", "Mia", "Lucas", "Emma", "Ethan", "Isabella")
LAST_NAMES = ("Johnson", "Williams", "Smith", "Brown", "Garcia", "Lee")
GENDERS = ("MALE", "FEMALE", "OTHER")
MEALS = ("NONE", "VEG", "NONVEG")


def _random_departure(now: datetime, days_from_now: int) -> datetime:
    start = now + timedelta(days=days_from_now)
    hour = random.randint(5, 22)
    minute = random.choice((0, 15, 30, 45))
    return start.replace(hour=hour, minute=minute, second=0, microsecond=0)


def generate_sample_data(
    session_factory: sessionmaker[Session],
    *,
    flights: int = 10,
    customers: int = 5,
    bookings: int = 40,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """Populate the database with deterministic pseudo-random data.

    Customers are identified by ``customer{n}@example.com`` so the seeded
    history can be looked up from the command line.
    """

    random.seed(42)
    now = now or datetime.now()
    flight_ids = []
    with session_factory() as session:
        for index in range(flights):
            from_city, to_city = random.sample(CITIES, 2)
            departure = _random_departure(now, random.randint(2, 30))
            flight = add_flight(
                session,
                flight_number=f"SB{100 + index}",
                from_city=from_city,
                to_city=to_city,
                departure_time=departure,
                arrival_time=departure + timedelta(hours=random.randint(1, 4)),
                cost=float(random.choice((3500, 4200, 5100, 6800))),
                seats_available=CABIN_SEATS,
                now=now,
            )
            flight_ids.append(flight.id)
        session.commit()

    successful = 0
    with session_factory() as session:
        for _ in range(bookings if flight_ids else 0):
            flight_id = random.choice(flight_ids)
            taken = set(get_booked_seats(session, flight_id))
            free = [str(seat) for seat in range(1, CABIN_SEATS + 1) if str(seat) not in taken]
            if not free:
                continue
            try:
                book_ticket(
                    session,
                    flight_id=flight_id,
                    passenger_name=f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
                    age=random.randint(1, 90),
                    gender=random.choice(GENDERS),
                    meal=random.choice(MEALS),
                    email=f"customer{random.randrange(customers)}@example.com",
                    seat_number=random.choice(free),
                )
                successful += 1
            except ReservationError:
                continue
        session.commit()
    return {"flights": len(flight_ids), "bookings": successful}
