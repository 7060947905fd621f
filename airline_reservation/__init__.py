"""Reference booking backend: flights, seat sales and cancellations."""
from .database import init_db, create_session_factory
from .dataset import generate_sample_data
from .services import (
    book_ticket,
    cancel_booking,
    get_booked_seats,
    list_bookings_by_email,
    list_flights,
    search_flights,
)

__all__ = [
    "init_db",
    "create_session_factory",
    "generate_sample_data",
    "book_ticket",
    "cancel_booking",
    "get_booked_seats",
    "list_bookings_by_email",
    "list_flights",
    "search_flights",
]
