"""SkyBook package: seat allocation, booking submission and booking history."""
from .cli import main as cli_main
from .flights import FlightBrowser
from .gateway import (
    BackendGateway,
    BusinessRuleError,
    ConflictError,
    GatewayError,
    HttpBackendGateway,
    NotFoundError,
    TransportError,
)
from .history import BookingHistoryAggregator, CancelState, join_flights, sort_bookings
from .local_gateway import LocalBackendGateway
from .models import (
    Booking,
    BookingConfirmation,
    BookingStatus,
    BookingWithFlight,
    Flight,
    Gender,
    MealPreference,
    Passenger,
)
from .roster import PassengerRoster, project_seats
from .seats import SeatMap, SeatStatus, seat_status
from .selection import SeatSelectionController
from .session import CurrentSession
from .submission import (
    BookingSession,
    BookingSubmissionOrchestrator,
    BookingValidationError,
    SubmissionResult,
)

__all__ = [
    "BackendGateway",
    "Booking",
    "BookingConfirmation",
    "BookingHistoryAggregator",
    "BookingSession",
    "BookingStatus",
    "BookingSubmissionOrchestrator",
    "BookingValidationError",
    "BookingWithFlight",
    "BusinessRuleError",
    "CancelState",
    "ConflictError",
    "CurrentSession",
    "Flight",
    "FlightBrowser",
    "GatewayError",
    "Gender",
    "HttpBackendGateway",
    "LocalBackendGateway",
    "MealPreference",
    "NotFoundError",
    "Passenger",
    "PassengerRoster",
    "SeatMap",
    "SeatSelectionController",
    "SeatStatus",
    "SubmissionResult",
    "TransportError",
    "cli_main",
    "join_flights",
    "project_seats",
    "seat_status",
    "sort_bookings",
]
