"""FastAPI application exposing the reference booking backend over HTTP."""
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Iterator, List, Type

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session, sessionmaker

from .database import init_db, session_scope
from .models import Booking, Flight
from .services import (
    BookingNotFoundError,
    CancellationWindowError,
    DuplicateFlightError,
    FlightNotFoundError,
    InvalidFlightError,
    ReservationError,
    SeatUnavailableError,
    book_ticket,
    cancel_booking,
    get_booked_seats,
    get_flight,
    list_bookings_by_email,
    list_flights,
    search_flights,
)

# status code and machine-readable code per service error
ERROR_RESPONSES: Dict[Type[ReservationError], tuple[int, str]] = {
    FlightNotFoundError: (404, "NOT_FOUND"),
    BookingNotFoundError: (404, "NOT_FOUND"),
    DuplicateFlightError: (409, "DUPLICATE_FLIGHT"),
    SeatUnavailableError: (409, "SEAT_UNAVAILABLE"),
    InvalidFlightError: (400, "INVALID_FLIGHT"),
    CancellationWindowError: (400, "CANCELLATION_WINDOW"),
}


class SearchFlightRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_city: str = Field(alias="fromCity", min_length=1)
    to_city: str = Field(alias="toCity", min_length=1)
    travel_date: date = Field(alias="travelDate")


class BookingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    flight_id: int = Field(alias="flightId")
    passenger_name: str = Field(alias="passengerName", min_length=1)
    age: int = Field(ge=1)
    gender: str = "MALE"
    meal: str = "NONE"
    email: str = Field(min_length=1)
    number_of_tickets: int = Field(alias="numberOfTickets", default=1, ge=1)
    seat_number: str = Field(alias="seatNumber", min_length=1)


def flight_payload(flight: Flight) -> Dict[str, Any]:
    return {
        "id": flight.id,
        "flightNumber": flight.flight_number,
        "fromCity": flight.from_city,
        "toCity": flight.to_city,
        "departureTime": flight.departure_time.isoformat(),
        "arrivalTime": flight.arrival_time.isoformat(),
        "cost": float(flight.cost),
        "seatsAvailable": flight.seats_available,
    }


def booking_payload(booking: Booking) -> Dict[str, Any]:
    return {
        "id": booking.id,
        "flightId": booking.flight_id,
        "passengerName": booking.passenger_name,
        "age": booking.age,
        "gender": booking.gender,
        "meal": booking.meal,
        "email": booking.email,
        "numberOfTickets": booking.number_of_tickets,
        "seatNumber": booking.seat_number,
        "status": booking.status,
        "pnr": booking.pnr,
    }


def create_app(session_factory: sessionmaker[Session] | None = None) -> FastAPI:
    """Return an application serving flights and bookings from ``session_factory``."""

    factory = session_factory or init_db()
    app = FastAPI(title="SkyBook", description="Flight booking backend")

    def get_session() -> Iterator[Session]:
        with session_scope(factory) as session:
            yield session

    @app.exception_handler(ReservationError)
    async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
        status_code, code = ERROR_RESPONSES.get(type(exc), (400, "REJECTED"))
        logger.warning(f"{request.method} {request.url.path} rejected: {code} {exc}")
        return JSONResponse(status_code=status_code, content={"detail": {"code": code, "message": str(exc)}})

    @app.get("/flights")
    def all_flights(session: Session = Depends(get_session)) -> List[Dict[str, Any]]:
        return [flight_payload(flight) for flight in list_flights(session)]

    @app.post("/flights/search")
    def find_flights(
        payload: SearchFlightRequest, session: Session = Depends(get_session)
    ) -> List[Dict[str, Any]]:
        flights = search_flights(
            session,
            from_city=payload.from_city,
            to_city=payload.to_city,
            travel_date=payload.travel_date,
        )
        return [flight_payload(flight) for flight in flights]

    @app.get("/flights/{flight_id}")
    def flight_detail(flight_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
        return flight_payload(get_flight(session, flight_id))

    @app.post("/bookings", status_code=201)
    def create_booking(payload: BookingRequest, session: Session = Depends(get_session)) -> Dict[str, Any]:
        booking = book_ticket(
            session,
            flight_id=payload.flight_id,
            passenger_name=payload.passenger_name,
            age=payload.age,
            gender=payload.gender,
            meal=payload.meal,
            email=payload.email,
            seat_number=payload.seat_number,
            number_of_tickets=payload.number_of_tickets,
        )
        return {"id": booking.id, "pnr": booking.pnr}

    @app.get("/bookings/email/{email}")
    def bookings_for_email(email: str, session: Session = Depends(get_session)) -> List[Dict[str, Any]]:
        bookings = list_bookings_by_email(session, email)
        if not bookings:
            raise BookingNotFoundError(f"No bookings found for {email}")
        return [booking_payload(booking) for booking in bookings]

    @app.get("/bookings/flight/{flight_id}/seats")
    def booked_seats(flight_id: int, session: Session = Depends(get_session)) -> List[str]:
        get_flight(session, flight_id)
        return get_booked_seats(session, flight_id)

    @app.delete("/bookings/{booking_id}")
    def cancel(booking_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
        return booking_payload(cancel_booking(session, booking_id=booking_id))

    return app


__all__ = ["ERROR_RESPONSES", "create_app", "flight_payload", "booking_payload"]
