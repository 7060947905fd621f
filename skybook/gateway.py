"""Backend gateway contract and its HTTP implementation."""
from __future__ import annotations

import asyncio
import os
from datetime import date
from typing import Any, Callable, Dict, List, Optional, Protocol, TypeVar

import requests
from loguru import logger

from .models import Booking, BookingConfirmation, Flight, Passenger
from .session import CurrentSession

DEFAULT_API_URL = os.environ.get("SKYBOOK_API_URL", "http://localhost:8080")
DEFAULT_TIMEOUT = float(os.environ.get("SKYBOOK_TIMEOUT", "30"))

CANCELLATION_WINDOW_CODE = "CANCELLATION_WINDOW"

T = TypeVar("T")


class GatewayError(RuntimeError):
    """Raised when a backend call does not succeed."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(GatewayError):
    pass


class BusinessRuleError(GatewayError):
    """The backend understood the request but refused it for a domain reason."""

    def __init__(self, message: str, *, code: str, status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code=status_code)
        self.code = code


class ConflictError(BusinessRuleError):
    """The request clashes with existing state, e.g. a seat that is already sold."""


class TransportError(GatewayError):
    """The backend could not be reached."""


class MalformedResponseError(GatewayError):
    """The backend answered, but not with the payload the call expects."""


def error_for_status(status_code: int, detail: Any) -> GatewayError:
    """Translate an error response into the matching ``GatewayError``."""

    if isinstance(detail, dict):
        code = detail.get("code")
        message = str(detail.get("message") or code or status_code)
    else:
        code = None
        message = str(detail) if detail else f"Backend responded with status {status_code}"
    if status_code == 404:
        return NotFoundError(message, status_code=status_code)
    if status_code == 409:
        return ConflictError(message, code=code or "CONFLICT", status_code=status_code)
    if status_code in (400, 422) and code:
        return BusinessRuleError(message, code=code, status_code=status_code)
    return GatewayError(message, status_code=status_code)


class BackendGateway(Protocol):
    async def list_flights(self) -> List[Flight]: ...

    async def search_flights(self, from_city: str, to_city: str, travel_date: date) -> List[Flight]: ...

    async def get_flight(self, flight_id: int) -> Flight: ...

    async def get_booked_seats(self, flight_id: int) -> List[str]: ...

    async def create_booking(
        self, flight_id: int, passenger: Passenger, seat: str, email: str
    ) -> BookingConfirmation: ...

    async def list_bookings_by_email(self, email: str) -> List[Booking]: ...

    async def cancel_booking(self, booking_id: int) -> Booking: ...


def booking_request(flight_id: int, passenger: Passenger, seat: str, email: str) -> Dict[str, Any]:
    return {
        "flightId": flight_id,
        "passengerName": passenger.name.strip(),
        "age": passenger.age,
        "gender": passenger.gender.value,
        "meal": passenger.meal.value,
        "email": email,
        "numberOfTickets": 1,
        "seatNumber": seat,
    }


class HttpBackendGateway:
    """Talks to the booking API with ``requests``.

    Each blocking request runs in a worker thread so callers can ``await``
    it without stalling the event loop.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_URL,
        *,
        session: Optional[CurrentSession] = None,
        http: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout
        self._http = http or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.session is not None and self.session.token:
            headers["Authorization"] = f"Bearer {self.session.token}"
        return headers

    def _request_json(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self._http.request(
                method, url, json=payload, headers=self._headers(), timeout=self.timeout
            )
        except requests.RequestException as exc:
            logger.error(f"{method} {url} failed: {exc}")
            raise TransportError(f"Cannot reach booking backend at {self.base_url}") from exc
        if response.status_code >= 400:
            try:
                detail = response.json().get("detail")
            except (AttributeError, ValueError):
                detail = response.text
            logger.debug(f"{method} {url} -> {response.status_code}")
            raise error_for_status(response.status_code, detail)
        try:
            return response.json()
        except ValueError as exc:
            logger.error(f"{method} {url} returned a body that is not JSON")
            raise MalformedResponseError(
                f"Backend returned an unreadable response for {method} {path}",
                status_code=response.status_code,
            ) from exc

    async def _call(
        self,
        method: str,
        path: str,
        payload: Optional[dict] = None,
        *,
        parse: Callable[[Any], T],
    ) -> T:
        data = await asyncio.to_thread(self._request_json, method, path, payload)
        try:
            return parse(data)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            logger.error(f"{method} {path} returned an unexpected payload: {exc!r}")
            raise MalformedResponseError(f"Backend returned an unexpected payload for {method} {path}") from exc

    async def list_flights(self) -> List[Flight]:
        return await self._call("GET", "/flights", parse=_flights)

    async def search_flights(self, from_city: str, to_city: str, travel_date: date) -> List[Flight]:
        payload = {"fromCity": from_city, "toCity": to_city, "travelDate": travel_date.isoformat()}
        return await self._call("POST", "/flights/search", payload, parse=_flights)

    async def get_flight(self, flight_id: int) -> Flight:
        return await self._call("GET", f"/flights/{flight_id}", parse=Flight.from_payload)

    async def get_booked_seats(self, flight_id: int) -> List[str]:
        return await self._call(
            "GET", f"/bookings/flight/{flight_id}/seats", parse=lambda data: [str(seat) for seat in data]
        )

    async def create_booking(
        self, flight_id: int, passenger: Passenger, seat: str, email: str
    ) -> BookingConfirmation:
        return await self._call(
            "POST", "/bookings", booking_request(flight_id, passenger, seat, email), parse=_confirmation
        )

    async def list_bookings_by_email(self, email: str) -> List[Booking]:
        quoted = requests.utils.quote(email, safe="")
        return await self._call(
            "GET", f"/bookings/email/{quoted}", parse=lambda data: [Booking.from_payload(item) for item in data]
        )

    async def cancel_booking(self, booking_id: int) -> Booking:
        return await self._call("DELETE", f"/bookings/{booking_id}", parse=Booking.from_payload)


def _flights(data: Any) -> List[Flight]:
    return [Flight.from_payload(item) for item in data]


def _confirmation(data: Any) -> BookingConfirmation:
    return BookingConfirmation(confirmation_code=str(data["pnr"]), booking_id=data.get("id"))
