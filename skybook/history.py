"""Booking history: load, join with flights, order and cancel."""
from __future__ import annotations

import asyncio
from dataclasses import replace
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from loguru import logger

from .gateway import (
    CANCELLATION_WINDOW_CODE,
    BackendGateway,
    BusinessRuleError,
    GatewayError,
    NotFoundError,
)
from .models import Booking, BookingStatus, BookingWithFlight, Flight
from .session import CurrentSession

LOAD_ERROR = "Failed to load booking history."
CANCEL_WINDOW_MESSAGE = "Bookings cannot be cancelled less than 24 hours before departure."
CANCEL_ERROR = "Failed to cancel booking. Please try again."

_STATUS_RANK = {BookingStatus.BOOKED: 0, BookingStatus.CANCELLED: 1}


class CancelState(str, Enum):
    IDLE = "idle"
    CONFIRM_PENDING = "confirm_pending"
    CANCELLING = "cancelling"
    CANCELLED = "cancelled"


def _sort_key(entry: BookingWithFlight) -> Tuple[int, int, float, int]:
    rank = _STATUS_RANK[entry.booking.status]
    if entry.flight is not None:
        return (rank, 0, -entry.flight.departure_time.timestamp(), -entry.booking.id)
    return (rank, 1, -entry.booking.id, 0)


def sort_bookings(entries: Iterable[BookingWithFlight]) -> List[BookingWithFlight]:
    """Active bookings first; newest departure first inside each status group.

    Entries whose flight is unknown come after resolved ones in their group,
    ordered by booking id, newest first.
    """
    return sorted(entries, key=_sort_key)


async def _fetch_flight(gateway: BackendGateway, flight_id: int) -> Optional[Flight]:
    try:
        return await gateway.get_flight(flight_id)
    except GatewayError as exc:
        logger.warning(f"Flight {flight_id} could not be resolved: {exc}")
        return None


async def join_flights(
    gateway: BackendGateway, entries: Iterable[BookingWithFlight]
) -> List[BookingWithFlight]:
    """Attach flight details, fetching every distinct flight once and concurrently."""
    entries = list(entries)
    flight_ids = list(dict.fromkeys(entry.booking.flight_id for entry in entries))
    fetched = await asyncio.gather(*(_fetch_flight(gateway, flight_id) for flight_id in flight_ids))
    flights: Dict[int, Optional[Flight]] = dict(zip(flight_ids, fetched))
    return [replace(entry, flight=flights.get(entry.booking.flight_id)) for entry in entries]


class BookingHistoryAggregator:
    def __init__(self, gateway: BackendGateway, session: CurrentSession) -> None:
        self.gateway = gateway
        self.session = session
        self.entries: List[BookingWithFlight] = []
        self.is_loading = False
        self.error_message = ""
        self.success_message = ""
        self.pending_cancel: Optional[Booking] = None
        self.cancel_state = CancelState.IDLE

    async def load(self, email: Optional[str] = None) -> List[BookingWithFlight]:
        email = email or self.session.email
        self.error_message = ""
        if not email:
            self.entries = []
            return self.entries

        self.is_loading = True
        try:
            bookings = await self.gateway.list_bookings_by_email(email)
        except NotFoundError:
            bookings = []
        except GatewayError as exc:
            logger.error(f"Loading bookings for {email} failed: {exc}")
            self.error_message = LOAD_ERROR
            bookings = []
        finally:
            self.is_loading = False

        self.entries = sort_bookings(BookingWithFlight(booking) for booking in bookings)
        if self.entries:
            self.entries = sort_bookings(await join_flights(self.gateway, self.entries))
        logger.debug(f"Loaded {len(self.entries)} booking(s) for {email}")
        return self.entries

    @property
    def bookings(self) -> List[Booking]:
        return [entry.booking for entry in self.entries]

    def find(self, booking_id: int) -> Optional[BookingWithFlight]:
        for entry in self.entries:
            if entry.booking.id == booking_id:
                return entry
        return None

    def request_cancel(self, booking: Booking) -> bool:
        """Open the confirmation gate for ``booking``; nothing is sent yet."""
        if booking.status is not BookingStatus.BOOKED:
            return False
        self.pending_cancel = booking
        self.cancel_state = CancelState.CONFIRM_PENDING
        self.success_message = ""
        self.error_message = ""
        return True

    def close_confirm(self) -> None:
        self.pending_cancel = None
        if self.cancel_state is CancelState.CONFIRM_PENDING:
            self.cancel_state = CancelState.IDLE

    async def confirm_cancel(self, booking: Optional[Booking] = None) -> bool:
        """Cancel the booking awaiting confirmation and report whether it worked."""
        target = booking or self.pending_cancel
        if target is None:
            return False

        self.cancel_state = CancelState.CANCELLING
        cancelled = False
        try:
            await self.gateway.cancel_booking(target.id)
            cancelled = True
        except BusinessRuleError as exc:
            if exc.code == CANCELLATION_WINDOW_CODE:
                logger.info(f"Cancellation of booking {target.id} refused: {exc}")
                self.error_message = CANCEL_WINDOW_MESSAGE
            else:
                logger.warning(f"Cancellation of booking {target.id} rejected: {exc}")
                self.error_message = CANCEL_ERROR
            return False
        except GatewayError as exc:
            logger.error(f"Cancellation of booking {target.id} failed: {exc}")
            self.error_message = CANCEL_ERROR
            return False
        finally:
            self.pending_cancel = None
            if not cancelled:
                self.cancel_state = CancelState.IDLE
                self.error_message = self.error_message or CANCEL_ERROR

        self.entries = sort_bookings(
            replace(entry, booking=entry.booking.cancelled()) if entry.booking.id == target.id else entry
            for entry in self.entries
        )
        self.success_message = f"Booking {target.pnr} cancelled."
        self.cancel_state = CancelState.CANCELLED
        logger.info(f"Booking {target.id} cancelled")
        return True
