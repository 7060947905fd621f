"""Validation and sequential submission of a multi-passenger booking."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Awaitable, Callable, FrozenSet, Iterable, List, Optional, Tuple, TypeVar

from loguru import logger

from .gateway import BackendGateway, GatewayError
from .models import Flight, Passenger
from .selection import SeatSelectionController
from .session import CurrentSession

VALIDATION_MESSAGE = "Please fill all fields and select seats for all passengers."
FAILURE_MESSAGE = "Booking failed. Please try again."
FLIGHT_ERROR = "Could not load flight details."

T = TypeVar("T")
A = TypeVar("A")


class BookingValidationError(ValueError):
    """Raised when the booking form is not ready to be submitted."""

    def __init__(self, problems: List[str]) -> None:
        super().__init__("; ".join(problems))
        self.problems = problems


@dataclass
class SubmissionResult:
    success: bool
    message: str
    confirmation_codes: List[str] = field(default_factory=list)


async def fold_sequential(
    items: Iterable[T], step: Callable[[A, T], Awaitable[A]], initial: A
) -> A:
    """Await ``step`` for each item in order, threading the accumulator through.

    The next step starts only once the previous one has finished; an exception
    from any step ends the fold.
    """
    accumulator = initial
    for item in items:
        accumulator = await step(accumulator, item)
    return accumulator


def success_message(codes: List[str]) -> str:
    if len(codes) == 1:
        return f"Booking confirmed! Your PNR: {codes[0]}"
    return f"All {len(codes)} bookings confirmed! PNRs: {', '.join(codes)}"


class BookingSubmissionOrchestrator:
    def __init__(
        self,
        gateway: BackendGateway,
        session: CurrentSession,
        controller: SeatSelectionController,
        flight_id: int,
    ) -> None:
        self.gateway = gateway
        self.session = session
        self.controller = controller
        self.flight_id = flight_id
        self.is_submitting = False
        self.success_message = ""
        self.error_message = ""

    def validate(self) -> None:
        problems = []
        for index in self.controller.roster.incomplete():
            problems.append(f"passenger {index + 1} needs a name and an age of at least 1")
        if not (self.session.email or "").strip():
            problems.append("an email address is required")
        if not self.controller.is_complete:
            problems.append(
                f"{self.controller.passenger_count} seat(s) must be selected, "
                f"{len(self.controller.selected)} selected"
            )
        if problems:
            raise BookingValidationError(problems)

    async def _book_passenger(self, codes: List[str], passenger: Passenger) -> List[str]:
        confirmation = await self.gateway.create_booking(
            self.flight_id, passenger, passenger.seat, self.session.email or ""
        )
        logger.debug(f"Seat {passenger.seat} confirmed as {confirmation.confirmation_code}")
        return codes + [confirmation.confirmation_code]

    async def submit(self) -> SubmissionResult:
        """Book every passenger one after another, stopping at the first failure."""
        try:
            self.validate()
        except BookingValidationError as exc:
            logger.info(f"Booking form incomplete: {exc}")
            self.error_message = VALIDATION_MESSAGE
            return SubmissionResult(False, VALIDATION_MESSAGE)

        self.is_submitting = True
        self.error_message = ""
        self.success_message = ""
        passengers = list(self.controller.roster)
        try:
            codes = await fold_sequential(passengers, self._book_passenger, [])
        except GatewayError as exc:
            # earlier confirmations stand on the backend but are not reported here
            logger.error(f"Booking for flight {self.flight_id} failed: {exc}")
            self.error_message = FAILURE_MESSAGE
            return SubmissionResult(False, FAILURE_MESSAGE)
        finally:
            self.is_submitting = False

        self.success_message = success_message(codes)
        logger.info(f"Booked {len(codes)} passenger(s) on flight {self.flight_id}")
        return SubmissionResult(True, self.success_message, codes)


class BookingSession:
    """Everything the booking page needs for one flight."""

    def __init__(
        self,
        gateway: BackendGateway,
        session: CurrentSession,
        flight_id: int,
        *,
        controller: Optional[SeatSelectionController] = None,
    ) -> None:
        self.gateway = gateway
        self.flight_id = flight_id
        self.controller = controller or SeatSelectionController()
        self.orchestrator = BookingSubmissionOrchestrator(gateway, session, self.controller, flight_id)
        self.flight: Optional[Flight] = None
        self.error_message = ""

    async def load(self) -> Tuple[Optional[Flight], FrozenSet[str]]:
        try:
            self.flight = await self.gateway.get_flight(self.flight_id)
        except GatewayError as exc:
            logger.warning(f"Flight {self.flight_id} unavailable: {exc}")
            self.error_message = FLIGHT_ERROR
        booked = await self.controller.load_booked_seats(self.gateway, self.flight_id)
        return self.flight, booked

    async def submit(self) -> SubmissionResult:
        result = await self.orchestrator.submit()
        if result.success:
            submitted = list(self.controller.selected)
            self.controller.mark_booked(submitted)
            self.controller.set_passenger_count(1)
        return result
