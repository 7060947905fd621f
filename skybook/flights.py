"""Flight listing and search."""
from __future__ import annotations

from datetime import date
from typing import List, Union

from loguru import logger

from .gateway import BackendGateway, GatewayError, NotFoundError, TransportError
from .models import Flight

MISSING_FIELDS = "Please fill in all search fields"
INVALID_DATE = "Invalid search criteria. Please check your input."
NO_FLIGHTS = "No flights available at the moment."
NO_MATCHES = "No flights available for your search criteria."
CONNECTION_ERROR = "Cannot connect to server. Please try again later."
LOAD_ERROR = "Error loading flights. Please try again later."
SEARCH_ERROR = "Error occurred while searching flights."


def _transport_or(exc: GatewayError, fallback: str) -> str:
    return CONNECTION_ERROR if isinstance(exc, TransportError) else fallback


class FlightBrowser:
    """All flights on first load, or the results of the last search."""

    def __init__(self, gateway: BackendGateway) -> None:
        self.gateway = gateway
        self.flights: List[Flight] = []
        self.search_results: List[Flight] = []
        self.show_all = True
        self.info_message = ""
        self.error_message = ""

    @property
    def displayed(self) -> List[Flight]:
        return self.flights if self.show_all else self.search_results

    async def load_all(self) -> List[Flight]:
        self.info_message = self.error_message = ""
        try:
            self.flights = await self.gateway.list_flights()
        except GatewayError as exc:
            logger.error(f"Listing flights failed: {exc}")
            self.error_message = _transport_or(exc, LOAD_ERROR)
            return self.flights
        self.show_all = True
        if not self.flights:
            self.info_message = NO_FLIGHTS
        return self.flights

    async def search(self, from_city: str, to_city: str, travel_date: Union[date, str]) -> List[Flight]:
        self.info_message = self.error_message = ""
        from_city, to_city = from_city.strip().upper(), to_city.strip().upper()
        if not from_city or not to_city or not travel_date:
            self.error_message = MISSING_FIELDS
            return self.search_results
        if isinstance(travel_date, str):
            try:
                travel_date = date.fromisoformat(travel_date.strip())
            except ValueError:
                self.error_message = INVALID_DATE
                return self.search_results

        try:
            results = await self.gateway.search_flights(from_city, to_city, travel_date)
        except NotFoundError:
            results = []
        except GatewayError as exc:
            logger.error(f"Flight search {from_city}->{to_city} on {travel_date} failed: {exc}")
            self.error_message = _transport_or(exc, SEARCH_ERROR)
            return self.search_results

        self.search_results = results
        self.show_all = False
        if results:
            self.info_message = f"Found {len(results)} flight(s) matching your search."
        else:
            self.info_message = NO_MATCHES
        return results
