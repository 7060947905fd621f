"""Command line interface for searching, booking and managing flights."""
from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Iterable, List

import pandas as pd
from tabulate import tabulate

from airline_reservation.database import DEFAULT_DB_URL, init_db
from airline_reservation.dataset import generate_sample_data

from .flights import FlightBrowser
from .gateway import BackendGateway, HttpBackendGateway
from .history import BookingHistoryAggregator
from .local_gateway import LocalBackendGateway
from .log_config import DEFAULT_LOG_LEVEL, configure_logging
from .models import BookingWithFlight, Flight
from .session import CurrentSession
from .submission import BookingSession


def _make_gateway(args: argparse.Namespace, session: CurrentSession) -> BackendGateway:
    if args.api_url:
        return HttpBackendGateway(args.api_url, session=session)
    return LocalBackendGateway(init_db(args.db_url))


def _flight_table(flights: Iterable[Flight]) -> str:
    rows = [
        (
            flight.id,
            flight.flight_number,
            f"{flight.from_city}->{flight.to_city}",
            flight.departure_time.strftime("%Y-%m-%d %H:%M"),
            flight.arrival_time.strftime("%Y-%m-%d %H:%M"),
            f"{flight.cost:,.2f}",
            flight.seats_available,
        )
        for flight in flights
    ]
    headers = ["ID", "Flight", "Route", "Departure", "Arrival", "Cost", "Seats left"]
    return tabulate(rows, headers=headers, tablefmt="github")


def _history_frame(entries: Iterable[BookingWithFlight]) -> pd.DataFrame:
    data = []
    for entry in entries:
        booking, flight = entry.booking, entry.flight
        data.append(
            {
                "Booking": booking.id,
                "PNR": booking.pnr,
                "Status": booking.status.value,
                "Passenger": booking.passenger_name,
                "Seat": booking.seat,
                "Meal": booking.meal,
                "Flight": flight.flight_number if flight else "",
                "Route": f"{flight.from_city}->{flight.to_city}" if flight else "",
                "Departure": flight.departure_time.strftime("%Y-%m-%d %H:%M") if flight else "",
                "Cancellable": entry.is_cancellable(),
            }
        )
    return pd.DataFrame(data)


def parse_passenger(value: str) -> tuple[str, int, str, str]:
    """Parse ``NAME:AGE[:GENDER[:MEAL]]``."""
    parts = value.split(":")
    if len(parts) < 2:
        raise argparse.ArgumentTypeError(f"expected NAME:AGE[:GENDER[:MEAL]], got {value!r}")
    try:
        age = int(parts[1])
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"age must be a number in {value!r}") from exc
    gender = parts[2].upper() if len(parts) > 2 and parts[2] else "MALE"
    meal = parts[3].upper() if len(parts) > 3 and parts[3] else "NONE"
    return parts[0], age, gender, meal


def parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Search, book and manage flight bookings.")
    parser.add_argument("--api-url", help="Use the booking API at this URL instead of a local database.")
    parser.add_argument("--db-url", default=DEFAULT_DB_URL, help="Database for the in-process backend.")
    parser.add_argument("--log-level", default=DEFAULT_LOG_LEVEL, help="Log level (default: %(default)s).")
    commands = parser.add_subparsers(dest="command", required=True)

    seed = commands.add_parser("seed", help="Populate the local database with sample data.")
    seed.add_argument("--flights", type=int, default=10)
    seed.add_argument("--customers", type=int, default=5)
    seed.add_argument("--bookings", type=int, default=40)

    flights = commands.add_parser("flights", help="List flights, or search by route and date.")
    flights.add_argument("--from", dest="from_city", default="")
    flights.add_argument("--to", dest="to_city", default="")
    flights.add_argument("--date", dest="travel_date", default="", help="Travel date (YYYY-MM-DD).")

    seats = commands.add_parser("seats", help="Show the seat map of a flight.")
    seats.add_argument("flight_id", type=int)

    book = commands.add_parser("book", help="Book seats on a flight for one or more passengers.")
    book.add_argument("flight_id", type=int)
    book.add_argument("--email", required=True)
    book.add_argument(
        "--passenger",
        dest="passengers",
        action="append",
        type=parse_passenger,
        required=True,
        help="Passenger as NAME:AGE[:GENDER[:MEAL]]; repeat for each traveller.",
    )
    book.add_argument("--seat", dest="seats", action="append", default=[], help="Seat to select; repeatable.")

    history = commands.add_parser("history", help="Show bookings made with an email address.")
    history.add_argument("--email", required=True)
    history.add_argument("--csv", dest="csv_path", help="Also write the history to this CSV file.")

    cancel = commands.add_parser("cancel", help="Cancel a booking.")
    cancel.add_argument("booking_id", type=int)
    cancel.add_argument("--email", required=True)
    cancel.add_argument("--yes", action="store_true", help="Do not ask for confirmation.")

    return parser.parse_args(list(argv))


def _seed(args: argparse.Namespace) -> int:
    summary = generate_sample_data(
        init_db(args.db_url), flights=args.flights, customers=args.customers, bookings=args.bookings
    )
    print(f"Seeded {summary['flights']} flights and {summary['bookings']} bookings")
    return 0


async def _flights(args: argparse.Namespace, gateway: BackendGateway) -> int:
    browser = FlightBrowser(gateway)
    if args.from_city or args.to_city or args.travel_date:
        await browser.search(args.from_city, args.to_city, args.travel_date)
    else:
        await browser.load_all()
    if browser.error_message:
        print(f"Error: {browser.error_message}", file=sys.stderr)
        return 1
    if browser.displayed:
        print(_flight_table(browser.displayed))
    if browser.info_message:
        print(browser.info_message)
    return 0


async def _seats(args: argparse.Namespace, gateway: BackendGateway, session: CurrentSession) -> int:
    booking = BookingSession(gateway, session, args.flight_id)
    flight, booked = await booking.load()
    if flight is None:
        print(f"Error: {booking.error_message}", file=sys.stderr)
        return 1
    print(f"{flight.flight_number} {flight.from_city}->{flight.to_city} {flight.departure_time:%Y-%m-%d %H:%M}")
    print(booking.controller.render())
    print(f"{booking.controller.seat_map.available_count(booked)} seats free (x = booked)")
    return 0


async def _book(args: argparse.Namespace, gateway: BackendGateway, session: CurrentSession) -> int:
    booking = BookingSession(gateway, session, args.flight_id)
    flight, _ = await booking.load()
    if flight is None:
        print(f"Error: {booking.error_message}", file=sys.stderr)
        return 1
    controller = booking.controller
    passengers: List[tuple[str, int, str, str]] = args.passengers
    if controller.set_passenger_count(len(passengers)) != len(passengers):
        print(f"Error: only {controller.max_passengers()} seat(s) left on this flight", file=sys.stderr)
        return 1
    for index, (name, age, gender, meal) in enumerate(passengers):
        controller.roster.update(index, name=name, age=age, gender=gender, meal=meal)
    for seat in args.seats:
        controller.toggle_seat(seat)

    result = await booking.submit()
    if not result.success:
        print(f"Error: {result.message}", file=sys.stderr)
        return 1
    print(result.message)
    return 0


async def _history(args: argparse.Namespace, gateway: BackendGateway, session: CurrentSession) -> int:
    aggregator = BookingHistoryAggregator(gateway, session)
    entries = await aggregator.load()
    if aggregator.error_message:
        print(f"Error: {aggregator.error_message}", file=sys.stderr)
        return 1
    if not entries:
        print(f"No bookings found for {session.email}")
        return 0
    frame = _history_frame(entries)
    print(tabulate(frame, headers="keys", tablefmt="github", showindex=False))
    if args.csv_path:
        frame.to_csv(args.csv_path, index=False)
        print(f"Wrote {len(frame)} booking(s) to {args.csv_path}")
    return 0


async def _cancel(args: argparse.Namespace, gateway: BackendGateway, session: CurrentSession) -> int:
    aggregator = BookingHistoryAggregator(gateway, session)
    await aggregator.load()
    entry = aggregator.find(args.booking_id)
    if entry is None:
        print(f"Error: booking {args.booking_id} not found for {session.email}", file=sys.stderr)
        return 1
    if not aggregator.request_cancel(entry.booking):
        print(f"Booking {entry.booking.pnr} is already cancelled")
        return 0
    if not args.yes:
        answer = input(f"Cancel booking {entry.booking.pnr} for {entry.booking.passenger_name}? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            aggregator.close_confirm()
            print("Cancellation aborted")
            return 0
    if not await aggregator.confirm_cancel():
        print(f"Error: {aggregator.error_message}", file=sys.stderr)
        return 1
    print(aggregator.success_message)
    return 0


async def _run(args: argparse.Namespace) -> int:
    session = CurrentSession.for_email(getattr(args, "email", "") or "")
    gateway = _make_gateway(args, session)
    if args.command == "flights":
        return await _flights(args, gateway)
    if args.command == "seats":
        return await _seats(args, gateway, session)
    if args.command == "book":
        return await _book(args, gateway, session)
    if args.command == "history":
        return await _history(args, gateway, session)
    if args.command == "cancel":
        return await _cancel(args, gateway, session)
    raise ValueError(f"Unsupported command '{args.command}'.")


def main(argv: Iterable[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.log_level)
    try:
        if args.command == "seed":
            return _seed(args)
        return asyncio.run(_run(args))
    except Exception as exc:  # pragma: no cover - CLI entry point
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
