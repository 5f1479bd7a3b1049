"""Command line interface for searching, booking and cancelling flights."""
from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, time
from typing import Iterable, List, Optional, Sequence

from tabulate import tabulate

from .config import Settings, setup_logging
from .database import init_db
from .dataset import generate_sample_data
from .domain import Concession, CustomerDetails, ReservationRecord, SeatClass, SeatPreference
from .errors import ReservationError
from .fares import discount_percentage
from .repository import translate_storage_errors
from .seating import SeatAllocator
from .services import ANY_ROUTE, ReservationService

logger = logging.getLogger(__name__)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid date '{value}', expected YYYY-MM-DD") from exc


def _parse_time(value: str) -> time:
    try:
        return time.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid time '{value}', expected HH:MM") from exc


def _render_table(rows: List[Sequence[object]], headers: Sequence[str]) -> str:
    return tabulate(rows, headers=headers, tablefmt="github")


def _reservation_rows(records: Iterable[ReservationRecord]) -> List[Sequence[object]]:
    return [
        (
            record.pnr,
            record.customer_name,
            f"{record.flight_code} {record.flight_name}",
            record.seat_class.value,
            SeatAllocator.seat_label(record.seat_number),
            record.travel_date.isoformat(),
            f"{record.fare:.2f}",
            record.status.value,
        )
        for record in records
    ]


_RESERVATION_HEADERS = ("PNR", "Passenger", "Flight", "Class", "Seat", "Travel date", "Fare", "Status")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Airline reservation system.")
    parser.add_argument("--db-url", help="SQLAlchemy database URL (default: $AIRLINE_DB_URL).")
    parser.add_argument("--log-level", help="Logging level (default: $AIRLINE_LOG_LEVEL).")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create the database schema.")

    seed = commands.add_parser("seed", help="Populate the database with sample flights and bookings.")
    seed.add_argument("--flights", type=int, default=10)
    seed.add_argument("--customers", type=int, default=60)
    seed.add_argument("--bookings", type=int, default=150)

    search = commands.add_parser("search", help="List flights with free seats.")
    search.add_argument("--date", type=_parse_date, required=True, dest="travel_date")
    search.add_argument("--class", dest="seat_class", choices=[c.value for c in SeatClass], default="Economy")
    search.add_argument("--route", default=ANY_ROUTE, help="'Source → Destination' or 'Any Route'.")

    add = commands.add_parser("add-flight", help="Register a flight.")
    add.add_argument("flight_code", type=int)
    add.add_argument("name")
    add.add_argument("--source", required=True)
    add.add_argument("--destination", required=True)
    add.add_argument("--departure", type=_parse_time, default=time(9, 0))
    add.add_argument("--arrival", type=_parse_time, default=time(11, 30))
    add.add_argument("--economy-seats", type=int, required=True)
    add.add_argument("--business-seats", type=int, default=0)
    add.add_argument("--economy-fare", type=float)
    add.add_argument("--business-fare", type=float)

    book = commands.add_parser("book", help="Reserve a seat or join the waiting list.")
    book.add_argument("flight_code", type=int)
    book.add_argument("--date", type=_parse_date, required=True, dest="travel_date")
    book.add_argument("--name", required=True)
    book.add_argument("--phone", required=True)
    book.add_argument("--class", dest="seat_class", choices=[c.value for c in SeatClass], default="Economy")
    book.add_argument("--preference", choices=[p.value for p in SeatPreference], default="Any")
    book.add_argument("--concession", choices=[c.value for c in Concession], default="None")
    book.add_argument("--dob", type=_parse_date)
    book.add_argument("--gender", default="")
    book.add_argument("--address", default="")
    book.add_argument("--profession", default="")

    cancel = commands.add_parser("cancel", help="Cancel a reservation by PNR.")
    cancel.add_argument("pnr")
    cancel.add_argument("--dry-run", action="store_true", help="Only show the refund that would apply.")

    show = commands.add_parser("show", help="Show a reservation by PNR.")
    show.add_argument("pnr")

    listing = commands.add_parser("list", help="List reservations, newest first.")
    listing.add_argument("--phone", help="Only reservations of this customer.")
    listing.add_argument("--offset", type=int, default=0)
    listing.add_argument("--limit", type=int, default=20)

    waiting = commands.add_parser("waiting", help="Show the waiting list for a flight.")
    waiting.add_argument("flight_code", type=int)
    waiting.add_argument("--date", type=_parse_date, required=True, dest="travel_date")
    waiting.add_argument("--class", dest="seat_class", choices=[c.value for c in SeatClass], default="Economy")

    return parser


def parse_args(argv: Iterable[str]) -> argparse.Namespace:
    return build_parser().parse_args(list(argv))


def _run_command(args: argparse.Namespace, service: ReservationService) -> None:
    if args.command == "seed":
        summary = generate_sample_data(
            service.session_factory,
            flights=args.flights,
            customers=args.customers,
            bookings=args.bookings,
            settings=service.settings,
        )
        print(_render_table([list(summary.values())], headers=list(summary.keys())))
    elif args.command == "search":
        flights = service.search_available_flights(args.travel_date, args.seat_class, args.route)
        rows = [
            (
                flight.flight_code,
                flight.name,
                flight.route,
                flight.departure_time.strftime("%H:%M"),
                flight.arrival_time.strftime("%H:%M"),
                f"{flight.available_seats}/{flight.total_seats}",
                f"{flight.base_fare:.2f}",
            )
            for flight in flights
        ]
        print(_render_table(rows, headers=("Code", "Flight", "Route", "Departs", "Arrives", "Seats", "Base fare")))
    elif args.command == "add-flight":
        flight = service.add_flight(
            flight_code=args.flight_code,
            name=args.name,
            source=args.source,
            destination=args.destination,
            departure_time=args.departure,
            arrival_time=args.arrival,
            economy_seats=args.economy_seats,
            business_seats=args.business_seats,
            economy_fare=args.economy_fare,
            business_fare=args.business_fare,
        )
        print(f"Added flight {flight.flight_code} {flight.name} ({flight.route})")
    elif args.command == "book":
        customer = CustomerDetails(
            name=args.name,
            phone=args.phone,
            gender=args.gender,
            date_of_birth=args.dob,
            address=args.address,
            profession=args.profession,
            concession=Concession(args.concession),
        )
        result = service.make_reservation(
            customer, args.flight_code, args.seat_class, args.preference, args.travel_date
        )
        if result.confirmed:
            print(
                f"Confirmed {result.pnr}: seat {SeatAllocator.seat_label(result.seat_number)} "
                f"(#{result.seat_number}), fare {result.fare:.2f} "
                f"({discount_percentage(args.concession)} concession)"
            )
        else:
            print(f"Flight full. Added to waiting list as number {result.waiting_number}")
    elif args.command == "cancel":
        if args.dry_run:
            quote = service.preview_cancellation(args.pnr)
            display = quote.as_display()
            print(
                f"Cancelling {args.pnr.upper()} would refund {display['refund_amount']:.2f} "
                f"(fee {display['cancellation_fee']:.2f})"
            )
            return
        result = service.cancel_reservation(args.pnr)
        print(f"Cancelled {args.pnr.upper()}: refund {result.refund_amount:.2f}, fee {result.cancellation_fee:.2f}")
        if result.promoted_pnr:
            print(f"Waiting list customer promoted with PNR {result.promoted_pnr}")
    elif args.command == "show":
        record = service.get_reservation(args.pnr)
        print(_render_table(_reservation_rows([record]), headers=_RESERVATION_HEADERS))
    elif args.command == "list":
        if args.phone:
            records = service.customer_reservations(args.phone)
        else:
            records = service.list_reservations(offset=args.offset, limit=args.limit)
        print(_render_table(_reservation_rows(records), headers=_RESERVATION_HEADERS))
    elif args.command == "waiting":
        entries = service.waiting_list(args.flight_code, args.seat_class, args.travel_date)
        rows = [(entry.waiting_number, entry.customer_name, entry.customer_id) for entry in entries]
        print(_render_table(rows, headers=("Waiting no.", "Passenger", "Customer id")))


def main(argv: Optional[Iterable[str]] = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    try:
        settings = Settings.from_env()
    except ValueError as exc:
        print(f"Error: invalid configuration: {exc}", file=sys.stderr)
        return 1
    setup_logging(args.log_level or settings.log_level)
    try:
        with translate_storage_errors():
            session_factory = init_db(args.db_url, settings=settings)
        if args.command == "init-db":
            print("Database schema is up to date")
            return 0
        _run_command(args, ReservationService(session_factory, settings=settings))
    except ReservationError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
