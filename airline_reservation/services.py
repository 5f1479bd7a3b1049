"""Business logic for the airline reservation system."""
from __future__ import annotations

import dataclasses
import logging
import math
import secrets
from datetime import date, time
from typing import Callable, List, Optional, TypeVar

from sqlalchemy.orm import Session, sessionmaker

from .cancellation import compute_refund
from .config import Settings
from .domain import (
    CancellationResult,
    CustomerDetails,
    FareQuote,
    FlightAvailability,
    FlightInfo,
    RefundQuote,
    ReservationRecord,
    ReservationResult,
    ReservationStatus,
    SeatClass,
    SeatPreference,
    WaitingListRecord,
)
from .errors import ConflictError, NotFoundError, ValidationError
from .fares import compute_fare, parse_concession
from .repository import ReservationRepository, transaction
from .seating import SeatAllocator
from .waiting_list import WaitingListQueue

logger = logging.getLogger(__name__)

T = TypeVar("T")

ANY_ROUTE = "Any Route"
MINIMUM_CUSTOMER_AGE = 12


def generate_pnr() -> str:
    """Return a booking reference such as ``PNR042817``."""

    return f"PNR{secrets.randbelow(1_000_000):06d}"


def _years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # 29 February in a non-leap target year
        return day.replace(year=day.year - years, day=28)


def _parse_seat_class(value: SeatClass | str | None) -> SeatClass:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("seat class is required")
    try:
        return SeatClass.parse(value)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def _route_matches(route: Optional[str], flight: FlightInfo) -> bool:
    if route is None or not route.strip() or route.strip().lower() == ANY_ROUTE.lower():
        return True
    wanted = route.replace("->", "→").split("→")
    if len(wanted) != 2:
        return False
    source, destination = (part.strip().lower() for part in wanted)
    return flight.source.lower() == source and flight.destination.lower() == destination


class ReservationService:
    """Reservation and cancellation workflows over an injected session factory.

    Every public operation runs in its own transaction. Operations that lose a
    race against a concurrent transaction are retried up to
    ``settings.max_retries`` times before :class:`ConflictError` is raised.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        settings: Optional[Settings] = None,
        clock: Callable[[], date] = date.today,
        pnr_factory: Callable[[], str] = generate_pnr,
    ):
        self.session_factory = session_factory
        self.settings = settings or Settings()
        self.clock = clock
        self.pnr_factory = pnr_factory

    # Transaction handling ----------------------------------------------------

    def _run(self, operation: str, work: Callable[[ReservationRepository], T]) -> T:
        attempts = self.settings.max_retries
        for attempt in range(1, attempts + 1):
            try:
                with transaction(self.session_factory) as repository:
                    return work(repository)
            except ConflictError:
                if attempt == attempts:
                    logger.warning("%s rolled back after %s conflicting attempts", operation, attempts)
                    raise
                logger.info("%s conflicted with a concurrent update, retrying (%s/%s)", operation, attempt, attempts)
        raise AssertionError("unreachable")  # pragma: no cover

    def _new_pnr(self, repository: ReservationRepository) -> str:
        for _ in range(self.settings.pnr_attempts):
            pnr = self.pnr_factory()
            if not repository.pnr_exists(pnr):
                return pnr
        raise ConflictError(f"could not generate a unique PNR in {self.settings.pnr_attempts} attempts")

    # Validation --------------------------------------------------------------

    def _validate_customer(self, customer: CustomerDetails, today: date) -> CustomerDetails:
        name = (customer.name or "").strip()
        phone = (customer.phone or "").strip()
        if not name:
            raise ValidationError("customer name is required")
        if not phone:
            raise ValidationError("customer phone number is required")
        if customer.date_of_birth is not None:
            if customer.date_of_birth > _years_before(today, MINIMUM_CUSTOMER_AGE):
                raise ValidationError(
                    f"customer must be at least {MINIMUM_CUSTOMER_AGE} years old to book flights"
                )
        return dataclasses.replace(
            customer,
            name=name,
            phone=phone,
            concession=parse_concession(customer.concession),
        )

    @staticmethod
    def _validate_travel_date(travel_date: Optional[date], today: date) -> date:
        if travel_date is None:
            raise ValidationError("travel date is required")
        if travel_date < today:
            raise ValidationError("travel date cannot be in the past")
        return travel_date

    @staticmethod
    def _validate_pnr(pnr: Optional[str]) -> str:
        value = (pnr or "").strip().upper()
        if not value:
            raise ValidationError("PNR is required")
        return value

    # Flights -----------------------------------------------------------------

    def add_flight(
        self,
        *,
        flight_code: int,
        name: str,
        source: str,
        destination: str,
        departure_time: time,
        arrival_time: time,
        economy_seats: int,
        business_seats: int,
        economy_fare: Optional[float] = None,
        business_fare: Optional[float] = None,
    ) -> FlightInfo:
        """Register a flight; fares default to the configured class fares."""

        if flight_code is None or flight_code <= 0:
            raise ValidationError("flight code must be a positive number")
        if not (name or "").strip():
            raise ValidationError("flight name is required")
        if not (source or "").strip() or not (destination or "").strip():
            raise ValidationError("route source and destination are required")
        if economy_seats < 0 or business_seats < 0:
            raise ValidationError("seat capacity cannot be negative")
        economy_fare = self.settings.default_economy_fare if economy_fare is None else economy_fare
        business_fare = self.settings.default_business_fare if business_fare is None else business_fare
        if not all(math.isfinite(fare) and fare > 0 for fare in (economy_fare, business_fare)):
            raise ValidationError("fares must be positive")

        def work(repository: ReservationRepository) -> FlightInfo:
            if repository.get_flight(flight_code) is not None:
                raise ValidationError(f"flight {flight_code} already exists")
            return repository.add_flight(
                flight_code=flight_code,
                name=name.strip(),
                source=source.strip(),
                destination=destination.strip(),
                departure_time=departure_time,
                arrival_time=arrival_time,
                economy_seats=economy_seats,
                business_seats=business_seats,
                economy_fare=economy_fare,
                business_fare=business_fare,
            )

        flight = self._run("add_flight", work)
        logger.info("Added flight %s %s (%s)", flight.flight_code, flight.name, flight.route)
        return flight

    def search_available_flights(
        self,
        travel_date: date,
        seat_class: SeatClass | str,
        route: Optional[str] = None,
    ) -> List[FlightAvailability]:
        """Return flights with at least one free seat in ``seat_class`` on ``travel_date``."""

        if travel_date is None:
            raise ValidationError("travel date is required")
        cls = _parse_seat_class(seat_class)

        def work(repository: ReservationRepository) -> List[FlightAvailability]:
            counts = repository.count_confirmed_by_flight(cls, travel_date)
            results: List[FlightAvailability] = []
            for flight in repository.list_flights():
                if not _route_matches(route, flight):
                    continue
                total = flight.capacity(cls)
                available = total - counts.get(flight.flight_code, 0)
                if available <= 0:
                    continue
                results.append(
                    FlightAvailability(
                        flight_code=flight.flight_code,
                        name=flight.name,
                        route=flight.route,
                        departure_time=flight.departure_time,
                        arrival_time=flight.arrival_time,
                        seat_class=cls,
                        total_seats=total,
                        available_seats=available,
                        base_fare=flight.base_fare(cls),
                    )
                )
            return results

        return self._run("search_available_flights", work)

    def quote_fare(self, flight_code: int, seat_class: SeatClass | str, concession=None) -> FareQuote:
        cls = _parse_seat_class(seat_class)
        base_fare = self._run("quote_fare", lambda repository: repository.get_base_fare(flight_code, cls))
        return compute_fare(base_fare, concession)

    # Booking -----------------------------------------------------------------

    def make_reservation(
        self,
        customer: CustomerDetails,
        flight_code: int,
        seat_class: SeatClass | str,
        seat_preference: SeatPreference | str | None = SeatPreference.ANY,
        travel_date: Optional[date] = None,
    ) -> ReservationResult:
        """Confirm a seat for ``customer`` or place them on the waiting list.

        The customer upsert, the seat decision and the reservation or waiting
        entry are committed together or not at all.
        """

        today = self.clock()
        if flight_code is None:
            raise ValidationError("a flight must be selected")
        details = self._validate_customer(customer, today)
        cls = _parse_seat_class(seat_class)
        preference = SeatPreference.parse(seat_preference)
        travel_date = self._validate_travel_date(travel_date, today)

        def work(repository: ReservationRepository) -> ReservationResult:
            flight = repository.get_flight(flight_code, for_update=True)
            if flight is None:
                raise NotFoundError(f"flight {flight_code} not found")
            customer_id = repository.upsert_customer_by_phone(details)
            taken = repository.get_confirmed_seat_numbers(flight_code, cls, travel_date)
            capacity = repository.get_flight_seat_capacity(flight_code, cls)
            seat = SeatAllocator.assign_seat(capacity, taken, preference)
            if seat is None:
                waiting_number = WaitingListQueue(repository).enqueue(
                    flight_code, cls, travel_date, customer_id
                )
                return ReservationResult(
                    confirmed=False, waiting_number=waiting_number, customer_id=customer_id
                )

            quote = compute_fare(flight.base_fare(cls), details.concession)
            pnr = self._new_pnr(repository)
            repository.insert_reservation(
                customer_id=customer_id,
                flight_code=flight_code,
                seat_class=cls,
                seat_number=seat,
                pnr=pnr,
                fare=quote.final_fare,
                travel_date=travel_date,
            )
            return ReservationResult(
                confirmed=True,
                pnr=pnr,
                seat_number=seat,
                fare=quote.final_fare,
                customer_id=customer_id,
            )

        result = self._run("make_reservation", work)
        if result.confirmed:
            logger.info(
                "Confirmed %s: flight %s %s seat %s on %s",
                result.pnr,
                flight_code,
                cls.value,
                result.seat_number,
                travel_date,
            )
        else:
            logger.info(
                "Flight %s %s full on %s, customer %s waitlisted as #%s",
                flight_code,
                cls.value,
                travel_date,
                result.customer_id,
                result.waiting_number,
            )
        return result

    # Cancellation ------------------------------------------------------------

    def preview_cancellation(self, pnr: str) -> RefundQuote:
        """Return the refund a cancellation would yield today, without cancelling."""

        record = self.get_reservation(pnr)
        return compute_refund(record.fare, record.travel_date, self.clock(), record.status)

    def cancel_reservation(self, pnr: str) -> CancellationResult:
        """Cancel a confirmed reservation, record the refund and promote the waiting list."""

        pnr = self._validate_pnr(pnr)
        today = self.clock()

        def work(repository: ReservationRepository) -> CancellationResult:
            found = repository.get_reservation_by_pnr(pnr, confirmed_only=True)
            if found is None:
                raise NotFoundError(f"no confirmed reservation with PNR {pnr}")
            flight = repository.get_flight(found.flight_code, for_update=True)
            # re-read under the flight lock
            reservation = repository.get_reservation_by_pnr(pnr, confirmed_only=True)
            if reservation is None or flight is None:
                raise NotFoundError(f"no confirmed reservation with PNR {pnr}")

            quote = compute_refund(reservation.fare, reservation.travel_date, today, reservation.status)
            repository.update_reservation_status(reservation.reservation_id, ReservationStatus.CANCELLED)
            repository.insert_cancellation_record(
                reservation_id=reservation.reservation_id,
                refund_amount=quote.refund_amount,
                cancellation_fee=quote.cancellation_fee,
            )
            promoted_pnr = self._promote_waiting_customer(repository, reservation, flight)
            return CancellationResult(
                success=True,
                refund_amount=quote.refund_amount,
                cancellation_fee=quote.cancellation_fee,
                promoted_pnr=promoted_pnr,
            )

        result = self._run("cancel_reservation", work)
        logger.info(
            "Cancelled %s: refund %.2f, fee %.2f", pnr, result.refund_amount, result.cancellation_fee
        )
        return result

    def _promote_waiting_customer(
        self,
        repository: ReservationRepository,
        cancelled: ReservationRecord,
        flight: FlightInfo,
    ) -> Optional[str]:
        queue = WaitingListQueue(repository)
        entry = queue.dequeue_front(cancelled.flight_code, cancelled.seat_class, cancelled.travel_date)
        if entry is None:
            return None

        taken = repository.get_confirmed_seat_numbers(
            cancelled.flight_code, cancelled.seat_class, cancelled.travel_date
        )
        capacity = repository.get_flight_seat_capacity(cancelled.flight_code, cancelled.seat_class)
        seat = SeatAllocator.assign_seat(capacity, taken, SeatPreference.ANY)
        if seat is None:
            logger.warning(
                "No seat free on flight %s %s after cancelling %s; waiting entry #%s kept",
                cancelled.flight_code,
                cancelled.seat_class.value,
                cancelled.pnr,
                entry.waiting_number,
            )
            return None

        if self.settings.promotion_fare == "recompute":
            customer = repository.get_customer(entry.customer_id)
            concession = customer.concession if customer else None
            fare = compute_fare(flight.base_fare(cancelled.seat_class), concession).final_fare
        else:
            fare = cancelled.fare

        pnr = self._new_pnr(repository)
        repository.insert_reservation(
            customer_id=entry.customer_id,
            flight_code=cancelled.flight_code,
            seat_class=cancelled.seat_class,
            seat_number=seat,
            pnr=pnr,
            fare=fare,
            travel_date=cancelled.travel_date,
        )
        queue.remove(entry.entry_id)
        logger.info(
            "Promoted waiting customer %s (#%s) to %s, seat %s",
            entry.customer_id,
            entry.waiting_number,
            pnr,
            seat,
        )
        return pnr

    # Lookups -----------------------------------------------------------------

    def get_reservation(self, pnr: str) -> ReservationRecord:
        pnr = self._validate_pnr(pnr)
        record = self._run("get_reservation", lambda repository: repository.get_reservation_by_pnr(pnr))
        if record is None:
            raise NotFoundError(f"no reservation with PNR {pnr}")
        return record

    def list_reservations(self, *, offset: int = 0, limit: int = 50) -> List[ReservationRecord]:
        if offset < 0 or limit <= 0:
            raise ValidationError("offset must be >= 0 and limit must be positive")
        return self._run(
            "list_reservations",
            lambda repository: repository.list_reservations(offset=offset, limit=limit),
        )

    def customer_reservations(self, phone: str) -> List[ReservationRecord]:
        phone = (phone or "").strip()
        if not phone:
            raise ValidationError("customer phone number is required")
        return self._run("customer_reservations", lambda repository: repository.reservations_for_phone(phone))

    def waiting_list(
        self, flight_code: int, seat_class: SeatClass | str, travel_date: date
    ) -> List[WaitingListRecord]:
        cls = _parse_seat_class(seat_class)
        return self._run(
            "waiting_list",
            lambda repository: WaitingListQueue(repository).entries(flight_code, cls, travel_date),
        )


__all__ = ["ANY_ROUTE", "ReservationService", "generate_pnr"]
