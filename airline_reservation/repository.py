"""Storage access for the reservation core.

:class:`ReservationRepository` wraps a single SQLAlchemy session, so every
call made through one instance belongs to the same transaction. Use
:func:`transaction` to open such a scope with database failures translated
into the errors of :mod:`airline_reservation.errors`.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime, time
from typing import Dict, Iterator, List, Optional, Set

from sqlalchemy import Select, delete, func, select
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from .database import session_scope
from .domain import (
    CancellationRecord,
    Concession,
    CustomerDetails,
    CustomerRecord,
    FlightInfo,
    ReservationRecord,
    ReservationStatus,
    SeatClass,
    WaitingListRecord,
)
from .errors import ConflictError, NotFoundError, StorageError
from .models import Cancellation, Customer, Flight, Reservation, WaitingListEntry, utcnow

logger = logging.getLogger(__name__)

_CONFLICT_SQLSTATES = ("40001", "40P01")
_CONFLICT_MESSAGES = ("database is locked", "could not serialize", "deadlock")
_UNIQUE_SQLSTATE = "23505"
_UNIQUE_MESSAGES = ("unique constraint", "duplicate key", "duplicate entry")


def is_conflict(exc: SQLAlchemyError) -> bool:
    """Return True when ``exc`` is a race that a retry may resolve.

    Only unique violations count among integrity errors; NOT NULL, CHECK and
    foreign key failures are not races.
    """

    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    message = str(orig).lower()
    if isinstance(exc, IntegrityError):
        return code == _UNIQUE_SQLSTATE or any(fragment in message for fragment in _UNIQUE_MESSAGES)
    if code in _CONFLICT_SQLSTATES:
        return True
    return any(fragment in message for fragment in _CONFLICT_MESSAGES)


@contextmanager
def translate_storage_errors() -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        if is_conflict(exc):
            raise ConflictError(f"concurrent update detected: {exc.__class__.__name__}") from exc
        raise StorageError(f"database operation failed: {exc}") from exc


@contextmanager
def transaction(session_factory: sessionmaker[Session]) -> Iterator["ReservationRepository"]:
    """Run the enclosed repository calls atomically, committing on success."""

    with translate_storage_errors():
        with session_scope(session_factory) as session:
            yield ReservationRepository(session)


def _to_flight_info(flight: Flight) -> FlightInfo:
    return FlightInfo(
        flight_code=flight.flight_code,
        name=flight.name,
        source=flight.source,
        destination=flight.destination,
        departure_time=flight.departure_time,
        arrival_time=flight.arrival_time,
        economy_seats=flight.economy_seats,
        business_seats=flight.business_seats,
        economy_fare=flight.economy_fare,
        business_fare=flight.business_fare,
    )


def _to_reservation_record(
    reservation: Reservation, customer_name: str = "", flight_name: str = ""
) -> ReservationRecord:
    return ReservationRecord(
        reservation_id=reservation.id,
        pnr=reservation.pnr,
        customer_id=reservation.customer_id,
        flight_code=reservation.flight_code,
        seat_class=SeatClass(reservation.seat_class),
        seat_number=reservation.seat_number,
        status=ReservationStatus(reservation.status),
        fare=reservation.fare,
        travel_date=reservation.travel_date,
        customer_name=customer_name,
        flight_name=flight_name,
    )


def _to_waiting_record(entry: WaitingListEntry, customer_name: str = "") -> WaitingListRecord:
    return WaitingListRecord(
        entry_id=entry.id,
        customer_id=entry.customer_id,
        flight_code=entry.flight_code,
        seat_class=SeatClass(entry.seat_class),
        travel_date=entry.travel_date,
        waiting_number=entry.waiting_number,
        customer_name=customer_name,
    )


class ReservationRepository:
    """Relational storage for flights, customers, reservations and the waiting list."""

    def __init__(self, session: Session):
        self.session = session

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
        economy_fare: float,
        business_fare: float,
    ) -> FlightInfo:
        flight = Flight(
            flight_code=flight_code,
            name=name,
            source=source,
            destination=destination,
            departure_time=departure_time,
            arrival_time=arrival_time,
            economy_seats=economy_seats,
            business_seats=business_seats,
            economy_fare=economy_fare,
            business_fare=business_fare,
        )
        self.session.add(flight)
        self.session.flush()
        return _to_flight_info(flight)

    def get_flight(self, flight_code: int, *, for_update: bool = False) -> Optional[FlightInfo]:
        flight = self.session.get(Flight, flight_code, with_for_update=for_update)
        return _to_flight_info(flight) if flight else None

    def _require_flight(self, flight_code: int) -> FlightInfo:
        flight = self.get_flight(flight_code)
        if flight is None:
            raise NotFoundError(f"flight {flight_code} not found")
        return flight

    def list_flights(self) -> List[FlightInfo]:
        stmt = select(Flight).order_by(Flight.name, Flight.flight_code)
        return [_to_flight_info(flight) for flight in self.session.scalars(stmt)]

    def get_flight_seat_capacity(self, flight_code: int, seat_class: SeatClass) -> int:
        return self._require_flight(flight_code).capacity(seat_class)

    def get_base_fare(self, flight_code: int, seat_class: SeatClass) -> float:
        return self._require_flight(flight_code).base_fare(seat_class)

    def get_confirmed_seat_numbers(
        self, flight_code: int, seat_class: SeatClass, travel_date: date
    ) -> Set[int]:
        stmt = select(Reservation.seat_number).where(
            Reservation.flight_code == flight_code,
            Reservation.seat_class == seat_class.value,
            Reservation.travel_date == travel_date,
            Reservation.status == ReservationStatus.CONFIRMED.value,
        )
        return set(self.session.scalars(stmt))

    def count_confirmed_by_flight(self, seat_class: SeatClass, travel_date: date) -> Dict[int, int]:
        stmt = (
            select(Reservation.flight_code, func.count(Reservation.id))
            .where(
                Reservation.seat_class == seat_class.value,
                Reservation.travel_date == travel_date,
                Reservation.status == ReservationStatus.CONFIRMED.value,
            )
            .group_by(Reservation.flight_code)
        )
        return {flight_code: count for flight_code, count in self.session.execute(stmt)}

    # Customers ---------------------------------------------------------------

    def upsert_customer_by_phone(self, details: CustomerDetails) -> int:
        """Return the id of the customer owning ``details.phone``, creating it if new.

        Existing records are reused as they are; later bookings never
        overwrite the registration captured first.
        """

        existing = self.session.scalar(select(Customer.id).where(Customer.phone == details.phone))
        if existing is not None:
            return existing
        customer = Customer(
            name=details.name,
            father_name=details.father_name,
            gender=details.gender,
            date_of_birth=details.date_of_birth,
            address=details.address,
            phone=details.phone,
            profession=details.profession,
            concession=details.concession.value,
        )
        self.session.add(customer)
        self.session.flush()
        return customer.id

    def get_customer(self, customer_id: int) -> Optional[CustomerRecord]:
        customer = self.session.get(Customer, customer_id)
        if customer is None:
            return None
        return CustomerRecord(
            customer_id=customer.id,
            name=customer.name,
            phone=customer.phone,
            concession=Concession(customer.concession),
        )

    # Reservations ------------------------------------------------------------

    def pnr_exists(self, pnr: str) -> bool:
        return self.session.scalar(select(Reservation.id).where(Reservation.pnr == pnr)) is not None

    def insert_reservation(
        self,
        *,
        customer_id: int,
        flight_code: int,
        seat_class: SeatClass,
        seat_number: int,
        pnr: str,
        fare: float,
        travel_date: date,
        status: ReservationStatus = ReservationStatus.CONFIRMED,
    ) -> int:
        reservation = Reservation(
            customer_id=customer_id,
            flight_code=flight_code,
            seat_class=seat_class.value,
            seat_number=seat_number,
            pnr=pnr,
            fare=fare,
            travel_date=travel_date,
            status=status.value,
        )
        self.session.add(reservation)
        self.session.flush()
        return reservation.id

    def update_reservation_status(self, reservation_id: int, status: ReservationStatus) -> None:
        reservation = self.session.get(Reservation, reservation_id)
        if reservation is None:
            raise NotFoundError(f"reservation {reservation_id} not found")
        reservation.status = status.value
        self.session.flush()

    def _reservation_query(self) -> Select:
        return (
            select(Reservation, Customer.name, Flight.name)
            .join(Customer, Reservation.customer_id == Customer.id)
            .join(Flight, Reservation.flight_code == Flight.flight_code)
        )

    def get_reservation_by_pnr(
        self, pnr: str, *, confirmed_only: bool = False
    ) -> Optional[ReservationRecord]:
        stmt = self._reservation_query().where(Reservation.pnr == pnr)
        if confirmed_only:
            stmt = stmt.where(Reservation.status == ReservationStatus.CONFIRMED.value)
        row = self.session.execute(stmt).first()
        if row is None:
            return None
        reservation, customer_name, flight_name = row
        return _to_reservation_record(reservation, customer_name, flight_name)

    def list_reservations(self, *, offset: int = 0, limit: int = 50) -> List[ReservationRecord]:
        stmt = (
            self._reservation_query()
            .order_by(Reservation.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return [_to_reservation_record(*row) for row in self.session.execute(stmt)]

    def reservations_for_phone(self, phone: str) -> List[ReservationRecord]:
        stmt = (
            self._reservation_query()
            .where(Customer.phone == phone)
            .order_by(Reservation.travel_date.desc(), Reservation.id.desc())
        )
        return [_to_reservation_record(*row) for row in self.session.execute(stmt)]

    # Cancellations -----------------------------------------------------------

    def insert_cancellation_record(
        self,
        *,
        reservation_id: int,
        refund_amount: float,
        cancellation_fee: float,
        cancelled_at: Optional[datetime] = None,
    ) -> CancellationRecord:
        record = Cancellation(
            reservation_id=reservation_id,
            refund_amount=refund_amount,
            cancellation_fee=cancellation_fee,
            cancelled_at=cancelled_at or utcnow(),
        )
        self.session.add(record)
        self.session.flush()
        return CancellationRecord(
            reservation_id=record.reservation_id,
            cancelled_at=record.cancelled_at,
            refund_amount=record.refund_amount,
            cancellation_fee=record.cancellation_fee,
        )

    def get_cancellation_record(self, reservation_id: int) -> Optional[CancellationRecord]:
        record = self.session.scalar(
            select(Cancellation).where(Cancellation.reservation_id == reservation_id)
        )
        if record is None:
            return None
        return CancellationRecord(
            reservation_id=record.reservation_id,
            cancelled_at=record.cancelled_at,
            refund_amount=record.refund_amount,
            cancellation_fee=record.cancellation_fee,
        )

    # Waiting list ------------------------------------------------------------

    def _waiting_scope(self, flight_code: int, seat_class: SeatClass, travel_date: date):
        return (
            WaitingListEntry.flight_code == flight_code,
            WaitingListEntry.seat_class == seat_class.value,
            WaitingListEntry.travel_date == travel_date,
        )

    def get_next_waiting_number(self, flight_code: int, seat_class: SeatClass, travel_date: date) -> int:
        stmt = select(func.coalesce(func.max(WaitingListEntry.waiting_number), 0)).where(
            *self._waiting_scope(flight_code, seat_class, travel_date)
        )
        return int(self.session.scalar(stmt)) + 1

    def insert_waiting_list_entry(
        self,
        *,
        customer_id: int,
        flight_code: int,
        seat_class: SeatClass,
        travel_date: date,
        waiting_number: int,
    ) -> int:
        entry = WaitingListEntry(
            customer_id=customer_id,
            flight_code=flight_code,
            seat_class=seat_class.value,
            travel_date=travel_date,
            waiting_number=waiting_number,
        )
        self.session.add(entry)
        self.session.flush()
        return entry.id

    def list_waiting_entries(
        self, flight_code: int, seat_class: SeatClass, travel_date: date, *, limit: Optional[int] = None
    ) -> List[WaitingListRecord]:
        stmt = (
            select(WaitingListEntry, Customer.name)
            .join(Customer, WaitingListEntry.customer_id == Customer.id)
            .where(*self._waiting_scope(flight_code, seat_class, travel_date))
            .order_by(WaitingListEntry.waiting_number)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return [_to_waiting_record(entry, name) for entry, name in self.session.execute(stmt)]

    def get_front_of_waiting_list(
        self, flight_code: int, seat_class: SeatClass, travel_date: date
    ) -> Optional[WaitingListRecord]:
        entries = self.list_waiting_entries(flight_code, seat_class, travel_date, limit=1)
        return entries[0] if entries else None

    def remove_waiting_list_entry(self, entry_id: int) -> None:
        result = self.session.execute(delete(WaitingListEntry).where(WaitingListEntry.id == entry_id))
        if result.rowcount == 0:
            raise NotFoundError(f"waiting list entry {entry_id} not found")


__all__ = [
    "ReservationRepository",
    "is_conflict",
    "transaction",
    "translate_storage_errors",
]
