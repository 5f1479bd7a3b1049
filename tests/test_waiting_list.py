from datetime import date, time

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError

from airline_reservation.domain import CustomerDetails, ReservationStatus, SeatClass
from airline_reservation.errors import ConflictError, NotFoundError, StorageError
from airline_reservation.models import Reservation
from airline_reservation.repository import transaction, translate_storage_errors
from airline_reservation.waiting_list import WaitingListQueue

TRAVEL = date(2030, 2, 1)


def _seed(session_factory, customers=3):
    with transaction(session_factory) as repository:
        repository.add_flight(
            flight_code=7,
            name="Senqu 7",
            source="Maseru",
            destination="Durban",
            departure_time=time(6, 0),
            arrival_time=time(7, 45),
            economy_seats=1,
            business_seats=0,
            economy_fare=850.0,
            business_fare=2040.0,
        )
        return [
            repository.upsert_customer_by_phone(CustomerDetails(name=f"Customer {i}", phone=f"555-{i}"))
            for i in range(customers)
        ]


def test_enqueue_numbers_are_sequential_and_front_is_lowest(session_factory):
    customer_ids = _seed(session_factory)
    with transaction(session_factory) as repository:
        queue = WaitingListQueue(repository)
        numbers = [queue.enqueue(7, SeatClass.ECONOMY, TRAVEL, cid) for cid in customer_ids]
    assert numbers == [1, 2, 3]

    with transaction(session_factory) as repository:
        queue = WaitingListQueue(repository)
        front = queue.dequeue_front(7, SeatClass.ECONOMY, TRAVEL)
        assert front.waiting_number == 1
        assert front.customer_id == customer_ids[0]
        # peeking does not remove
        assert queue.dequeue_front(7, SeatClass.ECONOMY, TRAVEL).entry_id == front.entry_id
        queue.remove(front.entry_id)
        assert [e.waiting_number for e in queue.entries(7, SeatClass.ECONOMY, TRAVEL)] == [2, 3]


def test_scopes_are_independent(session_factory):
    customer_ids = _seed(session_factory)
    with transaction(session_factory) as repository:
        queue = WaitingListQueue(repository)
        assert queue.enqueue(7, SeatClass.ECONOMY, TRAVEL, customer_ids[0]) == 1
        assert queue.enqueue(7, SeatClass.BUSINESS, TRAVEL, customer_ids[1]) == 1
        assert queue.enqueue(7, SeatClass.ECONOMY, date(2030, 2, 2), customer_ids[2]) == 1
        assert queue.dequeue_front(8, SeatClass.ECONOMY, TRAVEL) is None


def test_numbers_keep_increasing_after_removal(session_factory):
    customer_ids = _seed(session_factory)
    with transaction(session_factory) as repository:
        queue = WaitingListQueue(repository)
        queue.enqueue(7, SeatClass.ECONOMY, TRAVEL, customer_ids[0])
        second = queue.enqueue(7, SeatClass.ECONOMY, TRAVEL, customer_ids[1])
        queue.remove(queue.dequeue_front(7, SeatClass.ECONOMY, TRAVEL).entry_id)
        assert queue.enqueue(7, SeatClass.ECONOMY, TRAVEL, customer_ids[2]) == second + 1


def test_removing_unknown_entry_raises(session_factory):
    _seed(session_factory)
    with pytest.raises(NotFoundError):
        with transaction(session_factory) as repository:
            WaitingListQueue(repository).remove(999)


def test_failed_transaction_leaves_no_entry(session_factory):
    customer_ids = _seed(session_factory)
    with pytest.raises(RuntimeError):
        with transaction(session_factory) as repository:
            WaitingListQueue(repository).enqueue(7, SeatClass.ECONOMY, TRAVEL, customer_ids[0])
            raise RuntimeError("boom")
    with transaction(session_factory) as repository:
        assert WaitingListQueue(repository).entries(7, SeatClass.ECONOMY, TRAVEL) == []


def test_upsert_by_phone_reuses_existing_customer(session_factory):
    first, *_ = _seed(session_factory, customers=1)
    with transaction(session_factory) as repository:
        again = repository.upsert_customer_by_phone(CustomerDetails(name="Renamed", phone="555-0"))
        assert again == first
        assert repository.get_customer(first).name == "Customer 0"


def test_confirmed_seat_is_unique_per_flight_class_and_date(session_factory):
    customer_ids = _seed(session_factory, customers=2)
    common = dict(flight_code=7, seat_class=SeatClass.ECONOMY, seat_number=1, fare=850.0, travel_date=TRAVEL)
    with transaction(session_factory) as repository:
        repository.insert_reservation(customer_id=customer_ids[0], pnr="PNR000001", **common)

    with pytest.raises(ConflictError):
        with transaction(session_factory) as repository:
            repository.insert_reservation(customer_id=customer_ids[1], pnr="PNR000002", **common)

    with transaction(session_factory) as repository:
        reservation = repository.get_reservation_by_pnr("PNR000001")
        repository.update_reservation_status(reservation.reservation_id, ReservationStatus.CANCELLED)
        repository.insert_reservation(customer_id=customer_ids[1], pnr="PNR000003", **common)

    with session_factory() as session:
        statuses = sorted(session.scalars(select(Reservation.status)))
    assert statuses == ["Cancelled", "Confirmed"]


def test_database_errors_are_classified():
    with pytest.raises(ConflictError):
        with translate_storage_errors():
            raise OperationalError("BEGIN IMMEDIATE", {}, Exception("database is locked"))
    with pytest.raises(ConflictError):
        with translate_storage_errors():
            raise IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
    with pytest.raises(StorageError):
        with translate_storage_errors():
            raise OperationalError("SELECT", {}, Exception("unable to open database file"))
    with pytest.raises(StorageError):
        with translate_storage_errors():
            raise IntegrityError("INSERT", {}, Exception("CHECK constraint failed: ck_flight_fares"))
    with pytest.raises(StorageError):
        with translate_storage_errors():
            raise IntegrityError("INSERT", {}, Exception("FOREIGN KEY constraint failed"))


def test_flight_capacity_lookup(session_factory):
    _seed(session_factory, customers=0)
    with transaction(session_factory) as repository:
        assert repository.get_flight_seat_capacity(7, SeatClass.ECONOMY) == 1
        assert repository.get_flight_seat_capacity(7, SeatClass.BUSINESS) == 0
        with pytest.raises(NotFoundError):
            repository.get_flight_seat_capacity(8, SeatClass.ECONOMY)


def test_foreign_key_violation_is_a_storage_error(session_factory):
    _seed(session_factory, customers=0)
    with pytest.raises(StorageError):
        with transaction(session_factory) as repository:
            repository.insert_reservation(
                customer_id=999,
                flight_code=7,
                seat_class=SeatClass.ECONOMY,
                seat_number=1,
                pnr="PNR000001",
                fare=850.0,
                travel_date=TRAVEL,
            )
