from __future__ import annotations

from datetime import date, time

import pytest

from airline_reservation.config import Settings
from airline_reservation.database import create_session_factory
from airline_reservation.models import Base
from airline_reservation.services import ReservationService

TODAY = date(2030, 1, 15)


def make_session_factory(tmp_path):
    db_file = tmp_path / "airline-test.db"
    engine, session_factory = create_session_factory(f"sqlite+pysqlite:///{db_file}", echo=False)
    Base.metadata.create_all(engine)
    return session_factory


class SequentialPnrs:
    """Deterministic PNR source for assertions on generated references."""

    def __init__(self, start: int = 1):
        self.next_value = start

    def __call__(self) -> str:
        value = f"PNR{self.next_value:06d}"
        self.next_value += 1
        return value


@pytest.fixture
def session_factory(tmp_path):
    return make_session_factory(tmp_path)


@pytest.fixture
def settings():
    return Settings(db_busy_timeout=30.0, max_retries=3)


@pytest.fixture
def service(session_factory, settings):
    return ReservationService(
        session_factory,
        settings=settings,
        clock=lambda: TODAY,
        pnr_factory=SequentialPnrs(),
    )


def add_test_flight(service, flight_code=101, *, economy_seats=6, business_seats=2, **overrides):
    params = dict(
        flight_code=flight_code,
        name=f"Maluti Air {flight_code}",
        source="Maseru",
        destination="Johannesburg",
        departure_time=time(9, 0),
        arrival_time=time(11, 30),
        economy_seats=economy_seats,
        business_seats=business_seats,
        economy_fare=850.0,
        business_fare=2040.0,
    )
    params.update(overrides)
    return service.add_flight(**params)
