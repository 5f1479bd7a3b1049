"""Utilities to populate the database with sample data for tests and demos."""
from __future__ import annotations

import random
from datetime import date, time, timedelta
from typing import Dict, Optional, Sequence

from sqlalchemy.orm import Session, sessionmaker

from .config import Settings
from .domain import Concession, CustomerDetails, SeatClass, SeatPreference
from .errors import ReservationError
from .services import ReservationService

AIRPORTS: Sequence[str] = (
    "Maseru",
    "Johannesburg",
    "Cape Town",
    "Durban",
    "Gaborone",
    "Windhoek",
    "Harare",
    "Lusaka",
)
AIRLINES = ("Maluti Air", "Highland Express", "Senqu Airways", "Basotho Wings")
FIRST_NAMES = ("Ava", "Noah", "Liam", "Mia", "Lucas", "Emma", "Ethan", "Isabella")
LAST_NAMES = ("Mokoena", "Williams", "Smith", "Nkosi", "Garcia", "Lee")
CONCESSIONS = (
    Concession.NONE,
    Concession.NONE,
    Concession.NONE,
    Concession.STUDENT,
    Concession.SENIOR_CITIZEN,
    Concession.CANCER_PATIENT,
)


def _random_time() -> time:
    return time(hour=random.randint(5, 20), minute=random.choice((0, 15, 30, 45)))


def generate_sample_data(
    session_factory: sessionmaker[Session],
    *,
    flights: int = 10,
    customers: int = 60,
    bookings: int = 150,
    start_date: Optional[date] = None,
    settings: Optional[Settings] = None,
) -> Dict[str, int]:
    """Populate the database with deterministic pseudo-random data."""

    random.seed(42)
    today = start_date or date.today()
    service = ReservationService(session_factory, settings=settings, clock=lambda: today)

    for index in range(flights):
        source, destination = random.sample(AIRPORTS, 2)
        departure = _random_time()
        arrival = time(hour=min(departure.hour + random.randint(1, 3), 23), minute=departure.minute)
        service.add_flight(
            flight_code=1000 + index,
            name=f"{random.choice(AIRLINES)} {100 + index}",
            source=source,
            destination=destination,
            departure_time=departure,
            arrival_time=arrival,
            economy_seats=random.choice((6, 12, 18)),
            business_seats=random.choice((0, 6)),
        )

    people = [
        CustomerDetails(
            name=f"{random.choice(FIRST_NAMES)} {random.choice(LAST_NAMES)}",
            phone=f"+266-5555-{index:04d}",
            gender=random.choice(("Male", "Female")),
            date_of_birth=date(random.randint(1950, 2005), random.randint(1, 12), random.randint(1, 28)),
            concession=random.choice(CONCESSIONS),
        )
        for index in range(customers)
    ]
    if not flights or not people:
        return {"flights": flights, "customers": 0, "confirmed": 0, "waitlisted": 0}

    confirmed = 0
    waitlisted = 0
    for _ in range(bookings):
        try:
            result = service.make_reservation(
                random.choice(people),
                1000 + random.randrange(flights),
                random.choice((SeatClass.ECONOMY, SeatClass.ECONOMY, SeatClass.BUSINESS)),
                random.choice(tuple(SeatPreference)),
                today + timedelta(days=random.randint(0, 6)),
            )
        except ReservationError:
            continue
        if result.confirmed:
            confirmed += 1
        else:
            waitlisted += 1
    return {
        "flights": flights,
        "customers": len({person.phone for person in people}),
        "confirmed": confirmed,
        "waitlisted": waitlisted,
    }
