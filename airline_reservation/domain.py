"""Immutable value types shared between the storage, service and interface layers."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional


class SeatClass(str, enum.Enum):
    ECONOMY = "Economy"
    BUSINESS = "Business"

    @classmethod
    def parse(cls, value: "SeatClass | str") -> "SeatClass":
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        # "Executive" is the name the booking screens use for the upper cabin
        if text in ("business", "executive"):
            return cls.BUSINESS
        if text == "economy":
            return cls.ECONOMY
        raise ValueError(f"Unknown seat class '{value}'.")


class Concession(str, enum.Enum):
    NONE = "None"
    STUDENT = "Student"
    SENIOR_CITIZEN = "Senior Citizen"
    CANCER_PATIENT = "Cancer Patient"


class SeatPreference(str, enum.Enum):
    ANY = "Any"
    WINDOW = "Window"
    AISLE = "Aisle"

    @classmethod
    def parse(cls, value: "SeatPreference | str | None") -> "SeatPreference":
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.ANY
        text = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        return cls.ANY


class ReservationStatus(str, enum.Enum):
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"


def route_label(source: str, destination: str) -> str:
    return f"{source} → {destination}"


@dataclass(frozen=True)
class FlightInfo:
    flight_code: int
    name: str
    source: str
    destination: str
    departure_time: time
    arrival_time: time
    economy_seats: int
    business_seats: int
    economy_fare: float
    business_fare: float

    @property
    def route(self) -> str:
        return route_label(self.source, self.destination)

    def capacity(self, seat_class: SeatClass) -> int:
        return self.economy_seats if seat_class is SeatClass.ECONOMY else self.business_seats

    def base_fare(self, seat_class: SeatClass) -> float:
        return self.economy_fare if seat_class is SeatClass.ECONOMY else self.business_fare


@dataclass(frozen=True)
class FlightAvailability:
    """A flight as returned by a search, for one class on one travel date."""

    flight_code: int
    name: str
    route: str
    departure_time: time
    arrival_time: time
    seat_class: SeatClass
    total_seats: int
    available_seats: int
    base_fare: float


@dataclass(frozen=True)
class CustomerDetails:
    """Registration data captured at booking time; ``phone`` is the natural key."""

    name: str
    phone: str
    gender: str = ""
    date_of_birth: Optional[date] = None
    address: str = ""
    profession: str = ""
    concession: Concession = Concession.NONE
    father_name: str = ""


@dataclass(frozen=True)
class CustomerRecord:
    customer_id: int
    name: str
    phone: str
    concession: Concession


@dataclass(frozen=True)
class ReservationRecord:
    reservation_id: int
    pnr: str
    customer_id: int
    flight_code: int
    seat_class: SeatClass
    seat_number: int
    status: ReservationStatus
    fare: float
    travel_date: date
    customer_name: str = ""
    flight_name: str = ""


@dataclass(frozen=True)
class WaitingListRecord:
    entry_id: int
    customer_id: int
    flight_code: int
    seat_class: SeatClass
    travel_date: date
    waiting_number: int
    customer_name: str = ""


@dataclass(frozen=True)
class CancellationRecord:
    reservation_id: int
    cancelled_at: datetime
    refund_amount: float
    cancellation_fee: float


@dataclass(frozen=True)
class FareQuote:
    base_fare: float
    concession: Concession
    rate: float
    discount: float
    final_fare: float


@dataclass(frozen=True)
class RefundQuote:
    fare: float
    cancellation_fee: float
    refund_amount: float
    days_until_travel: Optional[int]

    def as_display(self) -> dict:
        return {
            "fare": round(self.fare, 2),
            "cancellation_fee": round(self.cancellation_fee, 2),
            "refund_amount": round(self.refund_amount, 2),
        }


@dataclass(frozen=True)
class ReservationResult:
    confirmed: bool
    pnr: Optional[str] = None
    seat_number: Optional[int] = None
    fare: Optional[float] = None
    waiting_number: Optional[int] = None
    customer_id: Optional[int] = None


@dataclass(frozen=True)
class CancellationResult:
    success: bool
    refund_amount: float
    cancellation_fee: float
    promoted_pnr: Optional[str] = None
