"""SQLAlchemy models for the airline reservation system."""
from __future__ import annotations

from datetime import date, datetime, time, timezone
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Time,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def utcnow() -> datetime:
    """Naive UTC timestamp, as stored in the DateTime columns."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class Flight(Base):
    __tablename__ = "flights"
    __table_args__ = (
        CheckConstraint("economy_seats >= 0", name="ck_economy_seats_non_negative"),
        CheckConstraint("business_seats >= 0", name="ck_business_seats_non_negative"),
        CheckConstraint("economy_fare > 0", name="ck_economy_fare_positive"),
        CheckConstraint("business_fare > 0", name="ck_business_fare_positive"),
    )

    flight_code: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(60), nullable=False)
    source: Mapped[str] = mapped_column(String(60), nullable=False)
    destination: Mapped[str] = mapped_column(String(60), nullable=False)
    departure_time: Mapped[time] = mapped_column(Time, nullable=False)
    arrival_time: Mapped[time] = mapped_column(Time, nullable=False)
    economy_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    business_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    economy_fare: Mapped[float] = mapped_column(Float, nullable=False)
    business_fare: Mapped[float] = mapped_column(Float, nullable=False)

    reservations: Mapped[List["Reservation"]] = relationship(back_populates="flight")


class Customer(Base):
    __tablename__ = "customers"
    __table_args__ = (UniqueConstraint("phone", name="uq_customer_phone"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    father_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    gender: Mapped[str] = mapped_column(String(20), default="", nullable=False)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    address: Mapped[str] = mapped_column(String(255), default="", nullable=False)
    phone: Mapped[str] = mapped_column(String(30), nullable=False)
    profession: Mapped[str] = mapped_column(String(60), default="", nullable=False)
    concession: Mapped[str] = mapped_column(String(20), default="None", nullable=False)

    reservations: Mapped[List["Reservation"]] = relationship(back_populates="customer")


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        UniqueConstraint("pnr", name="uq_reservation_pnr"),
        CheckConstraint("seat_number > 0", name="ck_seat_number_positive"),
        Index(
            "uq_confirmed_seat",
            "flight_code",
            "seat_class",
            "seat_number",
            "travel_date",
            unique=True,
            sqlite_where=text("status = 'Confirmed'"),
            postgresql_where=text("status = 'Confirmed'"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    pnr: Mapped[str] = mapped_column(String(12), nullable=False)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)
    flight_code: Mapped[int] = mapped_column(ForeignKey("flights.flight_code"), nullable=False)
    seat_class: Mapped[str] = mapped_column(String(20), nullable=False)
    seat_number: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(20), default="Confirmed", nullable=False)
    fare: Mapped[float] = mapped_column(Float, nullable=False)
    travel_date: Mapped[date] = mapped_column(Date, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    flight: Mapped[Flight] = relationship(back_populates="reservations")
    customer: Mapped[Customer] = relationship(back_populates="reservations")
    cancellation: Mapped[Optional["Cancellation"]] = relationship(
        back_populates="reservation", uselist=False
    )


class WaitingListEntry(Base):
    __tablename__ = "waiting_list"
    __table_args__ = (
        UniqueConstraint(
            "flight_code",
            "seat_class",
            "travel_date",
            "waiting_number",
            name="uq_waiting_number",
        ),
        CheckConstraint("waiting_number > 0", name="ck_waiting_number_positive"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    customer_id: Mapped[int] = mapped_column(ForeignKey("customers.id"), nullable=False)
    flight_code: Mapped[int] = mapped_column(ForeignKey("flights.flight_code"), nullable=False)
    seat_class: Mapped[str] = mapped_column(String(20), nullable=False)
    travel_date: Mapped[date] = mapped_column(Date, nullable=False)
    waiting_number: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    customer: Mapped[Customer] = relationship()


class Cancellation(Base):
    __tablename__ = "cancellations"
    __table_args__ = (UniqueConstraint("reservation_id", name="uq_cancellation_reservation"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    reservation_id: Mapped[int] = mapped_column(ForeignKey("reservations.id"), nullable=False)
    cancelled_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    refund_amount: Mapped[float] = mapped_column(Float, nullable=False)
    cancellation_fee: Mapped[float] = mapped_column(Float, nullable=False)

    reservation: Mapped[Reservation] = relationship(back_populates="cancellation")
