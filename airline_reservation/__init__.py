"""Airline reservation system package."""
from typing import Any

from .cancellation import compute_refund
from .config import Settings, setup_logging
from .database import create_session_factory, init_db, session_scope
from .dataset import generate_sample_data
from .domain import (
    CancellationResult,
    Concession,
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
from .errors import ConflictError, NotFoundError, ReservationError, StorageError, ValidationError
from .fares import calculate_discount, calculate_final_fare, compute_fare
from .repository import ReservationRepository, transaction
from .seating import SeatAllocator, assign_seat
from .services import ReservationService, generate_pnr
from .waiting_list import WaitingListQueue


def create_app(*args: Any, **kwargs: Any):  # pragma: no cover - thin wrapper
    from .api import create_app as _create_app

    return _create_app(*args, **kwargs)


def cli_main(*args: Any, **kwargs: Any) -> int:  # pragma: no cover - thin wrapper
    from .cli import main as _cli_main

    return _cli_main(*args, **kwargs)


__all__ = [
    "CancellationResult",
    "Concession",
    "ConflictError",
    "CustomerDetails",
    "FareQuote",
    "FlightAvailability",
    "FlightInfo",
    "NotFoundError",
    "RefundQuote",
    "ReservationError",
    "ReservationRecord",
    "ReservationRepository",
    "ReservationResult",
    "ReservationService",
    "ReservationStatus",
    "SeatAllocator",
    "SeatClass",
    "SeatPreference",
    "Settings",
    "StorageError",
    "ValidationError",
    "WaitingListQueue",
    "WaitingListRecord",
    "assign_seat",
    "calculate_discount",
    "calculate_final_fare",
    "cli_main",
    "compute_fare",
    "compute_refund",
    "create_app",
    "create_session_factory",
    "generate_pnr",
    "generate_sample_data",
    "init_db",
    "session_scope",
    "setup_logging",
    "transaction",
]
