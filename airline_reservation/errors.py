"""Exceptions raised by the reservation core."""
from __future__ import annotations


class ReservationError(RuntimeError):
    """Base class for all reservation failures surfaced to callers."""


class ValidationError(ReservationError):
    """Raised when input is malformed or incomplete, before storage is touched."""


class NotFoundError(ReservationError):
    """Raised when a flight or a confirmed reservation cannot be found."""


class ConflictError(ReservationError):
    """Raised when a concurrent transaction invalidated the seat or queue state."""


class StorageError(ReservationError):
    """Raised when the underlying database fails."""


__all__ = [
    "ReservationError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "StorageError",
]
