"""Deterministic seat selection."""
from __future__ import annotations

from typing import AbstractSet, Optional, Sequence

from .domain import SeatPreference


class SeatAllocator:
    """Seat allocation helper that ensures deterministic seat numbering.

    Seats are numbered from 1 and laid out in rows of six; the first and last
    position of every row is a window seat.
    """

    seat_letters: Sequence[str] = tuple("ABCDEF")

    @classmethod
    def position_in_row(cls, seat_number: int) -> int:
        return ((seat_number - 1) % len(cls.seat_letters)) + 1

    @classmethod
    def is_window_seat(cls, seat_number: int) -> bool:
        return cls.position_in_row(seat_number) in (1, len(cls.seat_letters))

    @classmethod
    def seat_label(cls, seat_number: int) -> str:
        row = (seat_number - 1) // len(cls.seat_letters) + 1
        return f"{row}{cls.seat_letters[cls.position_in_row(seat_number) - 1]}"

    @classmethod
    def find_window_seat(cls, total_seats: int, confirmed: AbstractSet[int]) -> Optional[int]:
        for seat in range(1, total_seats + 1):
            if seat not in confirmed and cls.is_window_seat(seat):
                return seat
        return None

    @classmethod
    def find_any_seat(cls, total_seats: int, confirmed: AbstractSet[int]) -> Optional[int]:
        for seat in range(1, total_seats + 1):
            if seat not in confirmed:
                return seat
        return None

    @classmethod
    def assign_seat(
        cls,
        total_seats: int,
        confirmed: AbstractSet[int],
        preference: SeatPreference | str | None = SeatPreference.ANY,
    ) -> Optional[int]:
        """Return the lowest free seat honouring ``preference``, or ``None`` when full.

        Aisle has no dedicated rule and behaves like Any. A window request
        with no free window seat falls back to any free seat.
        """

        if SeatPreference.parse(preference) is SeatPreference.WINDOW:
            seat = cls.find_window_seat(total_seats, confirmed)
            if seat is not None:
                return seat
        return cls.find_any_seat(total_seats, confirmed)

    @staticmethod
    def available_seat_count(total_seats: int, confirmed: AbstractSet[int]) -> int:
        taken = sum(1 for seat in confirmed if 1 <= seat <= total_seats)
        return total_seats - taken


def assign_seat(
    total_seats: int,
    confirmed: AbstractSet[int],
    preference: SeatPreference | str | None = SeatPreference.ANY,
) -> Optional[int]:
    return SeatAllocator.assign_seat(total_seats, confirmed, preference)


__all__ = ["SeatAllocator", "assign_seat"]
