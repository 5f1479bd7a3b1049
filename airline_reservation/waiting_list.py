"""FIFO waiting list per flight, seat class and travel date."""
from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from .domain import SeatClass, WaitingListRecord
from .repository import ReservationRepository

logger = logging.getLogger(__name__)


class WaitingListQueue:
    """Queue operations bound to the caller's repository, and so to its transaction."""

    def __init__(self, repository: ReservationRepository):
        self.repository = repository

    def enqueue(self, flight_code: int, seat_class: SeatClass, travel_date: date, customer_id: int) -> int:
        waiting_number = self.repository.get_next_waiting_number(flight_code, seat_class, travel_date)
        self.repository.insert_waiting_list_entry(
            customer_id=customer_id,
            flight_code=flight_code,
            seat_class=seat_class,
            travel_date=travel_date,
            waiting_number=waiting_number,
        )
        logger.debug(
            "Queued customer %s as #%s for flight %s %s on %s",
            customer_id,
            waiting_number,
            flight_code,
            seat_class.value,
            travel_date,
        )
        return waiting_number

    def dequeue_front(
        self, flight_code: int, seat_class: SeatClass, travel_date: date
    ) -> Optional[WaitingListRecord]:
        """Peek at the lowest waiting number; the caller removes it once promoted."""

        return self.repository.get_front_of_waiting_list(flight_code, seat_class, travel_date)

    def remove(self, entry_id: int) -> None:
        self.repository.remove_waiting_list_entry(entry_id)

    def entries(self, flight_code: int, seat_class: SeatClass, travel_date: date) -> List[WaitingListRecord]:
        return self.repository.list_waiting_entries(flight_code, seat_class, travel_date)


__all__ = ["WaitingListQueue"]
