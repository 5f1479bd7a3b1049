"""Cancellation fee and refund policy."""
from __future__ import annotations

from datetime import date

from .domain import RefundQuote, ReservationStatus

SAME_DAY_FEE_RATE = 0.25
ADVANCE_FEE_RATE = 0.10


def compute_refund(
    fare: float,
    travel_date: date,
    today: date,
    current_status: ReservationStatus | str = ReservationStatus.CONFIRMED,
) -> RefundQuote:
    """Split ``fare`` into a cancellation fee and a refund.

    A reservation that is already cancelled, or whose travel date has passed,
    forfeits the whole fare. Cancelling on the travel date itself costs 25%,
    any earlier cancellation costs 10%. ``fee + refund`` always equals ``fare``.
    """

    if ReservationStatus(current_status) is ReservationStatus.CANCELLED:
        return RefundQuote(fare=fare, cancellation_fee=fare, refund_amount=0.0, days_until_travel=None)

    days_until_travel = (travel_date - today).days
    if days_until_travel < 0:
        fee = fare
    elif days_until_travel < 1:
        fee = fare * SAME_DAY_FEE_RATE
    else:
        fee = fare * ADVANCE_FEE_RATE
    return RefundQuote(
        fare=fare,
        cancellation_fee=fee,
        refund_amount=fare - fee,
        days_until_travel=days_until_travel,
    )


__all__ = ["ADVANCE_FEE_RATE", "SAME_DAY_FEE_RATE", "compute_refund"]
