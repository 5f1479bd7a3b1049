from datetime import date, timedelta

import pytest

from airline_reservation.cancellation import compute_refund
from airline_reservation.domain import ReservationStatus

TODAY = date(2030, 1, 15)


def test_advance_cancellation_keeps_ten_percent():
    quote = compute_refund(1000.0, TODAY + timedelta(days=2), TODAY)
    assert quote.cancellation_fee == pytest.approx(100.0)
    assert quote.refund_amount == pytest.approx(900.0)
    assert quote.days_until_travel == 2


def test_next_day_travel_is_not_within_24_hours():
    quote = compute_refund(1000.0, TODAY + timedelta(days=1), TODAY)
    assert quote.cancellation_fee == pytest.approx(100.0)


def test_same_day_cancellation_keeps_quarter():
    quote = compute_refund(1000.0, TODAY, TODAY)
    assert quote.cancellation_fee == pytest.approx(250.0)
    assert quote.refund_amount == pytest.approx(750.0)


def test_past_travel_date_forfeits_fare():
    quote = compute_refund(1000.0, TODAY - timedelta(days=1), TODAY)
    assert quote.cancellation_fee == pytest.approx(1000.0)
    assert quote.refund_amount == 0.0


def test_already_cancelled_yields_no_refund():
    quote = compute_refund(1000.0, TODAY + timedelta(days=30), TODAY, ReservationStatus.CANCELLED)
    assert quote.refund_amount == 0.0
    assert quote.cancellation_fee == 1000.0
    assert compute_refund(500.0, TODAY, TODAY, "Cancelled").refund_amount == 0.0


@pytest.mark.parametrize("fare", [850.0, 637.5, 366.35, 2040.0, 0.01])
@pytest.mark.parametrize("offset", [-3, -1, 0, 1, 7, 120])
@pytest.mark.parametrize("status", list(ReservationStatus))
def test_fee_and_refund_sum_to_fare(fare, offset, status):
    quote = compute_refund(fare, TODAY + timedelta(days=offset), TODAY, status)
    assert quote.cancellation_fee + quote.refund_amount == pytest.approx(fare)
    assert quote.refund_amount >= 0


def test_display_rounds_to_cents():
    quote = compute_refund(100.0 / 3, TODAY + timedelta(days=5), TODAY)
    display = quote.as_display()
    assert display == {"fare": 33.33, "cancellation_fee": 3.33, "refund_amount": 30.0}
