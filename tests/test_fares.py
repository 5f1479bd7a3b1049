import pytest

from airline_reservation.domain import Concession
from airline_reservation.fares import (
    calculate_discount,
    calculate_final_fare,
    compute_fare,
    concession_note,
    discount_percentage,
    parse_concession,
)


@pytest.mark.parametrize(
    "concession, expected",
    [
        ("Student", 250.0),
        ("Senior Citizen", 130.0),
        ("Cancer Patient", 569.0),
        ("None", 0.0),
        ("Frequent Flyer", 0.0),
        (None, 0.0),
    ],
)
def test_discount_for_each_concession(concession, expected):
    assert calculate_discount(1000, concession) == pytest.approx(expected)


@pytest.mark.parametrize("concession", list(Concession) + ["garbled", ""])
def test_discount_and_final_fare_add_up_to_base(concession):
    for base in (850.0, 2040.0, 1234.56):
        quote = compute_fare(base, concession)
        assert quote.discount + quote.final_fare == pytest.approx(base)


def test_compute_fare_reports_rate_and_category():
    quote = compute_fare(2040.0, Concession.STUDENT)
    assert quote.concession is Concession.STUDENT
    assert quote.rate == 0.25
    assert quote.discount == pytest.approx(510.0)
    assert quote.final_fare == pytest.approx(1530.0)
    assert calculate_final_fare(2040.0, "Student") == pytest.approx(1530.0)


def test_unknown_concession_falls_back_to_regular_fare():
    quote = compute_fare(850.0, "VIP")
    assert quote.concession is Concession.NONE
    assert quote.final_fare == 850.0


def test_display_labels_are_parsed_by_prefix():
    assert parse_concession("Student (25% off)") is Concession.STUDENT
    assert parse_concession("senior citizen - 13%") is Concession.SENIOR_CITIZEN
    assert parse_concession("None - regular fare") is Concession.NONE


def test_display_helpers():
    assert discount_percentage("Cancer Patient") == "56.9%"
    assert discount_percentage("unknown") == "0%"
    assert "student ID" in concession_note(Concession.STUDENT)
    assert concession_note(None).startswith("Regular fare")
