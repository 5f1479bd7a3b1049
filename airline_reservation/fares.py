"""Concession discounts and final fare computation."""
from __future__ import annotations

import logging
from typing import Dict, Optional, Union

from .domain import Concession, FareQuote

logger = logging.getLogger(__name__)

DISCOUNT_RATES: Dict[Concession, float] = {
    Concession.NONE: 0.0,
    Concession.STUDENT: 0.25,
    Concession.SENIOR_CITIZEN: 0.13,
    Concession.CANCER_PATIENT: 0.569,
}

_DISPLAY_PERCENTAGES: Dict[Concession, str] = {
    Concession.NONE: "0%",
    Concession.STUDENT: "25%",
    Concession.SENIOR_CITIZEN: "13%",
    Concession.CANCER_PATIENT: "56.9%",
}

_NOTES: Dict[Concession, str] = {
    Concession.NONE: "Regular fare applies. No additional discounts.",
    Concession.STUDENT: "Student Discount: 25% off base fare. Valid student ID required at check-in.",
    Concession.SENIOR_CITIZEN: "Senior Citizen Discount: 13% off base fare. Age proof required (60+ years).",
    Concession.CANCER_PATIENT: "Medical Discount: 56.9% off base fare. Medical certificate required.",
}

ConcessionLike = Union[Concession, str, None]


def parse_concession(value: ConcessionLike) -> Concession:
    """Map user input to a :class:`Concession`.

    Accepts the enum itself, its canonical value, or a display label that
    starts with the category name (``"Student (25% off)"``). Anything else is
    treated as :attr:`Concession.NONE`.
    """

    if isinstance(value, Concession):
        return value
    if value is None:
        return Concession.NONE
    text = str(value).strip()
    for member in Concession:
        if text == member.value:
            return member
    lowered = text.lower()
    for member in (Concession.STUDENT, Concession.SENIOR_CITIZEN, Concession.CANCER_PATIENT):
        if lowered.startswith(member.value.lower()):
            return member
    if text and lowered != "none":
        logger.debug("Unrecognised concession %r, applying regular fare", value)
    return Concession.NONE


def discount_rate(concession: ConcessionLike) -> float:
    return DISCOUNT_RATES[parse_concession(concession)]


def calculate_discount(base_fare: float, concession: ConcessionLike) -> float:
    return base_fare * discount_rate(concession)


def calculate_final_fare(base_fare: float, concession: ConcessionLike) -> float:
    return base_fare - calculate_discount(base_fare, concession)


def compute_fare(base_fare: float, concession: ConcessionLike = None) -> FareQuote:
    """Return the discount and final fare for ``base_fare`` under ``concession``."""

    category = parse_concession(concession)
    rate = DISCOUNT_RATES[category]
    discount = base_fare * rate
    return FareQuote(
        base_fare=base_fare,
        concession=category,
        rate=rate,
        discount=discount,
        final_fare=base_fare - discount,
    )


def discount_percentage(concession: ConcessionLike) -> str:
    return _DISPLAY_PERCENTAGES[parse_concession(concession)]


def concession_note(concession: Optional[ConcessionLike]) -> str:
    return _NOTES[parse_concession(concession)]


__all__ = [
    "DISCOUNT_RATES",
    "calculate_discount",
    "calculate_final_fare",
    "compute_fare",
    "concession_note",
    "discount_percentage",
    "discount_rate",
    "parse_concession",
]
