"""
Slot validators for the booking sequence.

Each validator reads the user's answer (and the recognizer it needs) and
returns either ``Accepted`` with the typed value or ``Rejected`` with the
message to send back. Validators never touch flow state or the profile.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Generic, Optional, TypeVar, Union

from dateutil import parser as date_parser

from .recognizers import DateTimeRecognizer, NumberRecognizer

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_AGE = 18
MAX_AGE = 120
MIN_LEAD_TIME = timedelta(hours=1)

NAME_REQUIRED_MESSAGE = "Please enter a name that contains at least one character."
AGE_RANGE_MESSAGE = f"Please enter an age between {MIN_AGE} and {MAX_AGE}."
AGE_UNRECOGNIZED_MESSAGE = (
    f"I'm sorry, I could not interpret that as an age. Please enter an age between {MIN_AGE} and {MAX_AGE}."
)
DATE_TOO_SOON_MESSAGE = "I'm sorry, please enter a date at least an hour out."
DATE_UNRECOGNIZED_MESSAGE = (
    "I'm sorry, I could not interpret that as an appropriate date. Please enter a date at least an hour out."
)


@dataclass(frozen=True)
class Accepted(Generic[T]):
    value: T


@dataclass(frozen=True)
class Rejected:
    message: str


ValidationOutcome = Union[Accepted[T], Rejected]


def format_short_date(value: datetime) -> str:
    """Day-level display format, e.g. ``3/7/2031``."""
    return f"{value.month}/{value.day}/{value.year}"


def validate_name(text: Optional[str]) -> ValidationOutcome[str]:
    name = (text or "").strip()
    if not name:
        return Rejected(NAME_REQUIRED_MESSAGE)
    return Accepted(name)


def _to_int(value: str) -> int:
    number = Decimal(value)
    if number != number.to_integral_value():
        raise ValueError(f"{value!r} is not a whole number")
    return int(number)


async def validate_age(
    text: Optional[str],
    recognizer: NumberRecognizer,
    *,
    culture: str = "en-us",
) -> ValidationOutcome[int]:
    """
    Accept the first recognized number within [MIN_AGE, MAX_AGE].

    Any recognizer failure, or a resolved value that is not a whole number,
    ends the turn with the "could not interpret" message.
    """

    try:
        candidates = await recognizer.recognize_number(text or "", culture)
        for candidate in candidates:
            age = _to_int(candidate.value)
            if MIN_AGE <= age <= MAX_AGE:
                return Accepted(age)
    except Exception as exc:
        logger.info("slot_validators.age_unrecognized text=%r error=%s", text, exc)
        return Rejected(AGE_UNRECOGNIZED_MESSAGE)
    return Rejected(AGE_RANGE_MESSAGE)


def _parse_datetime(value: str, now: datetime) -> Optional[datetime]:
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is not None and now.tzinfo is None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    elif parsed.tzinfo is None and now.tzinfo is not None:
        parsed = parsed.replace(tzinfo=now.tzinfo)
    return parsed


async def validate_date(
    text: Optional[str],
    recognizer: DateTimeRecognizer,
    *,
    culture: str = "en-us",
    now: Optional[datetime] = None,
) -> ValidationOutcome[str]:
    """
    Accept the first recognized date-time strictly later than ``now + 1h``.

    Candidates are taken in the recognizer's order. A point value is used when
    present, otherwise the start of a range.
    """

    now = now or datetime.now()
    earliest = now + MIN_LEAD_TIME
    try:
        candidates = await recognizer.recognize_datetime(text or "", culture, now)
    except Exception as exc:
        logger.info("slot_validators.date_unrecognized text=%r error=%s", text, exc)
        return Rejected(DATE_UNRECOGNIZED_MESSAGE)

    for candidate in candidates:
        point = candidate.point_value()
        if not point:
            continue
        parsed = _parse_datetime(point, now)
        if parsed is not None and parsed > earliest:
            return Accepted(format_short_date(parsed))
    return Rejected(DATE_TOO_SOON_MESSAGE)
