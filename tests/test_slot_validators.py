from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from booking_bot.models import DateTimeCandidate, NumberCandidate
from booking_bot.services.recognizers import EnglishNumberRecognizer, RecognitionError
from booking_bot.services.slot_validators import (
    AGE_RANGE_MESSAGE,
    AGE_UNRECOGNIZED_MESSAGE,
    DATE_TOO_SOON_MESSAGE,
    DATE_UNRECOGNIZED_MESSAGE,
    NAME_REQUIRED_MESSAGE,
    Accepted,
    Rejected,
    format_short_date,
    validate_age,
    validate_date,
    validate_name,
)

from conftest import FIXED_NOW, ScriptedDateTimeRecognizer, ScriptedNumberRecognizer, number, point


# =============================================================================
# Name
# =============================================================================


@pytest.mark.parametrize("text", ["", "   ", "\t\n", None])
def test_blank_name_is_rejected(text):
    assert validate_name(text) == Rejected(NAME_REQUIRED_MESSAGE)


@pytest.mark.parametrize("text,expected", [("Ana", "Ana"), ("  Ana  ", "Ana"), ("Mary Jane", "Mary Jane")])
def test_name_is_accepted_trimmed(text, expected):
    assert validate_name(text) == Accepted(expected)


# =============================================================================
# Age
# =============================================================================


@pytest.mark.parametrize("age", [18, 25, 120])
def test_age_within_range_is_accepted(age):
    outcome = asyncio.run(validate_age(str(age), ScriptedNumberRecognizer([number(age)])))
    assert outcome == Accepted(age)


@pytest.mark.parametrize("age", [17, 121, 0, -5])
def test_age_outside_range_is_rejected_with_range_message(age):
    outcome = asyncio.run(validate_age(str(age), ScriptedNumberRecognizer([number(age)])))
    assert outcome == Rejected(AGE_RANGE_MESSAGE)


def test_first_candidate_within_range_wins():
    recognizer = ScriptedNumberRecognizer([number(5), number(40), number(30)])
    outcome = asyncio.run(validate_age("5 or 40 or 30", recognizer))
    assert outcome == Accepted(40)


def test_no_candidates_gives_range_message():
    outcome = asyncio.run(validate_age("no idea", ScriptedNumberRecognizer([])))
    assert outcome == Rejected(AGE_RANGE_MESSAGE)


def test_fractional_age_cannot_be_interpreted():
    outcome = asyncio.run(validate_age("25.5", ScriptedNumberRecognizer([number("25.5")])))
    assert outcome == Rejected(AGE_UNRECOGNIZED_MESSAGE)


def test_fractional_age_before_a_whole_age_cannot_be_interpreted():
    recognizer = ScriptedNumberRecognizer([number("25.5"), number(30)])
    outcome = asyncio.run(validate_age("25.5 or 30", recognizer))
    assert outcome == Rejected(AGE_UNRECOGNIZED_MESSAGE)


@pytest.mark.parametrize(
    "error",
    [
        RecognitionError("down"),
        ConnectionError("recognizer service down"),
        TimeoutError("recognizer timed out"),
    ],
)
def test_recognizer_failure_gives_distinct_age_message(error):
    recognizer = ScriptedNumberRecognizer(error=error)
    outcome = asyncio.run(validate_age("25", recognizer))
    assert outcome == Rejected(AGE_UNRECOGNIZED_MESSAGE)
    assert AGE_UNRECOGNIZED_MESSAGE != AGE_RANGE_MESSAGE


def test_garbage_resolution_gives_unrecognized_message():
    recognizer = ScriptedNumberRecognizer([NumberCandidate(text="x", value="not-a-number")])
    outcome = asyncio.run(validate_age("x", recognizer))
    assert outcome == Rejected(AGE_UNRECOGNIZED_MESSAGE)


@pytest.mark.parametrize(
    "text,expected",
    [
        ("twenty five", 25),
        ("I am 42 years old", 42),
        ("a hundred and ten", 110),
        ("I'm twelve, no wait, thirty", 30),
    ],
)
def test_age_with_english_recognizer(text, expected):
    outcome = asyncio.run(validate_age(text, EnglishNumberRecognizer()))
    assert outcome == Accepted(expected)


@pytest.mark.parametrize("text", ["25,000", "I'm 1,000 years young"])
def test_thousands_separator_is_not_a_decimal_point(text):
    outcome = asyncio.run(validate_age(text, EnglishNumberRecognizer()))
    assert outcome == Rejected(AGE_RANGE_MESSAGE)


# =============================================================================
# Date
# =============================================================================


def _validate(candidates=None, error=None):
    recognizer = ScriptedDateTimeRecognizer(candidates, error=error)
    return asyncio.run(validate_date("whenever", recognizer, now=FIXED_NOW))


def test_date_exactly_one_hour_out_is_rejected():
    outcome = _validate([point(FIXED_NOW + timedelta(hours=1))])
    assert outcome == Rejected(DATE_TOO_SOON_MESSAGE)


def test_date_one_hour_and_one_second_out_is_accepted():
    outcome = _validate([point(FIXED_NOW + timedelta(hours=1, seconds=1))])
    assert outcome == Accepted("3/7/2031")


def test_past_date_is_rejected():
    outcome = _validate([point(FIXED_NOW - timedelta(days=2))])
    assert outcome == Rejected(DATE_TOO_SOON_MESSAGE)


def test_first_qualifying_candidate_in_recognizer_order_wins():
    outcome = _validate(
        [
            point(FIXED_NOW + timedelta(minutes=30)),
            point(FIXED_NOW + timedelta(days=5)),
            point(FIXED_NOW + timedelta(days=1)),
        ]
    )
    assert outcome == Accepted("3/12/2031")


def test_range_start_is_used_when_no_point_value():
    candidate = DateTimeCandidate(text="next week", start="2031-03-10 00:00:00", end="2031-03-17 00:00:00")
    assert _validate([candidate]) == Accepted("3/10/2031")


def test_unparseable_candidate_is_skipped():
    candidates = [
        DateTimeCandidate(text="??", value="not a date"),
        DateTimeCandidate(text="empty"),
        point(FIXED_NOW + timedelta(days=3)),
    ]
    assert _validate(candidates) == Accepted("3/10/2031")


def test_no_date_candidates_is_rejected():
    assert _validate([]) == Rejected(DATE_TOO_SOON_MESSAGE)


@pytest.mark.parametrize(
    "error",
    [
        RecognitionError("down"),
        ConnectionError("recognizer service down"),
        TimeoutError("recognizer timed out"),
    ],
)
def test_date_recognizer_failure_gives_distinct_message(error):
    outcome = _validate(error=error)
    assert outcome == Rejected(DATE_UNRECOGNIZED_MESSAGE)
    assert DATE_UNRECOGNIZED_MESSAGE != DATE_TOO_SOON_MESSAGE


def test_short_date_has_no_time_of_day():
    assert format_short_date(FIXED_NOW.replace(hour=23, minute=59)) == "3/7/2031"
