"""
Recognizers - turn free text into ranked number / date-time candidates.

The flow controller only relies on the two protocols below; the concrete
classes are the defaults wired in by the HTTP layer:

- EnglishNumberRecognizer: digits ("25", "25.5") and English number words
  ("twenty five", "a dozen", "one hundred and ten")
- DateparserDateTimeRecognizer: dates found by ``dateparser.search``
  ("tomorrow at 5pm", "11/14/2030", "next friday")
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from dateparser.search import search_dates

from ..models import DateTimeCandidate, NumberCandidate

logger = logging.getLogger(__name__)

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class RecognitionError(RuntimeError):
    """Raised when a recognizer cannot process the text at all."""


class NumberRecognizer(Protocol):
    async def recognize_number(self, text: str, culture: str) -> List[NumberCandidate]: ...


class DateTimeRecognizer(Protocol):
    async def recognize_datetime(
        self, text: str, culture: str, now: Optional[datetime] = None
    ) -> List[DateTimeCandidate]: ...


# =============================================================================
# Numbers
# =============================================================================

UNITS: Dict[str, int] = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14,
    "fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18,
    "nineteen": 19,
}

TENS: Dict[str, int] = {
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}

SCALES: Dict[str, int] = {"hundred": 100, "thousand": 1000}

DOZEN = "dozen"

# en-US digits: commas only group thousands, the point starts the fraction.
TOKEN_PATTERN = re.compile(r"-?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?|[a-z]+")
WORD_HYPHEN_PATTERN = re.compile(r"(?<=[a-z])-(?=[a-z])")


def _is_number_word(token: str) -> bool:
    return token in UNITS or token in TENS or token in SCALES or token == DOZEN


def _format_number(raw: str) -> str:
    normalized = raw.replace(",", "")
    if "." in normalized:
        whole, _, fraction = normalized.partition(".")
        if set(fraction) == {"0"}:
            return whole
    return normalized


class EnglishNumberRecognizer:
    """Finds numbers written with digits or English words, left to right."""

    async def recognize_number(self, text: str, culture: str = "en-us") -> List[NumberCandidate]:
        if text is None:
            raise RecognitionError("no text to recognize")
        if not culture.lower().startswith("en"):
            raise RecognitionError(f"culture {culture!r} is not supported")
        return self.extract(text)

    def extract(self, text: str) -> List[NumberCandidate]:
        normalized = WORD_HYPHEN_PATTERN.sub(" ", text.lower())
        tokens = TOKEN_PATTERN.findall(normalized)
        candidates: List[NumberCandidate] = []
        index = 0
        while index < len(tokens):
            token = tokens[index]
            if token[0].isdigit() or token[0] == "-":
                candidates.append(NumberCandidate(text=token, value=_format_number(token)))
                index += 1
                continue
            starts_run = _is_number_word(token) or (
                token == "a" and index + 1 < len(tokens) and tokens[index + 1] in (*SCALES, DOZEN)
            )
            if not starts_run:
                index += 1
                continue
            end, value = self._read_words(tokens, index)
            candidates.append(NumberCandidate(text=" ".join(tokens[index:end]), value=str(value)))
            index = end
        return candidates

    @staticmethod
    def _read_words(tokens: List[str], start: int) -> tuple[int, int]:
        total = 0
        current = 0
        index = start
        while index < len(tokens):
            token = tokens[index]
            if token == "a" and index == start:
                current = 1
            elif token in UNITS:
                current += UNITS[token]
            elif token in TENS:
                current += TENS[token]
            elif token == DOZEN:
                current = (current or 1) * 12
            elif token in SCALES:
                scale = SCALES[token]
                if scale >= 1000:
                    total += (current or 1) * scale
                    current = 0
                else:
                    current = (current or 1) * scale
            elif token == "and" and index + 1 < len(tokens) and tokens[index + 1] in (*UNITS, *TENS):
                pass
            else:
                break
            index += 1
        return index, total + current


# =============================================================================
# Dates
# =============================================================================


def _language_for(culture: str) -> str:
    return (culture or "en").split("-")[0].lower()


class DateparserDateTimeRecognizer:
    """Finds date-time expressions with dateparser, relative to ``now``."""

    async def recognize_datetime(
        self, text: str, culture: str = "en-us", now: Optional[datetime] = None
    ) -> List[DateTimeCandidate]:
        if text is None:
            raise RecognitionError("no text to recognize")
        reference = now or datetime.now()
        try:
            found = search_dates(
                text,
                languages=[_language_for(culture)],
                settings={
                    "RELATIVE_BASE": reference,
                    "PREFER_DATES_FROM": "future",
                    "RETURN_AS_TIMEZONE_AWARE": False,
                },
            )
        except Exception as exc:
            raise RecognitionError(f"dateparser failed: {exc}") from exc

        candidates = [
            DateTimeCandidate(text=matched, value=parsed.strftime(DATETIME_FORMAT))
            for matched, parsed in found or []
        ]
        logger.debug("recognizer.datetime text=%r candidates=%d", text, len(candidates))
        return candidates
