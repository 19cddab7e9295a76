from __future__ import annotations

from enum import StrEnum
from typing import Literal, TypeGuard


class FlowState(StrEnum):
    """Last question the bot asked in a conversation."""

    NOT_STARTED = "NOT_STARTED"
    ASKING_NAME = "ASKING_NAME"
    ASKING_AGE = "ASKING_AGE"
    ASKING_DATE = "ASKING_DATE"
    IDLE = "IDLE"
    # Marker left by the product-information flow, which has no questions yet.
    ALT_FLOW_NAME = "ALT_FLOW_NAME"


BookingQuestion = Literal[
    FlowState.NOT_STARTED,
    FlowState.ASKING_NAME,
    FlowState.ASKING_AGE,
    FlowState.ASKING_DATE,
]

BOOKING_SEQUENCE: tuple[BookingQuestion, ...] = (
    FlowState.NOT_STARTED,
    FlowState.ASKING_NAME,
    FlowState.ASKING_AGE,
    FlowState.ASKING_DATE,
)


def is_booking_question(state: FlowState | None) -> TypeGuard[BookingQuestion]:
    """True while a booking question is pending and must be answered first."""

    return state in BOOKING_SEQUENCE
