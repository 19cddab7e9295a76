"""
FlowController - decides what the bot says on every user turn.

While a booking question is pending the answer goes to the matching slot
validator and the knowledge base is not consulted. Otherwise the knowledge
base answers; a top answer equal to the booking trigger label starts the
booking questions instead of being echoed.

State is read at the start of a turn and written once the decision is made,
so a turn that fails midway leaves the stored flow and profile untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, assert_never

from langsmith import traceable

from ..config import Settings, get_settings
from ..flow import BookingQuestion, FlowState, is_booking_question
from ..models import BookingProfile, ConversationFlow
from ..utils.logging import conversation_logger
from .flow_state_store import FlowStateStore, get_flow_state_store
from .knowledge_base import KnowledgeBase
from .metrics import MetricsService, get_metrics_service
from .recognizers import DateTimeRecognizer, NumberRecognizer
from .slot_validators import Rejected, validate_age, validate_date, validate_name
from .user_profile_store import UserProfileStore, get_user_profile_store

logger = logging.getLogger(__name__)

NAME_PROMPT = "Could you please tell me your name?"
AGE_PROMPT = "What is your age?"
DATE_PROMPT = "When would you like your cab ride to the airport?"
NO_ANSWER_MESSAGE = "Sorry, could not find an answer in the Q and A system."
RESTART_HINT = "Ask me anything, or ask to book another ride."


def booking_confirmation(profile: BookingProfile) -> str:
    return (
        f"Your cab ride to the airport is scheduled for {profile.date}. "
        f"Thanks for completing the booking {profile.name}. "
        f"{RESTART_HINT}"
    )


@dataclass
class TurnDecision:
    """Outcome of one turn, before anything is saved."""

    reply: str
    state: FlowState
    profile: BookingProfile
    source: str
    completed_booking: Optional[BookingProfile] = None


@dataclass
class TurnResult:
    conversation_id: str
    reply: str
    state: FlowState
    profile: BookingProfile
    source: str
    completed_booking: Optional[BookingProfile] = None


class FlowController:
    """Booking question state machine with knowledge-base fallback."""

    def __init__(
        self,
        *,
        knowledge_base: KnowledgeBase,
        number_recognizer: NumberRecognizer,
        datetime_recognizer: DateTimeRecognizer,
        flow_state_store: FlowStateStore | None = None,
        user_profile_store: UserProfileStore | None = None,
        settings: Settings | None = None,
        metrics: MetricsService | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._knowledge_base = knowledge_base
        self._number_recognizer = number_recognizer
        self._datetime_recognizer = datetime_recognizer
        self._flow_state_store = flow_state_store or get_flow_state_store()
        self._user_profile_store = user_profile_store or get_user_profile_store()
        self._settings = settings or get_settings()
        self._metrics = metrics or get_metrics_service()
        self._clock = clock

    @traceable(run_type="chain", name="flow_controller_handle_turn")
    async def handle_turn(
        self,
        conversation_id: str,
        user_id: str | None,
        text: str | None,
        *,
        trace_id: str | None = None,
    ) -> TurnResult:
        """Read state, decide, save state and return the single reply for this turn."""

        turn_logger = conversation_logger(logger, conversation_id, user_id=user_id, trace_id=trace_id)
        # Without a user id the booking details live with the conversation.
        profile_key = user_id or conversation_id

        flow = self._flow_state_store.get(conversation_id)
        profile = self._user_profile_store.get(profile_key)
        self._metrics.record_turn()

        decision = await self.decide(flow.last_question_asked, profile, text or "")

        self._flow_state_store.save(conversation_id, ConversationFlow(last_question_asked=decision.state))
        self._user_profile_store.save(profile_key, decision.profile)

        turn_logger.info(
            "flow.turn state=%s->%s source=%s",
            flow.last_question_asked,
            decision.state,
            decision.source,
        )
        return TurnResult(
            conversation_id=conversation_id,
            reply=decision.reply,
            state=decision.state,
            profile=decision.profile,
            source=decision.source,
            completed_booking=decision.completed_booking,
        )

    async def decide(self, state: FlowState, profile: BookingProfile, text: str) -> TurnDecision:
        """Pick the action for this turn without touching the stores."""

        if is_booking_question(state):
            return await self._continue_booking(state, profile, text)
        return await self._answer_from_knowledge_base(profile, text)

    # =========================================================================
    # Booking questions
    # =========================================================================

    async def _continue_booking(self, state: BookingQuestion, profile: BookingProfile, text: str) -> TurnDecision:
        match state:
            case FlowState.NOT_STARTED:
                return TurnDecision(NAME_PROMPT, FlowState.ASKING_NAME, profile, source="slot_prompt")

            case FlowState.ASKING_NAME:
                outcome = validate_name(text)
                if isinstance(outcome, Rejected):
                    return self._reject(state, profile, outcome)
                self._metrics.record_slot_accepted()
                updated = profile.model_copy(update={"name": outcome.value})
                return TurnDecision(
                    f"Hi {updated.name}. {AGE_PROMPT}", FlowState.ASKING_AGE, updated, source="slot_accepted"
                )

            case FlowState.ASKING_AGE:
                outcome = await validate_age(text, self._number_recognizer, culture=self._settings.culture)
                if isinstance(outcome, Rejected):
                    return self._reject(state, profile, outcome)
                self._metrics.record_slot_accepted()
                updated = profile.model_copy(update={"age": outcome.value})
                return TurnDecision(
                    f"I have your age as {updated.age}. {DATE_PROMPT}",
                    FlowState.ASKING_DATE,
                    updated,
                    source="slot_accepted",
                )

            case FlowState.ASKING_DATE:
                outcome = await validate_date(
                    text, self._datetime_recognizer, culture=self._settings.culture, now=self._clock()
                )
                if isinstance(outcome, Rejected):
                    return self._reject(state, profile, outcome)
                self._metrics.record_slot_accepted()
                self._metrics.record_booking_completed()
                booked = profile.model_copy(update={"date": outcome.value})
                logger.info("flow.booking_completed date=%s", booked.date)
                return TurnDecision(
                    booking_confirmation(booked),
                    FlowState.IDLE,
                    BookingProfile(),
                    source="booking_completed",
                    completed_booking=booked,
                )

            case _:
                assert_never(state)

    def _reject(self, state: FlowState, profile: BookingProfile, outcome: Rejected) -> TurnDecision:
        self._metrics.record_slot_rejected(state)
        logger.debug("flow.slot_rejected state=%s message=%r", state, outcome.message)
        return TurnDecision(outcome.message, state, profile, source="slot_rejected")

    # =========================================================================
    # Knowledge base
    # =========================================================================

    @traceable(run_type="chain", name="flow_controller_knowledge_base")
    async def _answer_from_knowledge_base(self, profile: BookingProfile, text: str) -> TurnDecision:
        answers = await self._knowledge_base.get_answers(text)
        self._metrics.record_knowledge_base_lookup(bool(answers))
        if not answers:
            logger.info("knowledge_base.no_answer query=%r", text)
            return TurnDecision(NO_ANSWER_MESSAGE, FlowState.IDLE, profile, source="fallback")

        top = answers[0]
        if top.text == self._settings.booking_trigger_label:
            self._metrics.record_booking_started()
            logger.info("flow.booking_started score=%.2f", top.score)
            return await self._continue_booking(FlowState.NOT_STARTED, profile, text)
        return TurnDecision(top.text, FlowState.IDLE, profile, source="knowledge_base")
