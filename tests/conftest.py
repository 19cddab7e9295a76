"""Shared pytest fixtures and deterministic fakes for the external services."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

import pytest

from booking_bot.config import Settings
from booking_bot.models import AnswerCandidate, DateTimeCandidate, NumberCandidate
from booking_bot.services.flow_controller import FlowController
from booking_bot.services.flow_state_store import InMemoryFlowStateStore
from booking_bot.services.metrics import MetricsService
from booking_bot.services.recognizers import EnglishNumberRecognizer
from booking_bot.services.user_profile_store import InMemoryUserProfileStore

FIXED_NOW = datetime(2031, 3, 7, 9, 0, 0)


class FakeKnowledgeBase:
    """Answers from a query -> answers mapping; unknown queries get no answers."""

    def __init__(self, answers: Optional[Dict[str, List[AnswerCandidate]]] = None) -> None:
        self.answers = answers or {}
        self.queries: List[str] = []

    async def get_answers(self, query: str) -> List[AnswerCandidate]:
        self.queries.append(query)
        return list(self.answers.get(query, []))


class ScriptedNumberRecognizer:
    def __init__(self, candidates: Optional[List[NumberCandidate]] = None, error: Exception | None = None) -> None:
        self.candidates = candidates or []
        self.error = error
        self.calls: List[str] = []

    async def recognize_number(self, text: str, culture: str) -> List[NumberCandidate]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return list(self.candidates)


class ScriptedDateTimeRecognizer:
    def __init__(self, candidates: Optional[List[DateTimeCandidate]] = None, error: Exception | None = None) -> None:
        self.candidates = candidates or []
        self.error = error
        self.calls: List[str] = []

    async def recognize_datetime(
        self, text: str, culture: str, now: Optional[datetime] = None
    ) -> List[DateTimeCandidate]:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return list(self.candidates)


def point(value: datetime, text: str = "") -> DateTimeCandidate:
    return DateTimeCandidate(text=text or value.isoformat(), value=value.strftime("%Y-%m-%d %H:%M:%S"))


def number(value: int | str) -> NumberCandidate:
    return NumberCandidate(text=str(value), value=str(value))


@pytest.fixture
def settings() -> Settings:
    """Default settings for tests."""
    return Settings(knowledge_base_backend="local", booking_trigger_label="Booking")


@pytest.fixture
def knowledge_base() -> FakeKnowledgeBase:
    return FakeKnowledgeBase(
        {
            "book a cab": [AnswerCandidate(text="Booking", score=92.0)],
            "how much is a ride": [
                AnswerCandidate(text="A ride costs 45 USD.", score=80.0),
                AnswerCandidate(text="Booking", score=40.0),
            ],
        }
    )


@pytest.fixture
def flow_state_store() -> InMemoryFlowStateStore:
    return InMemoryFlowStateStore()


@pytest.fixture
def user_profile_store() -> InMemoryUserProfileStore:
    return InMemoryUserProfileStore()


@pytest.fixture
def metrics() -> MetricsService:
    return MetricsService()


@pytest.fixture
def datetime_recognizer() -> ScriptedDateTimeRecognizer:
    return ScriptedDateTimeRecognizer()


@pytest.fixture
def controller(
    knowledge_base: FakeKnowledgeBase,
    datetime_recognizer: ScriptedDateTimeRecognizer,
    flow_state_store: InMemoryFlowStateStore,
    user_profile_store: InMemoryUserProfileStore,
    settings: Settings,
    metrics: MetricsService,
) -> FlowController:
    """Controller with the real number recognizer and a scripted date recognizer."""
    return FlowController(
        knowledge_base=knowledge_base,
        number_recognizer=EnglishNumberRecognizer(),
        datetime_recognizer=datetime_recognizer,
        flow_state_store=flow_state_store,
        user_profile_store=user_profile_store,
        settings=settings,
        metrics=metrics,
        clock=lambda: FIXED_NOW,
    )
