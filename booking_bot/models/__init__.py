from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..flow import FlowState


class ChatRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    conversation_id: Optional[str] = None
    trace_id: Optional[str] = None
    message: str
    user_id: Optional[str] = None


class Reply(BaseModel):
    """Textual response that will be rendered to the user."""

    model_config = ConfigDict(extra="allow")

    text: str


class TurnMeta(BaseModel):
    model_config = ConfigDict(extra="allow")

    state: FlowState
    trace_id: Optional[str] = None
    debug: Optional[Dict[str, Any]] = None


class ChatResponse(BaseModel):
    conversation_id: str
    reply: Reply
    meta: TurnMeta


class ConversationFlow(BaseModel):
    """Per-conversation record of where the booking sequence stands."""

    last_question_asked: FlowState = FlowState.IDLE


class BookingProfile(BaseModel):
    """Details collected from the user for a cab booking."""

    name: Optional[str] = None
    age: Optional[int] = None
    date: Optional[str] = None


class AnswerCandidate(BaseModel):
    """Single knowledge-base answer, ranked by score (0-100)."""

    text: str
    score: float = 0.0
    questions: List[str] = Field(default_factory=list)


class NumberCandidate(BaseModel):
    """One interpretation of free text as a number."""

    text: str
    value: str


class DateTimeCandidate(BaseModel):
    """One interpretation of free text as a point in time or a time range.

    Values are string-encoded as ``YYYY-MM-DD HH:MM:SS``.
    """

    text: str
    value: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None

    def point_value(self) -> Optional[str]:
        return self.value or self.start


__all__ = [
    "AnswerCandidate",
    "BookingProfile",
    "ChatRequest",
    "ChatResponse",
    "ConversationFlow",
    "DateTimeCandidate",
    "NumberCandidate",
    "Reply",
    "TurnMeta",
]
