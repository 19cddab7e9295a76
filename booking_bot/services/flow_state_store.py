from __future__ import annotations

from threading import Lock
from typing import Dict, Protocol

from ..flow import FlowState
from ..models import ConversationFlow


class FlowStateStore(Protocol):
    def get(self, conversation_id: str) -> ConversationFlow: ...

    def save(self, conversation_id: str, flow: ConversationFlow) -> None: ...


class InMemoryFlowStateStore:
    """In-memory conversation flow memory keyed by conversation_id.

    Callers get detached copies, so nothing is visible to other turns until
    ``save`` is called.
    """

    def __init__(self) -> None:
        self._flows: Dict[str, ConversationFlow] = {}
        self._lock = Lock()

    def get(self, conversation_id: str) -> ConversationFlow:
        if not conversation_id:
            raise ValueError("conversation_id is required to load flow state")
        with self._lock:
            flow = self._flows.get(conversation_id)
            if flow is None:
                return ConversationFlow()
            return flow.model_copy()

    def save(self, conversation_id: str, flow: ConversationFlow) -> None:
        if not conversation_id:
            raise ValueError("conversation_id is required to save flow state")
        with self._lock:
            self._flows[conversation_id] = flow.model_copy()

    def get_state(self, conversation_id: str) -> FlowState:
        return self.get(conversation_id).last_question_asked

    def clear(self, conversation_id: str) -> None:
        if not conversation_id:
            return
        with self._lock:
            self._flows.pop(conversation_id, None)


_flow_state_store = InMemoryFlowStateStore()


def get_flow_state_store() -> InMemoryFlowStateStore:
    return _flow_state_store
