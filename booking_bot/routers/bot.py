from __future__ import annotations

import logging
import time
from dataclasses import asdict
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, Depends

from ..config import Settings, get_settings
from ..models import ChatRequest, ChatResponse, Reply, TurnMeta
from ..services.flow_controller import FlowController
from ..services.flow_state_store import InMemoryFlowStateStore, get_flow_state_store
from ..services.knowledge_base import KnowledgeBase
from ..services.knowledge_base import get_knowledge_base as get_cached_knowledge_base
from ..services.metrics import MetricsService, get_metrics_service
from ..services.recognizers import DateparserDateTimeRecognizer, EnglishNumberRecognizer
from ..services.user_profile_store import get_user_profile_store
from ..utils.logging import conversation_logger

router = APIRouter(prefix="/api/bot", tags=["bot"])
logger = logging.getLogger(__name__)


def get_knowledge_base(settings: Settings = Depends(get_settings)) -> KnowledgeBase:
    return get_cached_knowledge_base(settings)


def get_metrics_service_dependency() -> MetricsService:
    return get_metrics_service()


def get_flow_controller(
    knowledge_base: KnowledgeBase = Depends(get_knowledge_base),
    settings: Settings = Depends(get_settings),
    metrics: MetricsService = Depends(get_metrics_service_dependency),
) -> FlowController:
    return FlowController(
        knowledge_base=knowledge_base,
        number_recognizer=EnglishNumberRecognizer(),
        datetime_recognizer=DateparserDateTimeRecognizer(),
        flow_state_store=get_flow_state_store(),
        user_profile_store=get_user_profile_store(),
        settings=settings,
        metrics=metrics,
    )


def get_flow_state_store_dependency() -> InMemoryFlowStateStore:
    return get_flow_state_store()


@router.post("/messages", response_model=ChatResponse)
async def post_message(
    request: ChatRequest,
    settings: Settings = Depends(get_settings),
    controller: FlowController = Depends(get_flow_controller),
    metrics: MetricsService = Depends(get_metrics_service_dependency),
) -> ChatResponse:
    # Blank text is a valid answer: the name question re-prompts for it.
    start_time = time.perf_counter()
    conversation_id = request.conversation_id or str(uuid4())
    trace_id = request.trace_id or (uuid4().hex if settings.enable_request_tracing else None)
    turn_logger = conversation_logger(logger, conversation_id, user_id=request.user_id, trace_id=trace_id)
    turn_logger.info("bot.message_received text=%r", request.message)

    result = await controller.handle_turn(
        conversation_id,
        request.user_id,
        request.message,
        trace_id=trace_id,
    )

    debug: dict[str, Any] | None = None
    if settings.debug:
        debug = {"source": result.source, "profile": result.profile.model_dump()}
    metrics.record_turn_latency((time.perf_counter() - start_time) * 1000)
    return ChatResponse(
        conversation_id=conversation_id,
        reply=Reply(text=result.reply),
        meta=TurnMeta(state=result.state, trace_id=trace_id, debug=debug),
    )


@router.get("/state/{conversation_id}")
async def get_conversation_state(
    conversation_id: str,
    store: InMemoryFlowStateStore = Depends(get_flow_state_store_dependency),
) -> dict[str, str]:
    return {
        "conversation_id": conversation_id,
        "state": store.get_state(conversation_id).value,
    }


@router.get("/metrics")
async def get_metrics(metrics: MetricsService = Depends(get_metrics_service_dependency)) -> dict[str, Any]:
    return asdict(metrics.snapshot())
