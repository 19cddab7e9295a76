from __future__ import annotations

import logging
from typing import Any

CONTEXT_FIELDS = ("conversation_id", "user_id", "trace_id")


class ConversationLogAdapter(logging.LoggerAdapter):
    """Tags every line with the conversation it belongs to.

    The ids are prefixed to the message as ``[conv=.. user=.. trace=..]`` and
    also set as record attributes, so structured handlers can read them.
    """

    def process(self, msg: Any, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        for name in CONTEXT_FIELDS:
            extra.setdefault(name, self.extra.get(name) or "-")
        kwargs["extra"] = extra
        prefix = f"[conv={extra['conversation_id']} user={extra['user_id']} trace={extra['trace_id']}]"
        return f"{prefix} {msg}", kwargs


def conversation_logger(
    logger: logging.Logger | str,
    conversation_id: str | None,
    *,
    user_id: str | None = None,
    trace_id: str | None = None,
) -> ConversationLogAdapter:
    base_logger = logging.getLogger(logger) if isinstance(logger, str) else logger
    return ConversationLogAdapter(
        base_logger,
        {"conversation_id": conversation_id, "user_id": user_id, "trace_id": trace_id},
    )
