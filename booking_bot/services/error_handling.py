"""
Error types and the JSON error body returned by the bot API.

Every failed request still answers with a reply the chat client can show
(``SAFE_ERROR_TEXT``); the machine-readable part lives under ``meta.error``.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Tuple

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

SAFE_ERROR_TEXT = "Sorry, I can't process your message right now. Please try again in a moment."


class AppError(Exception):
    """Base application error; subclasses pick the error code and HTTP status."""

    error_code = "INTERNAL_ERROR"
    default_reason = "internal_error"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str | None = None,
        *,
        reason: str | None = None,
        http_status: int | None = None,
        debug: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message or reason or "")
        self.reason = reason or self.default_reason
        self.http_status = http_status or self.default_status
        self.debug = debug or {}


class UpstreamError(AppError):
    """An external service (the knowledge base) failed to answer."""

    error_code = "UPSTREAM_UNAVAILABLE"
    default_reason = "upstream_error"
    default_status = status.HTTP_502_BAD_GATEWAY


def map_exception_to_error_code(exc: Exception) -> Tuple[str, str, int]:
    """Return error code, reason and HTTP status for ``exc``."""

    if isinstance(exc, RequestValidationError):
        return ("BAD_REQUEST", "request_validation_error", status.HTTP_422_UNPROCESSABLE_ENTITY)
    if isinstance(exc, AppError):
        return (exc.error_code, exc.reason, exc.http_status)
    return ("INTERNAL_ERROR", exc.__class__.__name__, status.HTTP_500_INTERNAL_SERVER_ERROR)


def build_error_response(
    *,
    error_code: str,
    reason: str,
    status_code: int,
    debug_payload: dict[str, Any] | None = None,
) -> JSONResponse:
    meta: dict[str, Any] = {"error": {"code": error_code, "reason": reason}}
    if debug_payload:
        meta["debug"] = debug_payload
    return JSONResponse(status_code=status_code, content={"reply": {"text": SAFE_ERROR_TEXT}, "meta": meta})


async def error_response(request: Request, exc: Exception, *, handled: bool) -> JSONResponse:
    """Log ``exc`` under a fresh trace id and turn it into the safe error reply."""

    trace_id = uuid.uuid4().hex
    error_code, reason, status_code = map_exception_to_error_code(exc)
    if handled:
        logger.warning(
            "api.error trace_id=%s path=%s code=%s reason=%s detail=%s",
            trace_id,
            request.url.path,
            error_code,
            reason,
            exc,
        )
    else:
        logger.exception(
            "api.unhandled_error trace_id=%s path=%s reason=%s",
            trace_id,
            request.url.path,
            reason,
            exc_info=exc,
        )

    debug_payload: dict[str, Any] = {"trace_id": trace_id}
    if isinstance(exc, AppError):
        debug_payload.update(exc.debug)
    return build_error_response(
        error_code=error_code,
        reason=reason,
        status_code=status_code,
        debug_payload=debug_payload,
    )
