from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from .config import Settings, get_settings
from .routers import bot
from .services.error_handling import AppError, error_response

logger = logging.getLogger(__name__)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return await error_response(request, exc, handled=True)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return await error_response(request, exc, handled=True)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        return await error_response(request, exc, handled=False)


def _log_startup(settings: Settings) -> None:
    tracing = (
        f"langsmith project={settings.langsmith_project or 'booking-bot'}"
        if settings.langsmith_api_key
        else "tracing off"
    )
    logger.info(
        "booking bot ready env=%s knowledge_base=%s culture=%s %s",
        settings.env,
        settings.knowledge_base_backend,
        settings.culture,
        tracing,
    )


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(
        title="Airport Cab Booking Bot",
        version=settings.version,
        docs_url="/docs" if settings.debug else None,
    )

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    _register_error_handlers(app)
    app.include_router(bot.router)
    _log_startup(settings)
    return app


app = create_app()
