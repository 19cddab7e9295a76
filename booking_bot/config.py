from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_KNOWLEDGE_BASE_PATH = Path(__file__).resolve().parents[1] / "config" / "knowledge_base.yaml"


class Settings(BaseSettings):
    """Application configuration sourced from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    env: str = Field(default="dev", alias="APP_ENV")
    debug: bool = Field(default=False, alias="APP_DEBUG")
    version: str = Field(default="0.1.0", alias="APP_VERSION")

    culture: str = Field(default="en-us", alias="BOT_CULTURE")
    booking_trigger_label: str = Field(default="Booking", alias="BOOKING_TRIGGER_LABEL")

    knowledge_base_backend: Literal["local", "qnamaker"] = Field(default="local", alias="KNOWLEDGE_BASE_BACKEND")
    knowledge_base_path: Path = Field(default=DEFAULT_KNOWLEDGE_BASE_PATH, alias="KNOWLEDGE_BASE_PATH")
    knowledge_base_min_score: float = Field(default=50.0, alias="KNOWLEDGE_BASE_MIN_SCORE")

    # QnA Maker runtime endpoint
    qna_host: str = Field(default="", alias="QNA_HOST")
    qna_knowledge_base_id: str = Field(default="", alias="QNA_KNOWLEDGE_BASE_ID")
    qna_endpoint_key: str = Field(default="", alias="QNA_ENDPOINT_KEY")
    qna_top: int = Field(default=1, alias="QNA_TOP")
    http_timeout_seconds: float = Field(default=15.0, alias="HTTP_TIMEOUT_SECONDS")

    enable_request_tracing: bool = Field(default=True, alias="ENABLE_REQUEST_TRACING")
    langsmith_api_key: Optional[str] = Field(default=None, alias="LANGSMITH_API_KEY")
    langsmith_project: Optional[str] = Field(default=None, alias="LANGSMITH_PROJECT")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
