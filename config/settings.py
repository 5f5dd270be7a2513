"""Application settings and configuration management."""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or defaults."""

    DB_PATH: str = Field(default="data/interview.db")
    SUBJECT_CATALOG_PATH: str = Field(default="config/subject_areas.yaml")

    LLM_BASE_URL: str = "http://127.0.0.1:1234"
    LLM_MODEL: str = ""
    LLM_FALLBACK_MODEL: str = "meta-llama-3.1-8b-instruct"
    LLM_TIMEOUT_S: float = Field(default=80.0, ge=0.1)
    LLM_API_KEY_ENV: str | None = None

    CONVERSATION_TEMPERATURE: float = 0.7
    CONVERSATION_MAX_TOKENS: int = 400
    EVALUATION_TEMPERATURE: float = 0.3
    EVALUATION_MAX_TOKENS: int = 1000
    CV_TEMPERATURE: float = 0.2
    CV_MAX_TOKENS: int = 600
    CV_PROMPT_CHARS: int = 1500

    MIN_FINALIZE_TURNS: int = Field(default=2, ge=2)
    HIGH_BAND_TURNS: int = 10
    MID_BAND_TURNS: int = 5

    model_config = SettingsConfigDict(env_file=".env", validate_assignment=True, extra="ignore")


settings = Settings()
