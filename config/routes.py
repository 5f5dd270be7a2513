from __future__ import annotations  # Configuration schema for LLM routing

from pathlib import Path
from typing import Dict

from pydantic import BaseModel, Field

from .settings import Settings

CONVERSATION_TARGET = "interview.conversation"
EVALUATION_TARGET = "interview.evaluation"
CV_ANALYSIS_TARGET = "cv.analysis"
TARGETS = (CONVERSATION_TARGET, EVALUATION_TARGET, CV_ANALYSIS_TARGET)


class LlmRoute(BaseModel):  # LLM endpoint configuration
    name: str
    base_url: str
    endpoint: str = "/v1/chat/completions"
    models_endpoint: str = "/v1/models"
    model: str = ""
    fallback_model: str = "meta-llama-3.1-8b-instruct"
    timeout_s: float = Field(default=80.0, ge=0.1)
    max_retries: int = Field(default=0, ge=0)
    api_key_env: str | None = None
    response_format: str | None = None
    extra_headers: Dict[str, str] = Field(default_factory=dict)
    sequential: bool = False


class AppConfig(BaseModel):  # Application configuration root
    llm_routes: Dict[str, LlmRoute]
    registry: Dict[str, str]


def load_config(path: Path) -> AppConfig:  # Load configuration from disk
    data = path.read_text(encoding="utf-8")
    return AppConfig.model_validate_json(data)


def default_config(settings: Settings) -> AppConfig:  # Single local route shared by every target
    route = LlmRoute(
        name="local",
        base_url=settings.LLM_BASE_URL,
        model=settings.LLM_MODEL,
        fallback_model=settings.LLM_FALLBACK_MODEL,
        timeout_s=settings.LLM_TIMEOUT_S,
        api_key_env=settings.LLM_API_KEY_ENV,
    )
    return AppConfig(llm_routes={"local": route}, registry={target: "local" for target in TARGETS})


def resolve_route(cfg: AppConfig, target: str) -> LlmRoute:  # Look up the route configured for a target
    if target not in cfg.registry:
        raise KeyError(f"Registry entry missing for '{target}'")
    route_id = cfg.registry[target]
    if route_id not in cfg.llm_routes:
        raise KeyError(f"Route '{route_id}' missing for '{target}'")
    return cfg.llm_routes[route_id]


def load_app_config(path: Path, settings: Settings) -> AppConfig:  # Load the file when present, else defaults
    if path.exists():
        return load_config(path)
    return default_config(settings)
