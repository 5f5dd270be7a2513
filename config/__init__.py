"""Configuration package for the interview backend."""
from .catalog import SubjectAreaSeed, load_catalog
from .registry import (
    CONVERSATION_AI_KEY,
    CV_AI_KEY,
    EVALUATION_AI_KEY,
    METRICS_KEY,
    bind_service,
    get_service,
    reset_registry,
    unbind_service,
)
from .routes import (
    CONVERSATION_TARGET,
    CV_ANALYSIS_TARGET,
    EVALUATION_TARGET,
    AppConfig,
    LlmRoute,
    default_config,
    load_app_config,
    load_config,
    resolve_route,
)
from .settings import Settings, settings

__all__ = [
    "SubjectAreaSeed",
    "load_catalog",
    "CONVERSATION_AI_KEY",
    "CV_AI_KEY",
    "EVALUATION_AI_KEY",
    "METRICS_KEY",
    "bind_service",
    "get_service",
    "reset_registry",
    "unbind_service",
    "CONVERSATION_TARGET",
    "CV_ANALYSIS_TARGET",
    "EVALUATION_TARGET",
    "AppConfig",
    "LlmRoute",
    "default_config",
    "load_app_config",
    "load_config",
    "resolve_route",
    "Settings",
    "settings",
]
