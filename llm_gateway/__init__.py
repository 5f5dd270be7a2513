from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import (
    AiClient,
    Availability,
    Completion,
    LlmGateway,
    LlmGatewayError,
    extract_content,
    extract_json_object,
    normalize_messages,
    strip_code_fences,
)

__all__ = [
    "AiClient",
    "Availability",
    "Completion",
    "LlmGateway",
    "LlmGatewayError",
    "extract_content",
    "extract_json_object",
    "normalize_messages",
    "strip_code_fences",
]
