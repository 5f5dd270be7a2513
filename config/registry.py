"""In-memory service registry for injected collaborators."""
from typing import Any, Dict

_REGISTRY: Dict[str, Any] = {}

_MISSING = object()


def bind_service(key: str, service: Any) -> None:
    """Bind an implementation to a registry key."""
    _REGISTRY[key] = service


def get_service(key: str, default: Any = _MISSING) -> Any:
    """Retrieve an implementation from the registry.

    Raises:
        KeyError: If nothing has been bound for ``key`` and no default is given.
    """

    if key not in _REGISTRY:
        if default is not _MISSING:
            return default
        raise KeyError(f"Service not bound in registry: {key}")
    return _REGISTRY[key]


def unbind_service(key: str, service: Any = _MISSING) -> None:
    """Remove a binding, only while it still points at ``service`` when one is given."""
    if service is _MISSING or _REGISTRY.get(key) is service:
        _REGISTRY.pop(key, None)


def reset_registry() -> None:
    """Drop every binding."""
    _REGISTRY.clear()


CONVERSATION_AI_KEY = "ai.interview_conversation"
EVALUATION_AI_KEY = "ai.interview_evaluation"
CV_AI_KEY = "ai.cv_analysis"
METRICS_KEY = "observability.metrics"
