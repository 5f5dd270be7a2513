from __future__ import annotations  # Chat-completion gateway for locally hosted models

import asyncio
import json
import logging
import os
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx
from pydantic import BaseModel, Field

from config.routes import LlmRoute
from observability.metrics import MetricsSink, NullMetrics
from observability.tracing import span


logger = logging.getLogger(__name__)  # Module logger setup

MESSAGE_ROLES = ("system", "user", "assistant")


class Completion(BaseModel):  # Outcome of a chat-completion call
    success: bool
    content: str = ""
    error: Optional[str] = None
    model: Optional[str] = None
    usage: Dict[str, Any] = Field(default_factory=dict)


class Availability(BaseModel):  # Connectivity probe result
    connected: bool
    models: List[str] = Field(default_factory=list)
    error: Optional[str] = None


class AiClient(Protocol):  # Chat-completion capability injected into services
    async def complete(self, messages: Sequence[Dict[str, str]], options: Optional[Dict[str, Any]] = None) -> Completion: ...

    async def check_availability(self) -> Availability: ...


class LlmGatewayError(RuntimeError):  # Base gateway error
    pass


class LlmGateway:  # OpenAI-compatible HTTP client for one configured route
    def __init__(
        self,
        route: LlmRoute,
        *,
        client: Optional[httpx.AsyncClient] = None,
        metrics: Optional[MetricsSink] = None,
    ) -> None:
        self._route = route
        self._client = client
        self._owns_client = client is None
        self._metrics = metrics or NullMetrics()
        self._lock = asyncio.Lock() if route.sequential else None
        self._resolved_model: Optional[str] = route.model or None

    @property
    def route(self) -> LlmRoute:
        return self._route

    async def aclose(self) -> None:  # Release the pooled HTTP client when owned
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def complete(
        self,
        messages: Sequence[Dict[str, str]],
        options: Optional[Dict[str, Any]] = None,
    ) -> Completion:  # Never raises; failures come back as Completion(success=False)
        self._metrics.increment("ai.requests", route=self._route.name)
        try:
            if self._lock is not None:
                async with self._lock:
                    return await self._complete(messages, options or {})
            return await self._complete(messages, options or {})
        except LlmGatewayError as exc:
            self._metrics.increment("ai.errors", route=self._route.name)
            logger.warning("LLM completion failed route=%s error=%s", self._route.name, exc)
            return Completion(success=False, error=str(exc))

    async def check_availability(self) -> Availability:
        try:
            models = await self._list_models()
        except LlmGatewayError as exc:
            return Availability(connected=False, error=str(exc))
        return Availability(connected=True, models=models)

    async def _complete(self, messages: Sequence[Dict[str, str]], options: Dict[str, Any]) -> Completion:
        normalized = normalize_messages(messages)
        model = options.get("model") or await self._model()
        payload: Dict[str, Any] = {
            "model": model,
            "messages": normalized,
            "temperature": 0.7,
            "max_tokens": 1000,
            "stream": False,
        }
        payload.update(options)
        if self._route.response_format and "response_format" not in payload:
            payload["response_format"] = {"type": self._route.response_format}
        preview = _preview(normalized)
        attempts = self._route.max_retries + 1
        logger.info(
            "LLM request start route=%s model=%s attempts=%d preview=%s",
            self._route.name,
            model,
            attempts,
            preview,
        )
        last_error: Optional[Exception] = None
        for attempt in range(attempts):
            try:
                with span(self._metrics, "ai.latency", route=self._route.name):
                    response = await self._http().post(
                        self._url(self._route.endpoint),
                        json=payload,
                        headers=self._headers(),
                        timeout=self._route.timeout_s,
                    )
            except httpx.HTTPError as exc:
                logger.warning(
                    "LLM transport failure route=%s attempt=%d/%d: %s",
                    self._route.name,
                    attempt + 1,
                    attempts,
                    exc,
                )
                last_error = exc
                continue
            if response.status_code >= 500:
                last_error = LlmGatewayError(f"LLM returned status {response.status_code}")
                logger.warning("LLM server error route=%s status=%s", self._route.name, response.status_code)
                continue
            if response.status_code >= 400:
                raise LlmGatewayError(f"LLM returned status {response.status_code}")
            try:
                data = response.json()
            except ValueError as exc:
                raise LlmGatewayError("LLM payload was not JSON") from exc
            content = extract_content(data)
            logger.info("LLM request done route=%s model=%s attempt=%d", self._route.name, model, attempt + 1)
            served = data.get("model") if isinstance(data, dict) else None
            usage = data.get("usage") if isinstance(data, dict) else None
            return Completion(
                success=True,
                content=content,
                model=served if isinstance(served, str) else None,
                usage=usage if isinstance(usage, dict) else {},
            )
        raise LlmGatewayError(f"LLM request failed after {attempts} attempt(s): {last_error}") from last_error

    async def _model(self) -> str:  # Use the configured model or the first one the server advertises
        if self._resolved_model:
            return self._resolved_model
        try:
            models = await self._list_models()
        except LlmGatewayError:
            models = []
        self._resolved_model = models[0] if models else self._route.fallback_model
        return self._resolved_model

    async def _list_models(self) -> List[str]:
        try:
            response = await self._http().get(
                self._url(self._route.models_endpoint),
                headers=self._headers(),
                timeout=self._route.timeout_s,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise LlmGatewayError(f"Model listing failed: {exc}") from exc
        entries = data.get("data", []) if isinstance(data, dict) else []
        return [str(item["id"]) for item in entries if isinstance(item, dict) and item.get("id")]

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._route.timeout_s)
            self._owns_client = True
        return self._client

    def _url(self, path: str) -> str:
        return f"{self._route.base_url.rstrip('/')}{path}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._route.api_key_env:
            api_key = os.getenv(self._route.api_key_env)
            if api_key:
                headers["Authorization"] = f"Bearer {api_key}"
        headers.update(self._route.extra_headers)
        return headers


def normalize_messages(messages: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:  # Ensure message payload shape
    normalized: List[Dict[str, str]] = []
    for item in messages:
        if not isinstance(item, dict):
            raise TypeError("Each chat message must be a dict with role/content")
        role = str(item.get("role", "")).strip()
        if role not in MESSAGE_ROLES:
            raise ValueError(f"Unsupported chat role: {role!r}")
        normalized.append({"role": role, "content": str(item.get("content", ""))})
    return normalized


def _preview(messages: Sequence[Dict[str, str]]) -> str:  # First non-empty non-system line for logs
    for message in messages:
        if message["role"] == "system":
            continue
        text = message.get("content", "").strip()
        if text:
            line = text.splitlines()[0]
            return line if len(line) <= 120 else line[:117] + "..."
    return ""


def extract_content(data: Any) -> str:  # Extract message content from a chat-completion response
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, str):
                return content
        if isinstance(data.get("content"), str):
            return data["content"]
    raise LlmGatewayError("LLM response missing content")


def strip_code_fences(content: str) -> str:  # Remove markdown fences and stray triple quotes
    text = content.strip()
    if text.startswith("```"):
        lines = text.splitlines()[1:]
        while lines and not lines[-1].strip():
            lines.pop()
        if lines and lines[-1].strip().startswith("```"):
            lines.pop()
        text = "\n".join(lines).strip()
    for quote in ('"""', "'''"):
        if text.startswith(quote):
            text = text[3:]
        if text.endswith(quote):
            text = text[:-3]
    return text.strip()


def extract_json_object(content: str) -> Dict[str, Any]:  # First balanced {...} object in model output
    text = strip_code_fences(content)
    start = text.find("{")
    while start != -1:
        end = _balanced_end(text, start)
        if end is None:
            break
        try:
            parsed = json.loads(text[start : end + 1])
        except json.JSONDecodeError:
            start = text.find("{", start + 1)
            continue
        if isinstance(parsed, dict):
            return parsed
        start = text.find("{", end + 1)
    raise ValueError("No JSON object found in model output")


def _balanced_end(text: str, start: int) -> Optional[int]:
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return index
    return None
