"""OpenRouter chat-completions client built on the OpenAI SDK."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from importlib import import_module
from typing import Any, Dict, List, Optional

import structlog

from ..config import Settings, get_settings
from .prompts import load_system_prompt


log = structlog.get_logger()

Message = Dict[str, Any]


class LLMTransportError(RuntimeError):
    """Raised when the completion endpoint cannot produce a response."""

    def __init__(self, message: str, *, status: Optional[int] = None, name: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.name = name


@dataclass(frozen=True)
class ChatCompletion:
    content: str
    reasoning: Optional[str] = None
    reasoning_details: Any = None

    @property
    def text(self) -> str:
        """Primary content, or the reasoning text when the content is empty."""
        return self.content or self.reasoning or ""


class ChatClient(ABC):
    """Minimal chat completion contract used by the planner."""

    @abstractmethod
    async def complete(
        self,
        messages: List[Message],
        *,
        model: str,
        max_tokens: int,
        reasoning_effort: Optional[str] = None,
        temperature: float = 0.3,
    ) -> ChatCompletion:
        """Return the first choice of a chat completion or raise ``LLMTransportError``."""


def _message_extra(message: Any, name: str) -> Any:
    value = getattr(message, name, None)
    if value is None:
        extra = getattr(message, "model_extra", None) or {}
        value = extra.get(name)
    return value


class OpenRouterChatClient(ChatClient):
    """Calls an OpenAI-compatible endpoint (OpenRouter by default)."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        if not self._settings.OPENROUTER_API_KEY:
            raise RuntimeError("OPENROUTER_API_KEY not configured")
        self._client = None

    def _client_instance(self):
        if self._client is None:
            try:
                openai_mod = import_module("openai")
            except ModuleNotFoundError as exc:  # pragma: no cover - dependency guard
                raise RuntimeError("openai package not installed") from exc
            client_cls = getattr(openai_mod, "AsyncOpenAI", None)
            if client_cls is None:
                raise RuntimeError("openai.AsyncOpenAI client not available")
            self._client = client_cls(
                base_url=self._settings.OPENROUTER_API_BASE_URL,
                api_key=self._settings.OPENROUTER_API_KEY,
                max_retries=0,
            )
        return self._client

    async def complete(
        self,
        messages: List[Message],
        *,
        model: str,
        max_tokens: int,
        reasoning_effort: Optional[str] = None,
        temperature: float = 0.3,
    ) -> ChatCompletion:
        openai_mod = import_module("openai")
        extra_body: Dict[str, Any] = {"max_output_tokens": max_tokens}
        if reasoning_effort:
            extra_body["reasoning"] = {"enabled": True, "effort": reasoning_effort}
        client = self._client_instance()
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                extra_body=extra_body,
            )
        except openai_mod.APIStatusError as exc:
            raise LLMTransportError(str(exc), status=exc.status_code, name=type(exc).__name__) from exc
        except openai_mod.APIError as exc:
            raise LLMTransportError(str(exc), name=type(exc).__name__) from exc

        choices = getattr(response, "choices", None) or []
        message = choices[0].message if choices else None
        if message is None:
            return ChatCompletion(content="")
        content = message.content if isinstance(message.content, str) else ""
        reasoning = _message_extra(message, "reasoning")
        return ChatCompletion(
            content=content,
            reasoning=reasoning if isinstance(reasoning, str) else None,
            reasoning_details=_message_extra(message, "reasoning_details"),
        )


def build_chat_client(settings: Optional[Settings] = None) -> Optional[ChatClient]:
    """Return a live client when a key is configured, otherwise None."""
    settings = settings or get_settings()
    if not settings.OPENROUTER_API_KEY:
        return None
    return OpenRouterChatClient(settings)


async def probe(client: Optional[ChatClient], settings: Optional[Settings] = None) -> Dict[str, Any]:
    """Send a tiny request to check connectivity and credentials."""

    settings = settings or get_settings()
    started = time.monotonic()
    if client is None:
        return {"ok": False, "model": settings.OPENROUTER_MODEL, "elapsedMs": 0, "error": "Missing OPENROUTER_API_KEY"}
    try:
        await client.complete(
            [{"role": "user", "content": "ping"}],
            model=settings.OPENROUTER_MODEL,
            max_tokens=16,
            temperature=0,
        )
    except LLMTransportError as exc:
        log.error("openrouter.probe.failed", error=str(exc), status=exc.status, name=exc.name)
        return {
            "ok": False,
            "model": settings.OPENROUTER_MODEL,
            "elapsedMs": int((time.monotonic() - started) * 1000),
            "error": str(exc),
        }
    return {"ok": True, "model": settings.OPENROUTER_MODEL, "elapsedMs": int((time.monotonic() - started) * 1000)}


async def echo_system_prompt(
    client: Optional[ChatClient],
    user_input: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """Ask the model to restate its purpose, confirming the system prompt is applied."""

    settings = settings or get_settings()
    started = time.monotonic()
    if client is None:
        return {"ok": False, "model": settings.OPENROUTER_MODEL, "elapsedMs": 0, "error": "Missing OPENROUTER_API_KEY"}
    text = (user_input or "").strip() or "In one sentence, state your purpose based on the system prompt."
    try:
        completion = await client.complete(
            [
                {"role": "system", "content": load_system_prompt(settings.SYSTEM_PROMPT_PATH)},
                {"role": "user", "content": text},
            ],
            model=settings.OPENROUTER_MODEL,
            max_tokens=80,
            temperature=0,
        )
    except LLMTransportError as exc:
        log.error("openrouter.echo.failed", error=str(exc), name=exc.name)
        return {
            "ok": False,
            "model": settings.OPENROUTER_MODEL,
            "elapsedMs": int((time.monotonic() - started) * 1000),
            "error": str(exc),
        }
    content = completion.text.strip()
    if not content and completion.reasoning_details:
        content = str(completion.reasoning_details)
    return {
        "ok": True,
        "model": settings.OPENROUTER_MODEL,
        "elapsedMs": int((time.monotonic() - started) * 1000),
        "content": content,
    }


__all__ = [
    "ChatClient",
    "ChatCompletion",
    "LLMTransportError",
    "Message",
    "OpenRouterChatClient",
    "build_chat_client",
    "echo_system_prompt",
    "probe",
]
