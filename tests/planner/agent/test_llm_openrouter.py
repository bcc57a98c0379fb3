from __future__ import annotations

import asyncio
from types import SimpleNamespace

import httpx
import openai
import pytest

from miner_gym.planner.agent.fake_llm import FakeChatClient
from miner_gym.planner.agent.llm_openrouter import (
    ChatCompletion,
    LLMTransportError,
    OpenRouterChatClient,
    build_chat_client,
    echo_system_prompt,
    probe,
)
from miner_gym.planner.config import Settings


class _Completions:
    def __init__(self, response=None, error=None) -> None:
        self.response = response
        self.error = error
        self.kwargs = None

    async def create(self, **kwargs):
        self.kwargs = kwargs
        if self.error is not None:
            raise self.error
        return self.response


def _client_with(completions: _Completions) -> OpenRouterChatClient:
    client = OpenRouterChatClient(Settings(OPENROUTER_API_KEY="sk-test"))
    client._client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return client


def _response(message) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def test_build_chat_client_requires_key() -> None:
    assert build_chat_client(Settings()) is None
    assert isinstance(build_chat_client(Settings(OPENROUTER_API_KEY="sk")), OpenRouterChatClient)
    with pytest.raises(RuntimeError):
        OpenRouterChatClient(Settings())


def test_complete_sends_reasoning_options() -> None:
    completions = _Completions(_response(SimpleNamespace(content="<execution>MOVE:D</execution>")))
    client = _client_with(completions)

    result = asyncio.run(
        client.complete([{"role": "user", "content": "hi"}], model="m", max_tokens=200, reasoning_effort="medium")
    )

    assert result == ChatCompletion(content="<execution>MOVE:D</execution>")
    assert completions.kwargs["max_tokens"] == 200
    assert completions.kwargs["temperature"] == 0.3
    assert completions.kwargs["extra_body"] == {
        "max_output_tokens": 200,
        "reasoning": {"enabled": True, "effort": "medium"},
    }


def test_complete_reads_reasoning_extras() -> None:
    message = SimpleNamespace(
        content=None,
        model_extra={"reasoning": "thinking...", "reasoning_details": [{"type": "reasoning.text"}]},
    )
    client = _client_with(_Completions(_response(message)))

    result = asyncio.run(client.complete([], model="m", max_tokens=10))

    assert result.content == ""
    assert result.reasoning == "thinking..."
    assert result.reasoning_details == [{"type": "reasoning.text"}]
    assert result.text == "thinking..."


def test_complete_handles_empty_choices() -> None:
    client = _client_with(_Completions(SimpleNamespace(choices=[])))
    assert asyncio.run(client.complete([], model="m", max_tokens=10)).text == ""


def test_sdk_errors_become_transport_errors() -> None:
    error = openai.APIConnectionError(request=httpx.Request("POST", "https://openrouter.test/chat"))
    client = _client_with(_Completions(error=error))

    with pytest.raises(LLMTransportError) as excinfo:
        asyncio.run(client.complete([], model="m", max_tokens=10))
    assert excinfo.value.name == "APIConnectionError"


def test_probe_reports_success_and_failure() -> None:
    settings = Settings(OPENROUTER_API_KEY="sk", OPENROUTER_MODEL="acme/m")

    ok = asyncio.run(probe(FakeChatClient(["pong"]), settings))
    failed = asyncio.run(probe(FakeChatClient([LLMTransportError("401 unauthorized", status=401)]), settings))
    missing = asyncio.run(probe(None, settings))

    assert ok["ok"] is True and ok["model"] == "acme/m"
    assert failed == {**failed, "ok": False, "error": "401 unauthorized"}
    assert missing["ok"] is False


def test_echo_uses_default_question() -> None:
    client = FakeChatClient(["  I plan moves.  "])
    result = asyncio.run(echo_system_prompt(client, "   ", Settings(OPENROUTER_API_KEY="sk")))

    assert result["content"] == "I plan moves."
    assert "state your purpose" in client.calls[0]["messages"][1]["content"]
