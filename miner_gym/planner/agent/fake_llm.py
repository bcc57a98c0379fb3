"""Deterministic chat client used for tests and offline development."""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Iterable, List, Optional, Union

from .llm_openrouter import ChatClient, ChatCompletion, Message


DEFAULT_REPLY = "\n".join(
    [
        "<self_reflection>Offline planner: keep digging.</self_reflection>",
        "<action_to_take>Dig straight down.</action_to_take>",
        "<execution>MOVE:D</execution>",
    ]
)

Reply = Union[str, ChatCompletion, BaseException]


class FakeChatClient(ChatClient):
    """Replays scripted replies in order, then repeats ``DEFAULT_REPLY``.

    A reply may be a plain string, a ``ChatCompletion`` or an exception to raise.
    Every call is recorded in ``calls`` for inspection.
    """

    def __init__(self, replies: Optional[Iterable[Reply]] = None, *, delay: float = 0.0) -> None:
        self._replies: List[Reply] = list(replies or [])
        self._delay = delay
        self.calls: List[Dict[str, Any]] = []

    async def complete(
        self,
        messages: List[Message],
        *,
        model: str,
        max_tokens: int,
        reasoning_effort: Optional[str] = None,
        temperature: float = 0.3,
    ) -> ChatCompletion:
        self.calls.append(
            {
                "messages": [dict(message) for message in messages],
                "model": model,
                "max_tokens": max_tokens,
                "reasoning_effort": reasoning_effort,
                "temperature": temperature,
            }
        )
        if self._delay > 0:
            await asyncio.sleep(self._delay)
        reply: Reply = self._replies.pop(0) if self._replies else DEFAULT_REPLY
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, ChatCompletion):
            return reply
        return ChatCompletion(content=reply)


__all__ = ["DEFAULT_REPLY", "FakeChatClient"]
