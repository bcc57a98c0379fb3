"""Plan orchestration: memory, hints, model round-trip, correction and fallback.

A request walks through::

    BUILDING_REQUEST -> AWAITING_MODEL -> {EXTRACTING, TIMED_OUT, API_ERROR}
        -> VALIDATING -> {ACCEPTED, CORRECTING} -> {ACCEPTED, FALLBACK}

The correction step runs at most once. Transport failures surface as
``status="api_error"`` with no actions; formatting failures end in the
deterministic fallback plan.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog
from pydantic import BaseModel, Field

from ..config import Settings, get_settings
from ..env.actions import (
    Action,
    BaseAction,
    dump_actions,
    parse_action_tokens,
    sanitize_actions,
    validate_execution,
)
from ..env.state import GameState, parse_state
from ..run.session_log import API_ERRORS_LOG, LLM_LOG, truncate_head
from .fallback import plan_actions
from .llm_openrouter import ChatClient, ChatCompletion, LLMTransportError, Message, build_chat_client
from .memory import SessionMemory, SessionRegistry
from .payload import PlanContext, build_plan_context, summarize_for_history
from .prompts import few_shot_messages, format_validation_error, load_system_prompt
from .tags import extract_sections


log = structlog.get_logger()

NOTE_OK = "openrouter"
NOTE_CORRECTED = "openrouter-corrected"
NOTE_NO_KEY = "fallback-no-key"
NOTE_MAX_PLANS = "fallback-max-plans"
NOTE_NO_EXECUTION = "no-execution-tag"
NOTE_BAD_FORMAT = "bad-execution-format"
NOTE_BAD_PARSE = "bad-execution-parse"
NOTE_API_ERROR = "api-error"

STATUS_BAD_FORMAT = "bad_format"
STATUS_API_ERROR = "api_error"

INITIAL_TEMPERATURE = 0.3
CORRECTION_TEMPERATURE = 0.2

_UNSET: Any = object()


class PlanResponse(BaseModel):
    """Result returned to the game client for one plan request."""

    actions: List[Action] = Field(default_factory=list)
    note: str
    model: Optional[str] = None
    reasoning: Optional[str] = None
    progress: Optional[Any] = None
    status: Optional[str] = None


@dataclass
class Attempt:
    """Outcome of extracting and validating one model response."""

    text: str
    execution: Optional[str] = None
    issues: List[Dict[str, Any]] = field(default_factory=list)
    actions: List[BaseAction] = field(default_factory=list)
    failure: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def correctable(self) -> bool:
        return self.failure in (NOTE_NO_EXECUTION, NOTE_BAD_FORMAT)


def evaluate_response(text: str, plan_length: int) -> Attempt:
    """Extract the execution block from ``text`` and validate its tokens."""

    sections = extract_sections(text)
    attempt = Attempt(text=text, execution=sections.execution)
    if not sections.execution:
        attempt.failure = NOTE_NO_EXECUTION
        return attempt
    issues, _tokens = validate_execution(sections.execution, plan_length)
    if issues:
        attempt.issues = issues
        attempt.failure = NOTE_BAD_FORMAT
        return attempt
    actions = parse_action_tokens(sections.execution)
    if not 1 <= len(actions) <= plan_length:
        attempt.failure = NOTE_BAD_PARSE
        return attempt
    attempt.actions = actions
    return attempt


class PlanOrchestrator:
    """Turns game states into action plans, one session at a time."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        client: Optional[ChatClient] = _UNSET,
        registry: Optional[SessionRegistry] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = build_chat_client(self._settings) if client is _UNSET else client
        self.registry = registry or SessionRegistry(
            max_sessions=self._settings.MAX_SESSIONS,
            logs_dir=Path(self._settings.LOGS_DIR),
        )
        self.plan_count = 0
        self._last_request_at: Optional[float] = None
        self._throttle_lock = asyncio.Lock()

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def model(self) -> str:
        return self._settings.OPENROUTER_MODEL

    @property
    def client(self) -> Optional[ChatClient]:
        return self._client

    @property
    def timeout_s(self) -> float:
        return self._settings.OPENROUTER_TIMEOUT_MS / 1000.0

    def fallback(self, state: GameState, plan_length: int, note: str, **extra: Any) -> PlanResponse:
        return PlanResponse(
            actions=dump_actions(plan_actions(state, plan_length)),
            note=note,
            model=self.model,
            **extra,
        )

    async def plan(
        self,
        state: GameState | Dict[str, Any],
        plan_length: int,
        session_id: Optional[str] = None,
        fuel_navigator: Optional[Dict[str, Any]] = None,
    ) -> PlanResponse:
        """Produce a plan of at most ``plan_length`` actions for ``state``."""

        state = parse_state(state)
        if self._client is None:
            log.warning("plan.fallback", reason="missing OPENROUTER_API_KEY")
            return self.fallback(state, plan_length, NOTE_NO_KEY)
        budget = self._settings.MAX_PLANS_PER_SESSION
        if budget > 0 and self.plan_count >= budget:
            log.warning("plan.fallback", reason="MAX_PLANS_PER_SESSION reached", plan_count=self.plan_count)
            return self.fallback(state, plan_length, NOTE_MAX_PLANS)

        session = self.registry.get(session_id)
        async with session.lock:
            return await self._plan_session(session, state, plan_length, fuel_navigator)

    async def _plan_session(
        self,
        session: SessionMemory,
        state: GameState,
        plan_length: int,
        fuel_navigator: Optional[Dict[str, Any]],
    ) -> PlanResponse:
        session.update(state)
        session.update_fuel_runs(state)
        context = build_plan_context(session, state, plan_length, fuel_navigator)
        payload_text = context.to_json()

        self._session_log(session, "INFO", "LLM request", {
            "model": self.model,
            "planLength": plan_length,
            "sessionId": session.id,
            "stateSummary": {
                "turn": state.turn,
                "pos": state.pos.model_dump(),
                "fuel": state.fuel.model_dump(),
                "hull": state.hull.model_dump(),
                "cargo": state.cargo.model_dump(),
                "money": state.money,
                "atSurface": state.at_surface,
                "atFuelStation": state.at_fuel_station,
                "atUpgradeShop": state.at_upgrade_shop,
            },
        })
        self._session_log(session, "INFO", "LLM input", {"payloadPreview": truncate_head(payload_text, 4000)})
        self._session_log(session, "INFO", "LLM input full", {"payload": payload_text})

        messages: List[Message] = [
            {"role": "system", "content": self._system_prompt()},
            *few_shot_messages(),
            *session.history_messages(),
            {"role": "user", "content": payload_text},
        ]

        started = time.monotonic()
        try:
            completion = await self._complete(messages, INITIAL_TEMPERATURE)
        except asyncio.TimeoutError:
            return self._api_error(session, context, started, "OpenRouter request aborted (timeout)",
                                   f"request timed out after {self._settings.OPENROUTER_TIMEOUT_MS} ms", "TimeoutError")
        except asyncio.CancelledError:
            self._session_log(session, "ERROR", "OpenRouter request aborted (external)", {
                "elapsedMs": _elapsed_ms(started),
                "timeoutMs": self._settings.OPENROUTER_TIMEOUT_MS,
            }, file_name=API_ERRORS_LOG)
            raise
        except LLMTransportError as exc:
            return self._api_error(session, context, started, "OpenRouter request failed", str(exc), exc.name)

        self._session_log(session, "INFO", "LLM request complete", {
            "elapsedMs": _elapsed_ms(started),
            "timeoutMs": self._settings.OPENROUTER_TIMEOUT_MS,
        })
        if completion.reasoning:
            self._session_log(session, "INFO", "LLM reasoning", {"textPreview": truncate_head(completion.reasoning, 2000)})
        if completion.reasoning_details:
            self._session_log(session, "INFO", "LLM reasoning_details", {"details": completion.reasoning_details})

        text = completion.text
        session.append_history("user", summarize_for_history(context))
        session.append_history("assistant", text or "<empty>")
        if not completion.content:
            self._session_log(session, "WARN", "LLM empty content", {"response": text})
        self._session_log(session, "INFO", "LLM raw output", {"textPreview": truncate_head(text, 500)})

        sections = extract_sections(text)
        if sections.self_reflection:
            self._session_log(session, "INFO", "LLM self_reflection", {"textPreview": truncate_head(sections.self_reflection, 1000)})
        if sections.action_to_take:
            self._session_log(session, "INFO", "LLM action_to_take", {"textPreview": truncate_head(sections.action_to_take, 1000)})

        attempt = evaluate_response(text, plan_length)
        if attempt.ok:
            return self._accept(session, attempt, plan_length, NOTE_OK, completion.content)

        if not attempt.correctable:
            self._session_log(session, "WARN", "LLM execution token parse mismatch.", {
                "expected": plan_length,
                "executionText": attempt.execution,
            })
            return self.fallback(state, plan_length, attempt.failure, reasoning=text or None, status=STATUS_BAD_FORMAT)

        if attempt.failure == NOTE_NO_EXECUTION:
            self._session_log(session, "WARN", "LLM missing <execution> tag; requesting correction.", {
                "textPreview": truncate_head(text, 500),
            })
        else:
            self._session_log(session, "WARN", "LLM execution validation failed; requesting correction.", {
                "issues": attempt.issues,
                "executionText": attempt.execution,
            })
        corrected = await self._correct(session, context, completion, attempt, plan_length)
        if corrected is not None:
            return corrected
        return self.fallback(state, plan_length, attempt.failure, reasoning=text or None, status=STATUS_BAD_FORMAT)

    async def _correct(
        self,
        session: SessionMemory,
        context: PlanContext,
        prior: ChatCompletion,
        attempt: Attempt,
        plan_length: int,
    ) -> Optional[PlanResponse]:
        """Single corrective round-trip; never touches the session history."""

        prior_message: Message = {"role": "assistant", "content": attempt.text}
        if prior.reasoning_details:
            prior_message["reasoning_details"] = prior.reasoning_details
        messages: List[Message] = [
            {"role": "system", "content": self._system_prompt()},
            *few_shot_messages(),
            {"role": "user", "content": context.to_json()},
            prior_message,
            {"role": "user", "content": format_validation_error(attempt.execution, plan_length)},
        ]
        started = time.monotonic()
        try:
            completion = await self._complete(messages, CORRECTION_TEMPERATURE)
        except (asyncio.TimeoutError, LLMTransportError) as exc:
            self._session_log(session, "ERROR", "Correction request failed", {
                "error": str(exc) or type(exc).__name__,
                "elapsedMs": _elapsed_ms(started),
            }, file_name=API_ERRORS_LOG)
            return None

        self._session_log(session, "INFO", "LLM correction response", {
            "elapsedMs": _elapsed_ms(started),
            "reasoningPreview": truncate_head(completion.reasoning, 1000) if completion.reasoning else None,
            "reasoningDetails": completion.reasoning_details,
        })
        retry = evaluate_response(completion.text, plan_length)
        if retry.failure == NOTE_NO_EXECUTION:
            self._session_log(session, "WARN", "Correction missing <execution> tag.", {
                "textPreview": truncate_head(completion.text, 500),
            })
            return None
        if retry.failure == NOTE_BAD_FORMAT:
            self._session_log(session, "WARN", "Correction execution validation failed.", {
                "issues": retry.issues,
                "executionText": retry.execution,
            })
            return None
        if not retry.ok:
            return None
        return self._accept(session, retry, plan_length, NOTE_CORRECTED, completion.content)

    def _accept(
        self,
        session: SessionMemory,
        attempt: Attempt,
        plan_length: int,
        note: str,
        content: str,
    ) -> PlanResponse:
        self.plan_count += 1
        cleaned = dump_actions(sanitize_actions(attempt.actions, plan_length))
        self._session_log(session, "INFO", "LLM response parsed", {"actions": len(cleaned), "preview": cleaned})
        return PlanResponse(actions=cleaned, note=note, model=self.model, reasoning=content or None)

    def _api_error(
        self,
        session: SessionMemory,
        context: PlanContext,
        started: float,
        message: str,
        error: str,
        name: Optional[str],
    ) -> PlanResponse:
        self._session_log(session, "ERROR", message, {
            "error": error,
            "name": name,
            "elapsedMs": _elapsed_ms(started),
            "timeoutMs": self._settings.OPENROUTER_TIMEOUT_MS,
        }, file_name=API_ERRORS_LOG)
        session.append_history("user", summarize_for_history(context))
        session.append_history("assistant", f"<error:{error}>")
        return PlanResponse(
            actions=[],
            note=NOTE_API_ERROR,
            model=self.model,
            reasoning=error,
            status=STATUS_API_ERROR,
        )

    async def _complete(self, messages: List[Message], temperature: float) -> ChatCompletion:
        assert self._client is not None
        await self._throttle()
        return await asyncio.wait_for(
            self._client.complete(
                messages,
                model=self.model,
                max_tokens=self._settings.MAX_COMPLETION_TOKENS,
                reasoning_effort=self._settings.REASONING_EFFORT,
                temperature=temperature,
            ),
            timeout=self.timeout_s,
        )

    async def _throttle(self) -> None:
        """Space outbound calls at least ``MIN_REQUEST_GAP_MS`` apart across all sessions."""
        gap = self._settings.MIN_REQUEST_GAP_MS / 1000.0
        async with self._throttle_lock:
            if self._last_request_at is not None and gap > 0:
                wait = gap - (time.monotonic() - self._last_request_at)
                if wait > 0:
                    await asyncio.sleep(wait)
            self._last_request_at = time.monotonic()

    def _system_prompt(self) -> str:
        return load_system_prompt(self._settings.SYSTEM_PROMPT_PATH)

    @staticmethod
    def _session_log(
        session: SessionMemory,
        level: str,
        message: str,
        data: Optional[Dict[str, Any]] = None,
        *,
        file_name: str = LLM_LOG,
    ) -> None:
        if session.log is None:
            getattr(log, "warning" if level == "WARN" else level.lower())(message, session_id=session.id, data=data)
            return
        session.log.append(level, message, data, file_name=file_name)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


__all__ = [
    "Attempt",
    "NOTE_API_ERROR",
    "NOTE_BAD_FORMAT",
    "NOTE_BAD_PARSE",
    "NOTE_CORRECTED",
    "NOTE_MAX_PLANS",
    "NOTE_NO_EXECUTION",
    "NOTE_NO_KEY",
    "NOTE_OK",
    "PlanOrchestrator",
    "PlanResponse",
    "STATUS_API_ERROR",
    "STATUS_BAD_FORMAT",
    "evaluate_response",
]
