"""Append-only per-session log files.

Every session gets its own directory under ``<LOGS_DIR>/sessions`` named
``<startedAt>_<sessionId>``. Lines are plain text, ``[ts] [LEVEL] message {json}``,
so they can be tailed while a game is running. The same events are forwarded
to the process logger with the session id bound.
"""

from __future__ import annotations

import json
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import structlog


log = structlog.get_logger()

LLM_LOG = "llm.log"
API_ERRORS_LOG = "api_errors.log"
APP_LOG = "app.log"
AGENT_LOG = "agent.log"
CONVERSATION_FILE = "conversation.json"

_LEVELS = {"DEBUG": "debug", "INFO": "info", "WARN": "warning", "WARNING": "warning", "ERROR": "error"}
_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def truncate_head(text: str, limit: int) -> str:
    if limit <= 0 or len(text) <= limit:
        return text
    return text[:limit]


def _encode(data: Any) -> str:
    try:
        return json.dumps(data, ensure_ascii=False, default=str)
    except (TypeError, ValueError):
        return json.dumps(str(data))


def normalize_level(level: str) -> str:
    name = (level or "INFO").upper()
    return "WARN" if name == "WARNING" else (name if name in _LEVELS else "INFO")


class SessionLog:
    """Writes diagnostic lines for one session into its own directory."""

    def __init__(self, root: Path, session_id: str) -> None:
        started_at = re.sub(r"[:.]", "-", _now_iso())
        safe_id = _UNSAFE_ID_CHARS.sub("_", session_id) or "default"
        self.session_id = session_id
        self.directory = Path(root) / "sessions" / f"{started_at}_{safe_id}"
        self.directory.mkdir(parents=True, exist_ok=True)
        self._log = log.bind(session_id=session_id)

    def append(self, level: str, message: str, data: Optional[Dict[str, Any]] = None, *, file_name: str = LLM_LOG) -> None:
        level = normalize_level(level)
        payload = f" {_encode(data)}" if data else ""
        line = f"[{_now_iso()}] [{level}] {message}{payload}\n"
        with (self.directory / file_name).open("a", encoding="utf-8") as handle:
            handle.write(line)
        getattr(self._log, _LEVELS[level])(message, log_file=file_name, data=data)

    def info(self, message: str, data: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        self.append("INFO", message, data, **kwargs)

    def warn(self, message: str, data: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        self.append("WARN", message, data, **kwargs)

    def error(self, message: str, data: Optional[Dict[str, Any]] = None, **kwargs: Any) -> None:
        self.append("ERROR", message, data, **kwargs)

    def write_conversation(self, history: Iterable[Dict[str, Any]]) -> None:
        path = self.directory / CONVERSATION_FILE
        path.write_text(json.dumps(list(history), indent=2, ensure_ascii=False), encoding="utf-8")

    def read_lines(self, file_name: str = LLM_LOG) -> list[str]:
        path = self.directory / file_name
        if not path.is_file():
            return []
        return path.read_text(encoding="utf-8").splitlines()


__all__ = [
    "AGENT_LOG",
    "API_ERRORS_LOG",
    "APP_LOG",
    "CONVERSATION_FILE",
    "LLM_LOG",
    "SessionLog",
    "normalize_level",
    "truncate_head",
]
