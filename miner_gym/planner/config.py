"""Runtime configuration helpers for the miner-gym planner."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import BaseModel


REASONING_EFFORTS = ("low", "medium", "high")


def _load_dotenv() -> None:
    env_path = Path(".env")
    if not env_path.is_file():
        return
    try:
        for line in env_path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            os.environ.setdefault(key.strip(), value.strip())
    except OSError:
        pass


def safe_reasoning_effort(value: Optional[str]) -> str:
    """Normalize a reasoning effort knob, defaulting to ``low``."""

    effort = (value or "low").strip().lower()
    return effort if effort in REASONING_EFFORTS else "low"


class Settings(BaseModel):
    OPENROUTER_API_KEY: Optional[str] = None
    OPENROUTER_API_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_MODEL: str = "moonshotai/kimi-k2.5"
    OPENROUTER_TIMEOUT_MS: int = 20000
    MAX_COMPLETION_TOKENS: int = 200
    REASONING_EFFORT: str = "low"
    MAX_PLANS_PER_SESSION: int = 0
    MIN_REQUEST_GAP_MS: int = 500
    MAX_SESSIONS: int = 256
    LOGS_DIR: str = "logs"
    SYSTEM_PROMPT_PATH: Optional[str] = None
    LOG_LEVEL: str = "INFO"
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    class Config:
        frozen = True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    _load_dotenv()
    return Settings(
        OPENROUTER_API_KEY=os.getenv("OPENROUTER_API_KEY") or None,
        OPENROUTER_API_BASE_URL=os.getenv("OPENROUTER_API_BASE_URL", "https://openrouter.ai/api/v1"),
        OPENROUTER_MODEL=os.getenv("OPENROUTER_MODEL", "moonshotai/kimi-k2.5"),
        OPENROUTER_TIMEOUT_MS=int(os.getenv("OPENROUTER_TIMEOUT_MS", "20000")),
        MAX_COMPLETION_TOKENS=int(os.getenv("MAX_COMPLETION_TOKENS", "200")),
        REASONING_EFFORT=safe_reasoning_effort(os.getenv("REASONING_EFFORT")),
        MAX_PLANS_PER_SESSION=int(os.getenv("MAX_PLANS_PER_SESSION", "0")),
        MIN_REQUEST_GAP_MS=int(os.getenv("MIN_REQUEST_GAP_MS", "500")),
        MAX_SESSIONS=int(os.getenv("MAX_SESSIONS", "256")),
        LOGS_DIR=os.getenv("LOGS_DIR", "logs"),
        SYSTEM_PROMPT_PATH=os.getenv("SYSTEM_PROMPT_PATH") or None,
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        HOST=os.getenv("HOST", "0.0.0.0"),
        PORT=int(os.getenv("PORT", "8080")),
    )


def have_openrouter() -> bool:
    return bool(get_settings().OPENROUTER_API_KEY)


__all__ = [
    "REASONING_EFFORTS",
    "Settings",
    "get_settings",
    "have_openrouter",
    "safe_reasoning_effort",
]
