"""Process-wide structlog configuration."""

from __future__ import annotations

import logging
from typing import Optional

import structlog
from structlog.contextvars import merge_contextvars

from .config import Settings


def setup_logging(settings: Optional[Settings] = None) -> None:
    """Initialize structlog on top of stdlib logging, rendering JSON lines to stderr."""

    level_name = (settings.LOG_LEVEL if settings else "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    logging.captureWarnings(True)

    processor_formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.add_log_level,
            merge_contextvars,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(default=str),
        ],
        foreign_pre_chain=[
            structlog.processors.add_log_level,
            merge_contextvars,
        ],
    )

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(processor_formatter)
    logging.basicConfig(level=level, handlers=[handler], force=True)

    # uvicorn installs its own handlers; route them through ours
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "httpx", "openai"):
        lg = logging.getLogger(name)
        lg.handlers = []
        lg.propagate = True

    structlog.configure(
        processors=[
            merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def redact_settings(settings: Settings) -> dict:
    """Return settings as a dict with credentials replaced by ``[REDACTED]``."""
    data = settings.model_dump()
    for key in list(data.keys()):
        if key.endswith("_KEY") or key.endswith("_TOKEN") or key.endswith("_SECRET"):
            data[key] = "[REDACTED]" if data[key] else None
    return data


__all__ = ["redact_settings", "setup_logging"]
