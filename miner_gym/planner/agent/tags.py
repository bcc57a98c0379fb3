"""Extraction of tagged sections from free-form model output.

The model is asked to answer with three blocks::

    <self_reflection>...</self_reflection>
    <action_to_take>...</action_to_take>
    <execution>MOVE:D MOVE:D MOVE:R</execution>

Each block is located independently. Tags are matched case-insensitively and
non-greedily, so when a tag is repeated the first complete block wins. The
``execution`` block may also be left open at the end of a truncated response.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Pattern


SELF_REFLECTION = "self_reflection"
ACTION_TO_TAKE = "action_to_take"
EXECUTION = "execution"


@lru_cache(maxsize=None)
def _closed_pattern(tag: str) -> Pattern[str]:
    name = re.escape(tag)
    return re.compile(rf"<{name}>(.*?)</{name}>", re.IGNORECASE | re.DOTALL)


@lru_cache(maxsize=None)
def _open_pattern(tag: str) -> Pattern[str]:
    name = re.escape(tag)
    return re.compile(rf"<{name}>(.*)$", re.IGNORECASE | re.DOTALL)


def extract_tagged_text(text: Optional[str], tag: str) -> Optional[str]:
    """Return the stripped body of the first ``<tag>...</tag>`` block, if any.

    An empty body is reported as None so callers treat it like a missing tag.
    """
    if not isinstance(text, str):
        return None
    match = _closed_pattern(tag).search(text)
    if not match:
        return None
    return match.group(1).strip() or None


def extract_execution_text(text: Optional[str]) -> Optional[str]:
    """Return the execution body, accepting an unterminated trailing block."""
    if not isinstance(text, str):
        return None
    match = _closed_pattern(EXECUTION).search(text) or _open_pattern(EXECUTION).search(text)
    if not match:
        return None
    return match.group(1).strip() or None


@dataclass(frozen=True)
class TaggedSections:
    self_reflection: Optional[str]
    action_to_take: Optional[str]
    execution: Optional[str]


def extract_sections(text: Optional[str]) -> TaggedSections:
    return TaggedSections(
        self_reflection=extract_tagged_text(text, SELF_REFLECTION),
        action_to_take=extract_tagged_text(text, ACTION_TO_TAKE),
        execution=extract_execution_text(text),
    )


__all__ = [
    "ACTION_TO_TAKE",
    "EXECUTION",
    "SELF_REFLECTION",
    "TaggedSections",
    "extract_execution_text",
    "extract_sections",
    "extract_tagged_text",
]
