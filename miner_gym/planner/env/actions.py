"""Action schema definitions, execution-token grammar and sanitizing helpers."""

from __future__ import annotations

import re
from typing import Any, Annotated, Dict, Iterable, List, Literal, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, Field


Direction = Literal["U", "D", "L", "R"]
UpgradeKind = Literal["FUEL", "CARGO", "HULL", "DRILL"]

DIRECTIONS: Tuple[str, ...] = ("U", "D", "L", "R")
UPGRADE_KINDS: Tuple[str, ...] = ("FUEL", "CARGO", "HULL", "DRILL")
ALLOWED_TYPES = {"MOVE", "UPGRADE", "SURFACE_OPS"}

MAX_PLAN_LENGTH = 10

_TOKEN_RE = re.compile(
    r"^(?:SURFACE_OPS|MOVE:(?P<dir>U|D|L|R)|UPGRADE:(?P<kind>FUEL|CARGO|HULL|DRILL))$"
)

TOKEN_GRAMMAR = "MOVE:U|MOVE:D|MOVE:L|MOVE:R, SURFACE_OPS, UPGRADE:FUEL|CARGO|HULL|DRILL"


class BaseAction(BaseModel):
    """Properties shared by every planned action."""

    type: str
    reason: str = "Planned action."

    model_config = {
        "extra": "ignore",
        "populate_by_name": True,
    }


class MoveAction(BaseAction):
    type: Literal["MOVE"] = "MOVE"
    dir: Direction


class UpgradeAction(BaseAction):
    type: Literal["UPGRADE"] = "UPGRADE"
    kind: UpgradeKind


class SurfaceOpsAction(BaseAction):
    """Refuel, sell cargo and repair while parked at the station."""

    type: Literal["SURFACE_OPS"] = "SURFACE_OPS"


Action = Annotated[
    Union[MoveAction, UpgradeAction, SurfaceOpsAction],
    Field(discriminator="type"),
]


def clamp_plan_length(plan_length: Any) -> int:
    """Clamp a requested plan length into ``[1, MAX_PLAN_LENGTH]``."""
    try:
        n = int(plan_length or 1)
    except (TypeError, ValueError):
        n = 1
    return max(1, min(MAX_PLAN_LENGTH, n))


def tokenize_execution(execution_text: str) -> List[str]:
    return [tok for tok in execution_text.strip().split() if tok]


def validate_execution(execution_text: str, plan_length: int) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Check an execution body against the action token grammar.

    Returns ``(issues, tokens)`` where ``tokens`` are upper-cased and ``issues``
    is empty when the body is acceptable. Issues mirror pydantic's error dicts
    so they can be logged alongside model validation failures.
    """

    tokens = [tok.upper() for tok in tokenize_execution(execution_text)]
    issues: List[Dict[str, Any]] = []
    if len(tokens) < 1:
        issues.append({"type": "too_short", "loc": [], "msg": "Expected at least 1 action token"})
    if len(tokens) > plan_length:
        issues.append(
            {
                "type": "too_long",
                "loc": [],
                "msg": f"Expected at most {plan_length} action tokens, got {len(tokens)}",
            }
        )
    for idx, token in enumerate(tokens):
        if not _TOKEN_RE.match(token):
            issues.append(
                {
                    "type": "invalid_token",
                    "loc": [idx],
                    "msg": f"Invalid action token {token!r}; expected one of {TOKEN_GRAMMAR}",
                    "input": token,
                }
            )
    return issues, tokens


def parse_action_tokens(execution_text: str) -> List[BaseAction]:
    """Turn execution tokens into actions, skipping anything that does not parse."""
    actions: List[BaseAction] = []
    for raw in tokenize_execution(execution_text):
        match = _TOKEN_RE.match(raw.strip().upper())
        if not match:
            continue
        if match.group("dir"):
            actions.append(MoveAction(dir=match.group("dir")))
        elif match.group("kind"):
            actions.append(UpgradeAction(kind=match.group("kind")))
        else:
            actions.append(SurfaceOpsAction())
    return actions


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


def sanitize_actions(actions: Optional[Iterable[Any]], plan_length: int) -> List[BaseAction]:
    """Clamp candidate actions to ``plan_length`` well-typed entries.

    Unknown types are dropped, bad directions become ``D`` and bad upgrade
    kinds become ``FUEL``. An empty result is replaced by the fallback plan.
    """

    from ..agent.fallback import plan_actions
    from .state import minimal_state

    limit = clamp_plan_length(plan_length)
    out: List[BaseAction] = []
    for item in actions or []:
        if len(out) >= limit:
            break
        action_type = _field(item, "type")
        if not isinstance(action_type, str):
            continue
        reason = _field(item, "reason")
        if action_type == "MOVE":
            direction = _field(item, "dir")
            out.append(
                MoveAction(
                    dir=direction if direction in DIRECTIONS else "D",
                    reason=reason or "Fallback move.",
                )
            )
        elif action_type == "UPGRADE":
            kind = _field(item, "kind")
            out.append(
                UpgradeAction(
                    kind=kind if kind in UPGRADE_KINDS else "FUEL",
                    reason=reason or "Fallback upgrade.",
                )
            )
        elif action_type == "SURFACE_OPS":
            out.append(SurfaceOpsAction(reason=reason or "Fallback surface ops."))
    if out:
        return out
    return plan_actions(minimal_state(), limit)


def format_actions(actions: Sequence[BaseAction]) -> str:
    """Render actions back into execution tokens."""
    tokens = []
    for action in actions:
        if isinstance(action, MoveAction):
            tokens.append(f"MOVE:{action.dir}")
        elif isinstance(action, UpgradeAction):
            tokens.append(f"UPGRADE:{action.kind}")
        else:
            tokens.append(action.type)
    return " ".join(tokens)


def dump_actions(actions: Sequence[BaseAction]) -> List[Dict[str, Any]]:
    return [action.model_dump(mode="json") for action in actions]


__all__ = [
    "ALLOWED_TYPES",
    "Action",
    "BaseAction",
    "DIRECTIONS",
    "Direction",
    "MAX_PLAN_LENGTH",
    "MoveAction",
    "SurfaceOpsAction",
    "TOKEN_GRAMMAR",
    "UPGRADE_KINDS",
    "UpgradeAction",
    "UpgradeKind",
    "clamp_plan_length",
    "dump_actions",
    "format_actions",
    "parse_action_tokens",
    "sanitize_actions",
    "tokenize_execution",
    "validate_execution",
]
