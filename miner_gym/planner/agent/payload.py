"""Typed request context assembled for every plan request."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..env.state import GameState
from . import heuristics
from .memory import DEFAULT_WINDOW_SIZE, SessionMemory


HISTORY_STATE_KEYS = (
    "turn",
    "pos",
    "fuel",
    "hull",
    "cargo",
    "money",
    "atSurface",
    "atFuelStation",
    "atUpgradeShop",
    "drill",
    "goal",
)


class MemorySnapshot(BaseModel):
    known_window: List[str] = Field(..., alias="knownWindow")
    visited_tail: List[Dict[str, int]] = Field(default_factory=list, alias="visitedTail")
    bounds: Dict[str, int]

    model_config = {"populate_by_name": True}


class PlanContext(BaseModel):
    """Everything the model sees about the current turn."""

    plan_length: int = Field(..., alias="planLength")
    turns_elapsed: int = Field(..., alias="turnsElapsed")
    state: Dict[str, Any]
    fuel_navigator: Optional[Dict[str, Any]] = Field(default=None, alias="fuelNavigator")
    memory: MemorySnapshot
    scan_tiles: List[Dict[str, Any]] = Field(default_factory=list, alias="scanTiles")
    known_tiles: List[Dict[str, Any]] = Field(default_factory=list, alias="knownTiles")
    fuel_hint: Optional[Dict[str, Any]] = Field(default=None, alias="fuelHint")
    shop_hint: Optional[Dict[str, Any]] = Field(default=None, alias="shopHint")
    behavior_note: Optional[Dict[str, Optional[str]]] = Field(default=None, alias="behaviorNote")
    blocked_dirs: Optional[List[str]] = Field(default=None, alias="blockedDirs")
    fuel_runs: int = Field(default=0, alias="fuelRuns")
    upgrade_reminder: Optional[str] = Field(default=None, alias="upgradeReminder")

    model_config = {"populate_by_name": True}

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> str:
        return json.dumps(self.to_wire(), separators=(",", ":"))


def build_plan_context(
    session: SessionMemory,
    state: GameState,
    plan_length: int,
    fuel_navigator: Optional[Dict[str, Any]] = None,
) -> PlanContext:
    """Combine state, session memory and heuristic hints into one payload."""

    memory = MemorySnapshot(
        known_window=session.memory_window(state, DEFAULT_WINDOW_SIZE),
        visited_tail=session.visited_tail(8),
        bounds=session.bounds.to_wire(),
    )
    return PlanContext(
        plan_length=plan_length,
        turns_elapsed=state.turn,
        state=state.to_wire(),
        fuel_navigator=fuel_navigator,
        memory=memory,
        scan_tiles=heuristics.build_scan_tiles(state),
        known_tiles=session.known_tiles(),
        fuel_hint=heuristics.build_fuel_hint(state),
        shop_hint=heuristics.build_shop_hint(state),
        behavior_note=heuristics.analyze_behavior(session),
        blocked_dirs=heuristics.blocked_dirs_from_scan(state),
        fuel_runs=session.fuel_runs,
        upgrade_reminder=heuristics.upgrade_reminder(session, state),
    )


def summarize_for_history(context: PlanContext) -> str:
    """Compact version of the payload kept in the conversation history.

    Map data (window, known and scan tiles) is dropped; the model gets the
    fresh copy in the current turn anyway.
    """

    state = {key: context.state.get(key) for key in HISTORY_STATE_KEYS}
    summary = {
        "planLength": context.plan_length,
        "turnsElapsed": context.turns_elapsed,
        "state": state,
        "fuelNavigator": context.fuel_navigator,
        "fuelHint": context.fuel_hint,
        "shopHint": context.shop_hint,
        "behaviorNote": context.behavior_note,
        "blockedDirs": context.blocked_dirs,
        "fuelRuns": context.fuel_runs,
        "upgradeReminder": context.upgrade_reminder,
    }
    return json.dumps(summary, separators=(",", ":"))


__all__ = ["MemorySnapshot", "PlanContext", "build_plan_context", "summarize_for_history"]
