"""Deterministic rule-based planner used whenever the model cannot be trusted."""

from __future__ import annotations

from typing import List

from ..env.actions import BaseAction, MoveAction, SurfaceOpsAction, UpgradeAction, clamp_plan_length
from ..env.state import GameState


UPGRADE_MIN_MONEY = 150


def plan_actions(state: GameState, plan_length: int) -> List[BaseAction]:
    """Return exactly ``clamp(plan_length, 1, 10)`` safe actions for ``state``."""

    needs_station = bool(state.at_fuel_station) and (
        state.cargo.cur > 0 or state.fuel.cur < state.fuel.max
    )
    can_upgrade = bool(state.at_upgrade_shop) and state.money >= UPGRADE_MIN_MONEY

    actions: List[BaseAction] = []
    for _ in range(clamp_plan_length(plan_length)):
        if needs_station:
            actions.append(SurfaceOpsAction(reason="Refuel and cash in at station."))
        elif can_upgrade:
            actions.append(UpgradeAction(kind="FUEL", reason="Buying fuel upgrade."))
        else:
            actions.append(MoveAction(dir="D", reason="Server plan: move down."))
    return actions


__all__ = ["UPGRADE_MIN_MONEY", "plan_actions"]
