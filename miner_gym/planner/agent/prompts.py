"""Prompt text sent to the planning model."""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from ..env.actions import TOKEN_GRAMMAR


system_prompt_v1 = """You pilot a mining drill in a 2D world. Each request gives you the current game state as JSON and asks for a short plan.

World:
- x grows to the right, y grows downward. Row y=1 is the surface; everything below is underground.
- localScan is a 6x6 window with you at column 2, row 2. Tiles: "." air, "d" dirt, "o" ore, "r" rock (cannot be dug), "l" lava (damages hull), "S" surface.
- Moving into dirt or ore digs it. Moving U needs thrust and burns extra fuel.
- The fuel station refuels and buys your cargo (SURFACE_OPS). The shop sells upgrades (UPGRADE:FUEL|CARGO|HULL|DRILL).
- Running out of fuel underground ends the run. Use fuelHint.shouldReturn and estReturnFuel to know when to head back.

Hints you may receive: memory.knownWindow (12x12 map around you, "?" unknown), knownTiles, scanTiles, fuelHint, shopHint, behaviorNote (stuck/oscillating warnings), blockedDirs, fuelRuns, upgradeReminder, fuelNavigator.

Answer with exactly three blocks, in this order:
<self_reflection>Step-by-step fuel and position calculation for the plan.</self_reflection>
<action_to_take>One sentence summary.</action_to_take>
<execution>1 to planLength action tokens separated by spaces.</execution>

Valid tokens: MOVE:U MOVE:D MOVE:L MOVE:R SURFACE_OPS UPGRADE:FUEL UPGRADE:CARGO UPGRADE:HULL UPGRADE:DRILL.
Never write anything after </execution>."""


EXAMPLE_PAYLOAD: Dict[str, object] = {
    "planLength": 3,
    "state": {
        "turn": 5,
        "pos": {"x": 6, "y": 3, "depth": 3},
        "fuel": {"cur": 18, "max": 30},
        "hull": {"cur": 28, "max": 30},
        "cargo": {"cur": 4, "cap": 12},
        "money": 80,
        "atSurface": False,
        "atFuelStation": False,
        "atUpgradeShop": False,
        "drill": 1.0,
        "goal": {"x": 6, "y": 24, "mined": False},
        "localScan": ["......", "..dd..", "..do..", "..d...", "......", "......"],
        "rules": {"noDigUp": False, "upRequiresAir": False, "lavaDamage": 8, "baseTurnFuel": 1},
    },
    "memory": {
        "knownWindow": ["????", "????", "????", "????"],
        "visitedTail": [],
        "bounds": {"minX": 0, "maxX": 0, "minY": 0, "maxY": 0},
    },
    "scanTiles": [{"x": 6, "y": 3, "t": "d"}],
    "knownTiles": [{"x": 6, "y": 3, "t": "d"}],
    "fuelHint": {
        "stationX": 6,
        "returnDx": 0,
        "returnDy": 2,
        "estReturnFuel": 8,
        "buffer": 6,
        "fuelCur": 18,
        "fuelMax": 30,
        "shouldReturn": False,
        "turnsLeftMax": 18,
        "turnsLeftAir": 9,
        "turnsLeftDig": 6,
        "turnsLeftProbable": 6,
    },
}

example_user_message = "Example user input (game state):\n" + json.dumps(EXAMPLE_PAYLOAD, separators=(",", ":"))

example_assistant_output = "\n".join(
    [
        "Example output (exact format):",
        "<self_reflection>",
        "Start: Fuel 18, Pos (6,3).",
        "Plan: D(dig), D(dig), R(air).",
        "Calc:",
        "1. D -> (6,4) Cost 3 (Fuel 15)",
        "2. D -> (6,5) Cost 3 (Fuel 12)",
        "3. R -> (7,5) Cost 1.5 (Fuel 10.5)",
        "Result: Ends at (7,5) with Fuel 10.5. Safe.",
        "</self_reflection>",
        "<action_to_take>Dig down twice to reach dirt/ore, then move right into the air pocket.</action_to_take>",
        "<execution>MOVE:D MOVE:D MOVE:R</execution>",
    ]
)


@lru_cache(maxsize=8)
def load_system_prompt(path: Optional[str] = None) -> str:
    """Return the system prompt, preferring an override file when configured."""
    if path:
        prompt_path = Path(path)
        if prompt_path.is_file():
            return prompt_path.read_text(encoding="utf-8")
    return system_prompt_v1


def few_shot_messages() -> List[Dict[str, str]]:
    return [
        {"role": "user", "content": example_user_message},
        {"role": "assistant", "content": example_assistant_output},
    ]


def format_validation_error(execution_text: Optional[str], plan_length: int) -> str:
    """Correction instructions sent back after a malformed ``<execution>`` block."""
    current = json.dumps(execution_text) if execution_text else "<missing>"
    return "\n".join(
        [
            "Your last response did not format the <execution> block correctly.",
            f"Current <execution> content: {current}",
            "Required format:",
            f"- <execution> must contain 1 to {plan_length} action tokens separated by spaces.",
            f"- Token formats: {TOKEN_GRAMMAR}.",
            "- Example: <execution>MOVE:D MOVE:D MOVE:L</execution>",
        ]
    )


__all__ = [
    "EXAMPLE_PAYLOAD",
    "example_assistant_output",
    "example_user_message",
    "few_shot_messages",
    "format_validation_error",
    "load_system_prompt",
    "system_prompt_v1",
]
