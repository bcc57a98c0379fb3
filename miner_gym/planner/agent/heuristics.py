"""Cheap cost estimates and movement diagnostics handed to the model as hints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..env.state import EMPTY_TILE, ROCK_TILE, SCAN_CENTER, SURFACE_TILE, GameState
from .memory import SessionMemory


DEFAULT_FUEL_STATION_X = 6
DEFAULT_SHOP_X = 27
SURFACE_ROW = 1
UP_THRUST_FUEL = 2
AIR_MOVE_FUEL = 0.5
DEFAULT_DIG_FUEL = 2
DEFAULT_LAVA_DIG_FUEL = 3
RETURN_FUEL_BUFFER = 8
BEHAVIOR_WINDOW = 8
BEHAVIOR_MIN_SAMPLES = 3
UPGRADE_REMINDER_RUNS = 2
UPGRADE_REMINDER_FUEL_CEILING = 180

UPGRADE_REMINDER_TEXT = (
    "You have returned to the fuel station multiple times; prioritize buying a FUEL "
    "upgrade at the shop to reach deeper depths."
)

_BLOCKING_TILES = {ROCK_TILE, SURFACE_TILE}


@dataclass(frozen=True)
class CostModel:
    """Per-turn fuel costs derived from the state's rules."""

    base_turn_fuel: float
    dig_fuel: float
    lava_dig_fuel: float
    up_thrust_fuel: float = UP_THRUST_FUEL
    air_move_fuel: float = AIR_MOVE_FUEL

    @classmethod
    def from_state(cls, state: GameState) -> "CostModel":
        rules = state.rules
        base = rules.base_turn_fuel if rules and rules.base_turn_fuel is not None else 1
        dig_base = (rules.dig_fuel_base if rules else None) or {}
        dig = dig_base.get("dirt")
        lava = dig_base.get("lava")
        return cls(
            base_turn_fuel=base,
            dig_fuel=dig if _is_number(dig) else DEFAULT_DIG_FUEL,
            lava_dig_fuel=lava if _is_number(lava) else DEFAULT_LAVA_DIG_FUEL,
        )

    @property
    def vertical(self) -> float:
        # climbing always needs thrust
        return self.base_turn_fuel + self.up_thrust_fuel

    def horizontal(self, y: int) -> float:
        if y > SURFACE_ROW:
            return self.base_turn_fuel + self.dig_fuel + 1
        return self.base_turn_fuel + self.air_move_fuel

    def return_cost(self, state: GameState, target_x: int) -> Dict[str, Any]:
        return_dy = max(0, state.pos.y - SURFACE_ROW)
        return_dx = abs(state.pos.x - target_x)
        est = return_dy * self.vertical + return_dx * self.horizontal(state.pos.y)
        return {"returnDx": return_dx, "returnDy": return_dy, "estReturnFuel": est}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _turns_left(fuel: float, per_turn: float) -> int:
    return int(fuel // max(1, per_turn))


def build_fuel_hint(state: GameState) -> Dict[str, Any]:
    """Estimate the fuel needed to reach the fuel station and how long fuel lasts."""

    station = state.stations.fuel if state.stations and state.stations.fuel else None
    station_x = station.x if station else DEFAULT_FUEL_STATION_X
    costs = CostModel.from_state(state)
    ret = costs.return_cost(state, station_x)
    fuel_cur = state.fuel.cur
    turns_dig = _turns_left(fuel_cur, costs.base_turn_fuel + costs.dig_fuel + 1)
    return {
        "stationX": station_x,
        **ret,
        "buffer": RETURN_FUEL_BUFFER,
        "fuelCur": fuel_cur,
        "fuelMax": state.fuel.max,
        "shouldReturn": fuel_cur <= ret["estReturnFuel"] + RETURN_FUEL_BUFFER,
        "turnsLeftMax": _turns_left(fuel_cur, costs.base_turn_fuel),
        "turnsLeftAir": _turns_left(fuel_cur, costs.base_turn_fuel + costs.air_move_fuel),
        "turnsLeftDig": turns_dig,
        "turnsLeftProbable": turns_dig,
        "turnsLeftUp": _turns_left(fuel_cur, costs.vertical),
        "turnsLeftWorst": _turns_left(fuel_cur, costs.base_turn_fuel + costs.lava_dig_fuel + 1),
    }


def build_shop_hint(state: GameState) -> Dict[str, Any]:
    shop = state.stations.shop if state.stations and state.stations.shop else None
    shop_x = shop.x if shop else DEFAULT_SHOP_X
    ret = CostModel.from_state(state).return_cost(state, shop_x)
    return {"shopX": shop_x, **ret}


def analyze_behavior(session: SessionMemory) -> Optional[Dict[str, Optional[str]]]:
    """Flag stuck, oscillating or depth-stalled movement over the recent trail."""

    tail = session.visited[-BEHAVIOR_WINDOW:]
    if len(tail) < BEHAVIOR_MIN_SAMPLES:
        return None
    unique: List[str] = []
    for visit in tail:
        key = f"{visit.x},{visit.y}"
        if key not in unique:
            unique.append(key)

    stuck = None
    if len(unique) == 1:
        stuck = (
            f"Position unchanged for last {len(tail)} turns; likely blocked moves "
            "(rock/surface) or insufficient fuel for U thrust."
        )
    oscillating = None
    if len(unique) == 2:
        oscillating = (
            f"Oscillating between {unique[0]} and {unique[1]} over last {len(tail)} turns; "
            "may be bouncing off obstacles."
        )
    depth_delta = tail[-1].y - tail[0].y
    depth_note = None
    if abs(depth_delta) <= 1:
        depth_note = f"No depth progress over last {len(tail)} turns (dy={depth_delta})."
    return {"stuck": stuck, "oscillating": oscillating, "depthNote": depth_note}


def blocked_dirs_from_scan(state: GameState) -> Optional[List[str]]:
    if len(state.local_scan) <= SCAN_CENTER:
        return None
    neighbours = (("U", 0, -1), ("D", 0, 1), ("L", -1, 0), ("R", 1, 0))
    blocked = [name for name, dx, dy in neighbours if state.scan_tile(dx, dy) in _BLOCKING_TILES]
    return blocked or None


def build_scan_tiles(state: GameState) -> List[Dict[str, Any]]:
    """Absolute coordinates of every non-empty tile in this tick's scan."""
    base_x = state.pos.x - SCAN_CENTER
    base_y = state.pos.y - SCAN_CENTER
    tiles: List[Dict[str, Any]] = []
    for ry, row in enumerate(state.local_scan):
        if not isinstance(row, str):
            continue
        for rx, tile in enumerate(row):
            if tile == EMPTY_TILE:
                continue
            tiles.append({"x": base_x + rx, "y": base_y + ry, "t": tile})
    return tiles


def upgrade_reminder(session: SessionMemory, state: GameState) -> Optional[str]:
    if session.fuel_runs >= UPGRADE_REMINDER_RUNS and state.fuel.max < UPGRADE_REMINDER_FUEL_CEILING:
        return UPGRADE_REMINDER_TEXT
    return None


__all__ = [
    "CostModel",
    "RETURN_FUEL_BUFFER",
    "UPGRADE_REMINDER_TEXT",
    "analyze_behavior",
    "blocked_dirs_from_scan",
    "build_fuel_hint",
    "build_scan_tiles",
    "build_shop_hint",
    "upgrade_reminder",
]
