"""Game state schema reported by the mining client each tick."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError


Number = Union[int, float]

# localScan is a 6x6 window with the player anchored at (2, 2).
SCAN_CENTER = 2
EMPTY_TILE = "."
UNKNOWN_TILE = "?"
ROCK_TILE = "r"
SURFACE_TILE = "S"


def _dump_model(model: BaseModel) -> Dict[str, Any]:
    """Return the wire (camelCase) representation, omitting unset optionals."""

    return model.model_dump(mode="json", by_alias=True, exclude_none=True)


class _WireModel(BaseModel):
    model_config = {
        "extra": "allow",
        "populate_by_name": True,
    }


class Position(_WireModel):
    x: int
    y: int
    depth: Number


class Gauge(_WireModel):
    """Current/max pair used for fuel and hull."""

    cur: Number
    max: Number


class Cargo(_WireModel):
    cur: Number
    cap: Number


class StationPosition(_WireModel):
    x: int
    y: int


class Stations(_WireModel):
    fuel: Optional[StationPosition] = None
    shop: Optional[StationPosition] = None


class Goal(_WireModel):
    x: int
    y: int
    mined: bool = False


class Rules(_WireModel):
    no_dig_up: Optional[bool] = Field(default=None, alias="noDigUp")
    up_requires_air: Optional[bool] = Field(default=None, alias="upRequiresAir")
    lava_damage: Optional[Number] = Field(default=None, alias="lavaDamage")
    base_turn_fuel: Optional[Number] = Field(default=None, alias="baseTurnFuel")
    dig_fuel_base: Optional[Dict[str, Any]] = Field(default=None, alias="digFuelBase")


class GameState(_WireModel):
    """Snapshot of the mining world for a single turn."""

    turn: int
    pos: Position
    fuel: Gauge
    hull: Gauge
    cargo: Cargo
    money: Number
    local_scan: List[Any] = Field(..., alias="localScan")
    at_surface: Optional[bool] = Field(default=None, alias="atSurface")
    at_fuel_station: Optional[bool] = Field(default=None, alias="atFuelStation")
    at_upgrade_shop: Optional[bool] = Field(default=None, alias="atUpgradeShop")
    drill: Optional[Number] = None
    goal: Optional[Goal] = None
    stations: Optional[Stations] = None
    rules: Optional[Rules] = None

    def scan_tile(self, dx: int, dy: int) -> Optional[str]:
        """Return the scan tile at an offset from the player, or None."""

        row_idx = SCAN_CENTER + dy
        col_idx = SCAN_CENTER + dx
        if row_idx < 0 or col_idx < 0 or row_idx >= len(self.local_scan):
            return None
        row = self.local_scan[row_idx]
        if not isinstance(row, str) or col_idx >= len(row):
            return None
        return row[col_idx]

    def to_wire(self) -> Dict[str, Any]:
        return _dump_model(self)


def parse_state(obj: Dict[str, Any] | GameState) -> GameState:
    """Validate a raw state payload and return the typed model."""
    if isinstance(obj, GameState):
        return obj
    if not isinstance(obj, dict):
        raise TypeError("State must be a dict")
    try:
        return GameState.model_validate(obj)
    except ValidationError as exc:
        raise ValueError(exc.errors(include_url=False)) from exc


def validate_state(obj: Any) -> bool:
    """Return True when ``obj`` carries every required state key with the right shape."""
    try:
        parse_state(obj)
    except (TypeError, ValueError):
        return False
    return True


def minimal_state() -> GameState:
    """Synthetic state used when nothing better is available."""

    return GameState(
        turn=0,
        pos=Position(x=0, y=0, depth=0),
        fuel=Gauge(cur=1, max=1),
        hull=Gauge(cur=1, max=1),
        cargo=Cargo(cur=0, cap=0),
        money=0,
        local_scan=[],
        at_fuel_station=False,
        at_upgrade_shop=False,
    )


__all__ = [
    "Cargo",
    "EMPTY_TILE",
    "GameState",
    "Gauge",
    "Goal",
    "Position",
    "ROCK_TILE",
    "Rules",
    "SCAN_CENTER",
    "SURFACE_TILE",
    "StationPosition",
    "Stations",
    "UNKNOWN_TILE",
    "minimal_state",
    "parse_state",
    "validate_state",
]
