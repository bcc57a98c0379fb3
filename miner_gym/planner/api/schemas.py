"""Pydantic schemas for the planner HTTP API."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..agent.planner import PlanResponse
from ..env.state import GameState


class FuelNavigatorPayload(BaseModel):
    """Client-side fuel navigator hint forwarded verbatim to the model."""

    active: bool
    fuel_pct: float = Field(..., alias="fuelPct")
    est_return_fuel: float = Field(..., alias="estReturnFuel")
    error_rate: float = Field(..., alias="errorRate")
    risk: float
    path_dirs: List[str] = Field(default_factory=list, alias="pathDirs")
    next_actions: Optional[List[str]] = Field(default=None, alias="nextActions")
    message: Optional[str] = None

    model_config = {"extra": "allow", "populate_by_name": True}


class PlanRequest(BaseModel):
    """Request payload for ``POST /plan``."""

    plan_length: int = Field(..., alias="planLength")
    state: GameState
    session_id: Optional[str] = Field(default=None, alias="sessionId")
    fuel_navigator: Optional[FuelNavigatorPayload] = Field(default=None, alias="fuelNavigator")

    model_config = {"populate_by_name": True}


class PromptTestRequest(BaseModel):
    input: Optional[str] = None


class ClientLogRequest(BaseModel):
    """Log line forwarded from the browser client."""

    level: str = "INFO"
    message: Optional[str] = None
    meta: Any = None
    session_id: Optional[str] = Field(default=None, alias="sessionId")

    model_config = {"populate_by_name": True}


class ModelInfo(BaseModel):
    model: str


__all__ = [
    "ClientLogRequest",
    "FuelNavigatorPayload",
    "ModelInfo",
    "PlanRequest",
    "PlanResponse",
    "PromptTestRequest",
]
