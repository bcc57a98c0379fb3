"""Per-session spatial memory and the registry that owns it."""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Literal, Optional, Tuple

from ..env.state import EMPTY_TILE, SCAN_CENTER, UNKNOWN_TILE, GameState
from ..run.session_log import SessionLog


DEFAULT_SESSION_ID = "default"
VISITED_LIMIT = 50
HISTORY_LIMIT = 200
DEFAULT_WINDOW_SIZE = 12
DEFAULT_KNOWN_TILES_LIMIT = 400

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class Visit:
    x: int
    y: int
    turn: int


@dataclass
class Bounds:
    min_x: int = 0
    max_x: int = 0
    min_y: int = 0
    max_y: int = 0

    def widen(self, x: int, y: int) -> None:
        self.min_x = min(self.min_x, x)
        self.max_x = max(self.max_x, x)
        self.min_y = min(self.min_y, y)
        self.max_y = max(self.max_y, y)

    def contains(self, x: int, y: int) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def to_wire(self) -> Dict[str, int]:
        return {"minX": self.min_x, "maxX": self.max_x, "minY": self.min_y, "maxY": self.max_y}


@dataclass(frozen=True)
class HistoryEntry:
    ts: str
    role: Role
    content: str

    def to_message(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class SessionMemory:
    """Everything remembered about one game session between plan requests."""

    id: str
    known: Dict[Tuple[int, int], str] = field(default_factory=dict)
    visited: List[Visit] = field(default_factory=list)
    bounds: Bounds = field(default_factory=Bounds)
    history: List[HistoryEntry] = field(default_factory=list)
    fuel_runs: int = 0
    last_at_station: bool = False
    log: Optional[SessionLog] = field(default=None, repr=False)
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def update(self, state: GameState) -> None:
        """Fold the local scan into the tile map and record the visit."""
        base_x = state.pos.x - SCAN_CENTER
        base_y = state.pos.y - SCAN_CENTER
        for ry, row in enumerate(state.local_scan):
            if not isinstance(row, str):
                continue
            for rx, tile in enumerate(row):
                self._remember(base_x + rx, base_y + ry, tile)

        self.visited.append(Visit(x=state.pos.x, y=state.pos.y, turn=state.turn))
        if len(self.visited) > VISITED_LIMIT:
            del self.visited[: len(self.visited) - VISITED_LIMIT]

    def _remember(self, x: int, y: int, tile: str) -> None:
        first = not self.known
        self.known[(x, y)] = tile
        if first:
            self.bounds = Bounds(min_x=x, max_x=x, min_y=y, max_y=y)
        else:
            self.bounds.widen(x, y)

    def memory_window(self, state: GameState, size: int = DEFAULT_WINDOW_SIZE) -> List[str]:
        """Render a ``size`` x ``size`` egocentric grid, ``?`` for unknown cells."""
        half = size // 2
        start_x = state.pos.x - half
        start_y = state.pos.y - half
        return [
            "".join(self.known.get((start_x + col, start_y + row), UNKNOWN_TILE) for col in range(size))
            for row in range(size)
        ]

    def known_tiles(self, limit: int = DEFAULT_KNOWN_TILES_LIMIT) -> List[Dict[str, object]]:
        tiles = [
            {"x": x, "y": y, "t": tile}
            for (x, y), tile in self.known.items()
            if tile not in (EMPTY_TILE, UNKNOWN_TILE)
        ]
        if len(tiles) > limit:
            tiles.sort(key=lambda item: (item["y"], item["x"]))
            return tiles[:limit]
        return tiles

    def visited_tail(self, count: int = 8) -> List[Dict[str, int]]:
        return [asdict(visit) for visit in self.visited[-count:]]

    def update_fuel_runs(self, state: GameState) -> None:
        """Count arrivals at the fuel station, ignoring ticks spent parked there."""
        if not state.at_fuel_station:
            self.last_at_station = False
            return
        if not self.last_at_station:
            self.fuel_runs += 1
            self.last_at_station = True

    def append_history(self, role: Role, content: str) -> None:
        ts = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        self.history.append(HistoryEntry(ts=ts, role=role, content=content))
        if len(self.history) > HISTORY_LIMIT:
            del self.history[: len(self.history) - HISTORY_LIMIT]
        if self.log is not None:
            self.log.write_conversation(asdict(entry) for entry in self.history)

    def history_messages(self) -> List[Dict[str, str]]:
        return [entry.to_message() for entry in self.history]


class SessionRegistry:
    """Owns every live ``SessionMemory``, evicting the least recently used."""

    def __init__(self, *, max_sessions: int = 256, logs_dir: Optional[Path] = None) -> None:
        if max_sessions <= 0:
            raise ValueError("max_sessions must be >= 1")
        self.max_sessions = max_sessions
        self.logs_dir = Path(logs_dir) if logs_dir is not None else None
        self._sessions: "OrderedDict[str, SessionMemory]" = OrderedDict()

    def get(self, session_id: Optional[str] = None) -> SessionMemory:
        """Return the memory for ``session_id``, creating it on first use."""
        key = session_id or DEFAULT_SESSION_ID
        session = self._sessions.get(key)
        if session is not None:
            self._sessions.move_to_end(key)
            return session
        session_log = SessionLog(self.logs_dir, key) if self.logs_dir is not None else None
        session = SessionMemory(id=key, log=session_log)
        self._sessions[key] = session
        while len(self._sessions) > self.max_sessions:
            self._sessions.popitem(last=False)
        return session

    def peek(self, session_id: str) -> Optional[SessionMemory]:
        return self._sessions.get(session_id)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def clear(self) -> None:
        self._sessions.clear()


__all__ = [
    "Bounds",
    "DEFAULT_SESSION_ID",
    "HISTORY_LIMIT",
    "HistoryEntry",
    "SessionMemory",
    "SessionRegistry",
    "VISITED_LIMIT",
    "Visit",
]
