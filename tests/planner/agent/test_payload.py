from __future__ import annotations

import json

from miner_gym.planner.agent.memory import SessionMemory
from miner_gym.planner.agent.payload import build_plan_context, summarize_for_history
from miner_gym.planner.env.state import parse_state


def test_context_wire_shape(make_state) -> None:
    session = SessionMemory(id="s")
    state = parse_state(make_state(turn=4, drill=1.5))
    session.update(state)
    context = build_plan_context(session, state, 3, {"active": True})

    wire = context.to_wire()
    assert wire["planLength"] == 3
    assert wire["turnsElapsed"] == 4
    assert wire["fuelNavigator"] == {"active": True}
    assert wire["state"]["atSurface"] is True
    assert wire["state"]["drill"] == 1.5
    assert len(wire["memory"]["knownWindow"]) == 12
    assert wire["memory"]["visitedTail"] == [{"x": 10, "y": 1, "turn": 4}]
    assert wire["memory"]["bounds"] == {"minX": 8, "maxX": 13, "minY": -1, "maxY": 4}
    assert wire["behaviorNote"] is None
    assert wire["blockedDirs"] is None
    assert wire["fuelRuns"] == 0


def test_compact_json(make_state) -> None:
    session = SessionMemory(id="s")
    state = parse_state(make_state())
    session.update(state)
    text = build_plan_context(session, state, 2).to_json()
    assert ", " not in text and ": " not in text
    assert json.loads(text)["planLength"] == 2


def test_history_summary_drops_map_data(make_state) -> None:
    session = SessionMemory(id="s")
    state = parse_state(make_state())
    session.update(state)
    summary = json.loads(summarize_for_history(build_plan_context(session, state, 2)))

    assert "memory" not in summary
    assert "knownTiles" not in summary and "scanTiles" not in summary
    assert "localScan" not in summary["state"]
    assert summary["fuelHint"]["stationX"] == 6
    assert summary["state"]["fuel"] == {"cur": 40, "max": 60}
