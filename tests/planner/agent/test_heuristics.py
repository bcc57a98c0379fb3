from __future__ import annotations

from miner_gym.planner.agent import heuristics
from miner_gym.planner.agent.memory import SessionMemory
from miner_gym.planner.env.state import parse_state


def test_fuel_hint_at_surface(make_state) -> None:
    hint = heuristics.build_fuel_hint(parse_state(make_state()))

    assert hint["stationX"] == 6
    assert (hint["returnDx"], hint["returnDy"]) == (4, 0)
    assert hint["estReturnFuel"] == 6.0
    assert hint["buffer"] == 8
    assert hint["shouldReturn"] is False
    assert hint["turnsLeftMax"] == 40
    assert hint["turnsLeftAir"] == 26
    assert hint["turnsLeftDig"] == 10
    assert hint["turnsLeftProbable"] == 10
    assert hint["turnsLeftUp"] == 13
    assert hint["turnsLeftWorst"] == 8


def test_fuel_hint_recommends_return_when_deep(make_state) -> None:
    state = parse_state(
        make_state(pos={"x": 6, "y": 11}, fuel={"cur": 30}, stations={"fuel": {"x": 6, "y": 1}})
    )
    hint = heuristics.build_fuel_hint(state)
    assert hint["returnDy"] == 10
    assert hint["estReturnFuel"] == 30
    assert hint["shouldReturn"] is True


def test_fuel_hint_uses_rule_costs(make_state) -> None:
    state = parse_state(
        make_state(
            pos={"x": 9, "y": 5},
            rules={"baseTurnFuel": 2, "digFuelBase": {"dirt": 4, "lava": 6}},
        )
    )
    hint = heuristics.build_fuel_hint(state)
    # 4 rows * (2 + 2) + 3 cols * (2 + 4 + 1)
    assert hint["estReturnFuel"] == 37
    assert hint["turnsLeftWorst"] == 40 // 9


def test_turns_left_never_divides_by_zero(make_state) -> None:
    state = parse_state(make_state(rules={"baseTurnFuel": 0}))
    hint = heuristics.build_fuel_hint(state)
    assert hint["turnsLeftMax"] == 40
    assert hint["turnsLeftAir"] == 40


def test_shop_hint_defaults(make_state) -> None:
    hint = heuristics.build_shop_hint(parse_state(make_state()))
    assert hint == {"shopX": 27, "returnDx": 17, "returnDy": 0, "estReturnFuel": 25.5}


def test_shop_hint_uses_station_position(make_state) -> None:
    state = parse_state(make_state(pos={"x": 20, "y": 3}, stations={"shop": {"x": 22, "y": 1}}))
    hint = heuristics.build_shop_hint(state)
    assert hint["shopX"] == 22
    assert hint["estReturnFuel"] == 2 * 3 + 2 * 4


def _trail(make_state, positions):
    session = SessionMemory(id="trail")
    for turn, (x, y) in enumerate(positions):
        session.update(parse_state(make_state(turn=turn, pos={"x": x, "y": y})))
    return session


def test_behavior_needs_three_samples(make_state) -> None:
    assert heuristics.analyze_behavior(_trail(make_state, [(1, 1), (1, 2)])) is None


def test_behavior_detects_stuck(make_state) -> None:
    note = heuristics.analyze_behavior(_trail(make_state, [(4, 4)] * 5))
    assert note["stuck"] is not None
    assert note["oscillating"] is None
    assert note["depthNote"] is not None


def test_behavior_detects_oscillation(make_state) -> None:
    note = heuristics.analyze_behavior(_trail(make_state, [(4, 4), (5, 4)] * 3))
    assert note["stuck"] is None
    assert "4,4" in note["oscillating"] and "5,4" in note["oscillating"]


def test_behavior_quiet_when_descending(make_state) -> None:
    note = heuristics.analyze_behavior(_trail(make_state, [(4, y) for y in range(2, 12)]))
    assert note == {"stuck": None, "oscillating": None, "depthNote": None}


def test_blocked_dirs(make_state) -> None:
    scan = ["......", "..r...", "...S..", "......", "......", "......"]
    assert heuristics.blocked_dirs_from_scan(parse_state(make_state(localScan=scan))) == ["U", "R"]
    assert heuristics.blocked_dirs_from_scan(parse_state(make_state())) is None
    assert heuristics.blocked_dirs_from_scan(parse_state(make_state(localScan=["rr"]))) is None


def test_scan_tiles_are_absolute(make_state) -> None:
    tiles = heuristics.build_scan_tiles(parse_state(make_state()))
    assert {"x": 11, "y": 1, "t": "o"} in tiles
    assert len(tiles) == 5


def test_upgrade_reminder(make_state) -> None:
    session = SessionMemory(id="s", fuel_runs=2)
    assert heuristics.upgrade_reminder(session, parse_state(make_state())) == heuristics.UPGRADE_REMINDER_TEXT
    assert heuristics.upgrade_reminder(session, parse_state(make_state(fuel={"max": 180}))) is None
    session.fuel_runs = 1
    assert heuristics.upgrade_reminder(session, parse_state(make_state())) is None
