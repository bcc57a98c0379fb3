from __future__ import annotations

import pytest

from miner_gym.planner.env.state import GameState, minimal_state, parse_state, validate_state


def test_parse_state_keeps_wire_names(make_state) -> None:
    raw = make_state(stations={"fuel": {"x": 4, "y": 1}}, rules={"baseTurnFuel": 2, "digFuelBase": {"dirt": 3}})
    state = parse_state(raw)

    assert state.at_surface is True
    assert state.rules.base_turn_fuel == 2
    wire = state.to_wire()
    assert wire["localScan"] == raw["localScan"]
    assert wire["stations"] == {"fuel": {"x": 4, "y": 1}}
    assert "goal" not in wire


def test_unknown_fields_pass_through(make_state) -> None:
    state = parse_state(make_state(weather="dusty"))
    assert state.to_wire()["weather"] == "dusty"


def test_parse_state_is_identity_for_models(make_state) -> None:
    state = parse_state(make_state())
    assert parse_state(state) is state


@pytest.mark.parametrize("missing", ["turn", "pos", "fuel", "hull", "cargo", "money", "localScan"])
def test_required_keys(make_state, missing) -> None:
    raw = make_state()
    raw.pop(missing)
    assert validate_state(raw) is False
    with pytest.raises(ValueError):
        parse_state(raw)


def test_non_dict_state_is_rejected() -> None:
    with pytest.raises(TypeError):
        parse_state(["not", "a", "state"])
    assert validate_state(None) is False


def test_scan_tile_offsets(make_state) -> None:
    state = parse_state(make_state())
    assert state.scan_tile(0, 0) == "d"
    assert state.scan_tile(1, 0) == "o"
    assert state.scan_tile(-3, 0) is None
    assert state.scan_tile(0, 9) is None


def test_minimal_state() -> None:
    state = minimal_state()
    assert isinstance(state, GameState)
    assert state.fuel.cur == 1 and state.local_scan == []
