from __future__ import annotations

import json

from typer.testing import CliRunner

from miner_gym.planner import cli


runner = CliRunner()


def test_routes_command() -> None:
    result = runner.invoke(cli.app, ["routes"])
    assert result.exit_code == 0
    assert "/plan" in result.output.splitlines()


def test_show_config_redacts(monkeypatch) -> None:
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-secret")
    cli.get_settings.cache_clear()
    try:
        result = runner.invoke(cli.app, ["show-config"])
    finally:
        cli.get_settings.cache_clear()
    assert result.exit_code == 0
    assert "sk-or-secret" not in result.output
    assert '"OPENROUTER_API_KEY": "[REDACTED]"' in result.output


def test_plan_with_fake_model(monkeypatch, tmp_path, make_state) -> None:
    monkeypatch.setattr(cli, "setup_logging", lambda settings: None)
    state_file = tmp_path / "state.json"
    state_file.write_text(json.dumps({"state": make_state()}), encoding="utf-8")

    result = runner.invoke(cli.app, ["plan", str(state_file), "--plan-length", "2", "--fake"])

    assert result.exit_code == 0
    assert '"note": "openrouter"' in result.output
    assert '"dir": "D"' in result.output


def test_plan_rejects_bad_state_file(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(cli, "setup_logging", lambda settings: None)
    state_file = tmp_path / "state.json"
    state_file.write_text(json.dumps({"turn": 1}), encoding="utf-8")

    result = runner.invoke(cli.app, ["plan", str(state_file)])

    assert result.exit_code == 1
    assert "invalid state" in result.output
