from __future__ import annotations

import json

from miner_gym.planner.agent.prompts import (
    few_shot_messages,
    format_validation_error,
    load_system_prompt,
    system_prompt_v1,
)


def test_few_shot_pair_shapes() -> None:
    user, assistant = few_shot_messages()
    assert user["role"] == "user" and assistant["role"] == "assistant"
    payload = json.loads(user["content"].split("\n", 1)[1])
    assert payload["planLength"] == 3
    assert "<execution>MOVE:D MOVE:D MOVE:R</execution>" in assistant["content"]


def test_system_prompt_override(tmp_path) -> None:
    custom = tmp_path / "prompt.txt"
    custom.write_text("Dig carefully.", encoding="utf-8")

    assert load_system_prompt(str(custom)) == "Dig carefully."
    assert load_system_prompt(str(tmp_path / "missing.txt")) == system_prompt_v1
    assert load_system_prompt(None) == system_prompt_v1


def test_validation_error_quotes_execution() -> None:
    message = format_validation_error("MOVE:Z", 4)
    assert 'Current <execution> content: "MOVE:Z"' in message
    assert "1 to 4 action tokens" in message
    assert "UPGRADE:FUEL" in message


def test_validation_error_for_missing_block() -> None:
    assert "Current <execution> content: <missing>" in format_validation_error(None, 2)
