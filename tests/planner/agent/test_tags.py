from __future__ import annotations

from miner_gym.planner.agent.prompts import example_assistant_output
from miner_gym.planner.agent.tags import extract_execution_text, extract_sections, extract_tagged_text


def test_example_output_sections() -> None:
    sections = extract_sections(example_assistant_output)
    assert sections.self_reflection.startswith("Start: Fuel 18")
    assert sections.action_to_take.startswith("Dig down twice")
    assert sections.execution == "MOVE:D MOVE:D MOVE:R"


def test_tags_are_case_insensitive() -> None:
    assert extract_execution_text("<EXECUTION> MOVE:L </Execution>") == "MOVE:L"


def test_unterminated_execution_runs_to_end() -> None:
    text = "<self_reflection>ok</self_reflection>\n<execution>MOVE:D MOVE:R\n"
    assert extract_execution_text(text) == "MOVE:D MOVE:R"


def test_missing_tags_return_none() -> None:
    assert extract_execution_text("I will dig down.") is None
    assert extract_tagged_text("no tags here", "action_to_take") is None
    assert extract_execution_text(None) is None


def test_empty_body_counts_as_missing() -> None:
    assert extract_execution_text("<execution>   </execution>") is None
    assert extract_tagged_text("<action_to_take></action_to_take>", "action_to_take") is None


def test_first_closed_block_wins() -> None:
    text = "<execution>MOVE:U</execution> later <execution>MOVE:D</execution>"
    assert extract_execution_text(text) == "MOVE:U"


def test_nested_tags_stop_at_first_close() -> None:
    text = "<execution>MOVE:D <execution>MOVE:L</execution> MOVE:R</execution>"
    assert extract_execution_text(text) == "MOVE:D <execution>MOVE:L"


def test_sections_are_independent() -> None:
    sections = extract_sections("<execution>SURFACE_OPS</execution>")
    assert sections.self_reflection is None
    assert sections.action_to_take is None
    assert sections.execution == "SURFACE_OPS"
