from __future__ import annotations

import json

from miner_gym.planner.run.session_log import API_ERRORS_LOG, LLM_LOG, SessionLog, normalize_level, truncate_head


def test_directory_named_after_session(tmp_path) -> None:
    session_log = SessionLog(tmp_path, "web/tab 1")
    assert session_log.directory.parent == tmp_path / "sessions"
    assert session_log.directory.name.endswith("_web_tab_1")
    assert ":" not in session_log.directory.name


def test_lines_are_appended_per_file(tmp_path) -> None:
    session_log = SessionLog(tmp_path, "s")
    session_log.info("LLM request", {"planLength": 3})
    session_log.warn("retrying")
    session_log.error("OpenRouter request failed", {"error": "boom"}, file_name=API_ERRORS_LOG)

    lines = session_log.read_lines(LLM_LOG)
    assert len(lines) == 2
    assert lines[0].endswith('[INFO] LLM request {"planLength": 3}')
    assert lines[1].endswith("[WARN] retrying")
    errors = session_log.read_lines(API_ERRORS_LOG)
    assert errors[0].endswith('[ERROR] OpenRouter request failed {"error": "boom"}')


def test_conversation_is_rewritten(tmp_path) -> None:
    session_log = SessionLog(tmp_path, "s")
    session_log.write_conversation([{"role": "user", "content": "a"}])
    session_log.write_conversation([{"role": "user", "content": "a"}, {"role": "assistant", "content": "b"}])

    stored = json.loads((session_log.directory / "conversation.json").read_text(encoding="utf-8"))
    assert [m["role"] for m in stored] == ["user", "assistant"]


def test_missing_file_reads_empty(tmp_path) -> None:
    assert SessionLog(tmp_path, "s").read_lines("nope.log") == []


def test_helpers() -> None:
    assert normalize_level("warning") == "WARN"
    assert normalize_level("trace") == "INFO"
    assert truncate_head("abcdef", 3) == "abc"
    assert truncate_head("abc", 10) == "abc"
