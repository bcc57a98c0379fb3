from __future__ import annotations

import copy
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, Dict

import pytest


# Session logs from the module-level orchestrator must not land in the repo during tests.
_logs_root = Path(tempfile.mkdtemp(prefix="miner_gym_test_"))
os.environ.setdefault("LOGS_DIR", str(_logs_root))
os.environ.setdefault("MIN_REQUEST_GAP_MS", "0")
os.environ.pop("OPENROUTER_API_KEY", None)


BASE_STATE: Dict[str, Any] = {
    "turn": 0,
    "pos": {"x": 10, "y": 1, "depth": 1},
    "fuel": {"cur": 40, "max": 60},
    "hull": {"cur": 35, "max": 40},
    "cargo": {"cur": 0, "cap": 12},
    "money": 0,
    "atSurface": True,
    "atFuelStation": False,
    "atUpgradeShop": False,
    "localScan": ["......", "..dd..", "..do..", "..d...", "......", "......"],
}


def _merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(out.get(key), dict):
            out[key] = _merge(out[key], value)
        else:
            out[key] = value
    return out


@pytest.fixture
def make_state() -> Callable[..., Dict[str, Any]]:
    """Return a factory producing raw state dicts with nested overrides applied."""

    def _factory(**overrides: Any) -> Dict[str, Any]:
        return _merge(BASE_STATE, overrides)

    return _factory
