"""Command-line utilities for the miner-gym planner."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from .agent.fake_llm import FakeChatClient
from .agent.planner import PlanOrchestrator
from .api.server import TEST_AGENT_STATE, app as fastapi_app
from .config import get_settings
from .env.state import parse_state
from .logging_setup import redact_settings, setup_logging


app = typer.Typer(name="miner-gym")


@app.command()
def api(host: Optional[str] = None, port: Optional[int] = None, reload: bool = False) -> None:
    """Start the planner HTTP server."""

    settings = get_settings()
    uvicorn.run(
        "miner_gym.planner.api.server:app",
        host=host or settings.HOST,
        port=port or settings.PORT,
        reload=reload,
    )


@app.command()
def routes() -> None:
    """List API routes for sanity checking."""

    paths = sorted(route.path for route in fastapi_app.routes)
    for path in paths:
        typer.echo(path)


@app.command("show-config")
def show_config() -> None:
    """Print the effective configuration with secrets redacted."""

    typer.echo(json.dumps(redact_settings(get_settings()), indent=2))


@app.command()
def plan(
    state_file: Optional[Path] = typer.Argument(None, help="JSON file holding a game state."),
    plan_length: int = 3,
    session_id: str = "cli",
    fake: bool = typer.Option(False, help="Use the offline fake model instead of OpenRouter."),
) -> None:
    """Request a single plan and print the response as JSON."""

    settings = get_settings()
    setup_logging(settings)
    if state_file is not None:
        try:
            raw = json.loads(state_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            typer.echo(f"Error: cannot read state file: {exc}")
            raise typer.Exit(1)
    else:
        raw = TEST_AGENT_STATE
    try:
        state = parse_state(raw.get("state", raw) if isinstance(raw, dict) else raw)
    except (TypeError, ValueError) as exc:
        typer.echo(f"Error: invalid state: {exc}")
        raise typer.Exit(1)

    orchestrator = PlanOrchestrator(settings, client=FakeChatClient()) if fake else PlanOrchestrator(settings)
    response = asyncio.run(orchestrator.plan(state, plan_length, session_id))
    typer.echo(json.dumps(response.model_dump(mode="json"), indent=2))


if __name__ == "__main__":  # pragma: no cover
    app()
