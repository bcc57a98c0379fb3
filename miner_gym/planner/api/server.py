"""FastAPI server exposing the planner to the browser game."""

from __future__ import annotations

from contextlib import asynccontextmanager
from functools import lru_cache
from typing import Any, AsyncIterator, Dict, Optional

import structlog
from fastapi import Depends, FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from ..agent.llm_openrouter import echo_system_prompt, probe
from ..agent.planner import PlanOrchestrator, PlanResponse
from ..config import get_settings
from ..env.state import GameState
from ..logging_setup import setup_logging
from ..run.session_log import AGENT_LOG, APP_LOG, normalize_level
from .schemas import ClientLogRequest, ModelInfo, PlanRequest, PromptTestRequest


log = structlog.get_logger()


@lru_cache(maxsize=1)
def get_orchestrator() -> PlanOrchestrator:
    return PlanOrchestrator(get_settings())


@asynccontextmanager
async def _lifespan(_app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    setup_logging(settings)
    log.info("planner.startup", model=settings.OPENROUTER_MODEL, key_configured=bool(settings.OPENROUTER_API_KEY))
    yield


app = FastAPI(title="miner-gym planner API", lifespan=_lifespan)


TEST_AGENT_STATE: Dict[str, Any] = {
    "turn": 0,
    "pos": {"x": 10, "y": 1, "depth": 1},
    "fuel": {"cur": 40, "max": 60},
    "hull": {"cur": 35, "max": 40},
    "cargo": {"cur": 2, "cap": 12},
    "money": 120,
    "atSurface": True,
    "atFuelStation": True,
    "atUpgradeShop": False,
    "drill": 1.0,
    "goal": {"x": 10, "y": 24, "mined": False},
    "localScan": ["......", "..dd..", "..do..", "..d...", "......", "......"],
    "rules": {"noDigUp": False, "upRequiresAir": False, "lavaDamage": 8, "baseTurnFuel": 1},
}


@app.exception_handler(RequestValidationError)
async def _invalid_body(request: Request, exc: RequestValidationError) -> JSONResponse:
    log.warning("request.invalid", path=request.url.path, errors=exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


def _forward_log(orchestrator: PlanOrchestrator, payload: ClientLogRequest, file_name: str, default_message: str) -> None:
    meta = payload.meta if isinstance(payload.meta, dict) else {}
    session_id: Optional[str] = payload.session_id or meta.get("sessionId")
    message = payload.message or default_message
    session = orchestrator.registry.get(session_id)
    data = {"message": message, **meta}
    label = "CLIENT" if file_name == APP_LOG else "AGENT"
    if session.log is not None:
        session.log.append(normalize_level(payload.level), label, data, file_name=file_name)
    else:
        log.info(label.lower(), session_id=session.id, data=data)


@app.get("/health", response_class=PlainTextResponse)
async def health() -> str:
    return "ok"


@app.get("/llm-model", response_model=ModelInfo)
async def llm_model(orchestrator: PlanOrchestrator = Depends(get_orchestrator)) -> ModelInfo:
    return ModelInfo(model=orchestrator.model)


@app.get("/test-openrouter")
async def test_openrouter(orchestrator: PlanOrchestrator = Depends(get_orchestrator)) -> JSONResponse:
    log.info("openrouter.probe.start")
    result = await probe(orchestrator.client, orchestrator.settings)
    if result["ok"]:
        log.info("openrouter.probe.ok", model=result["model"], elapsed_ms=result["elapsedMs"])
    else:
        log.error("openrouter.probe.failed", model=result["model"], error=result.get("error"))
    return JSONResponse(result, status_code=200 if result["ok"] else 502)


@app.post("/test-openrouter")
async def test_system_prompt(
    payload: PromptTestRequest,
    orchestrator: PlanOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    log.info("openrouter.prompt_test.start", input_preview=(payload.input or "")[:200])
    result = await echo_system_prompt(orchestrator.client, payload.input, orchestrator.settings)
    return JSONResponse(result, status_code=200 if result["ok"] else 502)


@app.post("/client-log", status_code=204)
async def client_log(payload: ClientLogRequest, orchestrator: PlanOrchestrator = Depends(get_orchestrator)) -> Response:
    _forward_log(orchestrator, payload, APP_LOG, "Client log")
    return Response(status_code=204)


@app.post("/agent-log", status_code=204)
async def agent_log(payload: ClientLogRequest, orchestrator: PlanOrchestrator = Depends(get_orchestrator)) -> Response:
    _forward_log(orchestrator, payload, AGENT_LOG, "Agent log")
    return Response(status_code=204)


@app.post("/plan", response_model=PlanResponse)
async def plan(payload: PlanRequest, orchestrator: PlanOrchestrator = Depends(get_orchestrator)) -> Any:
    fuel_navigator = (
        payload.fuel_navigator.model_dump(mode="json", by_alias=True) if payload.fuel_navigator else None
    )
    try:
        return await orchestrator.plan(payload.state, payload.plan_length, payload.session_id, fuel_navigator)
    except Exception as exc:
        log.error("plan.failed", error=str(exc))
        return JSONResponse(status_code=500, content={"error": "LLM error", "detail": str(exc)})


@app.get("/test-agent")
async def test_agent(orchestrator: PlanOrchestrator = Depends(get_orchestrator)) -> JSONResponse:
    try:
        result = await orchestrator.plan(GameState.model_validate(TEST_AGENT_STATE), 3, "test", None)
    except Exception as exc:
        log.error("test_agent.failed", error=str(exc))
        return JSONResponse(status_code=500, content={"ok": False, "error": str(exc)})
    return JSONResponse({"ok": True, "result": result.model_dump(mode="json")})


__all__ = ["TEST_AGENT_STATE", "app", "get_orchestrator"]
