"""HTTP server for the WebAgent dashboard."""

from __future__ import annotations

import logging
from threading import Lock

from fastapi import BackgroundTasks, FastAPI, HTTPException
from fastapi.responses import HTMLResponse, JSONResponse

from webagent import __version__
from webagent.browser import MockBrowser, get_page_cache
from webagent.config import ConfigurationError, Settings, configure_logging, get_settings
from webagent.gemini import GeminiService
from webagent.runner import AgentRun, AgentService
from webagent.schemas import AgentSnapshot, DeployRequest, ErrorResponse, HealthResponse
from webagent.ui import render_page

logger = logging.getLogger(__name__)

# Configure logging
configure_logging(get_settings().log_level)

app = FastAPI(
    title="WebAgent",
    description="Browser UI for a goal-driven autonomous agent demo",
    version=__version__,
)


# --- Agent state ---

# One agent at a time
_agent: AgentRun | None = None
_deploying = False
_agent_lock = Lock()


def build_service(settings: Settings) -> AgentService:
    """Create the generative service used by new runs."""
    return GeminiService(settings)


def _current_snapshot() -> AgentSnapshot:
    with _agent_lock:
        agent = _agent
    return agent.snapshot() if agent is not None else AgentSnapshot(max_steps=get_settings().max_steps)


# --- HTTP Endpoints ---


@app.get("/", response_class=HTMLResponse)
def index() -> HTMLResponse:
    """Render the setup form or the agent dashboard."""
    return HTMLResponse(render_page(_current_snapshot()))


@app.post("/api/deploy", response_model=AgentSnapshot)
def deploy(request: DeployRequest, background_tasks: BackgroundTasks) -> AgentSnapshot:
    """Plan the goal into tasks and start the agent loop.

    Args:
        request: DeployRequest with agent name and goal

    Returns:
        AgentSnapshot right after planning
    """
    global _agent, _deploying

    logger.info(f"Received deploy request: name={request.name!r}")

    settings = get_settings()
    try:
        service = build_service(settings)
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))

    with _agent_lock:
        if _deploying or (_agent is not None and _agent.deployed):
            raise HTTPException(
                status_code=409,
                detail="An agent is already deployed. Reset it before deploying another.",
            )
        _deploying = True
        run = AgentRun(
            service,
            browser=MockBrowser(get_page_cache()),
            max_steps=settings.max_steps,
        )
        _agent = run

    try:
        deployed = run.deploy(request.name, request.goal)
    finally:
        with _agent_lock:
            _deploying = False

    if deployed:
        background_tasks.add_task(run.run)

    logger.info(f"Deploy finished: name={request.name!r}, deployed={deployed}")
    return run.snapshot()


@app.get("/api/state", response_model=AgentSnapshot)
def state() -> AgentSnapshot:
    """Return the current agent view-model."""
    return _current_snapshot()


@app.post("/api/stop", response_model=AgentSnapshot)
def stop() -> AgentSnapshot:
    """Stop the running agent, discarding any in-flight result."""
    with _agent_lock:
        agent = _agent
    if agent is not None:
        agent.cancel()
    return _current_snapshot()


@app.post("/api/reset", response_model=AgentSnapshot)
def reset() -> AgentSnapshot:
    """Stop the current agent and return to the setup form."""
    global _agent

    with _agent_lock:
        if _deploying:
            raise HTTPException(status_code=409, detail="A deployment is in progress.")
        agent = _agent
        _agent = None
    if agent is not None:
        agent.cancel()
    return _current_snapshot()


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    """Check server and Gemini availability."""
    settings = get_settings()
    with _agent_lock:
        running = _agent is not None and _agent.running

    if not settings.api_key:
        gemini_status = "unconfigured"
    elif GeminiService(settings).check_health():
        gemini_status = "healthy"
    else:
        gemini_status = "unhealthy"

    return HealthResponse(
        server="healthy",
        gemini=gemini_status,  # type: ignore
        agent_running=running,
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request, exc: Exception) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            detail=str(exc),
            error_code="INTERNAL_ERROR",
        ).model_dump(),
    )
