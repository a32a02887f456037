"""
Core API backend for textact.

This module exposes the ReACT agent over HTTP and WebSocket:
- **GET /health**  - liveness probe for health checks.
- **GET /tools** - registered tools and their parameter schemas.
- **GET /models**, **POST /models** - inspect or switch the model client.
- **POST /sessions** - create a new session, returns a session ID.
- **GET /sessions** - list all active sessions.
- **GET /sessions/{id}/stats** - message counts for a session.
- **DELETE /sessions/{id}** - clear a session's history.
- **POST /agent**   - multi-turn interaction: {"message": "...", "session_id": "..."}
- **WS /ws** - one session per connection, events streamed as JSON.
"""

import json
import logging
from typing import (
    Any,
    Dict,
    List,
)

from fastapi import (
    Depends,
    FastAPI,
    HTTPException,
    WebSocket,
    WebSocketDisconnect,
)
from fastapi.middleware.cors import CORSMiddleware

from textact.agent.agent_loop import ReactAgent
from textact.agent.llm_client import (
    available_providers,
    load_model,
)
from textact.agent.session import (
    SessionStore,
    handle_message,
)
from textact.api.models import (
    MessageRequest,
    MessageResponse,
    ModelInfo,
    ModelUpdateRequest,
    SessionResponse,
    SessionStatsResponse,
    ToolsResponse,
)
from textact.common import (
    AnsiColors,
    colored_print,
)
from textact.config import settings
from textact.core.schema import (
    AgentEvent,
    ClearedEvent,
    ErrorEvent,
)
from textact.tools import ToolRegistry
from textact.tools.builtin import build_default_registry

logger = logging.getLogger(__name__)

# Process-wide state shared by every session
registry = build_default_registry(serper_api_key=settings.SERPER_API_KEY)
sessions = SessionStore()
_agent: ReactAgent | None = None

app = FastAPI(title="textact API", version="0.1.0", description="Text-protocol ReACT agent API")

# Add CORS middleware to allow requests from browser clients
app.add_middleware(
    CORSMiddleware,
    allow_origins=[f"http://localhost:{settings.API_PORT}"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
def get_registry() -> ToolRegistry:
    return registry


def get_session_store() -> SessionStore:
    return sessions


def get_agent() -> ReactAgent:
    """Return the shared agent, creating the model client on first use."""
    global _agent  # pylint: disable=global-statement
    if _agent is None:
        _agent = ReactAgent(model=load_model(), registry=registry)
        logger.info("Loaded model %r", _agent.model)
    return _agent


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health", summary="Health check")
async def health() -> dict[str, str]:
    """Return a simple liveness payload."""
    return {"status": "ok"}


@app.get("/tools", response_model=ToolsResponse, summary="List registered tools")
async def list_tools(tools: ToolRegistry = Depends(get_registry)) -> ToolsResponse:
    """Describe every tool the model may call."""
    return ToolsResponse(tools=dict(tools.schemas()))


@app.get("/models", response_model=ModelInfo, summary="Current model")
async def get_model_info(agent: ReactAgent = Depends(get_agent)) -> ModelInfo:
    """Return the active provider and model name."""
    return ModelInfo(
        provider=agent.model.provider, model=agent.model.model_name, providers=available_providers()
    )


@app.post("/models", response_model=ModelInfo, summary="Switch model")
async def update_model(
    req: ModelUpdateRequest, agent: ReactAgent = Depends(get_agent)
) -> ModelInfo:
    """Replace the model client used by all sessions."""
    try:
        model = load_model(req.provider or agent.model.provider, req.model)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    agent.set_model(model)
    logger.info("Switched model to %r", model)
    return ModelInfo(provider=model.provider, model=model.model_name, providers=available_providers())


@app.post("/sessions", response_model=SessionResponse, summary="Create a new session")
async def create_session(store: SessionStore = Depends(get_session_store)) -> SessionResponse:
    """Create a new conversation session."""
    return SessionResponse(session_id=store.create().session_id)


@app.get("/sessions", response_model=List[str], summary="List active sessions")
async def list_sessions(store: SessionStore = Depends(get_session_store)) -> List[str]:
    """List all active session IDs."""
    return store.ids()


@app.get(
    "/sessions/{session_id}/stats", response_model=SessionStatsResponse, summary="Session stats"
)
async def session_stats(
    session_id: str,
    store: SessionStore = Depends(get_session_store),
    agent: ReactAgent = Depends(get_agent),
) -> SessionStatsResponse:
    """Return message counts for *session_id*."""
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return SessionStatsResponse(
        session_id=session_id, model=agent.model.model_name, **session.history.stats()
    )


@app.delete("/sessions/{session_id}", summary="Clear a session's history")
async def clear_session(
    session_id: str, store: SessionStore = Depends(get_session_store)
) -> dict[str, bool]:
    """Forget everything said in *session_id*; the session itself stays."""
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    async with session.lock:
        session.history.clear()
    return {"cleared": True}


@app.post("/agent", response_model=MessageResponse, summary="Process a message")
async def agent_endpoint(
    req: MessageRequest,
    store: SessionStore = Depends(get_session_store),
    agent: ReactAgent = Depends(get_agent),
) -> MessageResponse:
    """Run the ReACT loop for one user message and return the collected events."""
    session = store.get_or_create(req.session_id)
    events: List[Dict[str, Any]] = []

    async def collect(event: AgentEvent) -> None:
        events.append(event.to_wire())

    result = await handle_message(session, req.message, agent, collect)
    if result is None:
        detail = next((e["content"] for e in reversed(events) if e["type"] == "error"), "Error")
        logger.warning("Agent failure: %s", detail)
        raise HTTPException(status_code=502, detail=detail)

    return MessageResponse(
        reply=result.answer,
        status=result.status.value,
        iterations=result.iterations,
        events=events,
        session_id=session.session_id,
    )


@app.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    store: SessionStore = Depends(get_session_store),
    agent: ReactAgent = Depends(get_agent),
) -> None:
    """Real-time chat: every agent event is pushed to the client as it happens."""
    await websocket.accept()
    session = store.create()

    async def send(event: AgentEvent) -> None:
        await websocket.send_json(event.to_wire())

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
                msg_type = message.get("type")
            except (json.JSONDecodeError, AttributeError):
                await send(ErrorEvent(content="Error: invalid message"))
                continue

            if msg_type == "chat":
                await handle_message(session, str(message.get("content", "")), agent, send)
            elif msg_type == "clear":
                async with session.lock:
                    session.history.clear()
                await send(ClearedEvent())
            else:
                await send(ErrorEvent(content=f"Error: unknown message type {msg_type!r}"))
    except WebSocketDisconnect:
        pass
    finally:
        store.delete(session.session_id)


@app.get("/", summary="API root")
async def root() -> dict[str, str]:
    """Return a simple welcome message."""
    return {"message": "Welcome to the textact API! Use /docs for API documentation."}


# ---------------------------------------------------------------------------
# Public helper to launch the API (imported by main.py)
# ---------------------------------------------------------------------------
def run_api(
    host: str = "0.0.0.0", port: int = 8000, reload: bool = False, log_level: str | None = None
) -> None:
    """Start a uvicorn server hosting *app*.

    Parameters
    ----------
    host, port:
        Bind address for the HTTP server.
    reload:
        If *True*, enable auto-reload (useful in dev docker-compose).
    log_level:
        Logging level to use (default from settings if not provided).
    """

    # Lazy import - keeps uvicorn an optional dependency at pkg-import time
    import uvicorn  # pylint: disable=import-outside-toplevel

    if log_level is None:  # Use the default from settings if not provided
        log_level = settings.LOG_LEVEL

    logger.info(
        "Starting textact API at %s:%d (reload=%s, log_level=%s)", host, port, reload, log_level
    )
    logger.debug("API settings: %s", settings.model_dump())

    colored_print(f"textact API is running at http://localhost:{port}.", AnsiColors.GREEN)
    colored_print(f"Visit http://localhost:{port}/docs for API documentation.", AnsiColors.BLUE)
    uvicorn.run(
        "textact.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level,
    )


# ---------------------------------------------------------------------------
# `python -m textact.api.app` helper
# ---------------------------------------------------------------------------
if __name__ == "__main__":
    run_api(reload=True)
