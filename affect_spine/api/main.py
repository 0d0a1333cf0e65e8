"""
HTTP adapter for the affect engine.

Every route delegates to one module-level AffectService. A result with
ok=False becomes HTTP 400 carrying the service's error string.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware

from .schemas import (
    DeleteResponse,
    EventRequest,
    HealthResponse,
    ObserveRequest,
    ResetRequest,
    SessionListResponse,
)
from ..core import heartbeat
from ..core.config import VERSION, debug_enabled, is_heartbeat_enabled
from ..core.maintenance import register_maintenance_tasks
from ..core.service import AffectService
from ..util.logging import logger

service = AffectService()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if is_heartbeat_enabled():
        registered = register_maintenance_tasks(service.store)
        if registered:
            heartbeat.start_background()
    yield
    heartbeat.stop()


app = FastAPI(
    title="Affective Translation Spine API",
    version=VERSION,
    description="Per-session affect state, policy derivation and projection",
    docs_url="/docs" if debug_enabled() else None,
    redoc_url="/redoc" if debug_enabled() else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _unwrap(result: Dict[str, Any]) -> Dict[str, Any]:
    if not result.get("ok"):
        raise HTTPException(status_code=400, detail=result.get("error", "request rejected"))
    return result


@app.get("/api/affect/state")
def get_state_endpoint(session_id: str = Query("", alias="sessionId")):
    """Current affect state (decayed to now) with label, tone tags and summary."""
    return _unwrap(service.get_state(session_id))


@app.post("/api/affect/event")
def emit_event_endpoint(request: EventRequest):
    """Apply one affect event to a session."""
    return _unwrap(service.emit_event(request.session_id, request.raw_event()))


@app.post("/api/affect/observe")
def observe_message_endpoint(request: ObserveRequest):
    """Run rule-based detection on a message and apply it as a USER_MESSAGE event."""
    return _unwrap(service.observe_message(request.session_id, request.message, request.source))


@app.get("/api/affect/policy")
def get_policy_endpoint(session_id: str = Query("", alias="sessionId")):
    return _unwrap(service.get_policy(session_id))


@app.post("/api/affect/reset")
def reset_endpoint(request: ResetRequest):
    return _unwrap(service.reset(request.session_id, request.mode))


@app.get("/api/affect/events")
def get_events_endpoint(session_id: str = Query("", alias="sessionId"), limit: Optional[int] = None):
    """Recent events for a session, oldest first."""
    return _unwrap(service.get_events(session_id, limit))


@app.get("/api/affect/sessions", response_model=SessionListResponse)
def list_sessions_endpoint():
    sessions = service.list_sessions()
    return SessionListResponse(count=len(sessions), sessions=sessions)


@app.delete("/api/affect/sessions/{session_id}", response_model=DeleteResponse)
def delete_session_endpoint(session_id: str):
    deleted = service.delete_session(session_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Session not found")
    return DeleteResponse(ok=True, deleted=True)


@app.get("/api/affect/health", response_model=HealthResponse)
def health_endpoint():
    """Engine health plus heartbeat status."""
    status = service.health()
    try:
        heartbeat_status = heartbeat.get_status().get("status", "unknown")
    except Exception as e:
        logger.warning(f"Heartbeat status unavailable: {e}")
        heartbeat_status = "unknown"

    return HealthResponse(
        ok=status["ok"],
        healthy=status["healthy"],
        sessions=status["sessions"],
        version=status["version"],
        issues=status["issues"],
        heartbeat=heartbeat_status,
    )
