"""
Request and response models for the affect HTTP adapter.

Request models only shape the envelope. Event fields are passed through
untouched so the core validator decides what is valid and how it is clamped.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class EventRequest(BaseModel):
    """
    Either {"sessionId": ..., "event": {...}} or a flat body where the event
    fields sit next to sessionId.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    session_id: Any = Field(None, alias="sessionId")
    event: Any = None

    def raw_event(self) -> Any:
        if self.event is not None:
            return self.event
        return dict(self.model_extra or {})


class ObserveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Any = Field(None, alias="sessionId")
    message: Any = None
    source: Optional[Dict[str, Any]] = None


class ResetRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    session_id: Any = Field(None, alias="sessionId")
    mode: Any = "baseline"


class SessionListResponse(BaseModel):
    ok: bool = True
    count: int
    sessions: List[str]


class DeleteResponse(BaseModel):
    ok: bool
    deleted: bool


class HealthResponse(BaseModel):
    ok: bool
    healthy: bool
    sessions: int
    version: str
    issues: List[str] = []
    heartbeat: Optional[str] = None
