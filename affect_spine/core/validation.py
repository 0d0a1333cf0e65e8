"""
Affective Translation Spine - input validation.

Two stages: the session identity is checked first, then the event payload.
An invalid session id is rejected before anything else is parsed, so it can
never cause a session to be created. Numeric fields are clamped, never rejected.
"""

import math
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .config import SESSION_ID_MAX_LENGTH
from .defaults import EVENT_TYPES

DEFAULT_INTENSITY = 0.5
DEFAULT_POLARITY = 0.0

EventType = Enum("EventType", {name: name for name in EVENT_TYPES}, type=str)
EventType.__doc__ = "Closed vocabulary of affect event types."

_SOURCE_ALIASES = {
    "userId": "user_id",
    "sessionId": "session_id",
    "agentId": "agent_id",
}


def _coerce_number(value: Any, default: float, low: float, high: float) -> float:
    """Coerce to float and clamp; unusable values fall back to the default."""
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return default
    if not isinstance(value, numbers.Real):
        return default
    try:
        value = float(value)
    except OverflowError:
        # Integers past the float range clamp by sign
        return high if value > 0 else low
    if math.isnan(value):
        return default
    return min(max(value, low), high)


class EventSource(BaseModel):
    """Where an event came from. All identifiers are optional."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    user_id: Optional[str] = None
    session_id: Optional[str] = None
    agent_id: Optional[str] = None
    route: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "EventSource":
        if not isinstance(raw, dict):
            return cls()
        fields = {}
        for key, value in raw.items():
            name = _SOURCE_ALIASES.get(key, key)
            if name in cls.model_fields and isinstance(value, str):
                fields[name] = value
        return cls(**fields)


class AffectEvent(BaseModel):
    """A validated, immutable affect event."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    type: EventType
    intensity: float = DEFAULT_INTENSITY
    polarity: float = DEFAULT_POLARITY
    payload: Dict[str, Any] = {}
    source: EventSource = EventSource()

    @field_validator("type", mode="before")
    @classmethod
    def type_must_be_known(cls, v):
        if isinstance(v, EventType):
            return v
        if not isinstance(v, str):
            raise ValueError("type must be a string")
        name = v.strip().upper()
        if name not in EVENT_TYPES:
            raise ValueError(f"unknown event type '{v}'")
        return name

    @field_validator("intensity", mode="before")
    @classmethod
    def clamp_intensity(cls, v):
        return _coerce_number(v, DEFAULT_INTENSITY, 0.0, 1.0)

    @field_validator("polarity", mode="before")
    @classmethod
    def clamp_polarity(cls, v):
        return _coerce_number(v, DEFAULT_POLARITY, -1.0, 1.0)

    @field_validator("payload", mode="before")
    @classmethod
    def payload_must_be_mapping(cls, v):
        return dict(v) if isinstance(v, dict) else {}

    @field_validator("source", mode="before")
    @classmethod
    def normalize_source(cls, v):
        if isinstance(v, EventSource):
            return v
        return EventSource.from_raw(v)

    def to_record(self) -> Dict[str, Any]:
        """Plain-dict form used in the event log."""
        return {
            "type": self.type.value,
            "intensity": self.intensity,
            "polarity": self.polarity,
            "payload": dict(self.payload),
            "source": self.source.model_dump(exclude_none=True),
        }


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    event: Optional[AffectEvent] = None
    session_id: Optional[str] = None
    error: Optional[str] = None


def validate_session_id(raw: Any) -> ValidationResult:
    """Session ids are non-empty strings of at most SESSION_ID_MAX_LENGTH chars."""
    if not isinstance(raw, str):
        return ValidationResult(ok=False, error="invalid session id: must be a string")
    if not raw.strip():
        return ValidationResult(ok=False, error="invalid session id: must not be empty")
    if len(raw) > SESSION_ID_MAX_LENGTH:
        return ValidationResult(
            ok=False,
            error=f"invalid session id: longer than {SESSION_ID_MAX_LENGTH} characters",
        )
    return ValidationResult(ok=True, session_id=raw)


def _format_errors(exc: ValidationError) -> str:
    parts = []
    for err in exc.errors():
        field = ".".join(str(loc) for loc in err.get("loc", ())) or "event"
        message = err.get("msg", "invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        parts.append(f"{field}: {message}")
    return "; ".join(parts)


def validate_event(raw: Any) -> ValidationResult:
    """
    Normalize an untrusted event.

    Rejects non-mappings and unknown types; clamps intensity/polarity;
    defaults payload and source; ignores unknown fields.
    """
    if not isinstance(raw, dict):
        return ValidationResult(ok=False, error="invalid event: must be an object")
    if "type" not in raw:
        return ValidationResult(ok=False, error="invalid event: type is required")

    try:
        event = AffectEvent.model_validate(raw)
    except ValidationError as e:
        return ValidationResult(ok=False, error=f"invalid event: {_format_errors(e)}")

    return ValidationResult(ok=True, event=event)
