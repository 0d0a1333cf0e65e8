"""
Affective Translation Spine - public entry points.

AffectService sequences validation -> store lookup -> engine update ->
policy/projection for every call. Every operation returns a result dict with
an explicit `ok` flag; malformed input yields {"ok": False, "error": ...}
and leaves every session untouched.
"""

from typing import Any, Callable, Dict, List, Optional

from .config import DEFAULT_EVENTS_LIMIT, VERSION, validate_config
from .defaults import RESET_MODES
from .detector import candidate_event, detect_affect
from .engine import apply_event, tick, to_dict
from .policy import derive_policy
from .projection import project_label, project_summary, project_tone_tags
from .store import SessionRecord, SessionStore
from .validation import validate_event, validate_session_id
from ..util.logging import (
    log_affect_event,
    log_restore,
    log_session_deleted,
    log_session_reset,
    log_validation_rejected,
)


def _error(message: str) -> Dict[str, Any]:
    return {"ok": False, "error": message}


class AffectService:
    """Facade over one SessionStore."""

    def __init__(self, store: Optional[SessionStore] = None, clock: Optional[Callable[[], float]] = None):
        self.store = store if store is not None else SessionStore(clock=clock)
        self.clock = clock or self.store.clock

    # --- helpers ------------------------------------------------------------

    def _reject_id(self, session_id: Any, operation: str) -> Optional[Dict[str, Any]]:
        check = validate_session_id(session_id)
        if check.ok:
            return None
        log_validation_rejected(operation, check.error)
        return _error(check.error)

    def _advance(self, record: SessionRecord, now: float) -> None:
        """Decay the record up to `now`. Caller holds record.lock."""
        elapsed = now - record.last_tick
        if elapsed > 0:
            record.state, record.momentum = tick(record.state, record.momentum, elapsed)
            record.last_tick = now

    @staticmethod
    def _state_view(record: SessionRecord) -> Dict[str, Any]:
        view = to_dict(record.state)
        view["mode"] = record.mode
        view["ts"] = record.last_tick
        return view

    # --- event flow ---------------------------------------------------------

    def emit_event(self, session_id: Any, raw_event: Any) -> Dict[str, Any]:
        """Validate and apply one event; returns post-event state, policy, label and delta."""
        rejected = self._reject_id(session_id, "emit_event")
        if rejected:
            return rejected

        result = validate_event(raw_event)
        if not result.ok:
            log_validation_rejected("emit_event", result.error, session_id)
            return _error(result.error)
        event = result.event

        record = self.store.get_session(session_id)
        with record.lock:
            now = self.clock()
            elapsed = max(0.0, now - record.last_tick)
            outcome = apply_event(record.state, record.momentum, event, elapsed)

            record.state = outcome.state
            record.momentum = outcome.momentum
            record.last_tick = max(record.last_tick, now)
            record.last_active = now

            entry = event.to_record()
            entry["delta"] = to_dict(outcome.delta)
            entry["ts"] = now
            self.store.log_to_record(record, entry)

            state = record.state.copy()
            state_view = self._state_view(record)

        log_affect_event(session_id, event.type.value, event.intensity, event.polarity)

        return {
            "ok": True,
            "E": state_view,
            "policy": derive_policy(state),
            "label": project_label(state),
            "delta": to_dict(outcome.delta),
        }

    def observe_message(self, session_id: Any, message: Any, source: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Detect affect in a text message and emit it as a USER_MESSAGE event."""
        rejected = self._reject_id(session_id, "observe_message")
        if rejected:
            return rejected

        response = self.emit_event(session_id, candidate_event(message, source))
        if response["ok"]:
            response["reading"] = detect_affect(message).to_dict()
        return response

    # --- reads --------------------------------------------------------------

    def get_state(self, session_id: Any) -> Dict[str, Any]:
        """Decay to now, then return the state with its label, tags and summary."""
        rejected = self._reject_id(session_id, "get_state")
        if rejected:
            return rejected

        record = self.store.get_session(session_id)
        with record.lock:
            self._advance(record, self.clock())
            state = record.state.copy()
            view = self._state_view(record)

        return {
            "ok": True,
            **view,
            "label": project_label(state),
            "tags": project_tone_tags(state),
            "summary": project_summary(state),
        }

    def get_policy(self, session_id: Any) -> Dict[str, Any]:
        """Decay to now, then derive the policy."""
        rejected = self._reject_id(session_id, "get_policy")
        if rejected:
            return rejected

        record = self.store.get_session(session_id)
        with record.lock:
            self._advance(record, self.clock())
            state = record.state.copy()

        return {"ok": True, "policy": derive_policy(state)}

    def get_events(self, session_id: Any, limit: Any = None) -> Dict[str, Any]:
        """The most recent events for a session, oldest first."""
        rejected = self._reject_id(session_id, "get_events")
        if rejected:
            return rejected

        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            limit = DEFAULT_EVENTS_LIMIT
        limit = min(limit, self.store.event_log_size)

        return {"ok": True, "events": self.store.get_events(session_id, limit)}

    # --- lifecycle ----------------------------------------------------------

    def reset(self, session_id: Any, mode: Any = "baseline") -> Dict[str, Any]:
        """Reset a session to the baseline or cooldown preset."""
        rejected = self._reject_id(session_id, "reset")
        if rejected:
            return rejected

        if mode is None:
            mode = "baseline"
        if not isinstance(mode, str) or mode not in RESET_MODES:
            error = f"invalid reset mode: must be one of {list(RESET_MODES)}"
            log_validation_rejected("reset", error, session_id)
            return _error(error)

        record = self.store.reset_session(session_id, mode)
        with record.lock:
            state = record.state.copy()
            view = self._state_view(record)

        log_session_reset(session_id, mode)

        return {
            "ok": True,
            "E": view,
            "policy": derive_policy(state),
            "label": project_label(state),
        }

    def delete_session(self, session_id: Any) -> bool:
        if not validate_session_id(session_id).ok:
            return False
        deleted = self.store.delete_session(session_id)
        if deleted:
            log_session_deleted(session_id)
        return deleted

    def list_sessions(self) -> List[str]:
        return self.store.list_sessions()

    def session_count(self) -> int:
        return self.store.session_count()

    # --- snapshot / restore -------------------------------------------------

    def serialize_all(self) -> Dict[str, Dict[str, Any]]:
        return self.store.serialize_all()

    def restore_all(self, data: Any) -> int:
        restored = self.store.restore_all(data)
        total = len(data) if isinstance(data, dict) else 0
        log_restore(restored, total - restored)
        return restored

    def health(self) -> Dict[str, Any]:
        issues = validate_config()
        return {
            "ok": True,
            "healthy": not issues,
            "sessions": self.store.session_count(),
            "version": VERSION,
            "issues": issues,
        }
