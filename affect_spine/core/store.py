"""
Affective Translation Spine - session store.

Owns one state vector, one momentum vector and one ring-buffered event log per
session id. This is the only mutable, shared resource of the engine: every
record carries its own lock, and the session map is guarded separately so
snapshots never block new sessions for long.
"""

import math
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

import numpy as np

from .config import EVENT_LOG_SIZE, SERIALIZE_EVENT_LIMIT
from .engine import (
    baseline_vector,
    momentum_from_mapping,
    reset_vectors,
    state_from_mapping,
    to_dict,
    zero_momentum,
)
from .validation import validate_session_id


@dataclass
class SessionRecord:
    """Mutable per-session state. Only touch fields while holding `lock`."""
    session_id: str
    state: np.ndarray
    momentum: np.ndarray
    events: Deque[Dict[str, Any]]
    last_tick: float
    last_active: float
    mode: str = "baseline"
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)


class SessionStore:
    """In-memory session map with ring-buffered event logs."""

    def __init__(self, event_log_size: Optional[int] = None, clock: Optional[Callable[[], float]] = None):
        self.event_log_size = event_log_size if event_log_size is not None else EVENT_LOG_SIZE
        if self.event_log_size < 1:
            raise ValueError(f"event_log_size must be >= 1: {self.event_log_size}")
        self.clock = clock or time.time
        self._sessions: Dict[str, SessionRecord] = {}
        self._lock = threading.Lock()

    def _new_record(self, session_id: str, now: float) -> SessionRecord:
        return SessionRecord(
            session_id=session_id,
            state=baseline_vector(),
            momentum=zero_momentum(),
            events=deque(maxlen=self.event_log_size),
            last_tick=now,
            last_active=now,
        )

    def get_session(self, session_id: str) -> SessionRecord:
        """Return the session record, creating it at baseline on first access."""
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                record = self._new_record(session_id, self.clock())
                self._sessions[session_id] = record
            return record

    def peek(self, session_id: str) -> Optional[SessionRecord]:
        """Return the record if it exists, without creating one."""
        with self._lock:
            return self._sessions.get(session_id)

    def log_event(self, session_id: str, entry: Dict[str, Any]) -> None:
        """Append to the session's ring buffer; the oldest entry drops when full."""
        self.log_to_record(self.get_session(session_id), entry)

    def log_to_record(self, record: SessionRecord, entry: Dict[str, Any]) -> None:
        """Append to a record already looked up; never re-resolves the session id."""
        with record.lock:
            if "ts" not in entry:
                entry = {**entry, "ts": self.clock()}
            record.events.append(entry)

    def get_events(self, session_id: str, limit: int = 50) -> List[Dict[str, Any]]:
        """The most recent `limit` entries, oldest first."""
        if limit <= 0:
            return []
        record = self.peek(session_id)
        if record is None:
            return []
        with record.lock:
            entries = list(record.events)
        return entries[-limit:]

    def reset_session(self, session_id: str, mode: str = "baseline") -> SessionRecord:
        """
        Replace E/M with the preset for `mode` and record the reset in the log.
        Raises ValueError for an unknown mode.
        """
        state, momentum = reset_vectors(mode)
        record = self.get_session(session_id)
        with record.lock:
            now = self.clock()
            previous = record.state
            record.state = state
            record.momentum = momentum
            record.mode = mode
            record.last_tick = now
            record.last_active = now
            record.events.append({
                "type": "CUSTOM",
                "intensity": 0.0,
                "polarity": 0.0,
                "payload": {"action": "reset", "mode": mode},
                "source": {},
                "delta": to_dict(state - previous),
                "ts": now,
            })
        return record

    def delete_session(self, session_id: str) -> bool:
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def list_sessions(self) -> List[str]:
        with self._lock:
            return list(self._sessions.keys())

    def session_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def idle_sessions(self, max_idle_sec: float) -> List[str]:
        """Ids of sessions untouched for longer than `max_idle_sec`."""
        now = self.clock()
        with self._lock:
            records = list(self._sessions.values())
        idle = []
        for record in records:
            with record.lock:
                if now - record.last_active > max_idle_sec:
                    idle.append(record.session_id)
        return idle

    def evict_idle(self, max_idle_sec: float) -> List[str]:
        """Delete idle sessions; returns the evicted ids."""
        evicted = []
        for session_id in self.idle_sessions(max_idle_sec):
            record = self.peek(session_id)
            if record is None:
                continue
            # Re-check under the record lock; it may have been touched meanwhile
            with record.lock:
                if self.clock() - record.last_active <= max_idle_sec:
                    continue
                with self._lock:
                    if self._sessions.get(session_id) is record:
                        del self._sessions[session_id]
                        evicted.append(session_id)
        return evicted

    def serialize_all(self, event_limit: Optional[int] = None) -> Dict[str, Dict[str, Any]]:
        """
        Snapshot every session as {id: {"E", "M", "events"}}.
        Only the last `event_limit` events per session are kept.
        """
        if event_limit is None:
            event_limit = SERIALIZE_EVENT_LIMIT
        with self._lock:
            records = list(self._sessions.values())

        data = {}
        for record in records:
            with record.lock:
                state = to_dict(record.state)
                state["mode"] = record.mode
                state["ts"] = record.last_tick
                events = list(record.events)[-event_limit:] if event_limit > 0 else []
                data[record.session_id] = {
                    "E": state,
                    "M": to_dict(record.momentum),
                    "events": events,
                }
        return data

    def restore_all(self, data: Any) -> int:
        """
        Restore sessions from `serialize_all` output.

        Entries that are not mappings, have an invalid id, or lack E/M mappings
        are skipped individually. Unknown fields are ignored. Returns the
        number of sessions restored.
        """
        if not isinstance(data, dict):
            return 0

        restored = 0
        now = self.clock()
        for session_id, entry in data.items():
            if not validate_session_id(session_id).ok:
                continue
            if not isinstance(entry, dict):
                continue
            raw_state = entry.get("E")
            raw_momentum = entry.get("M")
            if not isinstance(raw_state, dict) or not isinstance(raw_momentum, dict):
                continue

            record = self._new_record(session_id, now)
            record.state = state_from_mapping(raw_state)
            record.momentum = momentum_from_mapping(raw_momentum)
            record.mode = raw_state.get("mode") if raw_state.get("mode") in ("baseline", "cooldown") else "baseline"
            record.last_tick = _restored_timestamp(raw_state.get("ts"), now)

            events = entry.get("events")
            if isinstance(events, list):
                for item in events[-self.event_log_size:]:
                    if isinstance(item, dict):
                        record.events.append(dict(item))

            with self._lock:
                self._sessions[session_id] = record
            restored += 1

        return restored


def _restored_timestamp(value: Any, now: float) -> float:
    """Last-tick time from a snapshot; unusable or future values become `now`."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return now
    value = float(value)
    if math.isnan(value) or math.isinf(value) or value > now:
        return now
    return value
