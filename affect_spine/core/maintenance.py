"""
Automated maintenance routines for the session store: idle-session eviction,
state integrity checks, and periodic snapshots via the heartbeat.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np

from .config import (
    get_backup_interval,
    get_heartbeat_interval,
    get_session_idle_ttl,
    is_backup_enabled,
    is_maintenance_enabled,
)
from .engine import clamp_momentum, enforce_bounds
from .store import SessionStore
from ..util.logging import log_maintenance_run, log_session_deleted


@dataclass
class MaintenanceReport:
    """Maintenance operation report."""
    operation: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    issues_found: int = 0
    issues_resolved: int = 0
    actions_taken: List[str] = None
    errors: List[str] = None
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.actions_taken is None:
            self.actions_taken = []
        if self.errors is None:
            self.errors = []
        if self.metadata is None:
            self.metadata = {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert report to dictionary for serialization."""
        data = {
            "operation": self.operation,
            "started_at": self.started_at.isoformat(),
            "issues_found": self.issues_found,
            "issues_resolved": self.issues_resolved,
            "actions_taken": self.actions_taken,
            "errors": self.errors,
            "metadata": self.metadata
        }
        if self.completed_at:
            data["completed_at"] = self.completed_at.isoformat()
        return data


class MaintenanceError(Exception):
    """Raised when maintenance is requested while disabled."""
    pass


def evict_idle_sessions(store: SessionStore, max_idle_sec: Optional[float] = None) -> MaintenanceReport:
    """
    Delete sessions nobody has touched for longer than `max_idle_sec`
    (defaults to ATS_SESSION_IDLE_TTL_SEC).
    """
    if not is_maintenance_enabled():
        raise MaintenanceError("Maintenance system is disabled. Enable with MAINTENANCE_ENABLED=true")

    if max_idle_sec is None:
        max_idle_sec = get_session_idle_ttl()

    report = MaintenanceReport(operation="evict_idle_sessions", started_at=datetime.now())
    report.metadata["max_idle_sec"] = max_idle_sec
    report.metadata["sessions_before"] = store.session_count()

    evicted = store.evict_idle(max_idle_sec)
    for session_id in evicted:
        log_session_deleted(session_id, reason="idle")
        report.actions_taken.append(f"evicted {session_id}")

    report.issues_found = len(evicted)
    report.issues_resolved = len(evicted)
    report.metadata["sessions_after"] = store.session_count()
    report.completed_at = datetime.now()

    log_maintenance_run(report.operation, report.issues_found, report.issues_resolved)
    return report


def check_store_integrity(store: SessionStore) -> MaintenanceReport:
    """
    Re-check every session's vectors. Out-of-bound or non-finite values are
    repaired in place (clamped, or reset to zero momentum) and reported.
    """
    if not is_maintenance_enabled():
        raise MaintenanceError("Maintenance system is disabled. Enable with MAINTENANCE_ENABLED=true")

    report = MaintenanceReport(operation="store_integrity_check", started_at=datetime.now())
    checked = 0

    for session_id in store.list_sessions():
        record = store.peek(session_id)
        if record is None:
            continue
        checked += 1
        with record.lock:
            if not np.all(np.isfinite(record.state)):
                report.issues_found += 1
                record.state = enforce_bounds(np.nan_to_num(record.state, nan=0.0))
                report.issues_resolved += 1
                report.actions_taken.append(f"{session_id}: replaced non-finite state values")
            bounded = enforce_bounds(record.state)
            if not np.array_equal(bounded, record.state):
                report.issues_found += 1
                record.state = bounded
                report.issues_resolved += 1
                report.actions_taken.append(f"{session_id}: clamped state to bounds")

            if not np.all(np.isfinite(record.momentum)):
                report.issues_found += 1
                record.momentum = np.zeros_like(record.momentum)
                report.issues_resolved += 1
                report.actions_taken.append(f"{session_id}: reset non-finite momentum")
            clamped = clamp_momentum(record.momentum)
            if not np.array_equal(clamped, record.momentum):
                report.issues_found += 1
                record.momentum = clamped
                report.issues_resolved += 1
                report.actions_taken.append(f"{session_id}: clamped momentum")

            if record.events.maxlen != store.event_log_size:
                report.errors.append(f"{session_id}: event log capacity {record.events.maxlen}")

    report.metadata["sessions_checked"] = checked
    report.completed_at = datetime.now()

    status = "success" if not report.errors else "warning"
    log_maintenance_run(report.operation, report.issues_found, report.issues_resolved, status)
    return report


def register_maintenance_tasks(store: SessionStore) -> List[str]:
    """Wire maintenance (and snapshots, when enabled) onto the heartbeat."""
    from . import heartbeat

    registered = []
    if is_maintenance_enabled():
        interval = get_heartbeat_interval()
        heartbeat.register_task("evict_idle_sessions", interval, lambda: evict_idle_sessions(store))
        heartbeat.register_task("store_integrity_check", interval, lambda: check_store_integrity(store))
        registered.extend(["evict_idle_sessions", "store_integrity_check"])

    if is_backup_enabled():
        from .backup import create_periodic_snapshot
        heartbeat.register_task("snapshot", get_backup_interval(), lambda: create_periodic_snapshot(store))
        registered.append("snapshot")

    return registered
