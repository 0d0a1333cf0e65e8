"""
Structured logging for the affect engine, heartbeat, maintenance and snapshots.
"""

import logging
from typing import Any, Dict, List

SENSITIVE_FIELDS = ['payload', 'content', 'message', 'text', 'secret', 'password']


class StructuredLogger:
    """Structured logger for affect operations and background tasks."""

    def __init__(self, name: str = "affect_spine"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.info(message)

    def log_affect_event(self, session_id: str, event_type: str, intensity: float, polarity: float, status: str = "applied"):
        """Log an event applied to a session."""
        details = {
            "session_id": _truncate(session_id, 64),
            "type": event_type,
            "intensity": round(intensity, 4),
            "polarity": round(polarity, 4),
        }
        self.log_operation("affect.event", status, details)

    def log_validation_rejected(self, operation: str, error: str, session_id: Any = None):
        """Log input rejected by the validator. Raw payloads are never logged."""
        details = {"operation": operation, "error": _truncate(str(error), 100)}
        if isinstance(session_id, str) and session_id:
            details["session_id"] = _truncate(session_id, 64)
        self.logger.warning(f"Operation: validation.rejected, Status: rejected, Details: {details}")

    def log_session_reset(self, session_id: str, mode: str):
        """Log a session reset."""
        self.log_operation("affect.reset", "success", {"session_id": _truncate(session_id, 64), "mode": mode})

    def log_session_deleted(self, session_id: str, reason: str = "explicit"):
        """Log a session deletion or eviction."""
        self.log_operation("affect.session_deleted", "success", {"session_id": _truncate(session_id, 64), "reason": reason})

    def log_restore(self, restored: int, skipped: int):
        """Log a bulk restore of serialized sessions."""
        status = "success" if skipped == 0 else "partial"
        self.log_operation("affect.restore", status, {"restored": restored, "skipped": skipped})

    def log_heartbeat_task(self, task_name: str, start_time: float, end_time: float, status: str = "success", details: Dict[str, Any] = None):
        """Log heartbeat task execution."""
        duration_ms = round((end_time - start_time) * 1000, 2)
        log_details = {"duration_ms": duration_ms}
        if details:
            log_details.update(details)
        elif status == "success":
            log_details["message"] = f"Heartbeat task '{task_name}' completed in {duration_ms}ms"
        elif status == "failed":
            log_details["message"] = f"Heartbeat task '{task_name}' failed after {duration_ms}ms"

        self.log_operation(f"heartbeat.{task_name}", status, log_details)

    def log_maintenance_run(self, operation: str, issues_found: int, issues_resolved: int, status: str = "success"):
        """Log a maintenance pass."""
        details = {"issues_found": issues_found, "issues_resolved": issues_resolved}
        self.log_operation(f"maintenance.{operation}", status, details)

    def log_snapshot(self, operation: str, snapshot_id: str, session_count: int, encrypted: bool, status: str = "success"):
        """Log snapshot creation or restore."""
        details = {
            "snapshot_id": snapshot_id,
            "session_count": session_count,
            "encrypted": encrypted,
        }
        self.log_operation(f"snapshot.{operation}", status, details)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


def _truncate(value: str, limit: int) -> str:
    return value[:limit - 3] + "..." if len(value) > limit else value


# Global logger instance
logger = StructuredLogger()


def log_affect_event(session_id: str, event_type: str, intensity: float, polarity: float, status: str = "applied"):
    """Log an event applied to a session."""
    logger.log_affect_event(session_id, event_type, intensity, polarity, status)

def log_validation_rejected(operation: str, error: str, session_id: Any = None):
    """Log input rejected by the validator."""
    logger.log_validation_rejected(operation, error, session_id)

def log_session_reset(session_id: str, mode: str):
    """Log a session reset."""
    logger.log_session_reset(session_id, mode)

def log_session_deleted(session_id: str, reason: str = "explicit"):
    """Log a session deletion or eviction."""
    logger.log_session_deleted(session_id, reason)

def log_restore(restored: int, skipped: int):
    """Log a bulk restore."""
    logger.log_restore(restored, skipped)

def log_heartbeat_task(task_name: str, start_time: float, end_time: float, status: str = "success", details: Dict[str, Any] = None):
    """Log heartbeat task execution."""
    logger.log_heartbeat_task(task_name, start_time, end_time, status, details)

def log_maintenance_run(operation: str, issues_found: int, issues_resolved: int, status: str = "success"):
    """Log a maintenance pass."""
    logger.log_maintenance_run(operation, issues_found, issues_resolved, status)

def log_snapshot(operation: str, snapshot_id: str, session_count: int, encrypted: bool, status: str = "success"):
    """Log snapshot creation or restore."""
    logger.log_snapshot(operation, snapshot_id, session_count, encrypted, status)


# General audit event function
def audit_event(event_type: str, identifiers: Dict[str, Any], payload: Dict[str, Any] = None, sensitive_fields: List[str] = None):
    """General audit event logging with privacy controls."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    log_details = identifiers.copy() if identifiers else {}

    if payload:
        log_details["payload"] = sanitize_payload(payload, sensitive_fields=sensitive_fields)

    logger.log_operation(event_type.replace(".", "_"), "audit", log_details)


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Sanitize payloads for audit logging."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or k not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        # Truncate long strings
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload
