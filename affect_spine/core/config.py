"""
Affective Translation Spine - runtime configuration.
All operational knobs come from the environment; model constants live in defaults.py.
"""

import os
from pathlib import Path

# Event log configuration
EVENT_LOG_SIZE = int(os.getenv("ATS_EVENT_LOG_SIZE", "200"))
SERIALIZE_EVENT_LIMIT = int(os.getenv("ATS_SERIALIZE_EVENT_LIMIT", "100"))
DEFAULT_EVENTS_LIMIT = int(os.getenv("ATS_DEFAULT_EVENTS_LIMIT", "50"))

# Session identifiers are opaque strings, 1..256 chars
SESSION_ID_MAX_LENGTH = 256

# Idle sessions older than this are evicted by maintenance
SESSION_IDLE_TTL_SEC = int(os.getenv("ATS_SESSION_IDLE_TTL_SEC", "86400"))

# Heartbeat system configuration (default disabled)
HEARTBEAT_ENABLED = os.getenv("HEARTBEAT_ENABLED", "false").lower() == "true"
HEARTBEAT_INTERVAL_SEC = int(os.getenv("HEARTBEAT_INTERVAL_SEC", "60"))

# Maintenance and snapshot controls (default disabled)
MAINTENANCE_ENABLED = os.getenv("MAINTENANCE_ENABLED", "false").lower() == "true"
BACKUP_ENABLED = os.getenv("BACKUP_ENABLED", "false").lower() == "true"
BACKUP_DIR = os.getenv("BACKUP_DIR", "./data/snapshots")
BACKUP_ENCRYPTION_ENABLED = os.getenv("BACKUP_ENCRYPTION_ENABLED", "true").lower() == "true"
BACKUP_INTERVAL_SEC = int(os.getenv("BACKUP_INTERVAL_SEC", "300"))

# Version string
VERSION = "1.0.0"


def debug_enabled():
    """Check if debug mode is enabled."""
    return os.getenv("DEBUG", "true").lower() == "true"


def is_heartbeat_enabled():
    """Check if heartbeat system is enabled."""
    return os.getenv("HEARTBEAT_ENABLED", "false").lower() == "true"


def is_maintenance_enabled():
    """Check if idle-session maintenance is enabled."""
    return os.getenv("MAINTENANCE_ENABLED", "false").lower() == "true"


def is_backup_enabled():
    """Check if state snapshots are enabled."""
    return os.getenv("BACKUP_ENABLED", "false").lower() == "true"


def get_heartbeat_interval():
    """Get heartbeat interval in seconds."""
    return HEARTBEAT_INTERVAL_SEC


def get_backup_interval():
    """Get snapshot interval in seconds."""
    return BACKUP_INTERVAL_SEC


def get_session_idle_ttl():
    """Get idle session time-to-live in seconds."""
    return SESSION_IDLE_TTL_SEC


def get_master_password():
    """Password used to derive snapshot encryption keys."""
    return os.getenv("BACKUP_MASTER_PASSWORD", "default_master_key_change_in_production")


def ensure_backup_directory(path=None):
    """Ensure the snapshot directory exists and return it."""
    directory = Path(path or BACKUP_DIR)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def validate_config():
    """Validate runtime configuration and return any issues."""
    issues = []

    if EVENT_LOG_SIZE < 1:
        issues.append(f"ATS_EVENT_LOG_SIZE must be >= 1: {EVENT_LOG_SIZE}")

    if SERIALIZE_EVENT_LIMIT < 0:
        issues.append(f"ATS_SERIALIZE_EVENT_LIMIT must be >= 0: {SERIALIZE_EVENT_LIMIT}")

    if SERIALIZE_EVENT_LIMIT > EVENT_LOG_SIZE:
        issues.append("ATS_SERIALIZE_EVENT_LIMIT cannot exceed ATS_EVENT_LOG_SIZE")

    if DEFAULT_EVENTS_LIMIT < 1:
        issues.append(f"ATS_DEFAULT_EVENTS_LIMIT must be >= 1: {DEFAULT_EVENTS_LIMIT}")

    if HEARTBEAT_INTERVAL_SEC < 1:
        issues.append("HEARTBEAT_INTERVAL_SEC must be >= 1")

    if BACKUP_INTERVAL_SEC < 1:
        issues.append("BACKUP_INTERVAL_SEC must be >= 1")

    if SESSION_IDLE_TTL_SEC < 1:
        issues.append("ATS_SESSION_IDLE_TTL_SEC must be >= 1")

    return issues


def get_config_summary():
    """Get current configuration as a dictionary for monitoring."""
    return {
        "version": VERSION,
        "event_log_size": EVENT_LOG_SIZE,
        "serialize_event_limit": SERIALIZE_EVENT_LIMIT,
        "default_events_limit": DEFAULT_EVENTS_LIMIT,
        "session_idle_ttl_sec": SESSION_IDLE_TTL_SEC,
        "heartbeat_enabled": is_heartbeat_enabled(),
        "heartbeat_interval_sec": HEARTBEAT_INTERVAL_SEC,
        "maintenance_enabled": is_maintenance_enabled(),
        "backup_enabled": is_backup_enabled(),
        "backup_dir": BACKUP_DIR,
        "backup_encryption_enabled": BACKUP_ENCRYPTION_ENABLED,
    }
