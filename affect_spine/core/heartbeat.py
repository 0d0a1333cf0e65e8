"""
Heartbeat - periodic background tasks (idle-session eviction, integrity checks, snapshots).
Runs on its own schedule, independent of request handling.
"""

import threading
import time
from typing import Callable, Dict, Optional

from .config import is_heartbeat_enabled, validate_config
from ..util.logging import log_heartbeat_task, logger


tasks: Dict[str, Dict] = {}  # task_name -> {func, interval, last_run}
running = False
shutdown_event: Optional[threading.Event] = None
_thread: Optional[threading.Thread] = None


def register_task(name: str, interval_sec: int, func: Callable):
    """
    Register a task to be executed periodically.

    Args:
        name: Unique task identifier
        interval_sec: How often to run this task in seconds
        func: Function to call (should be fast and not block)
    """
    if not callable(func):
        raise ValueError(f"Task function must be callable: {func}")

    if interval_sec < 1:
        raise ValueError(f"Interval must be >= 1 second: {interval_sec}")

    issues = validate_config()
    if issues:
        raise ValueError(f"Heartbeat configuration invalid: {issues}")

    tasks[name] = {
        "func": func,
        "interval": interval_sec,
        "last_run": None
    }

    logger.info(f"Registered heartbeat task '{name}' (every {interval_sec}s)")


def unregister_task(name: str):
    """Remove a task from the registry."""
    if name in tasks:
        del tasks[name]
        logger.info(f"Unregistered heartbeat task '{name}'")


def list_tasks():
    """Return list of registered task names."""
    return list(tasks.keys())


def should_run_task(name: str, task_info: Dict) -> bool:
    """Check if a task should run this cycle."""
    if task_info["last_run"] is None:
        return True  # Run immediately if never run

    elapsed = time.monotonic() - task_info["last_run"]
    return elapsed >= task_info["interval"]


def run_task(name: str, task_info: Dict):
    """Execute a task and record timing."""
    start_time = time.monotonic()

    try:
        task_info["func"]()
    except Exception as e:
        end_time = time.monotonic()
        # Failed tasks are retried on their normal schedule
        task_info["last_run"] = end_time
        log_heartbeat_task(name, start_time, end_time, status="failed", details={"error": str(e)[:100]})
        raise RuntimeError(f"Task '{name}' failed after {end_time - start_time:.2f}s: {e}") from e

    end_time = time.monotonic()
    task_info["last_run"] = end_time
    log_heartbeat_task(name, start_time, end_time)


def run_pending():
    """Run every due task once. Failures are isolated per task."""
    for name, task_info in list(tasks.items()):
        if should_run_task(name, task_info):
            try:
                run_task(name, task_info)
            except RuntimeError as e:
                logger.error(f"Heartbeat task '{name}' failed: {e}")


def start(poll_interval: float = 0.1):
    """
    Start the heartbeat loop (blocking).

    Cooperative scheduling loop that checks task intervals and executes tasks
    when due. Uses time.monotonic() for reliable timing.
    """
    global running, shutdown_event

    if not is_heartbeat_enabled():
        logger.info("Heartbeat disabled (HEARTBEAT_ENABLED=false). Skipping start.")
        return

    if running:
        raise RuntimeError("Heartbeat already running")

    issues = validate_config()
    if issues:
        raise ValueError(f"Heartbeat configuration invalid: {issues}")

    running = True
    shutdown_event = threading.Event()

    logger.info(f"Starting heartbeat loop, registered tasks: {list(tasks.keys())}")

    try:
        while running and not shutdown_event.is_set():
            run_pending()
            shutdown_event.wait(poll_interval)
    except KeyboardInterrupt:
        logger.info("Heartbeat interrupted by user")
    finally:
        running = False
        logger.info("Heartbeat loop stopped")


def start_background(poll_interval: float = 0.1) -> Optional[threading.Thread]:
    """Run the heartbeat loop in a daemon thread. Returns None when disabled."""
    global _thread

    if not is_heartbeat_enabled():
        logger.info("Heartbeat disabled (HEARTBEAT_ENABLED=false). Skipping start.")
        return None

    if _thread is not None and _thread.is_alive():
        raise RuntimeError("Heartbeat already running")

    _thread = threading.Thread(target=start, args=(poll_interval,), name="affect-heartbeat", daemon=True)
    _thread.start()
    return _thread


def stop(timeout: float = 2.0):
    """Stop the heartbeat loop gracefully."""
    global running, _thread

    if not running:
        logger.info("Heartbeat not running")
        return

    logger.info("Stopping heartbeat loop...")
    running = False

    if shutdown_event:
        shutdown_event.set()

    if _thread is not None and _thread is not threading.current_thread():
        _thread.join(timeout)
        _thread = None


def reset_task(name: str):
    """Reset a task's last_run time to force immediate execution."""
    if name in tasks:
        tasks[name]["last_run"] = None
        logger.info(f"Reset heartbeat task '{name}' (will run immediately)")


def get_status():
    """Return current heartbeat status for monitoring."""
    if not is_heartbeat_enabled():
        return {"status": "disabled", "reason": "HEARTBEAT_ENABLED=false"}

    return {
        "status": "running" if running else "stopped",
        "tasks": {
            name: {
                "interval_sec": info["interval"],
                "last_run": info["last_run"],
                "next_run": info["last_run"] + info["interval"] if info["last_run"] else None
            }
            for name, info in tasks.items()
        },
    }
