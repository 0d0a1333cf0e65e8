#!/usr/bin/env python3
"""
Run the affect HTTP API.

Loads .env first so HEARTBEAT_ENABLED / MAINTENANCE_ENABLED / BACKUP_ENABLED
take effect; the heartbeat then runs inside the server process.
"""

import argparse
import sys
from pathlib import Path

import dotenv
dotenv.load_dotenv()

import uvicorn

# Add the project root to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from affect_spine.core.config import get_config_summary, validate_config


def main():
    parser = argparse.ArgumentParser(description="Run the Affective Translation Spine API")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="Port (default: 8000)")
    parser.add_argument("--reload", action="store_true", help="Auto-reload on code changes")
    args = parser.parse_args()

    issues = validate_config()
    if issues:
        print(f"ERROR: invalid configuration: {issues}")
        sys.exit(1)

    for key, value in get_config_summary().items():
        print(f"  {key}: {value}")

    print(f"Starting affect API on http://{args.host}:{args.port}")
    uvicorn.run("affect_spine.api.main:app", host=args.host, port=args.port, reload=args.reload)


if __name__ == "__main__":
    main()
