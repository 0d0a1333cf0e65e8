#!/usr/bin/env python3
"""
Command-line snapshot utility for affect session state.

The engine keeps sessions in memory; snapshots are how state leaves the
process. This tool inspects and verifies snapshot files, and can build one by
replaying a JSON-lines event file through a fresh AffectService.
"""

import argparse
import json
import sys
from pathlib import Path

# Add the project root to sys.path to import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from affect_spine.core.backup import RestoreError, SnapshotError, create_snapshot, read_manifest, restore_snapshot
from affect_spine.core.service import AffectService
from affect_spine.core.store import SessionStore


def cmd_inspect(args) -> int:
    manifest = read_manifest(args.snapshot_path)
    print("Snapshot Information:")
    print(f"  ID: {manifest.snapshot_id}")
    print(f"  Created: {manifest.created_at.isoformat()}")
    print(f"  Sessions: {manifest.session_count}")
    print(f"  Encrypted: {manifest.encrypted}")
    print(f"  Size: {manifest.total_size} bytes")
    print(f"  Version: {manifest.version}")
    return 0


def cmd_verify(args) -> int:
    store = SessionStore()
    restored = restore_snapshot(store, args.snapshot_path)
    manifest = read_manifest(args.snapshot_path)
    print(f"Restored {restored}/{manifest.session_count} sessions into a scratch store")
    if args.verbose:
        for session_id in store.list_sessions():
            print(f"  {session_id}: {len(store.get_events(session_id, store.event_log_size))} events")
    return 0 if restored == manifest.session_count else 2


def cmd_replay(args) -> int:
    service = AffectService()
    rejected = 0

    with open(args.events_path, 'r') as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except ValueError as e:
                print(f"WARNING: line {line_no}: not JSON ({e})")
                rejected += 1
                continue
            if not isinstance(record, dict):
                rejected += 1
                continue
            result = service.emit_event(record.get("sessionId"), record.get("event"))
            if not result["ok"]:
                if args.verbose:
                    print(f"WARNING: line {line_no}: {result['error']}")
                rejected += 1

    encrypt = None
    if args.encrypt:
        encrypt = True
    elif args.no_encrypt:
        encrypt = False

    manifest = create_snapshot(service.store, args.snapshot_path, encrypt=encrypt, dry_run=args.dry_run)
    action = "Validated" if args.dry_run else "Wrote"
    print(f"{action} snapshot {manifest.snapshot_id}: {manifest.session_count} sessions, {rejected} events rejected")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect, verify and build affect state snapshots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s inspect data/snapshots/affect_20260101_120000.json
  %(prog)s verify data/snapshots/affect_20260101_120000.json --verbose
  %(prog)s replay events.jsonl out.json --no-encrypt

Replay input is one JSON object per line: {"sessionId": "...", "event": {...}}

Environment variables:
- BACKUP_ENABLED=true (required for replay)
- BACKUP_ENCRYPTION_ENABLED=true (default true)
- BACKUP_MASTER_PASSWORD=... (change from default)
        """
    )
    sub = parser.add_subparsers(dest="command", required=True)

    inspect_parser = sub.add_parser("inspect", help="Print a snapshot's manifest")
    inspect_parser.add_argument("snapshot_path")
    inspect_parser.set_defaults(func=cmd_inspect)

    verify_parser = sub.add_parser("verify", help="Decrypt, checksum and restore into a scratch store")
    verify_parser.add_argument("snapshot_path")
    verify_parser.add_argument("--verbose", "-v", action="store_true", help="Show per-session details")
    verify_parser.set_defaults(func=cmd_verify)

    replay_parser = sub.add_parser("replay", help="Replay a JSON-lines event file and snapshot the result")
    replay_parser.add_argument("events_path")
    replay_parser.add_argument("snapshot_path")
    replay_parser.add_argument("--encrypt", "-e", action="store_true", help="Force encryption")
    replay_parser.add_argument("--no-encrypt", action="store_true", help="Disable encryption")
    replay_parser.add_argument("--dry-run", "-n", action="store_true", help="Build the manifest without writing")
    replay_parser.add_argument("--verbose", "-v", action="store_true", help="Report rejected lines")
    replay_parser.set_defaults(func=cmd_replay)
    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()

    if getattr(args, "encrypt", False) and getattr(args, "no_encrypt", False):
        parser.error("Cannot specify both --encrypt and --no-encrypt")

    try:
        return args.func(args)
    except (SnapshotError, RestoreError) as e:
        print(f"ERROR: {e}")
        return 1
    except FileNotFoundError as e:
        print(f"ERROR: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
