"""
Tests for state snapshots including encryption and integrity checks.
"""

import json
import os
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

import numpy as np
import pytest

from affect_spine.core.backup import (
    MANIFEST_SUFFIX,
    RestoreError,
    SnapshotError,
    SnapshotManifest,
    _calculate_checksum,
    _decrypt_data,
    _encrypt_data,
    create_periodic_snapshot,
    create_snapshot,
    read_manifest,
    restore_snapshot,
)
from affect_spine.core.service import AffectService
from affect_spine.core.store import SessionStore


@pytest.fixture
def populated_store():
    service = AffectService()
    service.emit_event("alice", {"type": "ERROR", "intensity": 0.9})
    service.emit_event("bob", {"type": "SUCCESS", "intensity": 1.0, "polarity": 1.0})
    service.reset("carol", "cooldown")
    return service.store


@pytest.fixture(autouse=True)
def backup_enabled():
    with patch('affect_spine.core.backup.is_backup_enabled', return_value=True):
        yield


class TestSnapshotCore:
    """Test core snapshot primitives."""

    def test_checksum_calculation(self):
        """Test SHA-256 checksum calculation."""
        expected = "916f0027a575074ce72a331777c3478d6513f786a591bd892da1a577bf2335f9"
        assert _calculate_checksum(b"test data") == expected

    def test_encryption_decryption(self):
        """Test AES-256-GCM encryption and decryption."""
        key = os.urandom(32)
        data = b"{\"alice\": {}}"

        encrypted = _encrypt_data(data, key)

        assert encrypted != data
        assert _decrypt_data(encrypted, key) == data

    def test_encryption_wrong_key(self):
        """Test that wrong key fails decryption."""
        encrypted = _encrypt_data(b"secret", os.urandom(32))
        with pytest.raises(RestoreError):
            _decrypt_data(encrypted, os.urandom(32))

    def test_truncated_ciphertext(self):
        with pytest.raises(RestoreError, match="too short"):
            _decrypt_data(b"short", os.urandom(32))

    def test_manifest_round_trip(self):
        manifest = SnapshotManifest(
            snapshot_id="snapshot_1",
            created_at=datetime(2026, 1, 1, 12, 0, 0),
            session_count=3,
            encrypted=False,
            total_size=128,
            checksum="abc",
        )
        assert SnapshotManifest.from_dict(manifest.to_dict()) == manifest


class TestSnapshotRoundTrip:

    @pytest.mark.parametrize("encrypt", [True, False])
    def test_create_and_restore(self, tmp_path, populated_store, encrypt):
        path = tmp_path / "state.json"

        manifest = create_snapshot(populated_store, str(path), encrypt=encrypt)

        assert manifest.session_count == 3
        assert manifest.encrypted is encrypt
        assert path.exists()
        assert Path(str(path) + MANIFEST_SUFFIX).exists()

        fresh = SessionStore()
        assert restore_snapshot(fresh, str(path)) == 3
        assert sorted(fresh.list_sessions()) == ["alice", "bob", "carol"]
        for session_id in ("alice", "bob", "carol"):
            assert np.allclose(fresh.get_session(session_id).state, populated_store.get_session(session_id).state)
        assert fresh.get_session("carol").mode == "cooldown"

    def test_plaintext_snapshot_is_json(self, tmp_path, populated_store):
        path = tmp_path / "state.json"
        create_snapshot(populated_store, str(path), encrypt=False)

        document = json.loads(path.read_text())
        assert set(document["sessions"]) == {"alice", "bob", "carol"}
        assert "version" in document["metadata"]

    def test_encrypted_snapshot_is_opaque(self, tmp_path, populated_store):
        path = tmp_path / "state.json"
        create_snapshot(populated_store, str(path), encrypt=True)

        assert b"alice" not in path.read_bytes()
        assert read_manifest(str(path)).encrypted_key

    def test_dry_run_writes_nothing(self, tmp_path, populated_store):
        path = tmp_path / "state.json"
        manifest = create_snapshot(populated_store, str(path), dry_run=True)

        assert manifest.session_count == 3
        assert not path.exists()

    def test_periodic_snapshot_lands_in_directory(self, tmp_path, populated_store):
        manifest = create_periodic_snapshot(populated_store, str(tmp_path / "snaps"))

        snaps = tmp_path / "snaps"
        data_files = [p for p in snaps.glob("affect_*.json") if not p.name.endswith(MANIFEST_SUFFIX)]
        assert len(data_files) == 1
        assert Path(str(data_files[0]) + MANIFEST_SUFFIX).exists()
        assert manifest.session_count == 3


class TestSnapshotFailures:

    def test_disabled(self, tmp_path, populated_store):
        with patch('affect_spine.core.backup.is_backup_enabled', return_value=False):
            with pytest.raises(SnapshotError, match="disabled"):
                create_snapshot(populated_store, str(tmp_path / "x.json"))

    def test_missing_manifest(self, tmp_path):
        with pytest.raises(RestoreError, match="Manifest not found"):
            restore_snapshot(SessionStore(), str(tmp_path / "nothing.json"))

    def test_tampered_plaintext(self, tmp_path, populated_store):
        path = tmp_path / "state.json"
        create_snapshot(populated_store, str(path), encrypt=False)
        path.write_text(path.read_text().replace("alice", "mallory"))

        target = SessionStore()
        with pytest.raises(RestoreError, match="checksum"):
            restore_snapshot(target, str(path))
        assert target.session_count() == 0

    def test_tampered_ciphertext(self, tmp_path, populated_store):
        path = tmp_path / "state.json"
        create_snapshot(populated_store, str(path), encrypt=True)
        data = bytearray(path.read_bytes())
        data[-1] ^= 0xFF
        path.write_bytes(bytes(data))

        with pytest.raises(RestoreError):
            restore_snapshot(SessionStore(), str(path))

    def test_wrong_master_password(self, tmp_path, populated_store):
        path = tmp_path / "state.json"
        create_snapshot(populated_store, str(path), encrypt=True)

        with patch('affect_spine.core.backup.get_master_password', return_value="not-the-password"):
            with pytest.raises(RestoreError):
                restore_snapshot(SessionStore(), str(path))
