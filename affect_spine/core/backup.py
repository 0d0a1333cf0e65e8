"""
Snapshot persistence for the session store.

A snapshot is the JSON form of SessionStore.serialize_all(), optionally
encrypted with AES-256-GCM, written next to an unencrypted manifest:

    <path>                 snapshot data
    <path>.manifest.json   id, timestamps, checksum, key material
"""

import hashlib
import json
import os
import secrets
import tempfile
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .config import (
    BACKUP_ENCRYPTION_ENABLED,
    VERSION,
    ensure_backup_directory,
    get_master_password,
    is_backup_enabled,
)
from .store import SessionStore
from ..util.logging import audit_event, log_snapshot

MANIFEST_SUFFIX = ".manifest.json"


@dataclass
class SnapshotManifest:
    """Snapshot manifest with metadata and integrity checks."""
    snapshot_id: str
    created_at: datetime
    session_count: int
    encrypted: bool
    total_size: int
    version: str = VERSION
    checksum: str = ""
    encrypted_key: Optional[str] = None  # For decrypting the snapshot
    salt: Optional[str] = None  # PBKDF2 salt for key derivation

    def to_dict(self) -> Dict[str, Any]:
        """Convert manifest to dictionary for JSON serialization."""
        data = asdict(self)
        data['created_at'] = self.created_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SnapshotManifest':
        """Create manifest from dictionary (for restoration)."""
        data = dict(data)
        data['created_at'] = datetime.fromisoformat(data['created_at'])
        known = set(cls.__dataclass_fields__)
        return cls(**{k: v for k, v in data.items() if k in known})


class SnapshotError(Exception):
    """Raised when a snapshot cannot be created."""
    pass


class RestoreError(Exception):
    """Raised when a snapshot cannot be read back."""
    pass


def _derive_key(password: str, salt: bytes) -> bytes:
    """Derive encryption key from password using PBKDF2."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=100000,
    )
    return kdf.derive(password.encode())


def _encrypt_data(data: bytes, key: bytes) -> bytes:
    """Encrypt data using AES-256-GCM. Output is nonce + tag + ciphertext."""
    nonce = os.urandom(12)
    encryptor = Cipher(algorithms.AES(key), modes.GCM(nonce)).encryptor()
    ciphertext = encryptor.update(data) + encryptor.finalize()
    return nonce + encryptor.tag + ciphertext


def _decrypt_data(encrypted_data: bytes, key: bytes) -> bytes:
    """Decrypt data using AES-256-GCM."""
    if len(encrypted_data) < 28:  # nonce (12) + tag (16)
        raise RestoreError("Encrypted data too short")

    nonce = encrypted_data[:12]
    tag = encrypted_data[12:28]
    ciphertext = encrypted_data[28:]

    decryptor = Cipher(algorithms.AES(key), modes.GCM(nonce, tag)).decryptor()
    try:
        return decryptor.update(ciphertext) + decryptor.finalize()
    except InvalidTag:
        raise RestoreError("Decryption failed: wrong key or corrupted data")


def _calculate_checksum(data: bytes) -> str:
    """Calculate SHA-256 checksum of data."""
    return hashlib.sha256(data).hexdigest()


def _generate_encryption_key() -> Tuple[str, bytes, str]:
    """Random data key, returned wrapped with a key derived from the master password."""
    raw_key = secrets.token_bytes(32)
    salt = secrets.token_bytes(16)

    master_key = _derive_key(get_master_password(), salt)
    encrypted_key = _encrypt_data(raw_key, master_key)

    return encrypted_key.hex(), raw_key, salt.hex()


def _unwrap_key(manifest: SnapshotManifest) -> bytes:
    if not manifest.encrypted_key or not manifest.salt:
        raise RestoreError("Encrypted snapshot is missing key material")
    try:
        salt = bytes.fromhex(manifest.salt)
        encrypted_key = bytes.fromhex(manifest.encrypted_key)
    except ValueError:
        raise RestoreError("Snapshot key material is not valid hex")
    return _decrypt_data(encrypted_key, _derive_key(get_master_password(), salt))


def _atomic_write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), prefix=path.name, suffix=".tmp")
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        os.replace(tmp_path, path)
    except OSError as e:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise SnapshotError(f"Failed to write {path}: {e}")


def create_snapshot(store: SessionStore, snapshot_path: str, encrypt: Optional[bool] = None,
                    dry_run: bool = False) -> SnapshotManifest:
    """
    Serialize every session in `store` to `snapshot_path`.

    Args:
        store: Session store to snapshot
        snapshot_path: Output file (manifest is written alongside)
        encrypt: Force encryption on/off (default: BACKUP_ENCRYPTION_ENABLED)
        dry_run: Build the manifest without writing files

    Returns:
        SnapshotManifest describing the snapshot
    """
    if not is_backup_enabled():
        raise SnapshotError("Snapshot system is disabled. Enable with BACKUP_ENABLED=true")

    if encrypt is None:
        encrypt = BACKUP_ENCRYPTION_ENABLED

    created_at = datetime.now()
    sessions = store.serialize_all()
    document = {
        "metadata": {"created_at": created_at.isoformat(), "version": VERSION},
        "sessions": sessions,
    }
    plaintext = json.dumps(document, sort_keys=True).encode()

    manifest = SnapshotManifest(
        snapshot_id=f"snapshot_{created_at.strftime('%Y%m%d_%H%M%S')}_{secrets.token_hex(4)}",
        created_at=created_at,
        session_count=len(sessions),
        encrypted=encrypt,
        total_size=len(plaintext),
        checksum=_calculate_checksum(plaintext),
    )

    if dry_run:
        return manifest

    payload = plaintext
    if encrypt:
        encrypted_key, raw_key, salt = _generate_encryption_key()
        payload = _encrypt_data(plaintext, raw_key)
        manifest.encrypted_key = encrypted_key
        manifest.salt = salt

    path = Path(snapshot_path)
    _atomic_write(path, payload)
    _atomic_write(Path(str(path) + MANIFEST_SUFFIX), json.dumps(manifest.to_dict(), indent=2).encode())

    log_snapshot("created", manifest.snapshot_id, manifest.session_count, manifest.encrypted)
    audit_event("snapshot.created", {"snapshot_id": manifest.snapshot_id}, {"path": str(path)})
    return manifest


def read_manifest(snapshot_path: str) -> SnapshotManifest:
    manifest_path = Path(str(snapshot_path) + MANIFEST_SUFFIX)
    try:
        with open(manifest_path, 'r') as f:
            return SnapshotManifest.from_dict(json.load(f))
    except FileNotFoundError:
        raise RestoreError(f"Manifest not found: {manifest_path}")
    except (ValueError, KeyError, TypeError) as e:
        raise RestoreError(f"Invalid manifest {manifest_path}: {e}")


def restore_snapshot(store: SessionStore, snapshot_path: str) -> int:
    """
    Load a snapshot into `store`. Returns the number of sessions restored.
    Sessions already in the store with the same id are replaced.
    """
    manifest = read_manifest(snapshot_path)

    try:
        with open(snapshot_path, 'rb') as f:
            payload = f.read()
    except FileNotFoundError:
        raise RestoreError(f"Snapshot file not found: {snapshot_path}")

    if manifest.encrypted:
        payload = _decrypt_data(payload, _unwrap_key(manifest))

    if _calculate_checksum(payload) != manifest.checksum:
        raise RestoreError("Snapshot checksum mismatch")

    try:
        document = json.loads(payload.decode())
    except (UnicodeDecodeError, ValueError) as e:
        raise RestoreError(f"Snapshot is not valid JSON: {e}")

    sessions = document.get("sessions") if isinstance(document, dict) else None
    restored = store.restore_all(sessions)

    log_snapshot("restored", manifest.snapshot_id, restored, manifest.encrypted)
    return restored


def create_periodic_snapshot(store: SessionStore, directory: Optional[str] = None) -> SnapshotManifest:
    """Heartbeat entry point: timestamped snapshot under BACKUP_DIR (or `directory`)."""
    target = ensure_backup_directory(directory)
    name = f"affect_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
    return create_snapshot(store, str(target / name))
