"""
Local disk storage helpers for uploaded documents.
"""
from __future__ import annotations

import hashlib
import os
from pathlib import Path

DATA_DIR = Path(os.environ.get("DATA_DIR", "./data"))
UPLOADS_DIR = DATA_DIR / "uploads"


def ensure_dirs() -> None:
    """Create data directories if they don't exist."""
    UPLOADS_DIR.mkdir(parents=True, exist_ok=True)


def sha256_bytes(data: bytes) -> str:
    """Compute sha256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def save_upload(document_id: str, file_bytes: bytes) -> Path:
    """Save uploaded PDF to local disk. Returns the file path."""
    ensure_dirs()
    path = UPLOADS_DIR / f"{document_id}.pdf"
    path.write_bytes(file_bytes)
    return path


def get_upload_path(document_id: str) -> Path:
    """Return the path to a previously-saved upload."""
    return UPLOADS_DIR / f"{document_id}.pdf"


def delete_upload(document_id: str) -> bool:
    """Remove a stored upload; False when it was already gone."""
    path = get_upload_path(document_id)
    if not path.exists():
        return False
    path.unlink()
    return True
