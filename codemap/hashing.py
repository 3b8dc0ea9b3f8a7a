"""Content digests used as the unchanged-file signal."""

from __future__ import annotations

import hashlib


def hash_bytes(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw file bytes."""
    return hashlib.sha256(data).hexdigest()


def short_hash(value: str) -> str:
    """Render a digest as first-6 and last-2 hex characters."""
    if len(value) <= 8:
        return value
    return f"{value[:6]}..{value[-2:]}"


__all__ = ["hash_bytes", "short_hash"]
