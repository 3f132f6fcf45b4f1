"""Security helpers for private lobby passwords."""

from __future__ import annotations

import hashlib
import secrets


def hash_password(password: str, server_salt: str) -> str:
    """Create deterministic password hash via sha256(password + server_salt)."""
    payload = f"{password}{server_salt}".encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def verify_password(raw_password: str | None, expected_hash: str | None, server_salt: str) -> bool:
    """Compare a supplied password against a stored hash in constant time."""
    if raw_password is None or expected_hash is None:
        return False
    return secrets.compare_digest(hash_password(raw_password, server_salt), expected_hash)
