"""Access token generation and one-way hashing."""

from __future__ import annotations

import hashlib
import secrets

TOKEN_BYTES = 32
MAX_RAW_TOKEN_CHARS = 256


def generate_token() -> str:
    """Return a fresh 256-bit token as 64 hex characters."""
    return secrets.token_hex(TOKEN_BYTES)


def hash_token(raw: str) -> str:
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()
