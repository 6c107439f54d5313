"""
Shared Postgres connection settings for the courseware repositories.

Intent:
    One place that resolves the DSN so every Postgres-backed adapter uses the
    same precedence rules and fails with a helpful message when unset.
"""
from __future__ import annotations

import os
from typing import Any

try:  # pragma: no cover -- optional dependency in some environments
    import psycopg
    from psycopg.types.json import Json

    HAVE_PSYCOPG = True
except ImportError:  # pragma: no cover
    psycopg = None  # type: ignore
    Json = None  # type: ignore
    HAVE_PSYCOPG = False


def configured_dsn() -> str | None:
    """Return the configured DSN or None (first non-empty wins).

    Order of precedence:
      1) COURSEWARE_DATABASE_URL (context-specific override)
      2) DATABASE_URL (app-wide default)
    """
    for name in ("COURSEWARE_DATABASE_URL", "DATABASE_URL"):
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return None


def require_dsn(dsn: str | None = None) -> str:
    """Resolve a DSN for a Postgres adapter or raise RuntimeError."""
    if not HAVE_PSYCOPG:
        raise RuntimeError("psycopg3 is required for Postgres-backed repositories")
    resolved = dsn or configured_dsn()
    if not resolved:
        raise RuntimeError("Database DSN unavailable (set COURSEWARE_DATABASE_URL or DATABASE_URL)")
    return resolved


def connect(dsn: str, **kwargs: Any):
    """Open a psycopg connection; kept as a seam for tests."""
    return psycopg.connect(dsn, **kwargs)  # type: ignore[union-attr]
