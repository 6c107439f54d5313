"""
Configuration and startup security checks for the courseware web app.

Why: Prevent accidental insecure deployments without burdening local
development. Reads environment variables and raises `SystemExit` on fatal
misconfiguration in production/staging.
"""
from __future__ import annotations

import os

from courseware.db import configured_dsn
from courseware.evaluation.config import is_prod_like, load_evaluation_config


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Checks:
    - Evaluation settings parse (stub judge and unapproved direct execution
      are refused in prod-like envs by the loader itself).
    - A Postgres DSN is configured; in-memory stores are dev/test only.
    - The DSN must not explicitly disable TLS.
    """
    try:
        load_evaluation_config()
    except ValueError as exc:
        raise SystemExit(f"Refusing to start: {exc}")

    if not is_prod_like():
        return  # dev/test remain permissive

    dsn = configured_dsn()
    if not dsn:
        raise SystemExit(
            "Refusing to start: DATABASE_URL is unset in production. In-memory stores lose data on restart."
        )
    if "sslmode=disable" in dsn:
        raise SystemExit(
            "Refusing to start: DATABASE_URL contains sslmode=disable in production. Use sslmode=require or verify TLS."
        )

    trust_proxy = (os.getenv("COURSEWARE_TRUST_PROXY", "false") or "").strip().lower()
    if trust_proxy not in {"true", "false"}:
        raise SystemExit("Refusing to start: COURSEWARE_TRUST_PROXY must be 'true' or 'false'.")
