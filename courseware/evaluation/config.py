"""
Evaluation configuration parsing and validation.

Intent:
    Provide a single place to read environment variables that control
    strategy selection, judge adapter wiring (DI), model names, timeouts,
    sandbox limits and the local Ollama URL.
"""
from __future__ import annotations

from dataclasses import dataclass
import os
import re
from urllib.parse import urlparse

from courseware.evaluation.ports import STRATEGY_DIRECT, STRATEGY_JUDGED


@dataclass(frozen=True)
class EvaluationConfig:
    strategy: str  # "judged" | "direct"
    judge_backend: str  # "stub" | "local"
    judge_adapter_path: str
    judge_model: str
    timeout_judge_seconds: int
    ollama_base_url: str
    max_judge_test_cases: int
    sandbox_timeout_seconds: int
    sandbox_memory_mb: int
    allow_direct_execution: bool


def _int_env(name: str, default: int, *, low: int = 1, high: int = 300) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}")
    if value < low or value > high:
        raise ValueError(f"{name} out of range ({low}..{high}), got: {value}")
    return value


def _truthy_env(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in {"1", "true", "yes", "on"}


_HOST_RE = re.compile(r"^[a-z0-9._-]+$")


def _validate_ollama_url(url: str) -> None:
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"}:
        raise ValueError("OLLAMA_BASE_URL must start with http:// or https://")
    host = (parsed.hostname or "").lower()
    if host in {"localhost"} or host.startswith("127.") or host.startswith("::1"):
        return
    # docker compose service names (no dots)
    if "." not in host and _HOST_RE.match(host):
        return
    raise ValueError("OLLAMA_BASE_URL must point to localhost or a valid service hostname without dots")


def is_prod_like() -> bool:
    env = (os.getenv("COURSEWARE_ENV") or "dev").lower()
    return env in {"prod", "production", "stage", "staging"}


def load_evaluation_config() -> EvaluationConfig:
    """
    Parse and validate evaluation configuration from environment variables.

    Behavior:
        - `EVALUATION_STRATEGY` selects "judged" (default) or "direct".
        - `JUDGE_BACKEND` selects the DI alias "stub" or "local" (default: stub);
          an explicit `EVALUATION_JUDGE_ADAPTER` dotted path takes precedence.
        - The stub judge and unapproved direct execution are refused in
          production/staging.
    """
    strategy = (os.getenv("EVALUATION_STRATEGY") or STRATEGY_JUDGED).strip().lower()
    if strategy not in {STRATEGY_JUDGED, STRATEGY_DIRECT}:
        raise ValueError("EVALUATION_STRATEGY must be 'judged' or 'direct'")

    backend = (os.getenv("JUDGE_BACKEND") or "stub").strip().lower()
    if backend not in {"stub", "local"}:
        raise ValueError("JUDGE_BACKEND must be 'stub' or 'local'")

    allow_direct = _truthy_env("ALLOW_DIRECT_EXECUTION")
    if is_prod_like():
        if strategy == STRATEGY_JUDGED and backend == "stub":
            raise ValueError("JUDGE_BACKEND=stub is not allowed in production/staging environments.")
        if strategy == STRATEGY_DIRECT and not allow_direct:
            raise ValueError("EVALUATION_STRATEGY=direct requires ALLOW_DIRECT_EXECUTION=true in production/staging.")

    default_adapter = (
        "courseware.evaluation.adapters.local_judge"
        if backend == "local"
        else "courseware.evaluation.adapters.stub_judge"
    )
    adapter_path = os.getenv("EVALUATION_JUDGE_ADAPTER", default_adapter)

    ollama_url = os.getenv("OLLAMA_BASE_URL", "http://ollama:11434")
    _validate_ollama_url(ollama_url)

    return EvaluationConfig(
        strategy=strategy,
        judge_backend=backend,
        judge_adapter_path=adapter_path,
        judge_model=os.getenv("AI_JUDGE_MODEL", "gpt-oss:latest"),
        timeout_judge_seconds=_int_env("AI_TIMEOUT_JUDGE", 20),
        ollama_base_url=ollama_url,
        max_judge_test_cases=_int_env("EVALUATION_MAX_JUDGE_TEST_CASES", 10, high=50),
        sandbox_timeout_seconds=_int_env("SANDBOX_TIMEOUT_SECONDS", 5, high=30),
        sandbox_memory_mb=_int_env("SANDBOX_MEMORY_MB", 256, low=32, high=1024),
        allow_direct_execution=allow_direct,
    )
