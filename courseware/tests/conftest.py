"""
Pytest configuration for courseware tests.

Why: Force AnyIO to use the asyncio backend and give every test a clean,
in-memory environment. Postgres-backed tests opt in via COURSEWARE_TEST_DSN.
"""
from __future__ import annotations

import pytest

from courseware import telemetry

_CONFIG_ENV = (
    "COURSEWARE_ENV",
    "DATABASE_URL",
    "COURSEWARE_DATABASE_URL",
    "EVALUATION_STRATEGY",
    "JUDGE_BACKEND",
    "EVALUATION_JUDGE_ADAPTER",
    "AI_JUDGE_MODEL",
    "OLLAMA_BASE_URL",
    "AI_TIMEOUT_JUDGE",
    "EVALUATION_MAX_JUDGE_TEST_CASES",
    "SANDBOX_TIMEOUT_SECONDS",
    "SANDBOX_MEMORY_MB",
    "ALLOW_DIRECT_EXECUTION",
    "PROGRESS_MAX_CAS_ATTEMPTS",
    "COURSEWARE_TRUST_PROXY",
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch):
    for name in _CONFIG_ENV:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
def _reset_telemetry():
    telemetry.reset_for_tests()
    yield
    telemetry.reset_for_tests()
