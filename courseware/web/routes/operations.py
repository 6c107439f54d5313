"""Operations endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from courseware import __version__, telemetry
from courseware.web.security import private_json

operations_router = APIRouter(tags=["Operations"])


@operations_router.get("/health")
async def health():
    """Liveness probe with the in-process counters."""
    return private_json({"status": "ok", "version": __version__, "counters": telemetry.counter_totals()})
