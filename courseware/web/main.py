"""
FastAPI application for the courseware services.

Run: `uvicorn courseware.web.main:app`.

Security:
    An opaque `courseware_session` cookie is resolved server-side to
    `request.state.user = {"sub", "roles"}`. Unauthenticated `/api/*` calls
    get 401; write routes additionally enforce same-origin.
"""
from __future__ import annotations

import logging
import os
import sys

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from courseware import __version__


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via COURSEWARE_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("COURSEWARE_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


from dotenv import load_dotenv

if _should_load_dotenv():
    load_dotenv()

from courseware.web.config import ensure_secure_config_on_startup

ensure_secure_config_on_startup()

from courseware.web.routes.content import content_router
from courseware.web.routes.enrollment import enrollment_router
from courseware.web.routes.evaluation import evaluation_router
from courseware.web.routes.operations import operations_router
from courseware.web.routes.progress import progress_router
from courseware.web.wiring import get_services

logger = logging.getLogger("courseware.web")
SESSION_COOKIE_NAME = "courseware_session"

app = FastAPI(title="Courseware", description="Coding challenges, progress and course access", version=__version__)


def _is_public_path(path: str) -> bool:
    return path in ("/health", "/docs", "/openapi.json", "/favicon.ico")


@app.middleware("http")
async def auth_enforcement(request: Request, call_next):
    path = request.url.path
    if _is_public_path(path):
        return await call_next(request)

    sid = request.cookies.get(SESSION_COOKIE_NAME)
    rec = None
    if sid:
        try:
            rec = get_services().sessions.get(sid)
        except Exception as exc:
            logger.warning("web.session.lookup_failed reason=%s", exc.__class__.__name__)

    if not rec:
        if path.startswith("/api/"):
            headers = {"Cache-Control": "private, no-store", "Vary": "Origin"}
            return JSONResponse(
                {"error": "unauthenticated", "detail": "Sign in required"}, status_code=401, headers=headers
            )
        return await call_next(request)

    # Minimal, read-only user context for downstream handlers.
    request.state.user = {"sub": rec.sub, "roles": list(rec.roles)}
    return await call_next(request)


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Frame-Options", "SAMEORIGIN")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    return response


@app.exception_handler(RequestValidationError)
async def request_validation_error(request: Request, exc: RequestValidationError):
    # Keep the uniform error shape; field details stay in the server log.
    logger.info("web.request.invalid path=%s errors=%s", request.url.path, len(exc.errors()))
    return JSONResponse(
        {"error": "invalid_input", "detail": "Malformed request body"},
        status_code=400,
        headers={"Cache-Control": "private, no-store"},
    )


app.include_router(evaluation_router)
app.include_router(progress_router)
app.include_router(enrollment_router)
app.include_router(content_router)
app.include_router(operations_router)
