"""
Shared web helpers: same-origin (CSRF) check, caller resolution and the
uniform JSON error shape.
"""
from __future__ import annotations

import os
from typing import Any, Optional
from urllib.parse import urlparse

from fastapi import Request
from fastapi.responses import JSONResponse

from courseware.errors import CoursewareError

PRIVATE_HEADERS = {"Cache-Control": "private, no-store"}


def _default_port(scheme: str) -> int:
    return 443 if scheme == "https" else 80


def _parse_origin(url: str) -> tuple[str, str, int]:
    p = urlparse(url)
    if not p.scheme or not p.hostname:
        raise ValueError("invalid_origin")
    scheme = p.scheme.lower()
    port = p.port if p.port is not None else _default_port(scheme)
    return scheme, p.hostname.lower(), int(port)


def _parse_server(request: Request) -> tuple[str, str, int]:
    trust_proxy = (os.getenv("COURSEWARE_TRUST_PROXY", "false") or "").lower() == "true"
    if trust_proxy:
        proto = (request.headers.get("x-forwarded-proto") or request.url.scheme or "http").split(",")[0].strip()
        host_raw = (request.headers.get("x-forwarded-host") or request.headers.get("host") or "").split(",")[0].strip()
        scheme = (proto or "http").lower()
        if ":" in host_raw:
            host_only, port_str = host_raw.rsplit(":", 1)
            try:
                port = int(port_str)
            except ValueError:
                port = _default_port(scheme)
            return scheme, host_only.lower(), port
        host = (host_raw or request.url.hostname or "").lower()
        return scheme, host, _default_port(scheme)

    scheme = (request.url.scheme or "http").lower()
    host = (request.url.hostname or "").lower()
    port = int(request.url.port) if request.url.port else _default_port(scheme)
    return scheme, host, port


def is_same_origin(request: Request) -> bool:
    """Verify same-origin using Origin or Referer headers.

    Behavior:
    - If Origin is present, require exact scheme/host/port match with server.
    - Else if Referer is present, validate its origin similarly.
    - Else (no headers): allow, so non-browser clients keep working.
    Proxy awareness: Only trust X-Forwarded-* when COURSEWARE_TRUST_PROXY=true.
    """
    try:
        server = _parse_server(request)
        origin_val = request.headers.get("origin")
        if origin_val:
            return _parse_origin(origin_val) == server
        referer_val = request.headers.get("referer")
        if referer_val:
            return _parse_origin(referer_val) == server
        return True
    except ValueError:
        return False


def private_json(body: Any, *, status_code: int = 200) -> JSONResponse:
    return JSONResponse(body, status_code=status_code, headers=dict(PRIVATE_HEADERS))


def error_response(exc: CoursewareError) -> JSONResponse:
    return private_json({"error": exc.code, "detail": exc.message}, status_code=exc.status_code)


def csrf_error() -> JSONResponse:
    return private_json({"error": "forbidden", "detail": "csrf_violation"}, status_code=403)


def current_user(request: Request) -> Optional[dict]:
    user = getattr(request.state, "user", None)
    return user if isinstance(user, dict) and user.get("sub") else None


def require_user(request: Request):
    """Return (user, None) or (None, error response)."""
    user = current_user(request)
    if not user:
        return None, private_json({"error": "unauthenticated", "detail": "Sign in required"}, status_code=401)
    return user, None


def require_admin(request: Request):
    user, error = require_user(request)
    if error:
        return None, error
    roles = user.get("roles")
    if not isinstance(roles, list) or "admin" not in roles:
        return None, private_json({"error": "forbidden", "detail": "Admin role required"}, status_code=403)
    return user, None
