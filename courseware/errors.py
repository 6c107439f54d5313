"""
Error taxonomy shared by all courseware contexts.

Intent:
    Give every failure a stable, machine-readable `code` plus a short
    user-facing message. The web layer maps categories to HTTP status codes;
    raw internal detail stays in the server logs.

Design:
    Categories also inherit from the closest builtin (ValueError, LookupError,
    PermissionError) so framework-free callers can keep catching builtins.
"""
from __future__ import annotations


class CoursewareError(Exception):
    """Base class carrying a stable error code and a short message."""

    status_code = 500
    retryable = False

    def __init__(self, code: str, message: str | None = None):
        super().__init__(code)
        self.code = code
        self.message = message or code


class ValidationError(CoursewareError, ValueError):
    """Malformed request shape; rejected before any side effect."""

    status_code = 400


class UnauthorizedError(CoursewareError, PermissionError):
    """No identified caller."""

    status_code = 401


class ForbiddenError(CoursewareError, PermissionError):
    """Caller is identified but lacks the required role."""

    status_code = 403


class NotFoundError(CoursewareError, LookupError):
    """Referenced course, page or section is absent."""

    status_code = 404


class ConflictError(CoursewareError):
    """Token already used, caller already enrolled."""

    status_code = 409


class ExternalDependencyError(CoursewareError):
    """Judge unreachable or returned unparseable output (recoverable)."""

    status_code = 502
    retryable = True


class ConcurrencyError(CoursewareError):
    """Lost update detected by an optimistic check (transient)."""

    status_code = 503
    retryable = True


__all__ = [
    "CoursewareError",
    "ValidationError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "ExternalDependencyError",
    "ConcurrencyError",
]
