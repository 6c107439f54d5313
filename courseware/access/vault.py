"""
Single-use, optionally expiring course access tokens.

Intent:
    Issue tokens whose raw value is shown exactly once, and redeem them so that
    concurrent redeemers of the same token produce at most one winner.

Security:
    Only the SHA-256 hash is persisted. Raw tokens and hashes are never logged
    and never returned by listings.

Atomicity:
    The repository's `redeem` performs lookup, the `used_at` transition and the
    enrollment insert as one atomic step. An expired token is left unused.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol

from courseware import telemetry
from courseware.access.tokens import MAX_RAW_TOKEN_CHARS, generate_token, hash_token
from courseware.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

INVALID = "INVALID"
EXPIRED = "EXPIRED"
# Caller got enrolled by another path meanwhile; the token stays unused.
ALREADY_ENROLLED = "ALREADY_ENROLLED"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Course:
    id: str
    title: str
    price: int = 0

    @property
    def is_free(self) -> bool:
        return self.price == 0


@dataclass(frozen=True)
class TokenRecord:
    id: str
    course_id: str
    token_hash: str
    created_at: datetime
    expires_at: Optional[datetime] = None
    used_at: Optional[datetime] = None
    used_by: Optional[str] = None

    def to_public_dict(self) -> dict:
        return {
            "id": self.id,
            "courseId": self.course_id,
            "createdAt": self.created_at.isoformat(),
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
            "usedAt": self.used_at.isoformat() if self.used_at else None,
        }


@dataclass(frozen=True)
class IssuedToken:
    """Issuance result. `token` is the only copy of the raw value."""

    id: str
    token: str
    expires_at: Optional[datetime]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "token": self.token,
            "expiresAt": self.expires_at.isoformat() if self.expires_at else None,
        }


@dataclass(frozen=True)
class RedemptionResult:
    ok: bool
    reason: Optional[str] = None

    @classmethod
    def success(cls) -> "RedemptionResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str) -> "RedemptionResult":
        return cls(ok=False, reason=reason)


class AccessRepoProtocol(Protocol):
    def get_course(self, course_id: str) -> Optional[Course]:
        ...

    def is_enrolled(self, user_id: str, course_id: str) -> bool:
        ...

    def enroll(self, user_id: str, course_id: str) -> bool:
        """Insert the enrollment; False when it already existed."""
        ...

    def insert_token(self, course_id: str, token_hash: str, expires_at: Optional[datetime], now: datetime) -> TokenRecord:
        ...

    def redeem(self, course_id: str, token_hash: str, user_id: str, now: datetime) -> Optional[str]:
        """Atomically consume a token and enroll; None on success, else INVALID, EXPIRED or ALREADY_ENROLLED."""
        ...

    def list_tokens(self, course_id: str) -> List[TokenRecord]:
        ...


class AccessTokenVault:
    def __init__(self, repo: AccessRepoProtocol, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._repo = repo
        self._clock = clock

    def _require_course(self, course_id: str) -> Course:
        course = self._repo.get_course(course_id)
        if course is None:
            raise NotFoundError("course_not_found", "Course not found")
        return course

    def issue(self, course_id: str, expires_at: Optional[datetime] = None) -> IssuedToken:
        """Create a token for a priced course and return its raw value once."""
        course = self._require_course(course_id)
        if course.is_free:
            raise ValidationError("tokens_only_for_priced_courses", "Access codes are only for priced courses")
        now = self._clock()
        if expires_at is not None and expires_at <= now:
            raise ValidationError("invalid_expiry", "Expiry must lie in the future")
        raw = generate_token()
        record = self._repo.insert_token(course_id, hash_token(raw), expires_at, now)
        telemetry.increment_counter("access_tokens_issued_total")
        logger.info("access.token.issued course_id=%s token_id=%s expires=%s", course_id, record.id, bool(expires_at))
        return IssuedToken(id=record.id, token=raw, expires_at=record.expires_at)

    def redeem(self, course_id: str, raw_token: str, user_id: str) -> RedemptionResult:
        """Consume `raw_token` for `course_id` and enroll `user_id`."""
        if not isinstance(raw_token, str) or not raw_token.strip() or len(raw_token) > MAX_RAW_TOKEN_CHARS:
            return RedemptionResult.failure(INVALID)
        reason = self._repo.redeem(course_id, hash_token(raw_token.strip()), user_id, self._clock())
        outcome = reason or "ok"
        telemetry.increment_counter("access_redemptions_total", outcome=outcome.lower())
        logger.info("access.token.redeem course_id=%s outcome=%s", course_id, outcome)
        if reason is None:
            return RedemptionResult.success()
        return RedemptionResult.failure(reason)

    def list_tokens(self, course_id: str) -> List[TokenRecord]:
        self._require_course(course_id)
        return self._repo.list_tokens(course_id)
