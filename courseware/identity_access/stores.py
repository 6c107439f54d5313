"""
Server-side sessions behind the opaque `courseware_session` cookie.

Authentication happens upstream; whoever signs the caller in creates a
session here and hands the id out as a cookie. Only `sub` and `roles` are
kept, and an expired session is indistinguishable from an unknown one.
"""
from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Callable, Dict, Optional


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionRecord:
    session_id: str
    sub: str
    roles: tuple[str, ...] = field(default_factory=tuple)
    expires_at: Optional[datetime] = None

    def expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class SessionStore:
    """In-memory sessions; a process restart signs everybody out."""

    def __init__(self, *, clock: Callable[[], datetime] = _utcnow) -> None:
        self._sessions: Dict[str, SessionRecord] = {}
        self._clock = clock
        self._lock = Lock()

    def create(self, *, sub: str, roles: list[str], ttl_seconds: int = 3600) -> SessionRecord:
        now = self._clock()
        record = SessionRecord(
            session_id=secrets.token_urlsafe(32),
            sub=sub,
            roles=tuple(roles),
            expires_at=now + timedelta(seconds=ttl_seconds),
        )
        with self._lock:
            self._sessions = {sid: rec for sid, rec in self._sessions.items() if not rec.expired(now)}
            self._sessions[record.session_id] = record
        return record

    def get(self, session_id: str) -> Optional[SessionRecord]:
        now = self._clock()
        with self._lock:
            record = self._sessions.get(session_id)
            if record is not None and record.expired(now):
                del self._sessions[session_id]
                record = None
        return record

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)
