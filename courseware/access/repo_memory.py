"""In-memory courses, enrollments and access tokens for dev runs and tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from threading import Lock
from typing import Dict, List, Optional, Set, Tuple
from uuid import uuid4

from courseware.access.vault import ALREADY_ENROLLED, EXPIRED, INVALID, Course, TokenRecord


class MemoryAccessRepo:
    def __init__(self) -> None:
        self._courses: Dict[str, Course] = {}
        self._enrollments: Set[Tuple[str, str]] = set()
        self._tokens: Dict[str, TokenRecord] = {}
        self._lock = Lock()

    def add_course(self, course: Course) -> Course:
        with self._lock:
            self._courses[course.id] = course
        return course

    def get_course(self, course_id: str) -> Optional[Course]:
        with self._lock:
            return self._courses.get(course_id)

    def is_enrolled(self, user_id: str, course_id: str) -> bool:
        with self._lock:
            return (user_id, course_id) in self._enrollments

    def enroll(self, user_id: str, course_id: str) -> bool:
        with self._lock:
            return self._enroll_locked(user_id, course_id)

    def _enroll_locked(self, user_id: str, course_id: str) -> bool:
        key = (user_id, course_id)
        if key in self._enrollments:
            return False
        self._enrollments.add(key)
        return True

    def enrollment_count(self, course_id: str) -> int:
        with self._lock:
            return sum(1 for _, cid in self._enrollments if cid == course_id)

    def insert_token(self, course_id: str, token_hash: str, expires_at: Optional[datetime], now: datetime) -> TokenRecord:
        record = TokenRecord(
            id=str(uuid4()), course_id=course_id, token_hash=token_hash, created_at=now, expires_at=expires_at
        )
        with self._lock:
            self._tokens[record.id] = record
        return record

    def redeem(self, course_id: str, token_hash: str, user_id: str, now: datetime) -> Optional[str]:
        with self._lock:
            match = next(
                (
                    t
                    for t in self._tokens.values()
                    if t.course_id == course_id and t.token_hash == token_hash and t.used_at is None
                ),
                None,
            )
            if match is None:
                return INVALID
            if match.expires_at is not None and match.expires_at <= now:
                return EXPIRED
            if not self._enroll_locked(user_id, course_id):
                return ALREADY_ENROLLED
            self._tokens[match.id] = replace(match, used_at=now, used_by=user_id)
            return None

    def get_token(self, token_id: str) -> Optional[TokenRecord]:
        with self._lock:
            return self._tokens.get(token_id)

    def list_tokens(self, course_id: str) -> List[TokenRecord]:
        with self._lock:
            rows = [t for t in self._tokens.values() if t.course_id == course_id]
        return sorted(rows, key=lambda t: t.created_at, reverse=True)
