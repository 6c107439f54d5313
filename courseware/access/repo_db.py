"""
Postgres-backed courses, enrollments and access tokens.

Atomicity:
    `redeem` consumes the token with one conditional `update ... returning`
    and inserts the enrollment in the same transaction. Concurrent redeemers
    serialise on the token row; the loser's update matches nothing. When the
    enrollment already exists the whole transaction rolls back, so a second
    code for the same learner and course stays unused.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from courseware import db
from courseware.access.vault import ALREADY_ENROLLED, EXPIRED, INVALID, Course, TokenRecord

_TOKEN_COLUMNS = "id, course_id, token_hash, created_at, expires_at, used_at, used_by"


def _token(row) -> TokenRecord:
    return TokenRecord(
        id=str(row[0]),
        course_id=str(row[1]),
        token_hash=row[2],
        created_at=row[3],
        expires_at=row[4],
        used_at=row[5],
        used_by=str(row[6]) if row[6] is not None else None,
    )


class DBAccessRepo:
    def __init__(self, dsn: Optional[str] = None) -> None:
        self._dsn = db.require_dsn(dsn)

    def get_course(self, course_id: str) -> Optional[Course]:
        with db.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("select id, title, price from public.courses where id = %s", (course_id,))
                row = cur.fetchone()
        if not row:
            return None
        return Course(id=str(row[0]), title=row[1] or "", price=int(row[2] or 0))

    def is_enrolled(self, user_id: str, course_id: str) -> bool:
        with db.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "select 1 from public.course_enrollments where user_id = %s and course_id = %s",
                    (user_id, course_id),
                )
                return cur.fetchone() is not None

    def enroll(self, user_id: str, course_id: str) -> bool:
        with db.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    insert into public.course_enrollments (user_id, course_id)
                    values (%s, %s)
                    on conflict (user_id, course_id) do nothing
                    returning id
                    """,
                    (user_id, course_id),
                )
                created = cur.fetchone() is not None
            conn.commit()
        return created

    def insert_token(self, course_id: str, token_hash: str, expires_at: Optional[datetime], now: datetime) -> TokenRecord:
        with db.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    insert into public.course_access_tokens (course_id, token_hash, created_at, expires_at)
                    values (%s, %s, %s, %s)
                    returning {_TOKEN_COLUMNS}
                    """,
                    (course_id, token_hash, now, expires_at),
                )
                row = cur.fetchone()
            conn.commit()
        return _token(row)

    def redeem(self, course_id: str, token_hash: str, user_id: str, now: datetime) -> Optional[str]:
        with db.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    update public.course_access_tokens
                       set used_at = %s, used_by = %s
                     where course_id = %s
                       and token_hash = %s
                       and used_at is null
                       and (expires_at is null or expires_at > %s)
                    returning id
                    """,
                    (now, user_id, course_id, token_hash, now),
                )
                if cur.fetchone() is None:
                    # Classify without consuming: an unused match can only have failed on expiry.
                    cur.execute(
                        """
                        select 1 from public.course_access_tokens
                         where course_id = %s and token_hash = %s and used_at is null
                         limit 1
                        """,
                        (course_id, token_hash),
                    )
                    reason = EXPIRED if cur.fetchone() is not None else INVALID
                    conn.rollback()
                    return reason
                cur.execute(
                    """
                    insert into public.course_enrollments (user_id, course_id)
                    values (%s, %s)
                    on conflict (user_id, course_id) do nothing
                    returning id
                    """,
                    (user_id, course_id),
                )
                if cur.fetchone() is None:
                    conn.rollback()
                    return ALREADY_ENROLLED
            conn.commit()
        return None

    def list_tokens(self, course_id: str) -> List[TokenRecord]:
        with db.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    select {_TOKEN_COLUMNS}
                      from public.course_access_tokens
                     where course_id = %s
                     order by created_at desc
                    """,
                    (course_id,),
                )
                rows = cur.fetchall()
        return [_token(r) for r in rows]
