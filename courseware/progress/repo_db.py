"""
Postgres-backed progress storage.

Concurrency:
    `insert` relies on UNIQUE(user_id, page_id) with `on conflict do nothing`;
    `update` only matches while `version` still equals the version that was
    read, so two racing writers cannot both succeed on the same snapshot.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from courseware import db
from courseware.progress.store import ProgressRecord

_COLUMNS = "user_id, page_id, completed_at, mcq_answers, code_submissions, version"


def _record(row) -> ProgressRecord:
    return ProgressRecord(
        user_id=str(row[0]),
        page_id=str(row[1]),
        completed_at=row[2],
        mcq_answers=dict(row[3] or {}),
        code_submissions=dict(row[4] or {}),
        version=int(row[5]),
    )


class DBProgressRepo:
    """Persistence adapter for `public.user_progress`."""

    def __init__(self, dsn: Optional[str] = None) -> None:
        self._dsn = db.require_dsn(dsn)

    def load(self, user_id: str, page_id: str) -> Optional[ProgressRecord]:
        with db.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select {_COLUMNS} from public.user_progress where user_id = %s and page_id = %s",
                    (user_id, page_id),
                )
                row = cur.fetchone()
        return _record(row) if row else None

    def insert(self, record: ProgressRecord) -> bool:
        with db.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    insert into public.user_progress
                        (user_id, page_id, completed_at, mcq_answers, code_submissions, version)
                    values (%s, %s, %s, %s, %s, 1)
                    on conflict (user_id, page_id) do nothing
                    returning version
                    """,
                    (
                        record.user_id,
                        record.page_id,
                        record.completed_at,
                        db.Json(record.mcq_answers),
                        db.Json(record.code_submissions),
                    ),
                )
                created = cur.fetchone() is not None
            conn.commit()
        return created

    def update(self, record: ProgressRecord, *, expected_version: int) -> bool:
        with db.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    update public.user_progress
                       set completed_at = %s,
                           mcq_answers = %s,
                           code_submissions = %s,
                           version = version + 1,
                           updated_at = now()
                     where user_id = %s and page_id = %s and version = %s
                    """,
                    (
                        record.completed_at,
                        db.Json(record.mcq_answers),
                        db.Json(record.code_submissions),
                        record.user_id,
                        record.page_id,
                        expected_version,
                    ),
                )
                swapped = cur.rowcount == 1
            conn.commit()
        return swapped

    def list_for_pages(self, user_id: str, page_ids: Sequence[str]) -> List[ProgressRecord]:
        with db.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select {_COLUMNS} from public.user_progress where user_id = %s and page_id = any(%s)",
                    (user_id, list(page_ids)),
                )
                rows = cur.fetchall()
        return [_record(r) for r in rows]
