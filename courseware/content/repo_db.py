"""Postgres-backed page-section storage."""

from __future__ import annotations

from typing import Any, List, Optional
from uuid import uuid4

from courseware import db


def _row(row) -> dict:
    return {
        "id": row[0],
        "page_id": row[1],
        "type": row[2],
        "order_index": int(row[3]),
        "content": row[4],
    }


class DBContentRepo:
    """Persistence adapter for `public.page_sections`."""

    def __init__(self, dsn: Optional[str] = None) -> None:
        self._dsn = db.require_dsn(dsn)

    def replace_page_sections(self, page_id: str, rows: List[dict[str, Any]]) -> List[dict]:
        """Replace all sections of a page in one transaction.

        A client-sent id that another page still owns is replaced by a fresh one.
        """
        stored: List[dict] = []
        with db.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                # Serialise concurrent editor saves for the same page.
                cur.execute("select pg_advisory_xact_lock(hashtext(%s))", (page_id,))
                cur.execute("delete from public.page_sections where page_id = %s", (page_id,))
                for row in rows:
                    values = (page_id, row["type"], int(row["order_index"]), db.Json(row["content"]))
                    inserted = self._insert(cur, row.get("id") or str(uuid4()), values)
                    if inserted is None:
                        inserted = self._insert(cur, str(uuid4()), values)
                    stored.append(_row(inserted))
            conn.commit()
        return stored

    @staticmethod
    def _insert(cur, section_id: str, values: tuple):
        cur.execute(
            """
            insert into public.page_sections (id, page_id, type, order_index, content)
            values (%s, %s, %s, %s, %s)
            on conflict (id) do nothing
            returning id, page_id, type, order_index, content
            """,
            (section_id, *values),
        )
        return cur.fetchone()

    def list_page_sections(self, page_id: str) -> List[dict]:
        with db.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    select id, page_id, type, order_index, content
                      from public.page_sections
                     where page_id = %s
                     order by order_index asc, id asc
                    """,
                    (page_id,),
                )
                rows = cur.fetchall()
        return [_row(r) for r in rows]

    def get_section(self, section_id: str) -> Optional[dict]:
        with db.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "select id, page_id, type, order_index, content from public.page_sections where id = %s",
                    (section_id,),
                )
                row = cur.fetchone()
        return _row(row) if row else None
