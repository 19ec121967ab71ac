from __future__ import annotations

import uuid

from rafflehub.core.errors import NotFoundError, StateConflictError
from rafflehub.db.connection import run_transaction


def _lock_announcement(cur, announcement_id: uuid.UUID) -> bool:
    cur.execute(
        "SELECT is_active FROM upcoming_raffles WHERE id = %s FOR UPDATE",
        (announcement_id,),
    )
    row = cur.fetchone()
    if not row:
        raise NotFoundError("Announcement not found")
    return bool(row[0])


def _refresh_interested_count(cur, announcement_id: uuid.UUID) -> int:
    cur.execute(
        """
        UPDATE upcoming_raffles
        SET interested_count = (
                SELECT COUNT(*) FROM raffle_interests WHERE announcement_id = %s
            ),
            updated_at = now()
        WHERE id = %s
        RETURNING interested_count
        """,
        (announcement_id, announcement_id),
    )
    return int(cur.fetchone()[0])


def add_interest(session_id: str, announcement_id: uuid.UUID) -> int:
    def _handler(conn):
        cur = conn.cursor()
        try:
            if not _lock_announcement(cur, announcement_id):
                raise StateConflictError("Announcement has already started")
            cur.execute(
                """
                INSERT INTO raffle_interests (session_id, announcement_id)
                VALUES (%s, %s)
                ON CONFLICT (session_id, announcement_id) DO NOTHING
                """,
                (session_id, announcement_id),
            )
            return _refresh_interested_count(cur, announcement_id)
        finally:
            cur.close()

    return run_transaction(_handler)


def remove_interest(session_id: str, announcement_id: uuid.UUID) -> int:
    def _handler(conn):
        cur = conn.cursor()
        try:
            _lock_announcement(cur, announcement_id)
            cur.execute(
                "DELETE FROM raffle_interests WHERE session_id = %s AND announcement_id = %s",
                (session_id, announcement_id),
            )
            return _refresh_interested_count(cur, announcement_id)
        finally:
            cur.close()

    return run_transaction(_handler)
