from __future__ import annotations

from datetime import datetime
import uuid
from typing import Optional

from rafflehub.cqrs.rows import ANNOUNCEMENT_COLUMNS, announcement_row
from rafflehub.db.connection import fetch_all, fetch_one


def list_due_announcements(now: datetime) -> list[dict]:
    rows = fetch_all(
        f"""
        SELECT {ANNOUNCEMENT_COLUMNS}
        FROM upcoming_raffles
        WHERE is_active AND starts_at <= %s
        ORDER BY starts_at ASC
        """,
        (now,),
    )
    return [announcement_row(row) for row in rows]


def list_active_announcements() -> list[dict]:
    rows = fetch_all(
        f"""
        SELECT {ANNOUNCEMENT_COLUMNS}
        FROM upcoming_raffles
        WHERE is_active
        ORDER BY created_at DESC
        """
    )
    return [announcement_row(row) for row in rows]


def get_announcement(announcement_id: uuid.UUID) -> Optional[dict]:
    row = fetch_one(
        f"SELECT {ANNOUNCEMENT_COLUMNS} FROM upcoming_raffles WHERE id = %s",
        (announcement_id,),
    )
    if not row:
        return None
    return announcement_row(row)
