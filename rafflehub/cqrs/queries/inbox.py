from __future__ import annotations

from rafflehub.cqrs.rows import MESSAGE_COLUMNS, message_row
from rafflehub.db.connection import fetch_all, fetch_one


def list_messages(recipient_id: str, unread_only: bool = False) -> list[dict]:
    sql = f"SELECT {MESSAGE_COLUMNS} FROM inbox_messages WHERE recipient_id = %s"
    if unread_only:
        sql += " AND NOT is_read"
    sql += " ORDER BY created_at DESC"
    rows = fetch_all(sql, (recipient_id,))
    return [message_row(row) for row in rows]


def count_unread(recipient_id: str) -> int:
    row = fetch_one(
        "SELECT COUNT(*) AS unread FROM inbox_messages WHERE recipient_id = %s AND NOT is_read",
        (recipient_id,),
    )
    return int(row["unread"]) if row else 0
