from __future__ import annotations

import uuid

from rafflehub.cqrs.rows import MESSAGE_COLUMNS, message_row
from rafflehub.db.connection import fetch_one


def insert_message(recipient_id: str, subject: str, body: str) -> dict:
    row = fetch_one(
        f"""
        INSERT INTO inbox_messages (id, recipient_id, subject, body, is_read)
        VALUES (%s, %s, %s, %s, false)
        RETURNING {MESSAGE_COLUMNS}
        """,
        (uuid.uuid4(), recipient_id, subject, body),
    )
    return message_row(row)


def mark_read(recipient_id: str, message_id: uuid.UUID) -> bool:
    row = fetch_one(
        """
        UPDATE inbox_messages
        SET is_read = true
        WHERE id = %s AND recipient_id = %s
        RETURNING id
        """,
        (message_id, recipient_id),
    )
    return row is not None
