from __future__ import annotations

from datetime import datetime
import uuid
from typing import Optional

from rafflehub.cqrs.rows import RAFFLE_COLUMNS, raffle_row
from rafflehub.db.connection import fetch_all, fetch_one


def get_raffle(raffle_id: uuid.UUID) -> Optional[dict]:
    row = fetch_one(f"SELECT {RAFFLE_COLUMNS} FROM live_raffles WHERE id = %s", (raffle_id,))
    if not row:
        return None
    return raffle_row(row)


def list_active_raffles(now: datetime) -> list[dict]:
    rows = fetch_all(
        f"""
        SELECT {RAFFLE_COLUMNS}
        FROM live_raffles
        WHERE is_active AND ends_at > %s
        ORDER BY created_at DESC
        """,
        (now,),
    )
    return [raffle_row(row) for row in rows]


def list_raffles_by_creator(creator_id: str) -> list[dict]:
    rows = fetch_all(
        f"""
        SELECT {RAFFLE_COLUMNS}
        FROM live_raffles
        WHERE creator_id = %s
        ORDER BY created_at DESC
        """,
        (creator_id,),
    )
    return [raffle_row(row) for row in rows]
