from __future__ import annotations

from datetime import datetime
import uuid
from typing import Optional

from rafflehub.cqrs.queries import interests as interest_queries
from rafflehub.cqrs.rows import ANNOUNCEMENT_COLUMNS, RAFFLE_COLUMNS, announcement_row, raffle_row
from rafflehub.db.connection import fetch_one, row_as_dict, run_transaction
from rafflehub.models.schemas import AnnouncementCreate


def create_announcement(payload: AnnouncementCreate) -> dict:
    row = fetch_one(
        f"""
        INSERT INTO upcoming_raffles (
            id, title, description, prize_value, ticket_price, max_tickets,
            starts_at, category_id, creator_id, is_active, interested_count
        ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, true, 0)
        RETURNING {ANNOUNCEMENT_COLUMNS}
        """,
        (
            uuid.uuid4(),
            payload.title,
            payload.description,
            payload.prize_value,
            payload.ticket_price,
            payload.max_tickets,
            payload.starts_at,
            payload.category_id,
            payload.creator_id,
        ),
    )
    return announcement_row(row)


def activate_announcement(
    announcement_id: uuid.UUID, activated_at: datetime, ends_at: datetime
) -> Optional[dict]:
    """Flip the announcement inactive and materialize its live raffle in one transaction.

    The conditional flip is the single-writer gate: when another worker already
    activated the announcement no row matches and ``None`` is returned. The
    interested identities are read under the same row lock, so an interest
    toggle can neither slip in after the read nor survive a rollback.
    """

    def _handler(conn):
        cur = conn.cursor()
        cur.execute(
            """
            UPDATE upcoming_raffles
            SET is_active = false, updated_at = now()
            WHERE id = %s AND is_active
            RETURNING title, description, prize_value, ticket_price, max_tickets,
                      category_id, creator_id
            """,
            (announcement_id,),
        )
        source = row_as_dict(cur)
        if source is None:
            cur.close()
            return None
        cur.execute(
            f"""
            INSERT INTO live_raffles (
                id, title, description, prize_value, ticket_price, max_tickets,
                tickets_sold, ends_at, category_id, creator_id, is_active,
                source_announcement_id, created_at, updated_at
            ) VALUES (%s, %s, %s, %s, %s, %s, 0, %s, %s, %s, true, %s, %s, %s)
            RETURNING {RAFFLE_COLUMNS}
            """,
            (
                uuid.uuid4(),
                source["title"],
                source["description"],
                source["prize_value"],
                source["ticket_price"],
                source["max_tickets"],
                ends_at,
                source["category_id"],
                source["creator_id"],
                announcement_id,
                activated_at,
                activated_at,
            ),
        )
        raffle = raffle_row(row_as_dict(cur))
        cur.close()
        interested = interest_queries.list_interested_identities(announcement_id, conn=conn)
        return {"raffle": raffle, "interested_identities": interested}

    return run_transaction(_handler)
