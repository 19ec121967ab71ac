from __future__ import annotations

from datetime import datetime
import uuid
from typing import Optional

from rafflehub.cqrs.rows import RAFFLE_COLUMNS, raffle_row
from rafflehub.db.connection import fetch_one
from rafflehub.models.schemas import RaffleCreate


def create_raffle(payload: RaffleCreate, ends_at: datetime) -> dict:
    row = fetch_one(
        f"""
        INSERT INTO live_raffles (
            id, title, description, prize_value, ticket_price, max_tickets,
            tickets_sold, ends_at, category_id, creator_id, is_active
        ) VALUES (%s, %s, %s, %s, %s, %s, 0, %s, %s, %s, true)
        RETURNING {RAFFLE_COLUMNS}
        """,
        (
            uuid.uuid4(),
            payload.title,
            payload.description,
            payload.prize_value,
            payload.ticket_price,
            payload.max_tickets,
            ends_at,
            payload.category_id,
            payload.creator_id,
        ),
    )
    return raffle_row(row)


def assign_winner(raffle_id: uuid.UUID, winner_id: str) -> Optional[dict]:
    # Only a raffle without a winner matches; assigning also closes ticket sales.
    row = fetch_one(
        f"""
        UPDATE live_raffles
        SET winner_id = %s, is_active = false, updated_at = now()
        WHERE id = %s AND winner_id IS NULL
        RETURNING {RAFFLE_COLUMNS}
        """,
        (winner_id, raffle_id),
    )
    if not row:
        return None
    return raffle_row(row)


def record_approval(raffle_id: uuid.UUID, identity: str) -> Optional[dict]:
    # Matches only when the identity still has a flag to set, so repeats write nothing.
    row = fetch_one(
        f"""
        UPDATE live_raffles
        SET approved_by_creator = approved_by_creator OR creator_id = %s,
            approved_by_winner = approved_by_winner OR winner_id = %s,
            updated_at = now()
        WHERE id = %s
          AND winner_id IS NOT NULL
          AND ((creator_id = %s AND NOT approved_by_creator)
               OR (winner_id = %s AND NOT approved_by_winner))
        RETURNING {RAFFLE_COLUMNS}
        """,
        (identity, identity, raffle_id, identity, identity),
    )
    if not row:
        return None
    return raffle_row(row)
