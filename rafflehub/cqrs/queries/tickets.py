from __future__ import annotations

import uuid

from rafflehub.cqrs.rows import TICKET_COLUMNS, ticket_row
from rafflehub.db.connection import fetch_all


def list_by_raffle(raffle_id: uuid.UUID) -> list[dict]:
    rows = fetch_all(
        f"""
        SELECT {TICKET_COLUMNS}
        FROM ticket_purchases
        WHERE raffle_id = %s
        ORDER BY created_at DESC
        """,
        (raffle_id,),
    )
    return [ticket_row(row) for row in rows]


def list_by_buyer(buyer_id: str) -> list[dict]:
    rows = fetch_all(
        f"""
        SELECT {TICKET_COLUMNS}
        FROM ticket_purchases
        WHERE buyer_id = %s
        ORDER BY created_at DESC
        """,
        (buyer_id,),
    )
    return [ticket_row(row) for row in rows]
