from __future__ import annotations

from datetime import datetime
from decimal import Decimal
import uuid
from typing import Optional

from rafflehub.core.errors import CapacityError, NotFoundError, StateConflictError
from rafflehub.cqrs.rows import ticket_row
from rafflehub.db.connection import row_as_dict, run_transaction

# One statement: the counter bump and the purchase row succeed or fail together,
# and the capacity check is evaluated against the locked row, never in Python.
PURCHASE_SQL = """
    WITH bumped AS (
        UPDATE live_raffles
        SET tickets_sold = tickets_sold + %s, updated_at = now()
        WHERE id = %s
          AND is_active
          AND ends_at > %s
          AND tickets_sold + %s <= max_tickets
        RETURNING id, tickets_sold, max_tickets, creator_id
    ), inserted AS (
        INSERT INTO ticket_purchases (id, raffle_id, buyer_id, quantity, total_amount, external_ref)
        SELECT %s, bumped.id, %s, %s, %s, %s FROM bumped
        RETURNING id, raffle_id, buyer_id, quantity, total_amount, external_ref, created_at
    )
    SELECT inserted.id, inserted.raffle_id, inserted.buyer_id, inserted.quantity,
           inserted.total_amount, inserted.external_ref, inserted.created_at,
           bumped.tickets_sold, bumped.max_tickets, bumped.creator_id
    FROM inserted
    JOIN bumped ON bumped.id = inserted.raffle_id
"""


def _rejection(cur, raffle_id: uuid.UUID, quantity: int, now: datetime):
    cur.execute(
        "SELECT is_active, ends_at, tickets_sold, max_tickets FROM live_raffles WHERE id = %s",
        (raffle_id,),
    )
    row = cur.fetchone()
    if not row:
        return NotFoundError("Raffle not found")
    is_active, ends_at, tickets_sold, max_tickets = row
    if not is_active or ends_at <= now:
        return StateConflictError("Raffle is not active")
    remaining = max_tickets - tickets_sold
    return CapacityError(f"Cannot buy {quantity} tickets, only {remaining} remaining")


def purchase_tickets(
    raffle_id: uuid.UUID,
    buyer_id: str,
    quantity: int,
    total_amount: Decimal,
    external_ref: Optional[str],
    now: datetime,
) -> dict:
    def _handler(conn):
        cur = conn.cursor()
        cur.execute(
            PURCHASE_SQL,
            (
                quantity,
                raffle_id,
                now,
                quantity,
                uuid.uuid4(),
                buyer_id,
                quantity,
                total_amount,
                external_ref,
            ),
        )
        row = row_as_dict(cur)
        if row is None:
            error = _rejection(cur, raffle_id, quantity, now)
            cur.close()
            raise error
        cur.close()
        return {
            "ticket": ticket_row(row),
            "tickets_sold": row["tickets_sold"],
            "max_tickets": row["max_tickets"],
            "creator_id": row["creator_id"],
        }

    return run_transaction(_handler)
