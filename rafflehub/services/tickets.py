from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
import logging
import uuid
from typing import Optional

from fastapi import HTTPException

from rafflehub.core.cache import get_cache
from rafflehub.core.errors import ValidationError
from rafflehub.cqrs.commands import tickets as ticket_commands
from rafflehub.cqrs.queries import tickets as ticket_queries
from rafflehub.services import events

logger = logging.getLogger(__name__)


def purchase(
    buyer_id: str,
    raffle_id: uuid.UUID,
    quantity: int,
    total_amount: Decimal,
    external_ref: Optional[str] = None,
    now: Optional[datetime] = None,
) -> dict:
    if not buyer_id:
        raise ValidationError("Buyer is required")
    if quantity is None or quantity <= 0:
        raise ValidationError("Quantity must be greater than zero")
    if total_amount is None or Decimal(total_amount) < 0:
        raise ValidationError("Total amount must not be negative")
    now = now or datetime.now(timezone.utc)
    try:
        result = ticket_commands.purchase_tickets(
            raffle_id, buyer_id, quantity, Decimal(total_amount), external_ref, now
        )
    except HTTPException:
        raise
    except Exception as exc:
        logger.exception("Ticket purchase failed for raffle %s, buyer %s", raffle_id, buyer_id)
        raise HTTPException(
            status_code=500, detail="Ticket purchase failed. No tickets were recorded."
        ) from exc

    ticket = result["ticket"]
    get_cache().invalidate_raffle(raffle_id, result["creator_id"])
    events.publish(
        events.TICKET_PURCHASED,
        {
            "raffle_id": str(raffle_id),
            "ticket_id": ticket["id"],
            "buyer_id": buyer_id,
            "quantity": quantity,
            "tickets_sold": result["tickets_sold"],
        },
    )
    logger.info(
        "Buyer %s bought %d tickets for raffle %s (%d/%d sold)",
        buyer_id,
        quantity,
        raffle_id,
        result["tickets_sold"],
        result["max_tickets"],
    )
    return ticket


def list_by_raffle(raffle_id: uuid.UUID) -> list[dict]:
    try:
        return ticket_queries.list_by_raffle(raffle_id)
    except Exception:
        logger.exception("Failed to list tickets for raffle %s", raffle_id)
        return []


def list_by_buyer(buyer_id: str) -> list[dict]:
    try:
        return ticket_queries.list_by_buyer(buyer_id)
    except Exception:
        logger.exception("Failed to list tickets for buyer %s", buyer_id)
        return []
