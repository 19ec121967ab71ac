from __future__ import annotations

from rafflehub.models.approval import approval_state

ANNOUNCEMENT_COLUMNS = """
    id, title, description, prize_value, ticket_price, max_tickets, starts_at,
    category_id, creator_id, is_active, interested_count, created_at, updated_at
"""

RAFFLE_COLUMNS = """
    id, title, description, prize_value, ticket_price, max_tickets, tickets_sold,
    ends_at, category_id, creator_id, is_active, winner_id, approved_by_creator,
    approved_by_winner, source_announcement_id, created_at, updated_at
"""

TICKET_COLUMNS = "id, raffle_id, buyer_id, quantity, total_amount, external_ref, created_at"

MESSAGE_COLUMNS = "id, recipient_id, subject, body, is_read, created_at"


def _str_or_none(value):
    return str(value) if value is not None else None


def announcement_row(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "title": row["title"],
        "description": row["description"],
        "prize_value": row["prize_value"],
        "ticket_price": row["ticket_price"],
        "max_tickets": row["max_tickets"],
        "starts_at": row["starts_at"],
        "category_id": row.get("category_id"),
        "creator_id": row["creator_id"],
        "is_active": bool(row["is_active"]),
        "interested_count": row.get("interested_count", 0) or 0,
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }


def raffle_row(row: dict) -> dict:
    raffle = {
        "id": str(row["id"]),
        "title": row["title"],
        "description": row["description"],
        "prize_value": row["prize_value"],
        "ticket_price": row["ticket_price"],
        "max_tickets": row["max_tickets"],
        "tickets_sold": row.get("tickets_sold", 0) or 0,
        "ends_at": row["ends_at"],
        "category_id": row.get("category_id"),
        "creator_id": row["creator_id"],
        "is_active": bool(row["is_active"]),
        "winner_id": row.get("winner_id"),
        "approved_by_creator": bool(row.get("approved_by_creator")),
        "approved_by_winner": bool(row.get("approved_by_winner")),
        "source_announcement_id": _str_or_none(row.get("source_announcement_id")),
        "created_at": row["created_at"],
        "updated_at": row["updated_at"],
    }
    raffle["approval_state"] = approval_state(raffle)
    return raffle


def ticket_row(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "raffle_id": str(row["raffle_id"]),
        "buyer_id": row["buyer_id"],
        "quantity": row["quantity"],
        "total_amount": row["total_amount"],
        "external_ref": row.get("external_ref"),
        "created_at": row["created_at"],
    }


def message_row(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "recipient_id": row["recipient_id"],
        "subject": row["subject"],
        "body": row["body"],
        "is_read": bool(row["is_read"]),
        "created_at": row["created_at"],
    }
