"""Delivery of inbox messages to session identities."""

from __future__ import annotations

import logging
import uuid
from typing import Iterable

from rafflehub.core.errors import NotFoundError
from rafflehub.cqrs.commands import inbox as inbox_commands
from rafflehub.cqrs.queries import inbox as inbox_queries

logger = logging.getLogger(__name__)


def send(identity: str, subject: str, body: str) -> bool:
    try:
        inbox_commands.insert_message(identity, subject, body)
    except Exception:
        logger.exception("Failed to deliver %r to %s", subject, identity)
        return False
    logger.info("Inbox message sent to %s: %s", identity, subject)
    return True


def send_bulk(identities: Iterable[str], subject: str, body: str) -> int:
    recipients = list(dict.fromkeys(identities))
    if not recipients:
        return 0
    delivered = sum(1 for identity in recipients if send(identity, subject, body))
    logger.info("Bulk message %r delivered to %d/%d recipients", subject, delivered, len(recipients))
    return delivered


def activation_message(raffle: dict) -> tuple[str, str]:
    subject = f"Raffle started: {raffle['title']}"
    body = (
        f'The raffle "{raffle["title"]}" you asked to be reminded about is now live.\n'
        f"Prize value: {raffle['prize_value']}\n"
        f"Ticket price: {raffle['ticket_price']}\n"
        f"Max tickets: {raffle['max_tickets']}\n"
        "Get your tickets before they run out!"
    )
    return subject, body


def list_inbox(identity: str, unread_only: bool = False) -> list[dict]:
    try:
        return inbox_queries.list_messages(identity, unread_only=unread_only)
    except Exception:
        logger.exception("Failed to load inbox for %s", identity)
        return []


def unread_count(identity: str) -> int:
    try:
        return inbox_queries.count_unread(identity)
    except Exception:
        logger.exception("Failed to count unread messages for %s", identity)
        return 0


def mark_read(identity: str, message_id: uuid.UUID) -> None:
    if not inbox_commands.mark_read(identity, message_id):
        raise NotFoundError("Message not found")
