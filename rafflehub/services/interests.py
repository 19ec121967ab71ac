"""Interest ledger: which sessions want to hear when an announcement goes live."""

from __future__ import annotations

import logging
import uuid

from fastapi import HTTPException

from rafflehub.core.cache import get_cache
from rafflehub.core.errors import ValidationError
from rafflehub.cqrs.commands import interests as interest_commands
from rafflehub.cqrs.queries import announcements as announcement_queries
from rafflehub.cqrs.queries import interests as interest_queries

logger = logging.getLogger(__name__)

ACTIONS = ("add", "remove")


def record_interest(session_id: str, announcement_id: uuid.UUID) -> int:
    count = interest_commands.add_interest(session_id, announcement_id)
    get_cache().invalidate_announcement(announcement_id)
    return count


def withdraw_interest(session_id: str, announcement_id: uuid.UUID) -> int:
    count = interest_commands.remove_interest(session_id, announcement_id)
    get_cache().invalidate_announcement(announcement_id)
    return count


def list_interested_identities(announcement_id: uuid.UUID) -> list[str]:
    # Failures propagate: an empty audience must never be mistaken for a read error.
    return interest_queries.list_interested_identities(announcement_id)


def list_interests(session_id: str) -> list[str]:
    try:
        return interest_queries.list_interests(session_id)
    except Exception:
        logger.exception("Failed to list interests for session %s", session_id)
        return []


def _last_known_count(announcement_id: uuid.UUID) -> int:
    try:
        announcement = announcement_queries.get_announcement(announcement_id)
    except Exception as exc:
        logger.warning("Could not read interested count for %s: %s", announcement_id, exc)
        return 0
    return announcement["interested_count"] if announcement else 0


def toggle_interest(session_id: str, announcement_id: uuid.UUID, action: str) -> dict:
    if action not in ACTIONS:
        raise ValidationError('Invalid action. Must be "add" or "remove"')
    if not session_id:
        raise ValidationError("Session id is required")
    recorded = True
    try:
        if action == "add":
            count = record_interest(session_id, announcement_id)
        else:
            count = withdraw_interest(session_id, announcement_id)
    except HTTPException:
        raise
    except Exception:
        logger.exception(
            "Failed to %s interest for session %s on announcement %s",
            action,
            session_id,
            announcement_id,
        )
        recorded = False
        count = _last_known_count(announcement_id)
    logger.info(
        "Announcement %s interested count is %d (action: %s)", announcement_id, count, action
    )
    return {
        "announcement_id": str(announcement_id),
        "interested_count": count,
        "action": action,
        "recorded": recorded,
    }
