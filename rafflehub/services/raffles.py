from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
import uuid
from typing import Callable, Optional

from rafflehub.core.cache import (
    ACTIVE_ANNOUNCEMENTS_KEY,
    ACTIVE_RAFFLES_KEY,
    announcement_key,
    creator_raffles_key,
    get_cache,
    raffle_key,
)
from rafflehub.core.config import settings
from rafflehub.core.errors import NotFoundError, ValidationError
from rafflehub.cqrs.commands import announcements as announcement_commands
from rafflehub.cqrs.commands import raffles as raffle_commands
from rafflehub.cqrs.queries import announcements as announcement_queries
from rafflehub.cqrs.queries import raffles as raffle_queries
from rafflehub.models.schemas import AnnouncementCreate, RaffleCreate
from rafflehub.services import events

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _cached_list(key: str, loader: Callable[[], list[dict]]) -> list[dict]:
    try:
        return get_cache().get_or_load(key, loader)
    except Exception:
        logger.exception("Failed to load %s", key)
        return []


def _cached_entity(key: str, loader: Callable[[], Optional[dict]], not_found: str) -> dict:
    def _load() -> dict:
        entity = loader()
        if entity is None:
            raise NotFoundError(not_found)
        return entity

    return get_cache().get_or_load(key, _load)


def create_announcement(payload: AnnouncementCreate) -> dict:
    announcement = announcement_commands.create_announcement(payload)
    get_cache().invalidate(ACTIVE_ANNOUNCEMENTS_KEY)
    logger.info(
        "Announcement %s created, starts at %s", announcement["id"], announcement["starts_at"]
    )
    return announcement


def get_announcement(announcement_id: uuid.UUID) -> dict:
    return _cached_entity(
        announcement_key(announcement_id),
        lambda: announcement_queries.get_announcement(announcement_id),
        "Announcement not found",
    )


def list_active_announcements() -> list[dict]:
    return _cached_list(ACTIVE_ANNOUNCEMENTS_KEY, announcement_queries.list_active_announcements)


def create_raffle(payload: RaffleCreate, now: Optional[datetime] = None) -> dict:
    now = now or _utcnow()
    ends_at = payload.ends_at or now + timedelta(hours=settings.raffle_duration_hours)
    if ends_at.tzinfo is None:
        ends_at = ends_at.replace(tzinfo=timezone.utc)
    if ends_at <= now:
        raise ValidationError("Raffle end must be in the future")
    raffle = raffle_commands.create_raffle(payload, ends_at)
    get_cache().invalidate_raffle(raffle["id"], raffle["creator_id"])
    events.publish(events.RAFFLE_CREATED, raffle)
    logger.info("Raffle %s created by %s", raffle["id"], raffle["creator_id"])
    return raffle


def get_raffle(raffle_id: uuid.UUID) -> dict:
    return _cached_entity(
        raffle_key(raffle_id),
        lambda: raffle_queries.get_raffle(raffle_id),
        "Raffle not found",
    )


def list_active_raffles() -> list[dict]:
    return _cached_list(ACTIVE_RAFFLES_KEY, lambda: raffle_queries.list_active_raffles(_utcnow()))


def list_raffles_by_creator(creator_id: str) -> list[dict]:
    return _cached_list(
        creator_raffles_key(creator_id),
        lambda: raffle_queries.list_raffles_by_creator(creator_id),
    )
