"""Lifecycle scheduler.

Polls for upcoming raffles whose start time has arrived and turns each one into
a live raffle, notifying every session that registered interest. The poll is a
plain interval loop on a daemon thread; ``tick()`` can also be driven from an
HTTP trigger, the CLI or a Lambda scheduled event.

Activation of one announcement is a single database transaction (flip the
announcement inactive, insert the live raffle, read the audience), so a crash
or a failed read leaves the announcement active and the next tick retries it.
Two schedulers racing on the same announcement are serialized by the
conditional flip: only one of them sees the row still active.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import logging
import threading
import uuid
from typing import Callable, Optional

from rafflehub.core.cache import get_cache
from rafflehub.core.config import settings
from rafflehub.cqrs.commands import announcements as announcement_commands
from rafflehub.cqrs.queries import announcements as announcement_queries
from rafflehub.services import events, notifications

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LifecycleScheduler:
    def __init__(
        self,
        interval_seconds: Optional[float] = None,
        raffle_duration: Optional[timedelta] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.interval_seconds = (
            interval_seconds if interval_seconds is not None else settings.scheduler_interval_seconds
        )
        self.raffle_duration = raffle_duration or timedelta(hours=settings.raffle_duration_hours)
        self._clock = clock or _utcnow
        self._stop_event = threading.Event()
        self._tick_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self.last_tick_at: Optional[datetime] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        if self.running:
            return False
        self._stop_event.clear()
        self._thread = threading.Thread(target=self.run_forever, name="raffle-scheduler", daemon=True)
        self._thread.start()
        return True

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Raffle scheduler stopped")

    def run_forever(self) -> None:
        logger.info("Raffle scheduler started, checking every %ss", self.interval_seconds)
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Scheduler tick failed")
            self._stop_event.wait(self.interval_seconds)

    def tick(self) -> dict:
        with self._tick_lock:
            now = self._clock()
            self.last_tick_at = now
            summary = {"checked": 0, "activated": [], "skipped": [], "failed": [], "ran_at": now}
            try:
                due = announcement_queries.list_due_announcements(now)
            except Exception:
                logger.exception("Failed to query upcoming raffles, retrying next tick")
                return summary
            summary["checked"] = len(due)
            if not due:
                return summary
            logger.info("Found %d upcoming raffles to activate", len(due))

            for announcement in due:
                if self._stop_event.is_set():
                    logger.info("Shutdown requested, leaving remaining announcements for next run")
                    break
                announcement_id = announcement["id"]
                try:
                    raffle = self.activate(announcement, now)
                except Exception:
                    logger.exception(
                        'Error activating announcement %s "%s", retrying next tick',
                        announcement_id,
                        announcement["title"],
                    )
                    summary["failed"].append(announcement_id)
                    continue
                if raffle is None:
                    summary["skipped"].append(announcement_id)
                else:
                    summary["activated"].append(announcement_id)
            return summary

    def activate(self, announcement: dict, now: datetime) -> Optional[dict]:
        ends_at = now + self.raffle_duration
        result = announcement_commands.activate_announcement(
            uuid.UUID(str(announcement["id"])), now, ends_at
        )
        if result is None:
            logger.info("Announcement %s was already activated", announcement["id"])
            return None

        raffle = result["raffle"]
        interested = result["interested_identities"]
        notified = 0
        if interested:
            try:
                subject, body = notifications.activation_message(raffle)
                notified = notifications.send_bulk(interested, subject, body)
            except Exception:
                logger.exception("Notification fan-out failed for raffle %s", raffle["id"])

        cache = get_cache()
        cache.invalidate_announcement(announcement["id"])
        cache.invalidate_raffle(raffle["id"], raffle["creator_id"])
        events.publish(events.RAFFLE_CREATED, raffle)

        logger.info(
            'Activated raffle "%s" (id %s) from announcement %s',
            raffle["title"],
            raffle["id"],
            announcement["id"],
        )
        logger.info("Notified %d of %d interested sessions", notified, len(interested))
        return raffle

    def status(self) -> dict:
        return {
            "running": self.running,
            "interval_seconds": self.interval_seconds,
            "last_tick_at": self.last_tick_at,
        }


_scheduler: Optional[LifecycleScheduler] = None
_scheduler_lock = threading.Lock()


def get_scheduler() -> LifecycleScheduler:
    global _scheduler
    if _scheduler is None:
        with _scheduler_lock:
            if _scheduler is None:
                _scheduler = LifecycleScheduler()
    return _scheduler
