"""Broadcast of lifecycle events to live subscribers.

Events go to in-process subscribers (the ``/ws`` socket) and, when Redis is
configured, to a pub/sub channel so other instances can relay them.
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Callable, Optional

import redis

from rafflehub.core.cache import to_jsonable
from rafflehub.core.config import redis_configured, settings

logger = logging.getLogger(__name__)

RAFFLE_CREATED = "RAFFLE_CREATED"
TICKET_PURCHASED = "TICKET_PURCHASED"
RAFFLE_APPROVED = "RAFFLE_APPROVED"

Subscriber = Callable[[dict], None]


class EventBroadcaster:
    def __init__(self, redis_client: Optional[redis.Redis] = None, channel: str = "rafflehub:events"):
        self.redis_client = redis_client
        self.channel = channel
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def publish(self, event_type: str, data: dict) -> dict:
        event = {"type": event_type, "data": to_jsonable(data)}
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception as exc:
                logger.warning("Subscriber failed for %s: %s", event_type, exc)
        if self.redis_client is not None:
            try:
                self.redis_client.publish(self.channel, json.dumps(event))
            except Exception as exc:
                logger.warning("Failed to publish %s to %s: %s", event_type, self.channel, exc)
        logger.debug("Broadcast %s to %d subscribers", event_type, len(subscribers))
        return event


_broadcaster: Optional[EventBroadcaster] = None
_broadcaster_lock = threading.Lock()


def get_broadcaster() -> EventBroadcaster:
    global _broadcaster
    if _broadcaster is None:
        with _broadcaster_lock:
            if _broadcaster is None:
                client = None
                if redis_configured():
                    try:
                        client = redis.from_url(
                            settings.redis_url,
                            decode_responses=True,
                            socket_connect_timeout=1,
                            socket_timeout=1,
                        )
                    except Exception as exc:
                        logger.warning("Redis relay disabled, events stay in-process: %s", exc)
                _broadcaster = EventBroadcaster(client, channel=settings.events_channel)
    return _broadcaster


def publish(event_type: str, data: dict) -> dict:
    return get_broadcaster().publish(event_type, data)
