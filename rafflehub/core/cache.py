"""Best-effort read-through cache in front of the persistence layer.

A miss, an unreachable backend or a serialization problem never reaches the
caller: the loader runs against the database and the failure is logged.
"""

from __future__ import annotations

from decimal import Decimal
import json
import logging
import threading
from typing import Any, Callable, Optional

import redis
from cachetools import TTLCache
from fastapi.encoders import jsonable_encoder

from rafflehub.core.config import redis_configured, settings

logger = logging.getLogger(__name__)

MISSING = object()

ACTIVE_RAFFLES_KEY = "raffles:active"
ACTIVE_ANNOUNCEMENTS_KEY = "announcements:active"


def raffle_key(raffle_id) -> str:
    return f"raffle:{raffle_id}"


def creator_raffles_key(creator_id: str) -> str:
    return f"raffles:creator:{creator_id}"


def announcement_key(announcement_id) -> str:
    return f"announcement:{announcement_id}"


def to_jsonable(value: Any) -> Any:
    return jsonable_encoder(value, custom_encoder={Decimal: str})


class MemoryBackend:
    def __init__(self, ttl: int, maxsize: int) -> None:
        self._cache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:
        with self._lock:
            return self._cache.get(key, MISSING)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._cache[key] = value

    def delete(self, *keys: str) -> None:
        with self._lock:
            for key in keys:
                self._cache.pop(key, None)

    def delete_prefix(self, prefix: str) -> None:
        with self._lock:
            for key in [k for k in self._cache if k.startswith(prefix)]:
                self._cache.pop(key, None)


class RedisBackend:
    def __init__(self, client: redis.Redis, ttl: int, namespace: str = "rafflehub:cache:") -> None:
        self.client = client
        self.ttl = ttl
        self.namespace = namespace

    def get(self, key: str) -> Any:
        raw = self.client.get(self.namespace + key)
        if raw is None:
            return MISSING
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        self.client.set(self.namespace + key, json.dumps(value), ex=self.ttl)

    def delete(self, *keys: str) -> None:
        if keys:
            self.client.delete(*[self.namespace + key for key in keys])

    def delete_prefix(self, prefix: str) -> None:
        for key in self.client.scan_iter(match=f"{self.namespace}{prefix}*"):
            self.client.delete(key)


class NullBackend:
    def get(self, key: str) -> Any:
        return MISSING

    def set(self, key: str, value: Any) -> None:
        return None

    def delete(self, *keys: str) -> None:
        return None

    def delete_prefix(self, prefix: str) -> None:
        return None


class RaffleCache:
    def __init__(self, backend) -> None:
        self.backend = backend

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        try:
            cached = self.backend.get(key)
        except Exception as exc:
            logger.warning("Cache read failed for %s: %s", key, exc)
            cached = MISSING
        if cached is not MISSING:
            return cached
        value = to_jsonable(loader())
        try:
            self.backend.set(key, value)
        except Exception as exc:
            logger.warning("Cache write failed for %s: %s", key, exc)
        return value

    def invalidate(self, *keys: str) -> None:
        try:
            self.backend.delete(*keys)
        except Exception as exc:
            logger.warning("Cache invalidation failed for %s: %s", ", ".join(keys), exc)

    def invalidate_prefix(self, prefix: str) -> None:
        try:
            self.backend.delete_prefix(prefix)
        except Exception as exc:
            logger.warning("Cache invalidation failed for prefix %s: %s", prefix, exc)

    def invalidate_raffle(self, raffle_id, creator_id: Optional[str] = None) -> None:
        keys = [raffle_key(raffle_id), ACTIVE_RAFFLES_KEY]
        if creator_id:
            keys.append(creator_raffles_key(creator_id))
        self.invalidate(*keys)

    def invalidate_announcement(self, announcement_id) -> None:
        self.invalidate(announcement_key(announcement_id), ACTIVE_ANNOUNCEMENTS_KEY)


def build_backend():
    if settings.cache_backend == "redis" and redis_configured():
        client = redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=1,
            socket_timeout=1,
        )
        return RedisBackend(client, ttl=settings.cache_ttl_seconds)
    if settings.cache_backend == "none":
        return NullBackend()
    if settings.cache_backend == "redis":
        logger.warning("CACHE_BACKEND=redis but REDIS_URL is not set, using in-process cache")
    return MemoryBackend(ttl=settings.cache_ttl_seconds, maxsize=settings.cache_max_entries)


_cache_instance: Optional[RaffleCache] = None
_cache_lock = threading.Lock()


def init_cache(backend=None) -> RaffleCache:
    global _cache_instance
    with _cache_lock:
        if backend is None:
            try:
                backend = build_backend()
            except Exception as exc:
                logger.warning(
                    "Cache backend %r unavailable, using in-process cache: %s", settings.cache_backend, exc
                )
                backend = MemoryBackend(ttl=settings.cache_ttl_seconds, maxsize=settings.cache_max_entries)
        _cache_instance = RaffleCache(backend)
        return _cache_instance


def get_cache() -> RaffleCache:
    if _cache_instance is None:
        return init_cache()
    return _cache_instance
