"""
Redis cache for read-mostly backend data (catalog snapshots).

Entries are JSON under `{prefix}:{module}:{key}`. A missing or unreachable
Redis turns every lookup into a miss, so callers always fall back to the
backend.
"""

import json
import logging
from decimal import Decimal
from typing import Any, Callable, Optional

import redis
from redis.exceptions import RedisError
from flask import Flask, current_app

from tradedesk.utils.number_format import decimal_str

logger = logging.getLogger(__name__)


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Decimal):
        return decimal_str(obj)
    raise TypeError(f"{type(obj).__name__} is not JSON serializable")


class CacheService:
    """Cache-aside wrapper around one Redis connection."""

    def __init__(self, app: Optional[Flask] = None):
        self._client: Optional[redis.Redis] = None
        self._prefix = 'tradedesk'
        self._default_ttl = 60
        if app is not None:
            self.init_app(app)

    def init_app(self, app: Flask) -> None:
        self._prefix = app.config.get('CACHE_KEY_PREFIX', self._prefix)
        self._default_ttl = app.config.get('CACHE_DEFAULT_TTL', self._default_ttl)

        if not app.config.get('CACHE_ENABLED', True):
            logger.info("[CACHE] disabled by config")
            return

        url = app.config.get('REDIS_URL', 'redis://localhost:6379/0')
        client = redis.from_url(url, decode_responses=True, socket_connect_timeout=3, socket_timeout=3)
        try:
            client.ping()
        except RedisError as e:
            logger.warning(f"[CACHE] {url} unreachable, running without cache: {e}")
            return
        self._client = client
        logger.info(f"[CACHE] connected to {url}")

    def is_available(self) -> bool:
        return self._client is not None

    def _key(self, module: str, key: str) -> str:
        return f"{self._prefix}:{module}:{key}"

    def get(self, module: str, key: str) -> Optional[Any]:
        if self._client is None:
            return None
        try:
            raw = self._client.get(self._key(module, key))
            return None if raw is None else json.loads(raw)
        except (RedisError, ValueError) as e:
            logger.warning(f"[CACHE] read {module}:{key} failed: {e}")
            return None

    def set(self, module: str, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        if self._client is None:
            return False
        try:
            self._client.setex(self._key(module, key), ttl or self._default_ttl,
                               json.dumps(value, default=_json_default))
        except (RedisError, TypeError) as e:
            logger.warning(f"[CACHE] write {module}:{key} failed: {e}")
            return False
        return True

    def delete(self, module: str, key: str) -> bool:
        if self._client is None:
            return False
        try:
            self._client.delete(self._key(module, key))
        except RedisError as e:
            logger.warning(f"[CACHE] invalidate {module}:{key} failed: {e}")
            return False
        return True

    def memoize(self, module: str, key: str, loader: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """Return the cached value, or call `loader` and cache what it returns."""
        cached = self.get(module, key)
        if cached is not None:
            return cached
        value = loader()
        self.set(module, key, value, ttl)
        return value


def init_cache(app: Flask) -> None:
    app.extensions['cache'] = CacheService(app)


def get_cache() -> CacheService:
    """Cache bound to the current app."""
    cache = current_app.extensions.get('cache')
    if cache is None:
        raise RuntimeError("Cache not initialized.")
    return cache
