import json
import logging
from dataclasses import dataclass
from typing import Any

from redis import Redis
from redis.exceptions import RedisError

from vehiculos.core import metrics
from vehiculos.core.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class CacheResult:
    hit: bool
    value: Any | None


class CacheClient:
    """Redis-backed cache that degrades to an in-process dict when Redis is unreachable.

    TTLs are only honoured by Redis; the fallback keeps values until overwritten or deleted.
    """

    def __init__(self, redis_url: str | None = None, enabled: bool | None = None) -> None:
        self.settings = get_settings()
        self._fallback: dict[str, str] = {}
        self._redis: Redis | None = None
        url = redis_url or self.settings.redis_url
        if self.settings.cache_enabled if enabled is None else enabled:
            try:
                self._redis = Redis.from_url(url, decode_responses=True)
                self._redis.ping()
            except RedisError as exc:
                logger.warning("Redis unavailable at %s, using in-process cache: %s", url, exc)
                self._redis = None

    @property
    def backend(self) -> str:
        return "redis" if self._redis else "memory"

    def ping(self) -> bool:
        if not self._redis:
            return False
        try:
            return bool(self._redis.ping())
        except RedisError:
            return False

    def get(self, key: str) -> str | None:
        try:
            if self._redis:
                return self._redis.get(key)
        except RedisError as exc:
            logger.warning("Redis GET %s failed: %s", key, exc)
        return self._fallback.get(key)

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        try:
            if self._redis:
                if ttl_seconds:
                    self._redis.setex(key, ttl_seconds, value)
                else:
                    self._redis.set(key, value)
                return
        except RedisError as exc:
            logger.warning("Redis SET %s failed: %s", key, exc)
        self._fallback[key] = value

    def delete(self, key: str) -> None:
        self._fallback.pop(key, None)
        try:
            if self._redis:
                self._redis.delete(key)
        except RedisError as exc:
            logger.warning("Redis DEL %s failed: %s", key, exc)

    def exists(self, key: str) -> bool:
        return self.get(key) is not None

    def incr(self, key: str) -> int:
        try:
            if self._redis:
                return int(self._redis.incr(key))
        except RedisError as exc:
            logger.warning("Redis INCR %s failed: %s", key, exc)
        value = int(self._fallback.get(key, "0")) + 1
        self._fallback[key] = str(value)
        return value

    def get_json(self, key: str) -> CacheResult:
        value = self.get(key)
        if value is None:
            metrics.CACHE_MISSES.inc()
            return CacheResult(hit=False, value=None)
        metrics.CACHE_HITS.inc()
        return CacheResult(hit=True, value=json.loads(value))

    def set_json(self, key: str, payload: Any, ttl_seconds: int) -> None:
        self.set(key, json.dumps(payload, default=str), ttl_seconds)

    def clear_fallback(self) -> None:
        self._fallback.clear()


cache_client = CacheClient()
