"""Redis cache backend implementing ICacheBackend.

Used for agent display lookups. Short socket timeouts keep a slow or absent
Redis from stalling requests; callers treat :class:`CacheError` as a miss.
"""

from __future__ import annotations

import redis

from staffledger.core.config import RedisConfig
from staffledger.core.exceptions import CacheError


class RedisCacheBackend:
    """Production ICacheBackend backed by Redis; keys live under ``namespace:``."""

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0,
                 namespace: str = "staffledger", socket_timeout: float = 0.5) -> None:
        self._namespace = namespace
        self._client = redis.Redis(
            host=host,
            port=port,
            db=db,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )

    @classmethod
    def from_config(cls, config: RedisConfig) -> RedisCacheBackend:
        return cls(
            host=config.host,
            port=config.port,
            db=config.db,
            namespace=config.namespace,
            socket_timeout=config.socket_timeout,
        )

    def _key(self, key: str) -> str:
        return f"{self._namespace}:{key}"

    def get(self, key: str) -> str | None:
        try:
            return self._client.get(self._key(key))
        except redis.RedisError as exc:
            raise CacheError(f"Redis GET {self._key(key)!r} failed: {exc}") from exc

    def setex(self, key: str, ttl: int, value: str) -> None:
        try:
            self._client.setex(self._key(key), ttl, value)
        except redis.RedisError as exc:
            raise CacheError(f"Redis SETEX {self._key(key)!r} failed: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(self._key(key))
        except redis.RedisError as exc:
            raise CacheError(f"Redis DEL {self._key(key)!r} failed: {exc}") from exc
