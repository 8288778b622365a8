import logging
import time

import redis

logger = logging.getLogger(__name__)


class RedisKeyValueStore:
    """Thin key-value facade over Redis shared by the rate limiter and run lock.

    Methods raise ``redis.RedisError`` on failure; callers decide whether to
    fail open.
    """

    def __init__(self, host: str, port: int, password: str, ping_cache_seconds: float = 5.0) -> None:
        self._client = redis.Redis(
            host=host,
            port=port,
            password=password or None,
            decode_responses=True,
            socket_timeout=2,
            socket_connect_timeout=2,
        )
        self._ping_cache_seconds = ping_cache_seconds
        self._connected = False
        self._checked_at = float("-inf")

    @property
    def client(self) -> redis.Redis:
        return self._client

    @property
    def is_connected(self) -> bool:
        now = time.monotonic()
        if now - self._checked_at < self._ping_cache_seconds:
            return self._connected
        try:
            self._connected = bool(self._client.ping())
        except redis.RedisError as exc:
            logger.debug("Redis ping failed: %s", exc)
            self._connected = False
        self._checked_at = now
        return self._connected

    def get(self, key: str) -> str | None:
        return self._client.get(key)

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        if ttl_seconds:
            self._client.set(key, value, ex=max(1, int(ttl_seconds)))
        else:
            self._client.set(key, value)

    def delete(self, key: str) -> None:
        self._client.delete(key)

    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        return bool(self._client.set(key, value, nx=True, ex=max(1, int(ttl_seconds))))

    def expire(self, key: str, ttl_seconds: int) -> None:
        self._client.expire(key, max(1, int(ttl_seconds)))
