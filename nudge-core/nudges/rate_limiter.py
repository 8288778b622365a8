from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from utils.resilience import best_effort

if TYPE_CHECKING:
    from memory.redis_client import RedisKeyValueStore

logger = logging.getLogger(__name__)

RATE_KEY_PREFIX = "nudge:user"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def seconds_until_utc_day_end(now: datetime) -> int:
    """Whole seconds left until 23:59:59.999 UTC of ``now``'s day, at least 1."""
    now_utc = now.astimezone(timezone.utc)
    end = now_utc.replace(hour=23, minute=59, second=59, microsecond=999000)
    return max(1, int((end - now_utc).total_seconds()))


def rate_key(user_id: str, now: datetime) -> str:
    day = now.astimezone(timezone.utc).strftime("%Y-%m-%d")
    return f"{RATE_KEY_PREFIX}:{user_id}:{day}"


class NudgeRateLimiter:
    """Per-user daily nudge counter kept in the shared key-value store.

    The read, write and expire calls are separate round trips. Two writers
    racing on the same key can push the count past the cap by one; the run
    lock normally keeps a single writer.
    """

    def __init__(self, store: RedisKeyValueStore, clock: Callable[[], datetime] = _utc_now) -> None:
        self._store = store
        self._clock = clock

    def can_nudge(self, user_id: str, max_per_day: int) -> bool:
        if not self._store.is_connected:
            logger.info("nudge_rate_limit_open", extra={"event": "nudge_rate_limit_open", "reason": "store_disconnected"})
            return True

        return best_effort(
            lambda: self._consume(user_id, max_per_day),
            default=True,
            event="nudge_rate_limit_failed_open",
            logger=logger,
            user_id=user_id,
        )

    def _consume(self, user_id: str, max_per_day: int) -> bool:
        now = self._clock()
        key = rate_key(user_id, now)
        raw = self._store.get(key)
        current = int(raw) if raw else 0
        if current >= max_per_day:
            return False
        self._store.set(key, str(current + 1))
        self._store.expire(key, seconds_until_utc_day_end(now))
        return True
