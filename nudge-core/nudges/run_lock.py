from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from utils.resilience import best_effort

if TYPE_CHECKING:
    from memory.redis_client import RedisKeyValueStore

logger = logging.getLogger(__name__)


class RunLock:
    """Self-expiring mutual exclusion for scheduler ticks.

    There is no release: a finished tick and a crashed tick both free the
    lock the same way, when its TTL runs out.
    """

    def __init__(self, store: RedisKeyValueStore) -> None:
        self._store = store
        self._holder = os.getenv("HOSTNAME", "unknown")

    def acquire(self, lock_key: str, ttl_seconds: int) -> bool:
        if not self._store.is_connected:
            logger.info("nudge_lock_skipped", extra={"event": "nudge_lock_skipped", "reason": "store_disconnected"})
            return True
        return best_effort(
            lambda: self._store.set_if_absent(lock_key, self._holder, ttl_seconds),
            default=True,
            event="nudge_lock_failed_open",
            logger=logger,
            lock_name=lock_key,
        )
