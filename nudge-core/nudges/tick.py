"""One scheduled pass of the re-engagement nudge job.

A tick takes the run lock, pulls the stalest sessions (one per user) and,
strictly one candidate at a time, rate-limits, writes and announces a short
nudge from the character. Every external step degrades instead of aborting
the tick.
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable

from config import DEFAULT_BATCH_LIMIT, DEFAULT_MIN_INACTIVE_HOURS, AppConfig
from nudges.content import NudgeContentGenerator
from nudges.dispatcher import NotificationDispatcher
from nudges.inserter import MessageInserter
from nudges.models import Candidate, TickResult
from nudges.rate_limiter import NudgeRateLimiter
from nudges.run_lock import RunLock
from nudges.selector import EligibilitySelector
from utils.resilience import best_effort

logger = logging.getLogger(__name__)

OVERSAMPLE_FACTOR = 2
JITTER_MIN_SECONDS = 0.1
JITTER_SPAN_SECONDS = 0.3


def _positive(value: int, default: int) -> int:
    return value if value > 0 else default


class NudgeTick:
    def __init__(
        self,
        config: AppConfig,
        lock: RunLock,
        selector: EligibilitySelector,
        rate_limiter: NudgeRateLimiter,
        generator: NudgeContentGenerator,
        inserter: MessageInserter,
        dispatcher: NotificationDispatcher,
        rng: random.Random | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._config = config
        self._lock = lock
        self._selector = selector
        self._rate_limiter = rate_limiter
        self._generator = generator
        self._inserter = inserter
        self._dispatcher = dispatcher
        self._rng = rng or random.Random()
        self._sleep = sleep

    def run(self) -> TickResult:
        config = self._config
        if not config.nudge_enabled:
            return TickResult(skipped=True)

        if not self._lock.acquire(config.nudge_lock_key, config.nudge_lock_ttl_seconds):
            logger.info("nudge_tick_locked", extra={"event": "nudge_tick_locked", "lock_name": config.nudge_lock_key})
            return TickResult(skipped=True, reason="locked")

        batch_limit = _positive(config.nudge_batch_limit, DEFAULT_BATCH_LIMIT)
        candidates = self._selector.find_candidates(
            inactive_hours=_positive(config.nudge_min_inactive_hours, DEFAULT_MIN_INACTIVE_HOURS),
            limit=batch_limit * OVERSAMPLE_FACTOR,
        )
        result = TickResult()
        for candidate in candidates:
            if self._rng.random() < config.nudge_skip_probability:
                continue
            if not self._rate_limiter.can_nudge(candidate.user_id, config.nudge_max_per_day):
                continue
            if not self._deliver(candidate):
                continue
            result.processed += 1
            if result.processed >= batch_limit:
                break
            self._sleep(JITTER_MIN_SECONDS + self._rng.random() * JITTER_SPAN_SECONDS)

        logger.info(
            "nudge_tick_completed",
            extra={"event": "nudge_tick_completed", "candidates": len(candidates), "processed": result.processed},
        )
        return result

    def _content_for(self, candidate: Candidate) -> str:
        content = best_effort(
            lambda: self._generator.generate(candidate.session_id, candidate.user_id, candidate.character),
            default="",
            event="nudge_generation_failed",
            logger=logger,
            session_id=candidate.session_id,
        )
        if content:
            return content
        return self._generator.fallback(candidate.character_name, self._rng)

    def _deliver(self, candidate: Candidate) -> bool:
        content = self._content_for(candidate)
        try:
            self._inserter.insert(candidate.session_id, content, flagged=False)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "nudge_insert_failed",
                extra={"event": "nudge_insert_failed", "session_id": candidate.session_id, "error": str(exc)},
            )
            return False
        self._dispatcher.dispatch(candidate, content)
        return True
