"""APScheduler runtime for the nudge job.

Scheduler rules:
- No sleep polling loop; the tick is an APScheduler interval job.
- Jobs live in the in-memory job store. A missed tick is simply skipped,
  the run lock TTL covers crashes.
- One tick per process at a time (``max_instances=1``), one across
  processes via the Redis run lock.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from nudges.models import TickResult

if TYPE_CHECKING:
    from nudges.tick import NudgeTick
    from utils.metrics import NudgeMetrics

logger = logging.getLogger(__name__)

NUDGE_JOB_ID = "system:nudge_tick"


class NudgeScheduler:
    def __init__(
        self,
        tick: NudgeTick,
        interval_seconds: int = 60,
        timezone: str = "UTC",
        metrics: NudgeMetrics | None = None,
    ) -> None:
        self._tick = tick
        self._interval_seconds = max(1, int(interval_seconds))
        self._timezone = timezone
        self._metrics = metrics
        self._start_lock = threading.Lock()
        self._scheduler: BackgroundScheduler | None = None
        self.running = False

    def start(self) -> None:
        with self._start_lock:
            if self.running:
                logger.info("scheduler_start_skipped", extra={"event": "scheduler_start_skipped", "reason": "already_running"})
                return
            self._scheduler = BackgroundScheduler(timezone=self._timezone)
            self._scheduler.add_job(
                func=self.run_once,
                trigger=IntervalTrigger(seconds=self._interval_seconds, timezone=self._timezone),
                id=NUDGE_JOB_ID,
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=30,
            )
            self._scheduler.start()
            self.running = True
            logger.info(
                "scheduler_started",
                extra={"event": "scheduler_started", "interval_seconds": self._interval_seconds, "timezone": self._timezone},
            )

    def stop(self) -> None:
        with self._start_lock:
            if not self.running:
                return
            if self._scheduler is not None:
                self._scheduler.shutdown(wait=False)
            self.running = False
            logger.info("scheduler_stopped", extra={"event": "scheduler_stopped"})

    def run_once(self) -> TickResult:
        started = time.monotonic()
        error = ""
        try:
            result = self._tick.run()
        except Exception as exc:  # noqa: BLE001
            logger.exception("nudge_tick_failed", extra={"event": "nudge_tick_failed", "error": str(exc)})
            result = TickResult()
            error = str(exc)
        elapsed = time.monotonic() - started
        logger.info(
            "nudge_tick_finished",
            extra={"event": "nudge_tick_finished", "result": result.as_dict(), "execution_time": round(elapsed, 3)},
        )
        if self._metrics is not None:
            self._metrics.record_tick(result, execution_time=elapsed, error=error)
        return result
