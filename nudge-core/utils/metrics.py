import json
import logging
from datetime import datetime, timezone

import redis

from nudges.models import TickResult


class NudgeMetrics:
    """Tick counters and a short event history, written to the shared Redis client."""

    def __init__(self, client: redis.Redis) -> None:
        self._client = client
        self._logger = logging.getLogger("nudge-metrics")

    def record_tick(self, result: TickResult, execution_time: float = 0.0, error: str = "") -> None:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "execution_time": round(execution_time, 3),
            "error": error,
            **result.as_dict(),
        }

        try:
            pipeline = self._client.pipeline()
            pipeline.incr("nudge:metrics:ticks")
            pipeline.incrby("nudge:metrics:processed", result.processed)
            if result.skipped:
                pipeline.incr(f"nudge:metrics:skipped:{result.reason or 'disabled'}")
            pipeline.lpush("nudge:metrics:events", json.dumps(payload))
            pipeline.ltrim("nudge:metrics:events", 0, 49)
            pipeline.execute()
        except redis.RedisError as exc:
            self._logger.warning("Failed to record nudge metrics: %s", exc)
