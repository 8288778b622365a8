import logging
import time
from collections.abc import Callable
from typing import Any, Iterable, TypeVar

T = TypeVar("T")

_default_logger = logging.getLogger(__name__)


class RetryError(RuntimeError):
    pass


def with_retry(
    func: Callable[[], Any],
    *,
    attempts: int = 3,
    delay_seconds: float = 0.5,
    backoff_multiplier: float = 2.0,
    max_delay_seconds: float = 30.0,
    retry_on: Iterable[type[BaseException]] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    last_exc: BaseException | None = None
    next_delay = max(delay_seconds, 0.0)
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except tuple(retry_on) as exc:  # type: ignore[arg-type]
            last_exc = exc
            if attempt == attempts:
                break
            sleep(min(next_delay, max_delay_seconds))
            next_delay = min(next_delay * backoff_multiplier, max_delay_seconds)

    raise RetryError("Operation failed after retries") from last_exc


def best_effort(
    func: Callable[[], T],
    *,
    default: T,
    event: str,
    logger: logging.Logger | None = None,
    **fields: Any,
) -> T:
    """Run ``func`` and return ``default`` if it raises, logging a warning.

    Used for side channels whose failure must not stop the caller.
    """
    try:
        return func()
    except Exception as exc:  # noqa: BLE001
        (logger or _default_logger).warning(
            "%s: %s",
            event,
            exc,
            extra={"event": event, "error": str(exc), **fields},
        )
        return default
