from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from utils.resilience import best_effort

if TYPE_CHECKING:
    from memory.chat_store import PostgresChatStore

logger = logging.getLogger(__name__)

NUDGE_ROLE = "assistant"
NUDGE_METADATA = {"nudge": True}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MessageInserter:
    def __init__(self, chat_store: PostgresChatStore, clock: Callable[[], datetime] = _utc_now) -> None:
        self._store = chat_store
        self._clock = clock

    def next_order_index(self, session_id: str) -> int | None:
        try:
            current = self._store.get_max_order_index(session_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "nudge_order_index_lookup_failed",
                extra={"event": "nudge_order_index_lookup_failed", "session_id": session_id, "error": str(exc)},
            )
            return None
        return int(current or 0) + 1

    def insert(self, session_id: str, content: str, flagged: bool = False) -> int | None:
        """Append ``content`` as an assistant nudge turn and bump the session.

        Insert errors propagate to the caller. A failed session touch is
        logged and does not undo the insert.
        """
        order_index = self.next_order_index(session_id)
        self._store.insert_message(
            session_id,
            NUDGE_ROLE,
            content,
            flagged,
            order_index,
            dict(NUDGE_METADATA),
        )
        best_effort(
            lambda: self._store.touch_session(session_id, self._clock()),
            default=None,
            event="nudge_session_touch_failed",
            logger=logger,
            session_id=session_id,
        )
        return order_index
