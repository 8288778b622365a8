from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from nudges.models import Candidate, Character, Session

if TYPE_CHECKING:
    from memory.chat_store import PostgresChatStore

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def dedupe_by_user(sessions: Iterable[Session]) -> list[Session]:
    """Keep the first session seen for each user.

    Input is expected oldest-first, so the survivor is each user's stalest
    session.
    """
    by_user: OrderedDict[str, Session] = OrderedDict()
    for session in sessions:
        if session.user_id not in by_user:
            by_user[session.user_id] = session
    return list(by_user.values())


class EligibilitySelector:
    def __init__(self, chat_store: PostgresChatStore, clock: Callable[[], datetime] = _utc_now) -> None:
        self._store = chat_store
        self._clock = clock

    def find_candidates(self, inactive_hours: float, limit: int) -> list[Candidate]:
        if inactive_hours <= 0:
            raise ValueError("inactive_hours must be > 0")
        if limit <= 0:
            raise ValueError("limit must be > 0")

        cutoff = self._clock() - timedelta(hours=inactive_hours)
        try:
            sessions = dedupe_by_user(self._store.list_stale_sessions(cutoff, limit))
            if not sessions:
                return []
            characters = self._load_characters(sessions)
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "nudge_candidates_fetch_failed",
                extra={"event": "nudge_candidates_fetch_failed", "error": str(exc)},
            )
            return []

        return [
            Candidate(
                session_id=session.session_id,
                user_id=session.user_id,
                character_id=session.character_id,
                character=characters.get(session.character_id) if session.character_id else None,
            )
            for session in sessions
        ]

    def _load_characters(self, sessions: list[Session]) -> dict[str, Character]:
        character_ids = list(dict.fromkeys(s.character_id for s in sessions if s.character_id))
        if not character_ids:
            return {}
        return {character.character_id: character for character in self._store.get_characters_by_ids(character_ids)}
