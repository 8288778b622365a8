from __future__ import annotations

import logging

from notifications.push import PushNotification, PushNotificationService
from nudges.models import Candidate, Character
from utils.resilience import best_effort

logger = logging.getLogger(__name__)

DEFAULT_PUSH_TITLE = "New message"
BODY_LIMIT = 120
BODY_KEEP = 117
ELLIPSIS = "…"


def push_title(character: Character | None) -> str:
    name = (character.name or "").strip() if character else ""
    return name or DEFAULT_PUSH_TITLE


def truncate_body(text: str) -> str:
    if len(text) > BODY_LIMIT:
        return text[:BODY_KEEP] + ELLIPSIS
    return text


class NotificationDispatcher:
    def __init__(self, push_service: PushNotificationService | None, push_enabled: bool) -> None:
        self._push = push_service
        self._push_enabled = push_enabled

    def send_email_nudge(self, user_id: str, character: Character | None) -> None:
        # Email nudges are disabled.
        return None

    def dispatch(self, candidate: Candidate, content: str) -> None:
        self.send_email_nudge(candidate.user_id, candidate.character)
        if not self._push_enabled or self._push is None:
            return
        notification = PushNotification(
            title=push_title(candidate.character),
            body=truncate_body(content),
            data={
                "type": "nudge",
                "session_id": str(candidate.session_id),
                "character_id": str(candidate.character_id) if candidate.character_id else "",
            },
        )
        push = self._push
        best_effort(
            lambda: push.send_to_user(candidate.user_id, notification),
            default=0,
            event="nudge_push_failed",
            logger=logger,
            user_id=candidate.user_id,
        )
