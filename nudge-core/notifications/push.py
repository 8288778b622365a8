"""Push delivery through an Expo-compatible push gateway."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from config import AppConfig

logger = logging.getLogger(__name__)


class PushDeliveryError(RuntimeError):
    pass


@dataclass
class PushNotification:
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)


class PushNotificationService:
    def __init__(
        self,
        config: AppConfig,
        token_lookup: Callable[[str], list[str]],
        token_revoker: Callable[[str], None] | None = None,
        opener: Callable[..., Any] = urlopen,
    ) -> None:
        self._url = config.push_gateway_url
        self._access_token = (config.push_access_token or "").strip()
        self._timeout = config.push_timeout_seconds
        self._token_lookup = token_lookup
        self._token_revoker = token_revoker
        self._opener = opener

    def build_payload(self, tokens: list[str], notification: PushNotification) -> list[dict[str, Any]]:
        return [
            {
                "to": token,
                "title": notification.title,
                "body": notification.body,
                "data": notification.data,
                "sound": "default",
            }
            for token in tokens
        ]

    def send_to_user(self, user_id: str, notification: PushNotification) -> int:
        """Send to every active device of ``user_id``; returns the number of tickets accepted."""
        tokens = self._token_lookup(user_id)
        if not tokens:
            logger.debug("No push tokens for user %s", user_id)
            return 0

        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        request = Request(
            url=self._url,
            data=json.dumps(self.build_payload(tokens, notification)).encode("utf-8"),
            headers=headers,
            method="POST",
        )
        try:
            with self._opener(request, timeout=self._timeout) as response:
                body = json.loads(response.read().decode("utf-8") or "{}")
        except HTTPError as exc:
            raise PushDeliveryError(f"push gateway returned HTTP {exc.code}") from exc
        except (URLError, TimeoutError, ValueError) as exc:
            raise PushDeliveryError(f"push gateway unreachable: {exc}") from exc

        tickets = body.get("data") if isinstance(body, dict) else None
        if not isinstance(tickets, list):
            return 0
        accepted = 0
        for token, ticket in zip(tokens, tickets):
            if not isinstance(ticket, dict):
                continue
            if ticket.get("status") == "ok":
                accepted += 1
                continue
            error = str((ticket.get("details") or {}).get("error", ""))
            if error == "DeviceNotRegistered" and self._token_revoker is not None:
                self._token_revoker(token)
            logger.info("Push ticket rejected for user %s: %s", user_id, ticket.get("message") or error)
        return accepted
