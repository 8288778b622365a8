from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from config import AppConfig
from nudges.models import Character, ChatTurn, Session

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


class FakeKeyValueStore:
    """In-memory stand-in for RedisKeyValueStore with a controllable clock."""

    def __init__(self, now: datetime = NOW, connected: bool = True) -> None:
        self.now = now
        self.connected = connected
        self.fail_with: Exception | None = None
        self.values: dict[str, str] = {}
        self.expires_at: dict[str, datetime] = {}
        self.calls: list[str] = []

    @property
    def is_connected(self) -> bool:
        return self.connected

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    def _purge(self, key: str) -> None:
        expiry = self.expires_at.get(key)
        if expiry is not None and self.now >= expiry:
            self.values.pop(key, None)
            self.expires_at.pop(key, None)

    def get(self, key: str) -> str | None:
        self._check("get")
        self._purge(key)
        return self.values.get(key)

    def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        self._check("set")
        self.values[key] = value
        self.expires_at.pop(key, None)
        if ttl_seconds:
            self.expires_at[key] = self.now + timedelta(seconds=ttl_seconds)

    def delete(self, key: str) -> None:
        self._check("delete")
        self.values.pop(key, None)
        self.expires_at.pop(key, None)

    def set_if_absent(self, key: str, value: str, ttl_seconds: int) -> bool:
        self._check("set_if_absent")
        self._purge(key)
        if key in self.values:
            return False
        self.values[key] = value
        self.expires_at[key] = self.now + timedelta(seconds=ttl_seconds)
        return True

    def expire(self, key: str, ttl_seconds: int) -> None:
        self._check("expire")
        if key in self.values:
            self.expires_at[key] = self.now + timedelta(seconds=ttl_seconds)


class FakeChatStore:
    def __init__(self) -> None:
        self.sessions: list[Session] = []
        self.characters: dict[str, Character] = {}
        self.messages: list[dict[str, Any]] = []
        self.history: dict[str, list[ChatTurn]] = {}
        self.push_tokens: dict[str, list[str]] = {}
        self.touched: dict[str, datetime | None] = {}
        self.fail_sessions = False
        self.fail_insert = False
        self.fail_touch = False
        self.character_lookups: list[list[str]] = []
        self.calls: list[str] = []

    def add_session(self, session_id: str, user_id: str, character_id: str | None, updated_at: datetime) -> None:
        self.sessions.append(Session(session_id, user_id, character_id, updated_at))

    def list_stale_sessions(self, cutoff: datetime, limit: int) -> list[Session]:
        self.calls.append("list_stale_sessions")
        if self.fail_sessions:
            raise RuntimeError("database unavailable")
        stale = sorted((s for s in self.sessions if s.updated_at < cutoff), key=lambda s: s.updated_at)
        return stale[:limit]

    def get_characters_by_ids(self, character_ids: list[str]) -> list[Character]:
        self.calls.append("get_characters_by_ids")
        self.character_lookups.append(list(character_ids))
        return [self.characters[item] for item in character_ids if item in self.characters]

    def recent_messages(self, session_id: str, limit: int) -> list[ChatTurn]:
        return list(self.history.get(session_id, []))[-limit:]

    def get_max_order_index(self, session_id: str) -> int | None:
        indexes = [m["order_index"] for m in self.messages if m["session_id"] == session_id and m["order_index"] is not None]
        return max(indexes) if indexes else None

    def insert_message(
        self,
        session_id: str,
        role: str,
        content: str,
        is_flagged: bool,
        order_index: int | None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self.calls.append("insert_message")
        if self.fail_insert:
            raise RuntimeError("insert rejected")
        self.messages.append(
            {
                "session_id": session_id,
                "role": role,
                "content": content,
                "is_flagged": is_flagged,
                "order_index": order_index,
                "metadata": metadata or {},
            }
        )

    def touch_session(self, session_id: str, at: datetime | None = None) -> None:
        self.calls.append("touch_session")
        if self.fail_touch:
            raise RuntimeError("session update timed out")
        self.touched[session_id] = at

    def get_push_tokens(self, user_id: str) -> list[str]:
        return list(self.push_tokens.get(user_id, []))


class FakeLLM:
    def __init__(self, reply: str = "", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[list[Any]] = []

    def invoke(self, messages: list[Any]) -> Any:
        self.calls.append(messages)
        if self.error is not None:
            raise self.error

        class _Reply:
            content = self.reply

        return _Reply()


class FakePushService:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.sent: list[tuple[str, Any]] = []

    def send_to_user(self, user_id: str, notification: Any) -> int:
        self.sent.append((user_id, notification))
        if self.error is not None:
            raise self.error
        return 1


class SequenceRandom:
    """random.Random replacement that replays fixed values for ``random()``."""

    def __init__(self, values: list[float], default: float = 0.99) -> None:
        self._values = list(values)
        self._default = default

    def random(self) -> float:
        if self._values:
            return self._values.pop(0)
        return self._default


@pytest.fixture
def kv_store() -> FakeKeyValueStore:
    return FakeKeyValueStore()


@pytest.fixture
def chat_store() -> FakeChatStore:
    return FakeChatStore()


@pytest.fixture
def nudge_config() -> AppConfig:
    return AppConfig(
        nudge_enabled=True,
        nudge_min_inactive_hours=24,
        nudge_max_per_day=1,
        nudge_batch_limit=25,
        nudge_lock_key="nudge:lock",
        nudge_lock_ttl_seconds=55,
        nudge_skip_probability=0.4,
        push_enabled=True,
    )
