from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable

import psycopg2
from psycopg2.extras import Json

from config import AppConfig
from nudges.models import Character, ChatTurn, Session

logger = logging.getLogger(__name__)


class PostgresChatStore:
    """Conversation, character and device-token queries used by the nudge job.

    Opens a short-lived connection per call; the job runs at most once a
    minute so pooling buys nothing.
    """

    def __init__(self, config: AppConfig) -> None:
        self._config = config

    def _connect(self) -> Any:
        return psycopg2.connect(
            dbname=self._config.postgres_db,
            user=self._config.postgres_user,
            password=self._config.postgres_password,
            host=self._config.postgres_host,
            port=self._config.postgres_port,
            connect_timeout=5,
        )

    def _fetchall(self, sql: str, params: tuple[Any, ...]) -> list[tuple[Any, ...]]:
        connection = self._connect()
        try:
            with connection, connection.cursor() as cursor:
                cursor.execute(sql, params)
                return list(cursor.fetchall())
        finally:
            connection.close()

    def _execute(self, sql: str, params: tuple[Any, ...]) -> None:
        connection = self._connect()
        try:
            with connection, connection.cursor() as cursor:
                cursor.execute(sql, params)
        finally:
            connection.close()

    def list_stale_sessions(self, cutoff: datetime, limit: int) -> list[Session]:
        rows = self._fetchall(
            """
            SELECT id, user_id, character_id, updated_at
            FROM chat_sessions
            WHERE updated_at < %s
            ORDER BY updated_at ASC
            LIMIT %s
            """,
            (cutoff, int(limit)),
        )
        return [
            Session(
                session_id=str(row[0]),
                user_id=str(row[1]),
                character_id=str(row[2]) if row[2] is not None else None,
                updated_at=row[3],
            )
            for row in rows
        ]

    def get_characters_by_ids(self, character_ids: Iterable[str]) -> list[Character]:
        ids = [str(item) for item in character_ids if item]
        if not ids:
            return []
        rows = self._fetchall(
            "SELECT id, name, avatar_url, persona FROM characters WHERE id::text = ANY(%s)",
            (ids,),
        )
        return [
            Character(character_id=str(row[0]), name=row[1], avatar_url=row[2], persona=row[3]) for row in rows
        ]

    def get_max_order_index(self, session_id: str) -> int | None:
        rows = self._fetchall(
            """
            SELECT order_index
            FROM chat_messages
            WHERE session_id = %s AND order_index IS NOT NULL
            ORDER BY order_index DESC
            LIMIT 1
            """,
            (session_id,),
        )
        if not rows:
            return None
        return int(rows[0][0])

    def insert_message(
        self,
        session_id: str,
        role: str,
        content: str,
        is_flagged: bool,
        order_index: int | None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self._execute(
            """
            INSERT INTO chat_messages (session_id, role, content, is_nsfw, order_index, metadata)
            VALUES (%s, %s, %s, %s, %s, %s)
            """,
            (session_id, role, content, bool(is_flagged), order_index, Json(metadata or {})),
        )

    def touch_session(self, session_id: str, at: datetime | None = None) -> None:
        if at is None:
            self._execute("UPDATE chat_sessions SET updated_at = NOW() WHERE id = %s", (session_id,))
            return
        self._execute("UPDATE chat_sessions SET updated_at = %s WHERE id = %s", (at, session_id))

    def recent_messages(self, session_id: str, limit: int) -> list[ChatTurn]:
        rows = self._fetchall(
            """
            SELECT role, content
            FROM chat_messages
            WHERE session_id = %s
            ORDER BY order_index DESC NULLS LAST, created_at DESC
            LIMIT %s
            """,
            (session_id, int(limit)),
        )
        return [ChatTurn(role=str(row[0]), content=str(row[1] or "")) for row in reversed(rows)]

    def get_push_tokens(self, user_id: str) -> list[str]:
        rows = self._fetchall(
            "SELECT token FROM push_tokens WHERE user_id = %s AND is_active",
            (user_id,),
        )
        return [str(row[0]) for row in rows if row[0]]

    def deactivate_push_token(self, token: str) -> None:
        self._execute("UPDATE push_tokens SET is_active = FALSE WHERE token = %s", (token,))
