from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class Session:
    session_id: str
    user_id: str
    character_id: str | None
    updated_at: datetime


@dataclass(frozen=True)
class Character:
    character_id: str
    name: str | None = None
    avatar_url: str | None = None
    persona: str | None = None


@dataclass(frozen=True)
class Candidate:
    """One user's stalest session picked for the current tick."""

    session_id: str
    user_id: str
    character_id: str | None
    character: Character | None = None

    @property
    def character_name(self) -> str | None:
        if self.character is None:
            return None
        return (self.character.name or "").strip() or None


@dataclass(frozen=True)
class ChatTurn:
    role: str
    content: str


@dataclass
class TickResult:
    processed: int = 0
    skipped: bool = False
    reason: str | None = None

    def as_dict(self) -> dict[str, Any]:
        if not self.skipped:
            return {"processed": self.processed}
        payload: dict[str, Any] = {"skipped": True}
        if self.reason:
            payload["reason"] = self.reason
        return payload
