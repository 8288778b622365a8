from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from nudges.models import Character, ChatTurn
from utils.config_paths import resolve_config_file

if TYPE_CHECKING:
    from memory.chat_store import PostgresChatStore

logger = logging.getLogger(__name__)

GENERIC_NAME = "Hey"

DEFAULT_PERSONA = (
    "You are {name}, a character in an ongoing one-on-one chat. "
    "Stay in character and keep the tone of the conversation so far."
)
DEFAULT_INSTRUCTION = (
    "Send exactly one short re-engagement ping to the user to nudge them to continue chatting. "
    "Length: 6-12 words. Natural, warm, human-like. 1 action like **smiles** is okay. "
    "No questions unless playful and brief. Avoid repetitive phrasing or meta lines."
)
DEFAULT_FALLBACKS = (
    "{name} here, miss me? **smiles**",
    "Got a minute? I was thinking about you. **grins**",
    "Wanna pick up where we left off? **tilts head**",
    "I found something fun to chat about. Come? **waves**",
    "Hey, you. I've got a thought. **leans closer**",
)


@dataclass(frozen=True)
class NudgePrompts:
    persona: str = DEFAULT_PERSONA
    instruction: str = DEFAULT_INSTRUCTION
    fallback: tuple[str, ...] = DEFAULT_FALLBACKS

    @classmethod
    def load(cls, path: Path | None = None) -> "NudgePrompts":
        config_path = path or resolve_config_file("nudges.yaml")
        if not config_path.exists():
            return cls()
        try:
            data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Failed to load nudge prompts from %s; using defaults: %s", config_path, exc)
            return cls()
        if not isinstance(data, dict):
            return cls()
        return cls(
            persona=_text(data.get("persona")) or DEFAULT_PERSONA,
            instruction=_text(data.get("instruction")) or DEFAULT_INSTRUCTION,
            fallback=tuple(str(line).strip() for line in data.get("fallback") or [] if str(line).strip())
            or DEFAULT_FALLBACKS,
        )


def _text(value: Any) -> str:
    if isinstance(value, list):
        return " ".join(str(item).strip() for item in value if str(item).strip())
    return str(value or "").strip()


def fallback_line(
    character_name: str | None,
    rng: random.Random | None = None,
    templates: tuple[str, ...] = DEFAULT_FALLBACKS,
) -> str:
    chooser = rng or random
    template = templates[int(chooser.random() * len(templates)) % len(templates)]
    return template.replace("{name}", character_name or GENERIC_NAME)


def trim_history(turns: list[ChatTurn], limit: int, char_budget: int) -> list[ChatTurn]:
    """Newest turns that fit in ``limit`` entries and ``char_budget`` characters, oldest first."""
    kept: list[ChatTurn] = []
    used = 0
    for turn in reversed(turns[-limit:] if limit > 0 else []):
        size = len(turn.content)
        if used + size > char_budget:
            break
        kept.append(turn)
        used += size
    kept.reverse()
    return kept


class NudgeContentGenerator:
    def __init__(
        self,
        chat_store: PostgresChatStore,
        llm: Any,
        prompts: NudgePrompts | None = None,
        history_limit: int = 6,
        history_char_budget: int = 1200,
    ) -> None:
        self._store = chat_store
        self._llm = llm
        self.prompts = prompts or NudgePrompts()
        self._history_limit = history_limit
        self._history_char_budget = history_char_budget

    def build_messages(self, session_id: str, character: Character | None = None) -> list[BaseMessage]:
        name = (character.name if character else None) or "your chat partner"
        system_text = self.prompts.persona.replace("{name}", name)
        if character and character.persona:
            system_text = f"{system_text}\n\n{character.persona.strip()}"

        messages: list[BaseMessage] = [SystemMessage(content=system_text)]
        history = self._store.recent_messages(session_id, self._history_limit)
        for turn in trim_history(history, self._history_limit, self._history_char_budget):
            if turn.role == "assistant":
                messages.append(AIMessage(content=turn.content))
            elif turn.role == "user":
                messages.append(HumanMessage(content=turn.content))
        messages.append(HumanMessage(content=self.prompts.instruction))
        return messages

    def generate(self, session_id: str, user_id: str, character: Character | None = None) -> str:
        try:
            response = self._llm.invoke(self.build_messages(session_id, character))
        except Exception as exc:  # noqa: BLE001
            logger.warning(
                "nudge_generation_failed",
                extra={"event": "nudge_generation_failed", "session_id": session_id, "user_id": user_id, "error": str(exc)},
            )
            return ""
        content = getattr(response, "content", response)
        if isinstance(content, list):
            content = "".join(part.get("text", "") if isinstance(part, dict) else str(part) for part in content)
        return str(content or "").strip()

    def fallback(self, character_name: str | None, rng: random.Random | None = None) -> str:
        return fallback_line(character_name, rng, self.prompts.fallback)
