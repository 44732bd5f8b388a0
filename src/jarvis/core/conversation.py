"""Conversation memory for multi-turn context."""

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Any

_log = logging.getLogger(__name__)

DEFAULT_MEMORY_CAP = 50
_PREVIEW_CHARS = 50

USER = "user"
MODEL = "model"


@dataclass(frozen=True)
class Message:
    """One dialogue entry. Never mutated after creation."""

    role: str
    content: str
    timestamp: float


class ConversationMemory:
    """Bounded, append-only record of the dialogue.

    Once more than ``max_messages`` entries exist, the oldest ones are
    dropped so only the most recent window survives, in append order.
    """

    def __init__(self, max_messages: int = DEFAULT_MEMORY_CAP) -> None:
        """Initialize an empty memory.

        Args:
            max_messages: Cap on retained messages (must be >= 1)
        """
        if max_messages < 1:
            raise ValueError("max_messages must be at least 1")
        self._messages: list[Message] = []
        self._max_messages = max_messages
        self.session_id = f"session_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"
        _log.debug("Started conversation session: %s", self.session_id)

    @property
    def max_messages(self) -> int:
        return self._max_messages

    def append_user(self, content: str) -> None:
        self._append(USER, content)

    def append_model(self, content: str) -> None:
        self._append(MODEL, content)

    def _append(self, role: str, content: str) -> None:
        self._messages.append(Message(role=role, content=content, timestamp=time.time()))
        self._trim()
        _log.debug("Added %s message (%d total)", role, len(self._messages))

    def _trim(self) -> None:
        overflow = len(self._messages) - self._max_messages
        if overflow > 0:
            del self._messages[:overflow]
            _log.debug("Trimmed %d old messages from history", overflow)

    def messages(self) -> list[Message]:
        """Return a copy of every retained message."""
        return list(self._messages)

    def recent(self, n: int) -> list[Message]:
        """Return the last ``n`` messages (fewer if history is shorter)."""
        if n <= 0:
            return []
        return self._messages[-n:]

    def formatted_for_model(self, n: int | None = None) -> list[dict[str, str]]:
        """Return history as ``{role, content}`` dicts, oldest first."""
        source = self._messages if n is None else self.recent(n)
        return [{"role": m.role, "content": m.content} for m in source]

    def context_summary(self) -> str:
        """Short preview of the last few exchanges for display."""
        recent = self.recent(5)
        if not recent:
            return "No conversation history"
        lines = []
        for msg in recent:
            who = "You" if msg.role == USER else "JARVIS"
            preview = msg.content[:_PREVIEW_CHARS]
            if len(msg.content) > _PREVIEW_CHARS:
                preview += "..."
            lines.append(f"{who}: {preview}")
        return f"Recent context ({len(self._messages)} messages):\n" + "\n".join(lines)

    def clear(self) -> None:
        """Drop all messages (explicit user reset only)."""
        count = len(self._messages)
        self._messages = []
        _log.debug("Cleared %d messages from conversation", count)

    def stats(self) -> dict[str, Any]:
        return {
            "count": len(self._messages),
            "user_count": sum(1 for m in self._messages if m.role == USER),
            "model_count": sum(1 for m in self._messages if m.role == MODEL),
            "session_id": self.session_id,
        }

    def export(self) -> dict[str, Any]:
        now = time.time()
        return {
            "id": self.session_id,
            "messages": [
                {"role": m.role, "content": m.content, "timestamp": m.timestamp}
                for m in self._messages
            ],
            "created_at": self._messages[0].timestamp if self._messages else now,
            "last_updated": self._messages[-1].timestamp if self._messages else now,
        }

    def __len__(self) -> int:
        return len(self._messages)
