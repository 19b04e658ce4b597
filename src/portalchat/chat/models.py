"""Chat session data models.

Created: 2026-10-12

These models describe the student portal's local chat history:
- Message (one user or assistant turn)
- ChatSession (a conversation with a fixed title)
- SessionSummary (the row shown in the history sidebar)
- ChatEvent (what the manager tells the rendering layer)

Design notes:
- Dataclasses with to_dict/from_dict, like the rest of the stores
- Timestamps are float epoch seconds so ordering is a plain comparison
- Roles and reply states are str enums so they serialise as their value
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_TITLE_LENGTH = 50

# Leading sentence: everything up to and including the first terminator.
_SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]?")


class Role(str, Enum):
    """Author of a message."""

    USER = "user"
    ASSISTANT = "assistant"

    @classmethod
    def parse(cls, value: str) -> "Role":
        # Older payloads wrote assistant turns as "ai"
        if value == "ai":
            return cls.ASSISTANT
        return cls(value)


class ReplyState(str, Enum):
    """Lifecycle of a single assistant reply."""

    PENDING = "pending"  # Thinking delay, no placeholder yet
    STREAMING = "streaming"  # Placeholder appended, content growing
    COMPLETED = "completed"  # Full reply delivered
    CANCELLED = "cancelled"  # Stopped by the user or superseded


class EventType(str, Enum):
    """Events published to manager listeners."""

    SESSION_CREATED = "session_created"
    SESSION_UPDATED = "session_updated"
    ACTIVE_CHANGED = "active_changed"
    REPLY_STARTED = "reply_started"
    REPLY_CHUNK = "reply_chunk"
    REPLY_COMPLETED = "reply_completed"
    REPLY_CANCELLED = "reply_cancelled"
    HISTORY_CLEARED = "history_cleared"


def derive_title(text: str, max_length: int = DEFAULT_TITLE_LENGTH) -> str:
    """Build a session title from the first message.

    Takes the leading sentence, trims it, cuts it to ``max_length`` and
    appends ``...`` when the sentence was longer than that.
    """
    match = _SENTENCE_PATTERN.search(text)
    sentence = match.group(0) if match else text
    sentence = sentence.strip()
    if len(sentence) > max_length:
        return sentence[:max_length].rstrip() + "..."
    return sentence


@dataclass
class Message:
    """A single chat turn.

    Attributes:
        id: Time-based identifier, increasing within a manager
        role: Who wrote it
        content: Text; only assistant messages change after creation
    """

    id: str
    role: Role
    content: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"id": self.id, "role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        """Create from dictionary. Raises TypeError on a malformed entry."""
        if not isinstance(data, dict):
            raise TypeError(f"message must be an object, got {type(data).__name__}")
        content = data.get("content", "")
        if not isinstance(content, str):
            raise TypeError(f"message content must be a string, got {type(content).__name__}")
        return cls(
            id=str(data["id"]),
            role=Role.parse(data.get("role", "user")),
            content=content,
        )


@dataclass
class SessionSummary:
    """Sidebar row for a stored session."""

    id: str
    title: str
    last_modified: float
    message_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "last_modified": self.last_modified,
            "message_count": self.message_count,
        }


@dataclass
class ChatSession:
    """
    A conversation in the student portal.

    The title is fixed when the session is created from its first message.
    Messages are append-only; the only in-place change allowed is the
    content of the assistant message that is currently streaming.

    Attributes:
        id: Minted on the first user message
        title: Derived from the first message's leading sentence
        messages: Ordered turns (insertion order only)
        last_modified: Epoch seconds of the latest mutation
    """

    id: str
    title: str
    messages: list[Message] = field(default_factory=list)
    last_modified: float = 0.0

    def append(self, message: Message, stamp: float) -> None:
        self.messages.append(message)
        self.last_modified = stamp

    def find_message(self, message_id: str) -> Message | None:
        for message in reversed(self.messages):
            if message.id == message_id:
                return message
        return None

    def summary(self) -> SessionSummary:
        return SessionSummary(
            id=self.id,
            title=self.title,
            last_modified=self.last_modified,
            message_count=len(self.messages),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "last_modified": self.last_modified,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChatSession":
        """Create from dictionary.

        Accepts the legacy shape too, where ``timestamp`` held epoch
        milliseconds instead of ``last_modified``. Raises TypeError on a
        malformed entry.
        """
        if not isinstance(data, dict):
            raise TypeError(f"session must be an object, got {type(data).__name__}")
        if "last_modified" in data:
            last_modified = float(data["last_modified"])
        else:
            last_modified = float(data.get("timestamp", 0)) / 1000.0
        messages = [Message.from_dict(m) for m in data.get("messages", [])]
        title = data.get("title")
        if title is not None and not isinstance(title, str):
            raise TypeError(f"session title must be a string, got {type(title).__name__}")
        if not title and messages:
            title = derive_title(messages[0].content)
        return cls(
            id=str(data["id"]),
            title=title or "Untitled",
            messages=messages,
            last_modified=last_modified,
        )


@dataclass
class ChatEvent:
    """Notification sent to manager listeners.

    ``content`` carries the full text of the streaming message so far for
    reply events, so a late subscriber never has to reassemble chunks.
    """

    type: EventType
    session_id: str | None = None
    message_id: str | None = None
    content: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "session_id": self.session_id,
            "message_id": self.message_id,
            "content": self.content,
        }
