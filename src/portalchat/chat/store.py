"""Session store: in-memory sessions with write-through persistence.

Created: 2026-10-12

Storage layout (single key in the KeyValueStore):
    chat_history -> {"version": 1, "sessions": [ChatSession.to_dict(), ...]}

Design notes:
- The whole store is written on every mutation (no batching, no debounce)
- Loading is best-effort: a missing or corrupt payload gives an empty store
- The unversioned payload (a bare list of sessions) is migrated on load
- Durable-store failures come back as PersistResult, never as exceptions
"""

import json
import logging
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from typing import Any

from portalchat.chat.models import ChatSession, SessionSummary
from portalchat.chat.storage import KeyValueStore

logger = logging.getLogger(__name__)

PAYLOAD_VERSION = 1
DEFAULT_STORAGE_KEY = "chat_history"


@dataclass(frozen=True)
class PersistResult:
    """Outcome of a durable-store call."""

    ok: bool
    operation: str = "save"
    error: str | None = None

    @classmethod
    def success(cls, operation: str = "save") -> "PersistResult":
        return cls(ok=True, operation=operation)

    @classmethod
    def failure(cls, operation: str, exc: BaseException) -> "PersistResult":
        return cls(ok=False, operation=operation, error=f"{type(exc).__name__}: {exc}")


PersistObserver = Callable[[PersistResult], None]


def serialize_sessions(sessions: list[ChatSession]) -> str:
    """Encode sessions as the versioned JSON payload."""
    return json.dumps(
        {
            "version": PAYLOAD_VERSION,
            "sessions": [s.to_dict() for s in sessions if s.messages],
        },
        ensure_ascii=False,
    )


def deserialize_sessions(raw: str) -> list[ChatSession]:
    """Decode a stored payload.

    Raises ValueError when the payload is not JSON or has an unknown
    shape. Individual sessions that fail to parse are skipped.
    """
    data: Any = json.loads(raw)

    if isinstance(data, list):
        items = data
    elif isinstance(data, dict):
        version = data.get("version")
        if version != PAYLOAD_VERSION:
            raise ValueError(f"Unsupported chat history version: {version!r}")
        items = data.get("sessions", [])
    else:
        raise ValueError(f"Unexpected chat history payload: {type(data).__name__}")

    sessions: list[ChatSession] = []
    for item in items:
        try:
            session = ChatSession.from_dict(item)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Skipping unreadable chat session: {e}")
            continue
        if session.messages:
            sessions.append(session)
    return sessions


class SessionStore:
    """Mapping of session id to ChatSession, persisted through a KeyValueStore.

    Only the ChatSessionManager mutates sessions; the store just holds them
    and writes them out.
    """

    def __init__(
        self,
        backend: KeyValueStore,
        key: str = DEFAULT_STORAGE_KEY,
        observer: PersistObserver | None = None,
    ):
        self._backend = backend
        self._key = key
        self._observer = observer
        self._sessions: dict[str, ChatSession] = {}

    @property
    def key(self) -> str:
        return self._key

    # =========================================================================
    # Load / Save
    # =========================================================================

    def hydrate(self) -> PersistResult:
        """Replace in-memory state with whatever the durable store holds."""
        self._sessions = {}
        try:
            raw = self._backend.get(self._key)
            if raw is None:
                return PersistResult.success("load")
            sessions = deserialize_sessions(raw)
        except Exception as e:
            result = PersistResult.failure("load", e)
            logger.error(f"Error loading chat history from {self._key!r}: {result.error}")
            self._notify(result)
            return result

        for session in sessions:
            self._sessions[session.id] = session
        logger.info(f"Chat history loaded: {len(self._sessions)} sessions")
        return PersistResult.success("load")

    def save(self) -> PersistResult:
        """Write the whole store to the durable backend."""
        try:
            payload = serialize_sessions(list(self._sessions.values()))
            self._backend.set(self._key, payload)
        except Exception as e:
            result = PersistResult.failure("save", e)
            logger.error(f"Error saving chat history to {self._key!r}: {result.error}")
            self._notify(result)
            return result
        return PersistResult.success("save")

    def wipe(self) -> PersistResult:
        """Drop every session and remove the durable key."""
        self._sessions = {}
        try:
            self._backend.remove(self._key)
        except Exception as e:
            result = PersistResult.failure("remove", e)
            logger.error(f"Error removing chat history {self._key!r}: {result.error}")
            self._notify(result)
            return result
        return PersistResult.success("remove")

    def _notify(self, result: PersistResult) -> None:
        if self._observer is None:
            return
        try:
            self._observer(result)
        except Exception:
            logger.warning("Persistence observer failed", exc_info=True)

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, session_id: str) -> ChatSession | None:
        return self._sessions.get(session_id)

    def add(self, session: ChatSession) -> None:
        self._sessions[session.id] = session

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return sum(1 for s in self._sessions.values() if s.messages)

    def ordered(self) -> list[ChatSession]:
        """Non-empty sessions, most recently modified first."""
        sessions = [s for s in self._sessions.values() if s.messages]
        sessions.sort(key=lambda s: s.last_modified, reverse=True)
        return sessions

    def summaries(self) -> Iterator[SessionSummary]:
        for session in self.ordered():
            yield session.summary()
