"""Chat session manager.

Created: 2026-10-12

High-level operations for the student portal chat. The manager is the only
writer of session state and combines it with:
- Write-through persistence after every mutation
- Simulated incremental delivery of assistant replies (one at a time)
- An active-session pointer for the rendering layer
- Event fan-out to listeners (SSE, tests)

Everything here is synchronous; delivery ticks arrive through the injected
Scheduler as discrete callbacks.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from dataclasses import replace
from typing import TYPE_CHECKING

from portalchat.chat.delivery import ReplyDelivery
from portalchat.chat.models import (
    DEFAULT_TITLE_LENGTH,
    ChatEvent,
    ChatSession,
    EventType,
    Message,
    ReplyState,
    Role,
    SessionSummary,
    derive_title,
)
from portalchat.chat.replies import ReplyProvider, canned_reply
from portalchat.chat.scheduler import AsyncioScheduler, Scheduler, TimerHandle
from portalchat.chat.storage import FileKeyValueStore, KeyValueStore
from portalchat.chat.store import DEFAULT_STORAGE_KEY, PersistObserver, SessionStore

if TYPE_CHECKING:
    from portalchat.config import Settings

logger = logging.getLogger(__name__)

ChatListener = Callable[[ChatEvent], None]

# Smallest step between two timestamps handed out by one manager
_STAMP_STEP = 0.001


class _SessionListing:
    """Restartable view over the store's summaries; computed on each iteration."""

    def __init__(self, store: SessionStore):
        self._store = store

    def __iter__(self) -> Iterator[SessionSummary]:
        return self._store.summaries()


class ChatSessionManager:
    """Owns chat sessions, the active pointer and the in-flight reply.

    At most one reply is in flight and at most one timer handle is held.
    Starting a reply cancels the previous one outright.
    """

    def __init__(
        self,
        storage: KeyValueStore,
        *,
        scheduler: Scheduler | None = None,
        reply_provider: ReplyProvider | None = None,
        clock: Callable[[], float] = time.time,
        on_persist_error: PersistObserver | None = None,
        storage_key: str = DEFAULT_STORAGE_KEY,
        tick_interval: float = 0.01,
        thinking_delay: float = 1.0,
        chunk_size: int = 1,
        title_max_length: int = DEFAULT_TITLE_LENGTH,
    ):
        """Initialize the manager and hydrate it from ``storage``.

        Args:
            storage: Durable key-value port holding the serialized history
            scheduler: Timer source for delivery ticks. Defaults to asyncio.
            reply_provider: Supplies the full assistant text for a reply
            clock: Epoch-seconds clock for ids and last_modified
            on_persist_error: Called with each failed PersistResult
            storage_key: Key the whole history is stored under
            tick_interval: Seconds between delivered chunks
            thinking_delay: Seconds before the placeholder appears
            chunk_size: Characters delivered per tick
            title_max_length: Title length before the ellipsis
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")

        self._scheduler = scheduler or AsyncioScheduler()
        self._reply_provider = reply_provider or canned_reply
        self._clock = clock
        self.tick_interval = tick_interval
        self.thinking_delay = thinking_delay
        self.chunk_size = chunk_size
        self.title_max_length = title_max_length

        self._store = SessionStore(storage, key=storage_key, observer=on_persist_error)
        self._active_session_id: str | None = None
        self._reply: ReplyDelivery | None = None
        self._timer: TimerHandle | None = None
        self._listeners: list[ChatListener] = []
        self._last_stamp = 0.0
        self._last_id = 0

        self._store.hydrate()
        for session in self._store.ordered():
            self._last_stamp = max(self._last_stamp, session.last_modified)
            for message in session.messages:
                if message.id.isdigit():
                    self._last_id = max(self._last_id, int(message.id))
            if session.id.isdigit():
                self._last_id = max(self._last_id, int(session.id))

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        storage: KeyValueStore | None = None,
        **kwargs,
    ) -> ChatSessionManager:
        """Build a manager configured from Settings."""
        return cls(
            storage or FileKeyValueStore(),
            storage_key=settings.storage_key,
            tick_interval=settings.tick_interval,
            thinking_delay=settings.thinking_delay,
            chunk_size=settings.chunk_size,
            title_max_length=settings.title_max_length,
            **kwargs,
        )

    # =========================================================================
    # Read-only projection
    # =========================================================================

    @property
    def active_session_id(self) -> str | None:
        return self._active_session_id

    @property
    def active_messages(self) -> list[Message]:
        """Copies of the active session's messages."""
        if self._active_session_id is None:
            return []
        session = self._store.get(self._active_session_id)
        if session is None:
            return []
        return [replace(m) for m in session.messages]

    @property
    def is_streaming(self) -> bool:
        return self._reply is not None and self._reply.is_active

    @property
    def reply_state(self) -> ReplyState | None:
        """State of the current reply, or of the last one to finish."""
        return self._reply.state if self._reply is not None else None

    @property
    def streaming_session_id(self) -> str | None:
        if self.is_streaming:
            return self._reply.session_id
        return None

    def list_sessions(self) -> _SessionListing:
        """Session summaries, most recently active first."""
        return _SessionListing(self._store)

    def get_session(self, session_id: str) -> ChatSession | None:
        """Detached copy of a stored session, or None."""
        session = self._store.get(session_id)
        if session is None or not session.messages:
            return None
        return replace(session, messages=[replace(m) for m in session.messages])

    def search_sessions(self, query: str) -> list[SessionSummary]:
        """Sessions whose title or any message contains ``query`` (case-insensitive)."""
        needle = query.strip().lower()
        if not needle:
            return []
        results = []
        for session in self._store.ordered():
            if needle in session.title.lower() or any(
                needle in m.content.lower() for m in session.messages
            ):
                results.append(session.summary())
        return results

    # =========================================================================
    # Session Operations
    # =========================================================================

    def start_new_session(self) -> None:
        """Clear the active pointer. A record is only created on the first message."""
        self._active_session_id = None
        self._emit(ChatEvent(EventType.ACTIVE_CHANGED))

    def load_session(self, session_id: str) -> list[Message]:
        """Make ``session_id`` active and return its messages.

        Unknown ids return an empty list and leave the active pointer alone.
        """
        session = self._store.get(session_id)
        if session is None or not session.messages:
            logger.debug("load_session: unknown session %s", session_id)
            return []
        self._active_session_id = session.id
        self._emit(ChatEvent(EventType.ACTIVE_CHANGED, session_id=session.id))
        return [replace(m) for m in session.messages]

    def send_user_message(self, text: str) -> Message | None:
        """Append a user message and start the assistant reply.

        Blank text is ignored. Without an active session a new one is minted,
        titled from this message.
        """
        if not text or not text.strip():
            return None

        session = None
        if self._active_session_id is not None:
            session = self._store.get(self._active_session_id)

        created = session is None
        if session is None:
            session = ChatSession(
                id=self._next_id(),
                title=derive_title(text, self.title_max_length),
            )
            self._store.add(session)
            self._active_session_id = session.id

        message = Message(id=self._next_id(), role=Role.USER, content=text)
        session.append(message, self._stamp())
        self._store.save()

        if created:
            logger.info(f"Chat session created: {session.id} ({session.title!r})")
            self._emit(ChatEvent(EventType.SESSION_CREATED, session_id=session.id))
            self._emit(ChatEvent(EventType.ACTIVE_CHANGED, session_id=session.id))
        self._emit(
            ChatEvent(
                EventType.SESSION_UPDATED,
                session_id=session.id,
                message_id=message.id,
                content=message.content,
            )
        )

        self.begin_assistant_reply(session.id, text)
        return message

    def clear_history(self) -> None:
        """Cancel any reply and wipe every stored session."""
        self._halt_reply()
        self._active_session_id = None
        self._store.wipe()
        logger.warning("Chat history cleared")
        self._emit(ChatEvent(EventType.HISTORY_CLEARED))

    def shutdown(self) -> None:
        """Stop any in-flight delivery; the partial text stays as it is."""
        self._halt_reply()

    # =========================================================================
    # Reply Delivery
    # =========================================================================

    def begin_assistant_reply(self, owner_session_id: str, user_text: str = "") -> ReplyDelivery | None:
        """Start delivering an assistant reply into ``owner_session_id``.

        Any reply already in flight is cancelled first and receives no
        further mutations. Returns None for an unknown session.
        """
        session = self._store.get(owner_session_id)
        if session is None:
            logger.warning(f"Cannot start reply: unknown session {owner_session_id}")
            return None

        self._halt_reply()

        reply = ReplyDelivery(
            session_id=session.id,
            full_text=self._reply_provider(session, user_text),
            chunk_size=self.chunk_size,
        )
        self._reply = reply
        self._emit(ChatEvent(EventType.REPLY_STARTED, session_id=session.id))
        self._schedule(self.thinking_delay, lambda: self._on_thinking_done(reply))
        return reply

    def cancel_reply(self) -> bool:
        """Stop the in-flight reply, keeping whatever text it has emitted.

        Returns True if something was cancelled.
        """
        return self._halt_reply()

    def _halt_reply(self) -> bool:
        self._cancel_timer()
        reply = self._reply
        if reply is None or not reply.is_active:
            return False
        reply.cancel()
        session = self._store.get(reply.session_id)
        if session is not None and reply.message_id is not None:
            # The partial assistant message is final from here on
            session.last_modified = self._stamp()
            self._store.save()
        logger.debug(f"Reply cancelled in {reply.session_id} after {reply.position} chars")
        self._emit(
            ChatEvent(
                EventType.REPLY_CANCELLED,
                session_id=reply.session_id,
                message_id=reply.message_id,
                content=reply.emitted,
            )
        )
        return True

    def _on_thinking_done(self, reply: ReplyDelivery) -> None:
        self._timer = None
        if reply is not self._reply or reply.state is not ReplyState.PENDING:
            return

        session = self._store.get(reply.session_id)
        if session is None:
            reply.cancel()
            return

        placeholder = Message(id=self._next_id(), role=Role.ASSISTANT, content="")
        session.append(placeholder, self._stamp())
        reply.start(placeholder.id)
        self._store.save()
        self._emit(
            ChatEvent(EventType.SESSION_UPDATED, session_id=session.id, message_id=placeholder.id)
        )
        self._schedule(self.tick_interval, lambda: self._on_tick(reply))

    def _on_tick(self, reply: ReplyDelivery) -> None:
        self._timer = None
        if reply is not self._reply or reply.state is not ReplyState.STREAMING:
            return

        session = self._store.get(reply.session_id)
        message = session.find_message(reply.message_id) if session else None
        if message is None:
            reply.cancel()
            return

        message.content = reply.advance()
        session.last_modified = self._stamp()
        self._store.save()

        # Background sessions keep receiving text but emit no visible chunks
        if reply.session_id == self._active_session_id:
            self._emit(
                ChatEvent(
                    EventType.REPLY_CHUNK,
                    session_id=session.id,
                    message_id=message.id,
                    content=message.content,
                )
            )
        self._emit(ChatEvent(EventType.SESSION_UPDATED, session_id=session.id, message_id=message.id))

        if reply.state is ReplyState.COMPLETED:
            logger.debug(f"Reply completed in {session.id}: {reply.ticks} ticks")
            self._emit(
                ChatEvent(
                    EventType.REPLY_COMPLETED,
                    session_id=session.id,
                    message_id=message.id,
                    content=message.content,
                )
            )
        else:
            self._schedule(self.tick_interval, lambda: self._on_tick(reply))

    # =========================================================================
    # Timer / Clock Helpers
    # =========================================================================

    def _schedule(self, delay: float, callback: Callable[[], None]) -> None:
        self._cancel_timer()
        self._timer = self._scheduler.call_later(delay, callback)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _stamp(self) -> float:
        stamp = max(self._clock(), self._last_stamp + _STAMP_STEP)
        self._last_stamp = stamp
        return stamp

    def _next_id(self) -> str:
        candidate = max(int(self._clock() * 1000), self._last_id + 1)
        self._last_id = candidate
        return str(candidate)

    # =========================================================================
    # Listeners
    # =========================================================================

    def subscribe(self, listener: ChatListener) -> ChatListener:
        self._listeners.append(listener)
        return listener

    def unsubscribe(self, listener: ChatListener) -> None:
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    def _emit(self, event: ChatEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.warning("Chat listener failed on %s", event.type.value, exc_info=True)


# =========================================================================
# Factory Function
# =========================================================================

_manager_instance: ChatSessionManager | None = None


def get_chat_manager() -> ChatSessionManager:
    """Get or create the chat manager singleton (file storage, asyncio timers)."""
    global _manager_instance
    if _manager_instance is None:
        from portalchat.config import get_settings

        _manager_instance = ChatSessionManager.from_settings(get_settings())
    return _manager_instance


def reset_chat_manager() -> None:
    """Stop any in-flight reply and drop the singleton.

    The API server calls this on shutdown; tests call it between cases.
    """
    global _manager_instance
    if _manager_instance is not None:
        _manager_instance.shutdown()
    _manager_instance = None
