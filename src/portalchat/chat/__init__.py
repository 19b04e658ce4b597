"""Local-first chat sessions for the student portal.

Created: 2026-10-12

The chat core keeps a student's conversations on the client:

- Sessions are minted on the first message and titled from it
- Assistant replies are revealed a chunk at a time ("typing")
- Every change is written straight through to a key-value store
- Switching sessions mid-reply keeps the reply going in the background

Usage:
    from portalchat.chat import ChatSessionManager, InMemoryKeyValueStore

    manager = ChatSessionManager(InMemoryKeyValueStore())
    manager.send_user_message("What are the library hours?")

    for summary in manager.list_sessions():
        print(summary.title)
"""

from portalchat.chat.delivery import ReplyDelivery
from portalchat.chat.manager import (
    ChatSessionManager,
    get_chat_manager,
    reset_chat_manager,
)
from portalchat.chat.models import (
    ChatEvent,
    ChatSession,
    EventType,
    Message,
    ReplyState,
    Role,
    SessionSummary,
    derive_title,
)
from portalchat.chat.replies import CANNED_REPLY, ReplyProvider, canned_reply, fixed_reply
from portalchat.chat.scheduler import AsyncioScheduler, Scheduler, TimerHandle
from portalchat.chat.storage import FileKeyValueStore, InMemoryKeyValueStore, KeyValueStore
from portalchat.chat.store import PersistResult, SessionStore

__all__ = [
    # Models
    "ChatEvent",
    "ChatSession",
    "EventType",
    "Message",
    "ReplyState",
    "Role",
    "SessionSummary",
    "derive_title",
    # Storage
    "KeyValueStore",
    "FileKeyValueStore",
    "InMemoryKeyValueStore",
    "PersistResult",
    "SessionStore",
    # Delivery
    "ReplyDelivery",
    "ReplyProvider",
    "CANNED_REPLY",
    "canned_reply",
    "fixed_reply",
    "Scheduler",
    "TimerHandle",
    "AsyncioScheduler",
    # Manager
    "ChatSessionManager",
    "get_chat_manager",
    "reset_chat_manager",
]
