# Shared FastAPI dependencies for the API layer.
# Created: 2026-10-12

from __future__ import annotations

from portalchat.chat.manager import ChatSessionManager, get_chat_manager


def get_manager() -> ChatSessionManager:
    """FastAPI dependency returning the chat manager.

    Tests swap it out with ``app.dependency_overrides[get_manager]``.
    """
    return get_chat_manager()
