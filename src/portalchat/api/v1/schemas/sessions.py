# Session schemas.
# Created: 2026-10-12

from __future__ import annotations

from portalchat.api.v1.schemas.chat import MessageOut
from portalchat.api.v1.schemas.common import APIResponse


class SessionInfo(APIResponse):
    """Session metadata."""

    id: str
    title: str = "Untitled"
    last_modified: float = 0.0
    message_count: int = 0


class SessionListResponse(APIResponse):
    """Session list response."""

    sessions: list[SessionInfo]
    total: int


class SessionSearchResponse(APIResponse):
    """Session search response."""

    sessions: list[SessionInfo]


class SessionDetail(SessionInfo):
    """A session with its messages."""

    messages: list[MessageOut] = []


class LoadSessionResponse(APIResponse):
    """Result of switching the active session."""

    active_session_id: str | None = None
    messages: list[MessageOut] = []
