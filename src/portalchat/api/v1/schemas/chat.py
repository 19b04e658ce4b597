# Chat schemas.
# Created: 2026-10-12

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from portalchat.api.v1.schemas.common import APIResponse


class MessageOut(APIResponse):
    """A single chat turn."""

    id: str
    role: str
    content: str


class ChatMessageRequest(BaseModel):
    """Send a message in the active session."""

    content: str = Field(..., min_length=1, max_length=100000)

    @field_validator("content")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("content must not be blank")
        return value


class ChatMessageResponse(APIResponse):
    """The stored user message and the session it landed in."""

    session_id: str
    message: MessageOut


class ChatStateResponse(APIResponse):
    """What the chat pane renders."""

    active_session_id: str | None = None
    messages: list[MessageOut] = []
    is_streaming: bool = False
    reply_state: str | None = None


class StopResponse(APIResponse):
    status: str = "ok"
    cancelled: bool = False
