# Chat router - state, send, stream (SSE), stop, new session.
# Created: 2026-10-12
#
# The rendering layer's write surface. Every route is a thin call into the
# ChatSessionManager; SSE streaming subscribes to manager events through an
# asyncio.Queue until the reply it started ends.

from __future__ import annotations

import asyncio
import json
import logging

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse

from portalchat.api.deps import get_manager
from portalchat.api.v1.schemas.chat import (
    ChatMessageRequest,
    ChatMessageResponse,
    ChatStateResponse,
    MessageOut,
    StopResponse,
)
from portalchat.api.v1.schemas.common import StatusResponse
from portalchat.chat.manager import ChatSessionManager
from portalchat.chat.models import ChatEvent, EventType

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])

_TERMINAL_EVENTS = (EventType.REPLY_COMPLETED, EventType.REPLY_CANCELLED)


def _sse(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


@router.get("/chat/state", response_model=ChatStateResponse)
async def chat_state(manager: ChatSessionManager = Depends(get_manager)):
    """Active session, its messages and whether a reply is in flight."""
    state = manager.reply_state
    return ChatStateResponse(
        active_session_id=manager.active_session_id,
        messages=[MessageOut(**m.to_dict()) for m in manager.active_messages],
        is_streaming=manager.is_streaming,
        reply_state=state.value if state is not None else None,
    )


@router.post("/chat/new", response_model=StatusResponse)
async def chat_new(manager: ChatSessionManager = Depends(get_manager)):
    """Start a fresh conversation (no record until the first message)."""
    manager.start_new_session()
    return StatusResponse()


@router.post("/chat/messages", response_model=ChatMessageResponse)
async def chat_send(body: ChatMessageRequest, manager: ChatSessionManager = Depends(get_manager)):
    """Send a message; the reply is delivered in the background."""
    message = manager.send_user_message(body.content)
    return ChatMessageResponse(
        session_id=manager.active_session_id,
        message=MessageOut(**message.to_dict()),
    )


@router.post("/chat/stream")
async def chat_stream(body: ChatMessageRequest, manager: ChatSessionManager = Depends(get_manager)):
    """Send a message and receive the reply's events as an SSE stream."""
    queue: asyncio.Queue[ChatEvent] = asyncio.Queue()
    listener = manager.subscribe(queue.put_nowait)

    message = manager.send_user_message(body.content)
    session_id = manager.active_session_id

    async def _event_generator():
        started = False
        try:
            yield _sse("stream_start", {"session_id": session_id, "message_id": message.id})

            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=30.0)
                except TimeoutError:
                    yield ": keepalive\n\n"
                    continue

                yield _sse(event.type.value, event.to_dict())

                if event.type is EventType.HISTORY_CLEARED:
                    break
                if event.session_id != session_id:
                    continue
                # A superseded reply in this session may end before ours starts
                if event.type is EventType.REPLY_STARTED:
                    started = True
                elif started and event.type in _TERMINAL_EVENTS:
                    break

            yield _sse("stream_end", {"session_id": session_id})
        finally:
            manager.unsubscribe(listener)

    return StreamingResponse(
        _event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post("/chat/stop", response_model=StopResponse)
async def chat_stop(manager: ChatSessionManager = Depends(get_manager)):
    """Stop the in-flight reply, keeping the text emitted so far."""
    return StopResponse(cancelled=manager.cancel_reply())
