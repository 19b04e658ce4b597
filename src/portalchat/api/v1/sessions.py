# Sessions router - list, search, view, load, clear.
# Created: 2026-10-12

from __future__ import annotations

import itertools
import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from portalchat.api.deps import get_manager
from portalchat.api.v1.schemas.chat import MessageOut
from portalchat.api.v1.schemas.common import StatusResponse
from portalchat.api.v1.schemas.sessions import (
    LoadSessionResponse,
    SessionDetail,
    SessionInfo,
    SessionListResponse,
    SessionSearchResponse,
)
from portalchat.chat.manager import ChatSessionManager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Sessions"])


@router.get("/sessions", response_model=SessionListResponse)
async def list_sessions(
    limit: int = Query(50, ge=1, le=500),
    manager: ChatSessionManager = Depends(get_manager),
):
    """List sessions, most recently active first."""
    listing = manager.list_sessions()
    sessions = [SessionInfo(**s.to_dict()) for s in itertools.islice(listing, limit)]
    total = sum(1 for _ in listing)
    return SessionListResponse(sessions=sessions, total=total)


@router.get("/sessions/search", response_model=SessionSearchResponse)
async def search_sessions(
    q: str = Query(""),
    limit: int = Query(20, ge=1, le=200),
    manager: ChatSessionManager = Depends(get_manager),
):
    """Search sessions by title and message content."""
    if not q.strip():
        return SessionSearchResponse(sessions=[])
    results = manager.search_sessions(q)[:limit]
    return SessionSearchResponse(sessions=[SessionInfo(**s.to_dict()) for s in results])


@router.delete("/sessions", response_model=StatusResponse)
async def clear_sessions(manager: ChatSessionManager = Depends(get_manager)):
    """Delete all chat history (the portal's logout path)."""
    manager.clear_history()
    return StatusResponse()


@router.get("/sessions/{session_id}", response_model=SessionDetail)
async def get_session(session_id: str, manager: ChatSessionManager = Depends(get_manager)):
    """Read a session without changing the active pointer."""
    session = manager.get_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return SessionDetail(
        **session.summary().to_dict(),
        messages=[MessageOut(**m.to_dict()) for m in session.messages],
    )


@router.post("/sessions/{session_id}/load", response_model=LoadSessionResponse)
async def load_session(session_id: str, manager: ChatSessionManager = Depends(get_manager)):
    """Make a session active. Unknown ids return no messages rather than 404."""
    messages = manager.load_session(session_id)
    return LoadSessionResponse(
        active_session_id=manager.active_session_id,
        messages=[MessageOut(**m.to_dict()) for m in messages],
    )
