# Common API response schemas.
# Created: 2026-10-12

from __future__ import annotations

from pydantic import BaseModel


class APIResponse(BaseModel):
    """Base response wrapper."""

    model_config = {"from_attributes": True}


class StatusResponse(APIResponse):
    """Status string response."""

    status: str = "ok"
