"""
Pydantic models for textact API requests and responses.
This module defines the request and response schemas used by the REST endpoints.
"""

from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from pydantic import (
    BaseModel,
    Field,
)


# ---------------------------------------------------------------------------
# Pydantic request / response schema
# ---------------------------------------------------------------------------
class SessionResponse(BaseModel):
    """Response with session information."""

    session_id: str


class SessionStatsResponse(BaseModel):
    """Message counts for one session."""

    session_id: str
    message_count: int
    user_messages: int
    ai_messages: int
    model: str


class MessageRequest(BaseModel):
    """Incoming user message."""

    message: str = Field(..., min_length=1, description="User message for the agent")
    session_id: Optional[str] = Field(None, description="Session ID for conversation context")


class MessageResponse(BaseModel):
    """API response returned to the caller."""

    reply: str | None = None
    status: str
    iterations: int = 0
    events: List[Dict[str, Any]] = Field(default_factory=list)
    session_id: str


class ModelInfo(BaseModel):
    """Currently active model client."""

    provider: str
    model: str
    providers: List[str] = Field(default_factory=list)


class ModelUpdateRequest(BaseModel):
    """Switch the model used by every session."""

    model: str = Field(..., min_length=1, description="Model name understood by the provider")
    provider: Optional[str] = Field(None, description="Provider to switch to, if any")


class ToolsResponse(BaseModel):
    """Registered tools and their parameter schemas."""

    tools: Dict[str, Dict[str, Any]]
