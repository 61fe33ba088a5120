"""
Inkwell Backend — Pydantic Request/Response Schemas
=====================================================

What:  Pydantic models defining the message wire format for HTTP and WebSocket.
Why:   One definition of the outbound payload, shared by the REST history
       endpoint and by socket deliveries, so both always carry the same fields.
How:   Python attribute names are snake_case; the wire uses camelCase aliases
       (senderId, receiverId). Timestamps serialize as ISO 8601.

Wire shapes:
    inbound:  { senderId, receiverId, content }
    outbound: { id, senderId, receiverId, content, timestamp }
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.models.message import Message


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class SendMessageRequest(BaseModel):
    """Body of POST /api/messages."""
    sender_id: str = Field(alias="senderId", min_length=1, description="Sending user id")
    receiver_id: str = Field(alias="receiverId", min_length=1, description="Receiving user id")
    content: str = Field(description="Message body")

    model_config = {"populate_by_name": True}


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps (SQLite drops tzinfo on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class MessageResponse(BaseModel):
    """
    What:  A persisted message as seen by clients.
    Who:   Returned by the history and send endpoints; also the payload pushed
           to the receiver's socket on delivery.
    """
    id: int = Field(description="Storage-assigned message id")
    sender_id: str = Field(alias="senderId", description="Sending user id")
    receiver_id: str = Field(alias="receiverId", description="Receiving user id")
    content: str = Field(description="Message body")
    timestamp: datetime = Field(description="Relay receipt time (ISO 8601)")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_message(cls, message: Message) -> "MessageResponse":
        return cls(
            id=message.id,
            sender_id=message.sender_id,
            receiver_id=message.receiver_id,
            content=message.content,
            timestamp=as_utc(message.timestamp),
        )


def message_payload(message: Message) -> Dict[str, Any]:
    """JSON-ready outbound payload for a socket delivery."""
    return MessageResponse.from_message(message).model_dump(by_alias=True, mode="json")


class MessageHistoryResponse(BaseModel):
    """Full, unpaginated conversation history for one user, oldest first."""
    user_id: str = Field(alias="userId", description="User whose history this is")
    messages: List[MessageResponse] = Field(description="Messages sent or received")
    total_count: int = Field(alias="totalCount", description="Number of messages")

    model_config = {"populate_by_name": True}


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body for all HTTP errors.

    Example:
        {
            "error": "validation_error",
            "message": "receiverId is required",
            "details": {"field": "receiverId"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    connected_sessions: int = Field(description="Live chat socket sessions")
    uptime_seconds: float = Field(description="Seconds since service started")
