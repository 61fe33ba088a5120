"""
Inkwell Backend — Message Route Handlers
==========================================

What:  POST /api/messages (send) and GET /api/messages/{user_id} (history).
Why:   HTTP access to the same relay the chat socket uses, for clients that
       load a conversation before opening a socket or cannot hold one open.
How:   Thin handlers; all behavior lives in MessageRelay (app.state.relay).
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status

from app.schemas.message import (
    ErrorResponse,
    MessageHistoryResponse,
    MessageResponse,
    SendMessageRequest,
)
from app.services.message_relay import MessageRelay

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Messages"])


def get_relay(request: Request) -> MessageRelay:
    """The relay owned by the running application."""
    return request.app.state.relay


@router.post(
    "/messages",
    response_model=MessageResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        201: {"description": "Message persisted (delivery is not confirmed)"},
        400: {"description": "Malformed message", "model": ErrorResponse},
        500: {"description": "Message could not be saved", "model": ErrorResponse},
    },
    summary="Send a direct message",
)
async def send_message(
    body: SendMessageRequest,
    relay: MessageRelay = Depends(get_relay),
) -> MessageResponse:
    """
    Persist a message and push it to the receiver's channel if anyone is on it.

    A 201 confirms persistence only. Whether the receiver was connected is
    not reported.
    """
    message = await relay.handle_send(body.sender_id, body.receiver_id, body.content)
    return MessageResponse.from_message(message)


@router.get(
    "/messages/{user_id}",
    response_model=MessageHistoryResponse,
    responses={
        200: {"description": "Full conversation history, oldest first"},
        500: {"description": "Server error", "model": ErrorResponse},
    },
    summary="Get a user's message history",
    description=(
        "Returns every message the user sent or received, ordered by timestamp "
        "ascending. The whole history is returned in one response."
    ),
)
async def get_history(
    user_id: str,
    response: Response,
    relay: MessageRelay = Depends(get_relay),
) -> MessageHistoryResponse:
    messages = await relay.get_history(user_id)
    response.headers["X-Total-Count"] = str(len(messages))
    return MessageHistoryResponse(
        user_id=user_id,
        messages=[MessageResponse.from_message(m) for m in messages],
        total_count=len(messages),
    )
