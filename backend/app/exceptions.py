"""
Inkwell Backend — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for the messaging backend.
Why:   Targeted handling with the right HTTP status (or WebSocket error frame)
       and a user-safe message, without leaking internals to the client.
How:   Each exception carries a message and an optional context dict.
       Global handlers (main.py) turn them into JSON error responses; the chat
       socket turns them into error frames sent to the originating session.

Exception Hierarchy:
    InkwellError (base)
    ├── ValidationError          → 400 Bad Request (malformed send event)
    └── DatabaseError            → 500 Internal Server Error
        └── PersistenceError     → 500 (message could not be saved)

Delivery misses (receiver not connected) are deliberately NOT an exception:
the message is persisted and the send is a success.
"""

from typing import Any, Dict, Optional


class InkwellError(Exception):
    """
    Base exception for all Inkwell application errors.

    Attributes:
        message:  User-facing error description (safe to return to clients)
        context:  Additional debug info (logged but NOT returned to clients)
    """

    # Machine-readable code used in JSON bodies and socket error frames
    code = "inkwell_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(InkwellError):
    """
    Raised when an inbound send event is malformed.

    When:    Missing or blank senderId/receiverId, missing or non-string content,
             or an unknown socket event.
    HTTP:    400 Bad Request

    The event is rejected before anything is persisted and the error is only
    reported back to the session (or HTTP caller) that sent it.
    """

    code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class DatabaseError(InkwellError):
    """
    Raised when a database read fails unexpectedly.

    HTTP:    500 Internal Server Error

    The message returned to the client is always generic; the original error
    type is kept in context for the server-side log only.
    """

    code = "database_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PersistenceError(DatabaseError):
    """
    Raised when the message store fails to save a message.

    The send is terminal at this point: it is not retried and the message is
    not forwarded to the receiver.
    """

    code = "persistence_error"

    def __init__(
        self,
        message: str = "The message could not be saved. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
