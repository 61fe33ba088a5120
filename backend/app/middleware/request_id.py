"""
Inkwell Backend — Request ID Middleware
=========================================

What:  Assigns a correlation ID to every HTTP request and echoes it back.
How:   Uses the client's X-Request-ID header when present, otherwise a short
       UUID; stores it in a ContextVar (for loggers and exception handlers)
       and in request.state, and sets it on the response.

WebSocket connections are not wrapped by BaseHTTPMiddleware; socket logs use
the session id instead.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one thread each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach X-Request-ID to the request context and the response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
