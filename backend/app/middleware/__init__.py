# Middleware package init
"""
Inkwell Backend — Middleware Package
======================================

Cross-cutting concerns applied to every HTTP request.

Middleware Chain:
    Request → [Request ID] → [Logging] → [CORS] → Route Handler

    Request ID runs first so the access log line carries the correlation ID.
    The chat WebSocket route is not wrapped by these (BaseHTTPMiddleware
    only handles HTTP scopes).
"""
