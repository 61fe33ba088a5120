"""
Inkwell Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires settings, middleware, exception handlers, routes,
       and the messaging core (registry + store + relay) into one app.
Who:   uvicorn (app.main:app) and the test suite (create_app(store=...)).

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                    FastAPI App                       │
    │                                                      │
    │  app.state.registry  ← SessionRegistry (live sockets)│
    │  app.state.store     ← MessageStore   (persistence)  │
    │  app.state.relay     ← MessageRelay   (send/history) │
    │                                                      │
    │  Routes:                                             │
    │    WS   /ws/{user_id}          chat socket           │
    │    POST /api/messages          send                  │
    │    GET  /api/messages/{user}   history               │
    │    GET  /health                                      │
    └──────────────────────────────────────────────────────┘

The registry is created per app, never at module level, so every app
instance (and every test) has its own channel table.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.database import dispose_engine
from app.exceptions import (
    InkwellError,
    ValidationError,
    DatabaseError,
    PersistenceError,
)
from app.middleware.request_id import RequestIDMiddleware, request_id_var
from app.middleware.logging import RequestLoggingMiddleware
from app.routes import chat, health, messages
from app.services.message_relay import MessageRelay
from app.services.message_store import MessageStore, SqlAlchemyMessageStore
from app.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    When:    Called once from the lifespan, before anything else logs.
    Format:  %(asctime)s [%(levelname)s] %(name)s: %(message)s
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party noise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup:  logging, configuration check.
    Shutdown: dispose the database engine.

    Open sockets are not drained on shutdown; their sessions disappear with
    the process.
    """
    setup_logging()
    logger.info("Inkwell Backend starting up...")

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: /health reports the database state
        logger.error("Configuration error: %s", str(e))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("Chat socket: ws://%s:%d%s/{user_id}", settings.backend_host, settings.backend_port, settings.ws_path)

    yield

    logger.info("Inkwell Backend shutting down (%d live sessions)", app.state.registry.session_count)
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def request_body_error(exc: RequestValidationError) -> ValidationError:
    """
    Convert FastAPI's body validation failure into the application's
    ValidationError, naming the first offending body key (e.g. "receiverId").
    """
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = [part for part in first.get("loc", ()) if part != "body"]
    field = str(location[0]) if location else None

    if field is None:
        message = "Request body is missing or not a JSON object"
    elif first.get("type") == "missing":
        message = f"{field} is required"
    else:
        message = f"{field}: {first.get('msg', 'invalid value')}"

    return ValidationError(message, field=field, context={"error_count": len(errors)})


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to JSON error responses.

        ValidationError   → 400 (also request body validation failures)
        PersistenceError  → 500 (message not saved)
        DatabaseError     → 500
        InkwellError      → 500
        Exception         → 500

    Responses never include stack traces or driver errors; those are logged.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content={
                "error": exc.code,
                "message": exc.message,
                "details": exc.context,
                "request_id": rid,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        return await handle_validation_error(request, request_body_error(exc))

    @app.exception_handler(PersistenceError)
    async def handle_persistence_error(request: Request, exc: PersistenceError):
        rid = request_id_var.get("")
        logger.error("[%s] Persistence error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": exc.code,
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": rid,
            },
        )

    @app.exception_handler(InkwellError)
    async def handle_inkwell_error(request: Request, exc: InkwellError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": exc.code,
                "message": exc.message,
                "request_id": rid,
            },
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    store: Optional[MessageStore] = None,
    registry: Optional[SessionRegistry] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        store:    Message persistence; defaults to the SQLAlchemy store on the
                  configured database.
        registry: Channel table; defaults to a fresh SessionRegistry.

    Returns: Fully configured FastAPI instance.
    """
    app = FastAPI(
        title="Inkwell API",
        description="Direct messaging relay for the Inkwell bookstore backend.",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Messaging Core ────────────────────────────────────────────────────
    app.state.registry = registry if registry is not None else SessionRegistry()
    app.state.store = store if store is not None else SqlAlchemyMessageStore()
    app.state.relay = MessageRelay(app.state.store, app.state.registry)

    # ── Middleware (last added = first to execute) ────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Total-Count"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(messages.router)
    app.include_router(chat.router)
    app.include_router(health.router)

    return app


app = create_app()
