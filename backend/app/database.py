"""
Inkwell Backend — Database Session Management
===============================================

What:  Async SQLAlchemy engine, session factory, and declarative base.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling and a session factory
       that callers open one short session per unit of work from.
Who:   The SQLAlchemy message store (one session per save/query), the
       health check (engine.connect) and the app lifespan (dispose_engine).

There is no per-request session dependency: sends arrive over WebSocket
events as well as HTTP, and neither path has a request scope to hang a
session on, so the store opens its own.
"""

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(
    settings.database_url,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_pre_ping=settings.db_pool_pre_ping,
    pool_recycle=3600,
    echo=settings.log_level == "DEBUG",
)

# expire_on_commit=False: message ids and timestamps stay readable after the
# store has committed and closed the session
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object used by Alembic for migrations.
    """
    pass


async def dispose_engine() -> None:
    """Closes all pooled connections. Called from the lifespan on shutdown."""
    await engine.dispose()
