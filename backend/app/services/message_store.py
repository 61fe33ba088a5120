"""
Inkwell Backend — Message Store
=================================

What:  Persistence contract for direct messages plus its SQLAlchemy implementation.
Why:   The relay only needs two operations (save one, read a user's history);
       putting them behind an abstract class lets tests and alternative
       backends stand in without touching the relay.
How:   MessageStore (ABC) defines the contract; SqlAlchemyMessageStore opens one
       AsyncSession per call from the shared session factory.

Contract:
    save(message) -> int
        Persists the message exactly once and returns its id.
        Any failure raises PersistenceError; nothing is half-written.
    find_by_sender_or_receiver(user_id) -> List[Message]
        Every message the user sent or received, timestamp ascending
        (ties broken by id), fully loaded into a list.
"""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from sqlalchemy import asc, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.database import async_session_factory
from app.exceptions import DatabaseError, PersistenceError
from app.models.message import Message

logger = logging.getLogger(__name__)


class MessageStore(ABC):
    """Abstract persistence interface used by MessageRelay."""

    @abstractmethod
    async def save(self, message: Message) -> int:
        """
        Persist a new message.

        Returns:
            int: the storage-assigned id (also set on ``message.id``).

        Raises:
            PersistenceError: the message was not saved.
        """
        ...

    @abstractmethod
    async def find_by_sender_or_receiver(self, user_id: str) -> List[Message]:
        """
        Load every message where ``user_id`` is sender or receiver.

        Returns:
            List ordered by timestamp ascending. No pagination.
        """
        ...


class SqlAlchemyMessageStore(MessageStore):
    """
    MessageStore backed by the `messages` table.

    Each call owns its session and transaction:
        save: add → commit (rollback on error)
        find: single SELECT, no writes
    """

    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None):
        self._session_factory = session_factory or async_session_factory

    async def save(self, message: Message) -> int:
        async with self._session_factory() as session:
            try:
                session.add(message)
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.error(
                    "Failed to save message from %s to %s: %s",
                    message.sender_id,
                    message.receiver_id,
                    str(e),
                    exc_info=True,
                )
                raise PersistenceError(
                    context={
                        "sender_id": message.sender_id,
                        "receiver_id": message.receiver_id,
                        "original_error": type(e).__name__,
                    },
                ) from e

        return message.id

    async def find_by_sender_or_receiver(self, user_id: str) -> List[Message]:
        query = (
            select(Message)
            .where(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
            .order_by(asc(Message.timestamp), asc(Message.id))
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                return list(result.scalars().all())
        except Exception as e:
            logger.error("Database error loading history for %s: %s", user_id, str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve messages. Please try again.",
                context={"user_id": user_id, "error_type": type(e).__name__},
            ) from e
