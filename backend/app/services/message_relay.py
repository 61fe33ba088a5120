"""
Inkwell Backend — Message Relay (Send Orchestrator)
=====================================================

What:  Turns an inbound send event into a persisted message and a delivery attempt.
Who:   Called by the chat socket route (event "send") and POST /api/messages.

Send Flow:
    ┌──────────┐    ┌────────────┐    ┌──────────────┐    ┌──────────────┐
    │ Validate │───▶│ Timestamp  │───▶│ store.save() │───▶│ registry     │
    │  event   │    │ (relay now)│    │              │    │ .deliver()   │
    └──────────┘    └────────────┘    └──────────────┘    └──────────────┘

    Validate fails  → ValidationError, nothing persisted, nothing delivered
    save fails      → PersistenceError, not retried, NOT delivered
    nobody on the receiver channel → delivery miss, send still succeeds

Ordering:
    Sends from the same sender are serialized by a per-sender lock held across
    save and deliver, so one sender's messages are persisted and pushed in the
    order the relay processed them. Different senders run concurrently.
    Timestamps never go backwards within one relay instance.

Known limitations (kept on purpose):
    - No delivery acknowledgment; success only means "persisted".
    - History is loaded in full, unpaginated.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from app.exceptions import PersistenceError, ValidationError
from app.models.message import Message
from app.schemas.message import message_payload
from app.services.message_store import MessageStore
from app.services.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


class MessageRelay:
    """
    Send and history operations for direct messages.

    Holds no message state of its own; everything durable lives in the store
    and everything live lives in the registry.
    """

    def __init__(self, store: MessageStore, registry: SessionRegistry):
        self.store = store
        self.registry = registry
        self._last_timestamp: Optional[datetime] = None
        # sender_id → [lock, number of handle_send calls using it]
        self._sender_locks: Dict[str, List[Any]] = {}

    async def handle_send(self, sender_id: Any, receiver_id: Any, content: Any) -> Message:
        """
        Validate, persist and forward one message.

        Args are typed loosely because they come straight from socket frames.

        Returns:
            The persisted Message (id and timestamp set). This confirms
            persistence only; whether the receiver was online is not reported.

        Raises:
            ValidationError: malformed event, nothing persisted
            PersistenceError: store failed, nothing delivered
        """
        sender_id, receiver_id, content = self._validate(sender_id, receiver_id, content)

        async with self._sender_lock(sender_id):
            message = Message(
                sender_id=sender_id,
                receiver_id=receiver_id,
                content=content,
                timestamp=self._next_timestamp(),
            )

            try:
                await self.store.save(message)
            except PersistenceError:
                logger.error("Message from %s to %s not saved; delivery skipped", sender_id, receiver_id)
                raise
            except Exception as e:
                logger.error(
                    "Message store raised %s for %s → %s; delivery skipped",
                    type(e).__name__,
                    sender_id,
                    receiver_id,
                    exc_info=True,
                )
                raise PersistenceError(context={"original_error": type(e).__name__}) from e

            logger.info("Message %s persisted: %s → %s", message.id, sender_id, receiver_id)

            await self.registry.deliver(receiver_id, message_payload(message))

        return message

    async def get_history(self, user_id: Any) -> List[Message]:
        """Every message ``user_id`` sent or received, oldest first."""
        if not isinstance(user_id, str) or not user_id.strip():
            raise ValidationError("userId is required", field="userId")
        return await self.store.find_by_sender_or_receiver(user_id)

    # ── Internals ─────────────────────────────────────────────────────────

    @staticmethod
    def _validate(sender_id: Any, receiver_id: Any, content: Any) -> Tuple[str, str, str]:
        for field, value in (("senderId", sender_id), ("receiverId", receiver_id)):
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"{field} is required", field=field)
        if not isinstance(content, str) or content == "":
            raise ValidationError("content is required", field="content")
        return sender_id, receiver_id, content

    def _next_timestamp(self) -> datetime:
        now = datetime.now(timezone.utc)
        if self._last_timestamp is not None and now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    @asynccontextmanager
    async def _sender_lock(self, sender_id: str) -> AsyncIterator[None]:
        entry = self._sender_locks.get(sender_id)
        if entry is None:
            entry = self._sender_locks[sender_id] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._sender_locks[sender_id]

