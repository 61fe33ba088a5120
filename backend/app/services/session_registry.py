"""
Inkwell Backend — Session Registry
====================================

What:  Tracks which live client sessions are subscribed to which channels.
Why:   The relay addresses receivers by channel name (their user id); the
       registry turns that name into the set of sockets to push to.
How:   Two maps guarded by one asyncio.Lock:
           channel name → set of sessions
           session      → set of channel names (so leave() is O(own channels))
Who:   Owned by the application (app.state.registry), created in create_app().
       The chat socket route calls join/leave; MessageRelay calls deliver.

Session lifecycle:
    connected → (joined)* → disconnected

    There is no resume. A reconnecting client is a brand new session and
    must join its channels again.

Delivery is fire-and-forget: deliver() returns nothing, a channel with no
subscribers silently drops the payload, and a session whose send fails is
logged and skipped.
"""

import asyncio
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Set

from starlette.websockets import WebSocket, WebSocketState

logger = logging.getLogger(__name__)


class ClientSession(ABC):
    """
    One connected client, as seen by the registry.

    Sessions hash by identity, so two connections for the same user are two
    distinct subscribers.
    """

    def __init__(self, user_id: str, session_id: Optional[str] = None):
        self.user_id = user_id
        self.session_id = session_id or uuid.uuid4().hex[:12]

    @abstractmethod
    async def send(self, payload: Dict[str, Any]) -> None:
        """Push one JSON payload to the client. May raise if the peer is gone."""
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(session_id='{self.session_id}', user_id='{self.user_id}')>"


class WebSocketSession(ClientSession):
    """ClientSession over a Starlette WebSocket."""

    def __init__(self, websocket: WebSocket, user_id: str, session_id: Optional[str] = None):
        super().__init__(user_id, session_id)
        self.websocket = websocket

    async def send(self, payload: Dict[str, Any]) -> None:
        if self.websocket.client_state != WebSocketState.CONNECTED:
            raise ConnectionError(f"session {self.session_id} is no longer connected")
        await self.websocket.send_json(payload)


class SessionRegistry:
    """Channel subscription table. Safe for concurrent use from many sessions."""

    def __init__(self):
        self._channels: Dict[str, Set[ClientSession]] = {}
        self._memberships: Dict[ClientSession, Set[str]] = {}
        self._lock = asyncio.Lock()

    async def join(self, session: ClientSession, channel: str) -> None:
        """Subscribe ``session`` to ``channel``. Joining twice is a no-op."""
        async with self._lock:
            self._channels.setdefault(channel, set()).add(session)
            self._memberships.setdefault(session, set()).add(channel)
        logger.debug("Session %s joined channel %s", session.session_id, channel)

    async def leave(self, session: ClientSession) -> None:
        """Remove ``session`` from every channel. Unknown sessions are ignored."""
        async with self._lock:
            channels = self._memberships.pop(session, set())
            for channel in channels:
                subscribers = self._channels.get(channel)
                if subscribers is None:
                    continue
                subscribers.discard(session)
                if not subscribers:
                    del self._channels[channel]
        if channels:
            logger.debug("Session %s left %d channel(s)", session.session_id, len(channels))

    async def deliver(self, channel: str, payload: Dict[str, Any]) -> None:
        """
        Send ``payload`` to every session subscribed to ``channel``.

        The subscriber set is copied under the lock and the sends happen
        outside it, so one slow socket never blocks joins or leaves.
        """
        async with self._lock:
            targets = list(self._channels.get(channel, ()))

        if not targets:
            logger.debug("No sessions on channel %s; payload dropped", channel)
            return

        for session in targets:
            try:
                await session.send(payload)
            except Exception as e:
                # Peer disconnected mid-delivery: counts as a miss
                logger.warning(
                    "Delivery to session %s on channel %s failed: %s",
                    session.session_id,
                    channel,
                    str(e),
                )

    async def subscribers(self, channel: str) -> Set[ClientSession]:
        """Snapshot of the sessions currently subscribed to ``channel``."""
        async with self._lock:
            return set(self._channels.get(channel, ()))

    async def channels_of(self, session: ClientSession) -> Set[str]:
        async with self._lock:
            return set(self._memberships.get(session, ()))

    @property
    def session_count(self) -> int:
        """Number of sessions holding at least one subscription."""
        return len(self._memberships)
