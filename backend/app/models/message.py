"""
Inkwell Backend — Message SQLAlchemy Model
============================================

What:  ORM model representing the `messages` table.
Why:   One row per direct message sent between two users.
Who:   Built by MessageRelay, written and read by SqlAlchemyMessageStore,
       tracked by Alembic for migrations.

Table Design:
    - Integer primary key assigned by the database on insert
    - sender_id / receiver_id: opaque user identifiers, no foreign keys
    - content: TEXT, no length limit
    - timestamp: set by the relay at receipt (UTC, timezone-aware)

    Indexes on sender_id and receiver_id back the history query
    (WHERE sender_id = :u OR receiver_id = :u ORDER BY timestamp).

Rows are never updated or deleted by this application.
"""

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


class Message(Base):
    """
    A single direct message.

    Lifecycle:
        1. Constructed by the relay with a relay-assigned timestamp
        2. Saved once by the message store (id assigned on flush)
        3. Never mutated afterwards
    """

    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        comment="Storage-assigned identifier",
    )

    sender_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Opaque identifier of the sending user",
    )

    receiver_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Opaque identifier of the receiving user (delivery channel)",
    )

    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Message body",
    )

    # No default: the relay always sets it, clients never do
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the relay received the message (UTC)",
    )

    __table_args__ = (
        Index("idx_messages_sender_id", "sender_id"),
        Index("idx_messages_receiver_id", "receiver_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Message(id={self.id}, sender_id='{self.sender_id}', "
            f"receiver_id='{self.receiver_id}', timestamp='{self.timestamp}')>"
        )
