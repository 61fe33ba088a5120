"""Create messages table

Revision ID: 001
Revises: None
Create Date: 2026-10-18 00:00:00.000000+00:00

What:  Creates the `messages` table for direct messages between users.
How:   Integer identity key, timezone-aware timestamp, and one index per
       participant column for the sender-or-receiver history query.

Rollback: downgrade() drops the table (destructive: all messages are lost).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the messages table. Column docs live in app/models/message.py."""
    op.create_table(
        "messages",
        sa.Column(
            "id",
            sa.Integer(),
            autoincrement=True,
            nullable=False,
            comment="Storage-assigned identifier",
        ),
        sa.Column(
            "sender_id",
            sa.String(255),
            nullable=False,
            comment="Opaque identifier of the sending user",
        ),
        sa.Column(
            "receiver_id",
            sa.String(255),
            nullable=False,
            comment="Opaque identifier of the receiving user (delivery channel)",
        ),
        sa.Column(
            "content",
            sa.Text(),
            nullable=False,
            comment="Message body",
        ),
        # Set by the relay; no server default on purpose
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            nullable=False,
            comment="When the relay received the message (UTC)",
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index("idx_messages_sender_id", "messages", ["sender_id"])
    op.create_index("idx_messages_receiver_id", "messages", ["receiver_id"])


def downgrade() -> None:
    """Drop the messages table entirely."""
    op.drop_index("idx_messages_receiver_id", table_name="messages")
    op.drop_index("idx_messages_sender_id", table_name="messages")
    op.drop_table("messages")
