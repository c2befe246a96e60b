"""Message reactions: thumbs-up / thumbs-down with optional feedback.

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("conversation_messages", sa.Column("reaction_type", sa.String(16), nullable=True))
    op.add_column("conversation_messages", sa.Column("reaction_feedback", sa.Text, nullable=True))
    op.add_column(
        "conversation_messages",
        sa.Column("reaction_created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_conversation_messages_reaction",
        "conversation_messages",
        ["reaction_type", "reaction_created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_conversation_messages_reaction", table_name="conversation_messages")
    op.drop_column("conversation_messages", "reaction_created_at")
    op.drop_column("conversation_messages", "reaction_feedback")
    op.drop_column("conversation_messages", "reaction_type")
