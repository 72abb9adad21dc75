"""create chat_settings table

Revision ID: c27a94e0f6b3
Revises: 8f3d2b61c4a7
Create Date: 2026-03-09

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "c27a94e0f6b3"
down_revision: str | Sequence[str] | None = "8f3d2b61c4a7"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the single-row chat_settings table."""
    op.create_table(
        "chat_settings",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("max_user_message_length", sa.Integer(), nullable=False),
        sa.Column("max_session_duration_minutes", sa.Integer(), nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("updated_by_admin_id", sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(["updated_by_admin_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )


def downgrade() -> None:
    """Drop chat_settings table."""
    op.drop_table("chat_settings")
