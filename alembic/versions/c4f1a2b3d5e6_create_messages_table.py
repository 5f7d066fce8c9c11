"""Create messages table

Revision ID: c4f1a2b3d5e6
Revises:
Create Date: 2026-10-16 12:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

revision = 'c4f1a2b3d5e6'
down_revision = None
branch_labels = None
depends_on = None


# Standalone deployments only; in the CRM database the table already exists.
def upgrade() -> None:
    op.create_table(
        "messages",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("external_id", sa.String(length=255)),
        sa.Column("conversation_id", sa.String(length=36)),
        sa.Column("workspace_id", sa.String(length=36)),
        sa.Column("content", sa.Text()),
        sa.Column("sender_type", sa.String(length=7)),
        sa.Column("message_type", sa.String(length=8), nullable=False, server_default="text"),
        sa.Column("file_url", sa.Text()),
        sa.Column("file_name", sa.String(length=512)),
        sa.Column("mime_type", sa.String(length=255)),
        sa.Column("metadata", sa.JSON()),
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
    )
    op.create_index("ix_messages_external_id", "messages", ["external_id"])
    op.create_index("ix_messages_conversation_id", "messages", ["conversation_id"])
    op.create_index("ix_messages_workspace_id", "messages", ["workspace_id"])


def downgrade() -> None:
    op.drop_index("ix_messages_workspace_id", table_name="messages")
    op.drop_index("ix_messages_conversation_id", table_name="messages")
    op.drop_index("ix_messages_external_id", table_name="messages")
    op.drop_table("messages")
