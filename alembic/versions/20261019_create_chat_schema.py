"""Create conversation, message, feedback and AI model tables

Revision ID: 20261019_create_chat_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_create_chat_schema"
down_revision = None
branch_labels = None
depends_on = None

message_sender = postgresql.ENUM("user", "bot", name="message_sender", create_type=False)
message_status = postgresql.ENUM(
    "pending", "completed", "failed", name="message_status", create_type=False
)
feedback_type = postgresql.ENUM("like", "dislike", name="feedback_type", create_type=False)


def _timestamps():
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    message_sender.create(bind, checkfirst=True)
    message_status.create(bind, checkfirst=True)
    feedback_type.create(bind, checkfirst=True)

    op.create_table(
        "ai_model",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.Text, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "user_setting",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(100), nullable=False, unique=True),
        sa.Column(
            "preferred_ai_model_id",
            sa.Integer,
            sa.ForeignKey("ai_model.id", ondelete="SET NULL"),
            nullable=True,
        ),
        *_timestamps(),
    )

    op.create_table(
        "conversation",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(100), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("deleted_at", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_conversation_user_id_updated_at", "conversation", ["user_id", "updated_at"]
    )

    op.create_table(
        "message",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "conversation_id",
            sa.Integer,
            sa.ForeignKey("conversation.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "parent_id",
            sa.Integer,
            sa.ForeignKey("message.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("sender", message_sender, nullable=False),
        sa.Column("content", sa.Text, nullable=False, server_default=""),
        sa.Column(
            "ai_model_id",
            sa.Integer,
            sa.ForeignKey("ai_model.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "chain_root_id",
            sa.Integer,
            sa.ForeignKey("message.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("version_position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("status", message_status, nullable=False, server_default="completed"),
        sa.Column("attachment_count", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint(
            "chain_root_id", "version_position", name="uq_message_chain_position"
        ),
        sa.CheckConstraint(
            "sender = 'bot' OR (chain_root_id IS NULL AND version_position = 0)",
            name="ck_message_user_not_versioned",
        ),
        sa.CheckConstraint(
            "(chain_root_id IS NULL AND version_position = 0)"
            " OR (chain_root_id IS NOT NULL AND version_position > 0)",
            name="ck_message_root_position",
        ),
    )
    op.create_index(
        "ix_message_conversation_created_at", "message", ["conversation_id", "created_at"]
    )
    op.create_index("ix_message_chain_root_id", "message", ["chain_root_id"])

    op.create_table(
        "message_feedback",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column(
            "message_id",
            sa.Integer,
            sa.ForeignKey("message.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("user_id", sa.String(100), nullable=False),
        sa.Column("feedback_type", feedback_type, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("message_id", "user_id", name="uq_feedback_message_user"),
    )


def downgrade() -> None:
    op.drop_table("message_feedback")
    op.drop_index("ix_message_chain_root_id", table_name="message")
    op.drop_index("ix_message_conversation_created_at", table_name="message")
    op.drop_table("message")
    op.drop_index("ix_conversation_user_id_updated_at", table_name="conversation")
    op.drop_table("conversation")
    op.drop_table("user_setting")
    op.drop_table("ai_model")

    bind = op.get_bind()
    feedback_type.drop(bind, checkfirst=True)
    message_status.drop(bind, checkfirst=True)
    message_sender.drop(bind, checkfirst=True)
