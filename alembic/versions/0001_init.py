"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _id() -> sa.Column:
  return sa.Column("id", sa.String(36), primary_key=True)


def _timestamps() -> list[sa.Column]:
  return [
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
  ]


def upgrade() -> None:
  op.create_table(
    "users",
    _id(),
    sa.Column("email", sa.String(), nullable=False),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_users_email", "users", ["email"], unique=True)

  op.create_table(
    "api_tokens",
    _id(),
    sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("token_hash", sa.String(), nullable=False),
    sa.Column("token_hint", sa.String(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
    sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
  )
  op.create_index("ix_api_tokens_user_id", "api_tokens", ["user_id"], unique=False)
  op.create_index("ix_api_tokens_token_hash", "api_tokens", ["token_hash"], unique=True)

  op.create_table(
    "boards",
    _id(),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("owner_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
    *_timestamps(),
  )
  op.create_index("ix_boards_owner_id", "boards", ["owner_id"], unique=False)

  op.create_table(
    "columns",
    _id(),
    sa.Column("board_id", sa.String(36), sa.ForeignKey("boards.id"), nullable=False),
    sa.Column("name", sa.String(), nullable=False),
    sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
    *_timestamps(),
  )
  op.create_index("ix_columns_board_id", "columns", ["board_id"], unique=False)

  op.create_table(
    "tasks",
    _id(),
    sa.Column("board_id", sa.String(36), sa.ForeignKey("boards.id"), nullable=False),
    sa.Column("column_id", sa.String(36), sa.ForeignKey("columns.id"), nullable=False),
    sa.Column("title", sa.String(), nullable=False),
    sa.Column("description", sa.Text(), nullable=False, server_default=""),
    sa.Column("status", sa.String(), nullable=False, server_default="Todo"),
    sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
    *_timestamps(),
  )
  op.create_index("ix_tasks_board_id", "tasks", ["board_id"], unique=False)
  op.create_index("ix_tasks_column_id", "tasks", ["column_id"], unique=False)

  op.create_table(
    "subtasks",
    _id(),
    sa.Column("board_id", sa.String(36), sa.ForeignKey("boards.id"), nullable=False),
    sa.Column("task_id", sa.String(36), sa.ForeignKey("tasks.id"), nullable=False),
    sa.Column("title", sa.String(), nullable=False),
    sa.Column("description", sa.Text(), nullable=False, server_default=""),
    sa.Column("completed", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("order_index", sa.Integer(), nullable=False, server_default="0"),
    *_timestamps(),
  )
  op.create_index("ix_subtasks_board_id", "subtasks", ["board_id"], unique=False)
  op.create_index("ix_subtasks_task_id", "subtasks", ["task_id"], unique=False)

  op.create_table(
    "chat_sessions",
    _id(),
    sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
    sa.Column("title", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False, server_default="active"),
    sa.Column("board_id", sa.String(36), sa.ForeignKey("boards.id"), nullable=True),
    sa.Column("board_context", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    sa.Column("last_active", sa.DateTime(timezone=True), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_chat_sessions_user_id", "chat_sessions", ["user_id"], unique=False)
  op.create_index("ix_chat_sessions_last_active", "chat_sessions", ["last_active"], unique=False)

  op.create_table(
    "chat_messages",
    _id(),
    sa.Column("session_id", sa.String(36), sa.ForeignKey("chat_sessions.id"), nullable=False),
    sa.Column("role", sa.String(), nullable=False),
    sa.Column("content", sa.Text(), nullable=False),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_chat_messages_session_id", "chat_messages", ["session_id"], unique=False)

  op.create_table(
    "suggestions",
    _id(),
    sa.Column("user_id", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
    sa.Column("session_id", sa.String(36), sa.ForeignKey("chat_sessions.id"), nullable=False),
    sa.Column("type", sa.String(), nullable=False),
    sa.Column("status", sa.String(), nullable=False, server_default="pending"),
    sa.Column("content", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
    sa.Column("original_message", sa.Text(), nullable=False),
    sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'{}'::jsonb")),
    sa.Column("related_suggestion_id", sa.String(36), sa.ForeignKey("suggestions.id"), nullable=True),
    *_timestamps(),
  )
  op.create_index("ix_suggestions_user_id", "suggestions", ["user_id"], unique=False)
  op.create_index("ix_suggestions_session_id", "suggestions", ["session_id"], unique=False)

  op.create_table(
    "audit_events",
    _id(),
    sa.Column("board_id", sa.String(36), nullable=True),
    sa.Column("actor_id", sa.String(36), sa.ForeignKey("users.id"), nullable=True),
    sa.Column("event_type", sa.String(), nullable=False),
    sa.Column("entity_type", sa.String(), nullable=False),
    sa.Column("entity_id", sa.String(), nullable=True),
    sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'{}'::jsonb")),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
  )
  op.create_index("ix_audit_events_board_id", "audit_events", ["board_id"], unique=False)


def downgrade() -> None:
  op.drop_table("audit_events")
  op.drop_table("suggestions")
  op.drop_table("chat_messages")
  op.drop_table("chat_sessions")
  op.drop_table("subtasks")
  op.drop_table("tasks")
  op.drop_table("columns")
  op.drop_table("boards")
  op.drop_table("api_tokens")
  op.drop_table("users")
