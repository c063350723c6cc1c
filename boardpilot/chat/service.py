from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boardpilot.board_context.sanitizer import sanitize
from boardpilot.errors import NotFoundError
from boardpilot.models import ChatMessage, ChatSession, utcnow

logger = logging.getLogger(__name__)


def empty_board_context() -> dict[str, Any]:
  return {"name": "", "description": "", "columns": []}


async def create_session(db: AsyncSession, user_id: str, title: str = "New Conversation") -> ChatSession:
  s = ChatSession(user_id=user_id, title=title.strip() or "New Conversation")
  db.add(s)
  await db.flush()
  return s


async def get_session(db: AsyncSession, session_id: str, user_id: str | None = None) -> ChatSession:
  q = select(ChatSession).where(ChatSession.id == session_id)
  if user_id is not None:
    q = q.where(ChatSession.user_id == user_id)
  s = (await db.execute(q)).scalar_one_or_none()
  if not s:
    raise NotFoundError("Chat session not found")
  return s


async def add_message(db: AsyncSession, session_id: str, role: str, content: str) -> ChatMessage:
  s = await get_session(db, session_id)
  m = ChatMessage(session_id=s.id, role=role, content=content)
  db.add(m)
  s.last_active = utcnow()
  await db.flush()
  return m


async def list_messages(db: AsyncSession, session_id: str) -> list[ChatMessage]:
  res = await db.execute(
    select(ChatMessage).where(ChatMessage.session_id == session_id).order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
  )
  return list(res.scalars().all())


async def link_board(db: AsyncSession, session_id: str, board_id: str) -> ChatSession:
  s = await get_session(db, session_id)
  s.board_id = board_id
  await db.flush()
  return s


async def get_board_context(db: AsyncSession, session_id: str, user_id: str | None = None) -> dict[str, Any]:
  s = await get_session(db, session_id, user_id=user_id)
  return s.board_context or empty_board_context()


async def update_board_context(
  db: AsyncSession,
  session_id: str,
  context: Any,
  user_id: str | None = None,
) -> dict[str, Any]:
  """Replace the session's working board context with a sanitized copy."""
  s = await get_session(db, session_id, user_id=user_id)
  ctx = sanitize(context)
  stored = ctx.model_dump()
  stored["name"] = ctx.name or ""
  stored["description"] = ctx.description or ""
  s.board_context = stored
  await db.flush()
  logger.debug("board context for chat %s set to %d columns", s.id, len(ctx.columns))
  return stored


async def reset_board_context(db: AsyncSession, session_id: str, user_id: str | None = None) -> dict[str, Any]:
  s = await get_session(db, session_id, user_id=user_id)
  s.board_context = empty_board_context()
  await db.flush()
  return s.board_context
