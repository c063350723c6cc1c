from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boardpilot.chat.service import get_session
from boardpilot.errors import NotFoundError
from boardpilot.models import Suggestion
from boardpilot.schemas import SuggestionOut
from boardpilot.suggestions.content import assign_content_ids, dump_content, parse_content


def suggestion_out(s: Suggestion) -> SuggestionOut:
  return SuggestionOut(
    id=s.id,
    userId=s.user_id,
    sessionId=s.session_id,
    type=s.type,
    status=s.status,
    content=s.content or {},
    originalMessage=s.original_message,
    metadata=s.meta or {},
    relatedSuggestionId=s.related_suggestion_id,
    createdAt=s.created_at,
    updatedAt=s.updated_at,
  )


async def create_suggestion(
  db: AsyncSession,
  *,
  user_id: str,
  session_id: str,
  suggestion_type: str,
  content: Any,
  original_message: str,
  metadata: dict[str, Any] | None = None,
  related_suggestion_id: str | None = None,
) -> Suggestion:
  parsed = assign_content_ids(parse_content(suggestion_type, content))
  await get_session(db, session_id, user_id=user_id)
  if related_suggestion_id:
    await get_suggestion(db, related_suggestion_id, user_id=user_id)
  s = Suggestion(
    user_id=user_id,
    session_id=session_id,
    type=suggestion_type,
    status="pending",
    content=dump_content(parsed),
    original_message=original_message,
    meta=dict(metadata or {}),
    related_suggestion_id=related_suggestion_id,
  )
  db.add(s)
  await db.flush()
  return s


async def create_board_suggestion(
  db: AsyncSession, user_id: str, session_id: str, content: Any, original_message: str
) -> Suggestion:
  return await create_suggestion(
    db,
    user_id=user_id,
    session_id=session_id,
    suggestion_type="board",
    content=content,
    original_message=original_message,
  )


async def create_task_breakdown_suggestion(
  db: AsyncSession,
  user_id: str,
  session_id: str,
  content: Any,
  original_message: str,
  metadata: dict[str, Any] | None = None,
) -> Suggestion:
  return await create_suggestion(
    db,
    user_id=user_id,
    session_id=session_id,
    suggestion_type="task-breakdown",
    content=content,
    original_message=original_message,
    metadata=metadata,
  )


async def create_task_improvement_suggestion(
  db: AsyncSession,
  user_id: str,
  session_id: str,
  content: Any,
  original_message: str,
  related_suggestion_id: str | None = None,
  metadata: dict[str, Any] | None = None,
) -> Suggestion:
  return await create_suggestion(
    db,
    user_id=user_id,
    session_id=session_id,
    suggestion_type="task-improvement",
    content=content,
    original_message=original_message,
    metadata=metadata,
    related_suggestion_id=related_suggestion_id,
  )


async def get_suggestion(db: AsyncSession, suggestion_id: str, user_id: str | None = None) -> Suggestion:
  q = select(Suggestion).where(Suggestion.id == suggestion_id)
  if user_id is not None:
    q = q.where(Suggestion.user_id == user_id)
  s = (await db.execute(q)).scalar_one_or_none()
  if not s:
    raise NotFoundError("Suggestion not found")
  return s


async def list_by_user(db: AsyncSession, user_id: str) -> list[Suggestion]:
  res = await db.execute(select(Suggestion).where(Suggestion.user_id == user_id).order_by(Suggestion.created_at.desc()))
  return list(res.scalars().all())


async def list_by_session(db: AsyncSession, session_id: str, *, pending_only: bool = False) -> list[Suggestion]:
  q = select(Suggestion).where(Suggestion.session_id == session_id)
  if pending_only:
    q = q.where(Suggestion.status == "pending")
  res = await db.execute(q.order_by(Suggestion.created_at.desc()))
  return list(res.scalars().all())


async def list_pending_by_session(db: AsyncSession, session_id: str) -> list[Suggestion]:
  return await list_by_session(db, session_id, pending_only=True)


async def find_suggestion_by_task_id(db: AsyncSession, task_id: str, user_id: str | None = None) -> Suggestion | None:
  """Board suggestion whose content holds a task with this content id, if any."""
  q = select(Suggestion).where(Suggestion.type == "board")
  if user_id is not None:
    q = q.where(Suggestion.user_id == user_id)
  res = await db.execute(q.order_by(Suggestion.created_at.desc()))
  for s in res.scalars().all():
    for column in (s.content or {}).get("columns") or []:
      if any(t.get("id") == task_id for t in column.get("tasks") or []):
        return s
  return None
