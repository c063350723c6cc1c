from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boardpilot.chat.service import (
  create_session,
  get_board_context,
  get_session,
  list_messages,
  reset_board_context,
  update_board_context,
)
from boardpilot.deps import get_current_user, get_db
from boardpilot.models import ChatMessage, ChatSession, User
from boardpilot.schemas import ChatMessageOut, ChatSessionCreateIn, ChatSessionOut

router = APIRouter(prefix="/chat", tags=["chat"])


def _session_out(s: ChatSession) -> ChatSessionOut:
  return ChatSessionOut(id=s.id, userId=s.user_id, title=s.title, status=s.status, boardId=s.board_id, lastActive=s.last_active)


def _message_out(m: ChatMessage) -> ChatMessageOut:
  return ChatMessageOut(id=m.id, sessionId=m.session_id, role=m.role, content=m.content, createdAt=m.created_at)


@router.post("/sessions", response_model=ChatSessionOut, status_code=status.HTTP_201_CREATED)
async def new_session(
  payload: ChatSessionCreateIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> ChatSessionOut:
  s = await create_session(db, user.id, payload.title)
  await db.commit()
  return _session_out(s)


@router.get("/sessions", response_model=list[ChatSessionOut])
async def list_sessions(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[ChatSessionOut]:
  res = await db.execute(select(ChatSession).where(ChatSession.user_id == user.id).order_by(ChatSession.last_active.desc()))
  return [_session_out(s) for s in res.scalars().all()]


@router.get("/sessions/{session_id}/messages", response_model=list[ChatMessageOut])
async def messages(session_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[ChatMessageOut]:
  await get_session(db, session_id, user_id=user.id)
  return [_message_out(m) for m in await list_messages(db, session_id)]


@router.get("/sessions/{session_id}/board-context")
async def read_board_context(session_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict:
  return await get_board_context(db, session_id, user_id=user.id)


@router.put("/sessions/{session_id}/board-context")
async def write_board_context(
  session_id: str,
  payload: dict[str, Any] = Body(...),
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> dict:
  ctx = await update_board_context(db, session_id, payload, user_id=user.id)
  await db.commit()
  return ctx


@router.delete("/sessions/{session_id}/board-context")
async def clear_board_context(session_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> dict:
  ctx = await reset_board_context(db, session_id, user_id=user.id)
  await db.commit()
  return ctx
