from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from boardpilot.board_context.service import create_board_from_context, update_board_from_context
from boardpilot.deps import get_current_user, get_db
from boardpilot.models import User
from boardpilot.schemas import BoardTreeOut

router = APIRouter(prefix="/board-context", tags=["board-context"])


def _unwrap(payload: dict[str, Any]) -> Any:
  # Accept either {"boardContext": {...}, "chatId": ...} or the bare context.
  return payload["boardContext"] if "boardContext" in payload else payload


@router.post("/create", response_model=BoardTreeOut, status_code=status.HTTP_201_CREATED)
async def create_board(
  payload: dict[str, Any] = Body(...),
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> BoardTreeOut:
  chat_id = payload.get("chatId")
  tree = await create_board_from_context(db, _unwrap(payload), user.id, chat_session_id=str(chat_id) if chat_id else None)
  await db.commit()
  return tree


@router.put("/update/{board_id}", response_model=BoardTreeOut)
async def update_board(
  board_id: str,
  payload: dict[str, Any] = Body(...),
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> BoardTreeOut:
  tree = await update_board_from_context(db, board_id, _unwrap(payload), user.id)
  await db.commit()
  return tree
