from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from boardpilot.board_context.service import load_board_tree
from boardpilot.deps import get_current_user, get_db
from boardpilot.models import Board, User
from boardpilot.schemas import BoardOut, BoardTreeOut

router = APIRouter(prefix="/boards", tags=["boards"])


def _board_out(b: Board) -> BoardOut:
  return BoardOut(id=b.id, name=b.name, ownerId=b.owner_id, createdAt=b.created_at, updatedAt=b.updated_at)


@router.get("", response_model=list[BoardOut])
async def list_boards(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[BoardOut]:
  res = await db.execute(select(Board).where(Board.owner_id == user.id).order_by(Board.updated_at.desc()))
  return [_board_out(b) for b in res.scalars().all()]


@router.get("/{board_id}", response_model=BoardTreeOut)
async def get_board(board_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> BoardTreeOut:
  return await load_board_tree(db, board_id, owner_id=user.id)
