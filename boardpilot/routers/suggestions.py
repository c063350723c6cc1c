from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from boardpilot.chat.service import get_session
from boardpilot.deps import get_current_user, get_db
from boardpilot.models import User
from boardpilot.schemas import (
  BatchAcceptIn,
  BatchAcceptOut,
  BatchFailureOut,
  SuggestionActionIn,
  SuggestionCreateIn,
  SuggestionModifyIn,
  SuggestionOut,
)
from boardpilot.suggestions.batch import accept_batch
from boardpilot.suggestions.lifecycle import accept_suggestion, modify_suggestion, reject_suggestion
from boardpilot.suggestions.store import (
  create_suggestion,
  get_suggestion,
  list_by_session,
  list_by_user,
  list_pending_by_session,
  suggestion_out,
)

router = APIRouter(prefix="/suggestions", tags=["suggestions"])


@router.post("", response_model=SuggestionOut, status_code=status.HTTP_201_CREATED)
async def create(payload: SuggestionCreateIn, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> SuggestionOut:
  s = await create_suggestion(
    db,
    user_id=user.id,
    session_id=payload.sessionId,
    suggestion_type=payload.type,
    content=payload.content,
    original_message=payload.originalMessage,
    metadata=payload.metadata,
    related_suggestion_id=payload.relatedSuggestionId,
  )
  await db.commit()
  return suggestion_out(s)


@router.get("/user/all", response_model=list[SuggestionOut])
async def list_mine(user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> list[SuggestionOut]:
  return [suggestion_out(s) for s in await list_by_user(db, user.id)]


@router.get("/session/{session_id}", response_model=list[SuggestionOut])
async def list_for_session(
  session_id: str,
  pending: bool = Query(default=False),
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> list[SuggestionOut]:
  await get_session(db, session_id, user_id=user.id)
  rows = await list_pending_by_session(db, session_id) if pending else await list_by_session(db, session_id)
  return [suggestion_out(s) for s in rows]


@router.post("/accept-batch", response_model=BatchAcceptOut)
async def accept_many(payload: BatchAcceptIn, user: User = Depends(get_current_user)) -> BatchAcceptOut:
  result = await accept_batch(payload.suggestionIds, message=payload.message, user_id=user.id)
  return BatchAcceptOut(
    succeeded=[suggestion_out(s) for s in result.succeeded],
    failed=[BatchFailureOut(id=f.id, error=f.error) for f in result.failed],
  )


@router.get("/{suggestion_id}", response_model=SuggestionOut)
async def get_one(suggestion_id: str, user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)) -> SuggestionOut:
  return suggestion_out(await get_suggestion(db, suggestion_id, user_id=user.id))


@router.post("/{suggestion_id}/accept", response_model=SuggestionOut)
async def accept(
  suggestion_id: str,
  payload: SuggestionActionIn | None = None,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> SuggestionOut:
  s = await accept_suggestion(db, suggestion_id, message=payload.message if payload else None, user_id=user.id)
  return suggestion_out(s)


@router.post("/{suggestion_id}/reject", response_model=SuggestionOut)
async def reject(
  suggestion_id: str,
  payload: SuggestionActionIn | None = None,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> SuggestionOut:
  s = await reject_suggestion(db, suggestion_id, message=payload.message if payload else None, user_id=user.id)
  return suggestion_out(s)


@router.put("/{suggestion_id}", response_model=SuggestionOut)
async def modify(
  suggestion_id: str,
  payload: SuggestionModifyIn,
  user: User = Depends(get_current_user),
  db: AsyncSession = Depends(get_db),
) -> SuggestionOut:
  s = await modify_suggestion(db, suggestion_id, payload.content, message=payload.message, user_id=user.id)
  return suggestion_out(s)
