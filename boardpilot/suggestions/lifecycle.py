"""Suggestion state transitions and their side effects on the board graph.

pending/modified --accept--> accepted   (materializes the content)
pending/modified --reject--> rejected
any              --modify--> modified   (shallow merge of content)

A suggestion modified after it was accepted or rejected keeps that outcome in
``metadata.modifiedFrom`` and can no longer be accepted or rejected.

Each transition commits the session it was given. A failed materialization rolls the
transaction back, puts the suggestion back to ``pending`` and re-raises.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from boardpilot.audit import write_audit
from boardpilot.board_context.planner import ReconcileOptions
from boardpilot.board_context.service import create_board_from_context, default_options
from boardpilot.chat.service import add_message
from boardpilot.errors import BoardpilotError, InvalidSuggestionContentError, InvalidTransitionError, MaterializationError, NotFoundError
from boardpilot.metrics import runtime_metrics
from boardpilot.models import Board, BoardColumn, ChatSession, Subtask, Suggestion, Task, new_id, utcnow
from boardpilot.realtime import Notifier, hub
from boardpilot.schemas import BoardSuggestion, TaskBreakdownSuggestion, TaskImprovementSuggestion
from boardpilot.suggestions.content import board_context_from_suggestion, dump_content, merge_content, parse_content
from boardpilot.suggestions.store import get_suggestion

logger = logging.getLogger(__name__)

ACTIONABLE_STATUSES = frozenset({"pending", "modified"})
TERMINAL_STATUSES = frozenset({"accepted", "rejected"})

ACKNOWLEDGEMENTS = {
  "accepted": "✅ The suggestion has been accepted and processed.",
  "rejected": "❌ The suggestion has been rejected.",
  "modified": "✏️ The suggestion has been modified.",
}


def _require_actionable(s: Suggestion, action: str) -> None:
  if s.status not in ACTIONABLE_STATUSES:
    raise InvalidTransitionError(f"Cannot {action} a suggestion that is already {s.status}")
  prior = (s.meta or {}).get("modifiedFrom")
  if prior in TERMINAL_STATUSES:
    raise InvalidTransitionError(f"Cannot {action} a suggestion that was already {prior}")


def _notify(notifier: Notifier | None, session_id: str, event: str, payload: dict[str, Any]) -> None:
  try:
    (notifier or hub)(session_id, event, payload)
  except Exception:
    logger.warning("notifier failed for %s on chat %s", event, session_id, exc_info=True)


async def narrate(db: AsyncSession, session_id: str, message: str, status: str) -> None:
  """Record the user's note and a system acknowledgment in the suggestion's chat."""
  await add_message(db, session_id, "user", message)
  await add_message(db, session_id, "system", ACKNOWLEDGEMENTS[status])


async def _first_column(db: AsyncSession, board_id: str) -> BoardColumn | None:
  res = await db.execute(
    select(BoardColumn)
    .where(BoardColumn.board_id == board_id)
    .order_by(BoardColumn.order_index.asc(), BoardColumn.created_at.asc())
    .limit(1)
  )
  return res.scalar_one_or_none()


async def _owned_board(db: AsyncSession, board_id: str, user_id: str) -> Board | None:
  res = await db.execute(select(Board).where(Board.id == board_id, Board.owner_id == user_id))
  return res.scalar_one_or_none()


async def resolve_target_column(db: AsyncSession, s: Suggestion) -> BoardColumn:
  """Column that receives a task breakdown.

  ``metadata.columnId`` wins. Otherwise the first column of, in turn: ``metadata.boardId``,
  the board linked to the suggestion's chat, the user's most recently updated board.
  """
  meta = s.meta or {}
  column_id = meta.get("columnId")
  if column_id:
    res = await db.execute(
      select(BoardColumn)
      .join(Board, Board.id == BoardColumn.board_id)
      .where(BoardColumn.id == str(column_id), Board.owner_id == s.user_id)
    )
    col = res.scalar_one_or_none()
    if not col:
      raise NotFoundError("Column not found")
    return col

  candidates: list[str] = []
  board_id = meta.get("boardId")
  if board_id:
    if not await _owned_board(db, str(board_id), s.user_id):
      raise NotFoundError("Board not found")
    candidates.append(str(board_id))
  chat = await db.get(ChatSession, s.session_id)
  if chat and chat.board_id and await _owned_board(db, chat.board_id, s.user_id):
    candidates.append(chat.board_id)
  latest = (
    await db.execute(select(Board.id).where(Board.owner_id == s.user_id).order_by(Board.updated_at.desc()).limit(1))
  ).scalar_one_or_none()
  if latest:
    candidates.append(latest)

  for candidate in candidates:
    col = await _first_column(db, candidate)
    if col:
      return col
  raise MaterializationError("No column available for the task breakdown; set metadata.columnId")


async def _materialize_board(db: AsyncSession, s: Suggestion, content: BoardSuggestion, options: ReconcileOptions) -> None:
  tree = await create_board_from_context(
    db,
    board_context_from_suggestion(content),
    s.user_id,
    chat_session_id=s.session_id,
    options=options,
  )
  s.meta = {**(s.meta or {}), "boardId": tree.id}


async def _materialize_breakdown(
  db: AsyncSession, s: Suggestion, content: TaskBreakdownSuggestion, options: ReconcileOptions
) -> None:
  col = await resolve_target_column(db, s)
  last = (await db.execute(select(func.max(Task.order_index)).where(Task.column_id == col.id))).scalar()
  order = 0 if last is None else last + 1
  task = Task(
    id=new_id(),
    board_id=col.board_id,
    column_id=col.id,
    title=content.taskTitle,
    description=content.taskDescription or options.default_description,
    status=options.default_task_status,
    position=order,
    order_index=order,
  )
  db.add(task)
  await db.flush()
  for idx, sub in enumerate(content.subtasks):
    db.add(
      Subtask(
        board_id=col.board_id,
        task_id=task.id,
        title=sub.title,
        description=sub.description,
        completed=sub.completed,
        order_index=idx,
      )
    )
  board = await db.get(Board, col.board_id)
  if board:
    board.updated_at = utcnow()
  await db.flush()
  s.meta = {**(s.meta or {}), "taskId": task.id, "columnId": col.id, "boardId": col.board_id}


async def _materialize_improvement(db: AsyncSession, s: Suggestion, content: TaskImprovementSuggestion) -> None:
  meta = s.meta or {}
  task_id = meta.get("taskId")
  if not task_id:
    if meta.get("isBatchSuggestion"):
      logger.info("suggestion %s: batch task improvement without a target task, nothing to apply", s.id)
    else:
      logger.info("suggestion %s: no target task, accepted as acknowledgment", s.id)
    return
  res = await db.execute(
    select(Task).join(Board, Board.id == Task.board_id).where(Task.id == str(task_id), Board.owner_id == s.user_id)
  )
  task = res.scalar_one_or_none()
  if not task:
    raise NotFoundError("Task not found")
  task.title = content.title
  task.description = content.description
  await db.flush()


async def materialize(db: AsyncSession, s: Suggestion, options: ReconcileOptions | None = None) -> None:
  opts = options or default_options()
  content = parse_content(s.type, s.content)
  if isinstance(content, BoardSuggestion):
    await _materialize_board(db, s, content, opts)
  elif isinstance(content, TaskBreakdownSuggestion):
    await _materialize_breakdown(db, s, content, opts)
  elif isinstance(content, TaskImprovementSuggestion):
    await _materialize_improvement(db, s, content)


async def _revert_to_pending(db: AsyncSession, suggestion_id: str) -> None:
  await db.rollback()
  s = await db.get(Suggestion, suggestion_id, populate_existing=True)
  if s is not None:
    s.status = "pending"
    await db.commit()


async def accept_suggestion(
  db: AsyncSession,
  suggestion_id: str,
  *,
  message: str | None = None,
  user_id: str | None = None,
  notifier: Notifier | None = None,
  options: ReconcileOptions | None = None,
) -> Suggestion:
  s = await get_suggestion(db, suggestion_id, user_id=user_id)
  _require_actionable(s, "accept")
  sid = s.id
  s.status = "accepted"
  try:
    await db.flush()
    await materialize(db, s, options)
    if message:
      await narrate(db, s.session_id, message, "accepted")
    await write_audit(
      db,
      event_type="suggestion.accepted",
      entity_type="Suggestion",
      entity_id=sid,
      board_id=(s.meta or {}).get("boardId"),
      actor_id=s.user_id,
      payload={"type": s.type, "metadata": s.meta or {}},
    )
    await db.commit()
  except Exception as exc:
    logger.exception("applying suggestion %s failed, reverting to pending", sid)
    runtime_metrics.observe_transition("accept", "failed")
    await _revert_to_pending(db, sid)
    if isinstance(exc, BoardpilotError):
      raise
    raise MaterializationError(f"Failed to apply suggestion: {exc}") from exc

  runtime_metrics.observe_transition("accept", "ok")
  logger.info("suggestion %s (%s) accepted", sid, s.type)
  _notify(notifier, s.session_id, "suggestion_status_update", {"suggestionId": sid, "status": s.status})
  return s


async def reject_suggestion(
  db: AsyncSession,
  suggestion_id: str,
  *,
  message: str | None = None,
  user_id: str | None = None,
  notifier: Notifier | None = None,
) -> Suggestion:
  s = await get_suggestion(db, suggestion_id, user_id=user_id)
  _require_actionable(s, "reject")
  s.status = "rejected"
  if message:
    await narrate(db, s.session_id, message, "rejected")
  await write_audit(
    db,
    event_type="suggestion.rejected",
    entity_type="Suggestion",
    entity_id=s.id,
    actor_id=s.user_id,
    payload={"type": s.type},
  )
  await db.commit()

  runtime_metrics.observe_transition("reject", "ok")
  logger.info("suggestion %s (%s) rejected", s.id, s.type)
  _notify(notifier, s.session_id, "suggestion_status_update", {"suggestionId": s.id, "status": s.status})
  return s


async def modify_suggestion(
  db: AsyncSession,
  suggestion_id: str,
  content: Mapping[str, Any],
  *,
  message: str | None = None,
  user_id: str | None = None,
  notifier: Notifier | None = None,
) -> Suggestion:
  if not isinstance(content, Mapping):
    raise InvalidSuggestionContentError("Suggestion content must be an object")
  s = await get_suggestion(db, suggestion_id, user_id=user_id)
  merged = merge_content(s.type, s.content or {}, content)
  s.content = dump_content(merged)
  if s.status in TERMINAL_STATUSES:
    s.meta = {**(s.meta or {}), "modifiedFrom": s.status}
  s.status = "modified"
  if message:
    await narrate(db, s.session_id, message, "modified")
  await write_audit(
    db,
    event_type="suggestion.modified",
    entity_type="Suggestion",
    entity_id=s.id,
    actor_id=s.user_id,
    payload={"type": s.type, "keys": sorted(content.keys())},
  )
  await db.commit()

  runtime_metrics.observe_transition("modify", "ok")
  logger.info("suggestion %s (%s) modified", s.id, s.type)
  _notify(notifier, s.session_id, "suggestion_modified", {"suggestionId": s.id, "type": s.type, "content": s.content})
  return s
