from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from boardpilot.audit import write_audit
from boardpilot.board_context.planner import (
  BoardPlan,
  ColumnSnapshot,
  ReconcileOptions,
  SubtaskSnapshot,
  TaskSnapshot,
  plan_board_create,
  plan_board_update,
)
from boardpilot.board_context.sanitizer import sanitize
from boardpilot.chat.service import get_session, link_board
from boardpilot.config import settings
from boardpilot.errors import NotFoundError
from boardpilot.models import Board, BoardColumn, Subtask, Task, new_id, utcnow
from boardpilot.schemas import BoardTreeOut, ColumnOut, SubtaskOut, TaskOut

logger = logging.getLogger(__name__)


def default_options() -> ReconcileOptions:
  return ReconcileOptions(default_board_name=settings.default_board_name)


@dataclass
class ExistingRows:
  columns: dict[str, BoardColumn] = field(default_factory=dict)
  tasks: dict[str, Task] = field(default_factory=dict)
  subtasks: dict[str, Subtask] = field(default_factory=dict)
  snapshot: list[ColumnSnapshot] = field(default_factory=list)


async def _board_rows(db: AsyncSession, board_id: str) -> tuple[list[BoardColumn], list[Task], list[Subtask]]:
  cres = await db.execute(
    select(BoardColumn).where(BoardColumn.board_id == board_id).order_by(BoardColumn.order_index.asc(), BoardColumn.created_at.asc())
  )
  tres = await db.execute(select(Task).where(Task.board_id == board_id).order_by(Task.order_index.asc(), Task.created_at.asc()))
  sres = await db.execute(
    select(Subtask).where(Subtask.board_id == board_id).order_by(Subtask.order_index.asc(), Subtask.created_at.asc())
  )
  return list(cres.scalars().all()), list(tres.scalars().all()), list(sres.scalars().all())


async def load_existing(db: AsyncSession, board_id: str) -> ExistingRows:
  columns, tasks, subtasks = await _board_rows(db, board_id)
  rows = ExistingRows(
    columns={c.id: c for c in columns},
    tasks={t.id: t for t in tasks},
    subtasks={s.id: s for s in subtasks},
  )
  subs_by_task: dict[str, list[SubtaskSnapshot]] = {}
  for s in subtasks:
    subs_by_task.setdefault(s.task_id, []).append(SubtaskSnapshot(id=s.id, title=s.title, description=s.description))
  tasks_by_column: dict[str, list[TaskSnapshot]] = {}
  for t in tasks:
    tasks_by_column.setdefault(t.column_id, []).append(
      TaskSnapshot(id=t.id, title=t.title, description=t.description, subtasks=subs_by_task.get(t.id, []))
    )
  rows.snapshot = [ColumnSnapshot(id=c.id, name=c.name, tasks=tasks_by_column.get(c.id, [])) for c in columns]
  return rows


async def load_board_tree(db: AsyncSession, board_id: str, *, owner_id: str | None = None) -> BoardTreeOut:
  q = select(Board).where(Board.id == board_id)
  if owner_id is not None:
    q = q.where(Board.owner_id == owner_id)
  b = (await db.execute(q)).scalar_one_or_none()
  if not b:
    raise NotFoundError("Board not found")

  columns, tasks, subtasks = await _board_rows(db, b.id)
  subs_by_task: dict[str, list[SubtaskOut]] = {}
  for s in subtasks:
    subs_by_task.setdefault(s.task_id, []).append(
      SubtaskOut(id=s.id, taskId=s.task_id, title=s.title, description=s.description, completed=s.completed, order=s.order_index)
    )
  tasks_by_column: dict[str, list[TaskOut]] = {}
  for t in tasks:
    tasks_by_column.setdefault(t.column_id, []).append(
      TaskOut(
        id=t.id,
        columnId=t.column_id,
        title=t.title,
        description=t.description,
        status=t.status,
        position=t.position,
        order=t.order_index,
        subtasks=subs_by_task.get(t.id, []),
      )
    )
  return BoardTreeOut(
    id=b.id,
    name=b.name,
    ownerId=b.owner_id,
    createdAt=b.created_at,
    updatedAt=b.updated_at,
    columns=[
      ColumnOut(id=c.id, boardId=c.board_id, name=c.name, position=c.position, order=c.order_index, tasks=tasks_by_column.get(c.id, []))
      for c in columns
    ],
  )


async def _delete_columns(db: AsyncSession, column_ids: list[str]) -> None:
  task_ids = select(Task.id).where(Task.column_id.in_(column_ids))
  await db.execute(delete(Subtask).where(Subtask.task_id.in_(task_ids)))
  await db.execute(delete(Task).where(Task.column_id.in_(column_ids)))
  await db.execute(delete(BoardColumn).where(BoardColumn.id.in_(column_ids)))


async def _delete_tasks(db: AsyncSession, task_ids: list[str]) -> None:
  await db.execute(delete(Subtask).where(Subtask.task_id.in_(task_ids)))
  await db.execute(delete(Task).where(Task.id.in_(task_ids)))


async def apply_board_plan(
  db: AsyncSession,
  board: Board,
  plan: BoardPlan,
  existing: ExistingRows,
  options: ReconcileOptions,
) -> None:
  """Write a plan level by level: deletes, then columns, tasks, subtasks. Does not commit."""
  if plan.name:
    board.name = plan.name
  board.updated_at = utcnow()

  stale_task_ids = [tid for c in plan.columns for tid in c.delete_task_ids]
  stale_subtask_ids = [sid for c in plan.columns for t in c.tasks for sid in t.delete_subtask_ids]
  if plan.delete_column_ids:
    await _delete_columns(db, plan.delete_column_ids)
  if stale_task_ids:
    await _delete_tasks(db, stale_task_ids)
  if stale_subtask_ids:
    await db.execute(delete(Subtask).where(Subtask.id.in_(stale_subtask_ids)))

  column_ids: list[str] = []
  for col_op in plan.columns:
    if col_op.existing_id is None:
      col = BoardColumn(id=new_id(), board_id=board.id, name=col_op.name, position=col_op.position, order_index=col_op.order)
      db.add(col)
    else:
      col = existing.columns[col_op.existing_id]
      col.position = col_op.position
      col.order_index = col_op.order
    column_ids.append(col.id)
  await db.flush()

  task_ids: list[list[str]] = []
  for col_op, column_id in zip(plan.columns, column_ids):
    ids: list[str] = []
    for task_op in col_op.tasks:
      if task_op.existing_id is None:
        task = Task(
          id=new_id(),
          board_id=board.id,
          column_id=column_id,
          title=task_op.title,
          description=task_op.description,
          status=options.default_task_status,
          position=task_op.position,
          order_index=task_op.order,
        )
        db.add(task)
      else:
        task = existing.tasks[task_op.existing_id]
        task.title = task_op.title
        task.description = task_op.description
        task.position = task_op.position
        task.order_index = task_op.order
      ids.append(task.id)
    task_ids.append(ids)
  await db.flush()

  for col_op, ids in zip(plan.columns, task_ids):
    for task_op, task_id in zip(col_op.tasks, ids):
      for sub_op in task_op.subtasks:
        if sub_op.existing_id is None:
          db.add(
            Subtask(
              board_id=board.id,
              task_id=task_id,
              title=sub_op.title,
              description=sub_op.description,
              completed=False,
              order_index=sub_op.order,
            )
          )
        else:
          sub = existing.subtasks[sub_op.existing_id]
          sub.title = sub_op.title
          sub.description = sub_op.description
          sub.order_index = sub_op.order
  await db.flush()


async def create_board_from_context(
  db: AsyncSession,
  context: Any,
  owner_id: str,
  *,
  chat_session_id: str | None = None,
  options: ReconcileOptions | None = None,
) -> BoardTreeOut:
  ctx = sanitize(context)
  opts = options or default_options()
  session = await get_session(db, chat_session_id, user_id=owner_id) if chat_session_id else None

  plan = plan_board_create(ctx, opts)
  board = Board(name=plan.name, owner_id=owner_id)
  db.add(board)
  await db.flush()
  await apply_board_plan(db, board, plan, ExistingRows(), opts)
  if session is not None:
    await link_board(db, session.id, board.id)

  await write_audit(
    db,
    event_type="board.created_from_context",
    entity_type="Board",
    entity_id=board.id,
    board_id=board.id,
    actor_id=owner_id,
    payload={"name": board.name, **plan.summary()},
  )
  logger.info("created board %s from context: %s", board.id, plan.summary())
  return await load_board_tree(db, board.id)


async def update_board_from_context(
  db: AsyncSession,
  board_id: str,
  context: Any,
  owner_id: str,
  *,
  options: ReconcileOptions | None = None,
) -> BoardTreeOut:
  ctx = sanitize(context)
  opts = options or default_options()
  res = await db.execute(select(Board).where(Board.id == board_id, Board.owner_id == owner_id))
  board = res.scalar_one_or_none()
  if not board:
    raise NotFoundError("Board not found or you don't have permission to update it")

  existing = await load_existing(db, board.id)
  plan = plan_board_update(existing.snapshot, ctx, opts)
  await apply_board_plan(db, board, plan, existing, opts)

  await write_audit(
    db,
    event_type="board.reconciled",
    entity_type="Board",
    entity_id=board.id,
    board_id=board.id,
    actor_id=owner_id,
    payload=plan.summary(),
  )
  logger.info("reconciled board %s: %s", board.id, plan.summary())
  return await load_board_tree(db, board.id)
