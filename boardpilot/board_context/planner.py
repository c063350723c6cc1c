"""Reconciliation planning for board contexts.

Planning is pure: it compares a snapshot of the persisted board tree with a sanitized
BoardContext and returns the create/update/delete operations needed to make the tree
match, without touching storage. ``service.apply_board_plan`` executes a plan.

Siblings are identified by their lower-cased, trimmed name (columns) or title (tasks,
subtasks). Each persisted sibling can be claimed by at most one context entry, so two
context entries with the same name never collapse onto one row; the second one is
created. ``order`` always comes from the context array index.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import TypeVar

from boardpilot.schemas import BoardContext, SubtaskContext, TaskContext

S = TypeVar("S")


@dataclass(frozen=True)
class ReconcileOptions:
  default_board_name: str = "New Board"
  default_task_status: str = "Todo"
  default_description: str = ""


@dataclass
class SubtaskSnapshot:
  id: str
  title: str
  description: str = ""


@dataclass
class TaskSnapshot:
  id: str
  title: str
  description: str = ""
  subtasks: list[SubtaskSnapshot] = field(default_factory=list)


@dataclass
class ColumnSnapshot:
  id: str
  name: str
  tasks: list[TaskSnapshot] = field(default_factory=list)


@dataclass
class SubtaskOp:
  existing_id: str | None
  title: str
  description: str
  order: int


@dataclass
class TaskOp:
  existing_id: str | None
  title: str
  description: str
  position: int
  order: int
  subtasks: list[SubtaskOp] = field(default_factory=list)
  delete_subtask_ids: list[str] = field(default_factory=list)


@dataclass
class ColumnOp:
  existing_id: str | None
  name: str
  position: int
  order: int
  tasks: list[TaskOp] = field(default_factory=list)
  delete_task_ids: list[str] = field(default_factory=list)


@dataclass
class BoardPlan:
  name: str | None
  columns: list[ColumnOp] = field(default_factory=list)
  delete_column_ids: list[str] = field(default_factory=list)
  # rows removed, cascaded descendants included
  deleted: int = 0

  def _ops(self) -> Iterator[ColumnOp | TaskOp | SubtaskOp]:
    for c in self.columns:
      yield c
      for t in c.tasks:
        yield t
        yield from t.subtasks

  @property
  def created(self) -> int:
    return sum(1 for op in self._ops() if op.existing_id is None)

  @property
  def updated(self) -> int:
    return sum(1 for op in self._ops() if op.existing_id is not None)

  def summary(self) -> dict[str, int]:
    return {"created": self.created, "updated": self.updated, "deleted": self.deleted}


def identity_key(value: str | None) -> str:
  return (value or "").strip().lower()


def match_siblings(
  existing: Sequence[S],
  wanted: Sequence[str],
  key: Callable[[S], str],
) -> tuple[list[S | None], list[S]]:
  """Pair each wanted name with at most one existing sibling.

  Returns the match for every wanted entry (``None`` when a new row is needed) and the
  existing siblings nobody claimed, in their original order.
  """
  buckets: dict[str, list[S]] = {}
  for item in existing:
    buckets.setdefault(identity_key(key(item)), []).append(item)
  matches: list[S | None] = []
  for name in wanted:
    bucket = buckets.get(identity_key(name))
    matches.append(bucket.pop(0) if bucket else None)
  claimed = {id(m) for m in matches if m is not None}
  leftovers = [item for item in existing if id(item) not in claimed]
  return matches, leftovers


def _task_weight(t: TaskSnapshot) -> int:
  return 1 + len(t.subtasks)


def _plan_subtasks(
  existing: Sequence[SubtaskSnapshot],
  wanted: Sequence[SubtaskContext],
  options: ReconcileOptions,
) -> tuple[list[SubtaskOp], list[str]]:
  matches, stale = match_siblings(existing, [s.title for s in wanted], lambda s: s.title)
  ops: list[SubtaskOp] = []
  for index, (ctx, current) in enumerate(zip(wanted, matches)):
    if current is None:
      ops.append(SubtaskOp(existing_id=None, title=ctx.title, description=ctx.description or options.default_description, order=index))
    else:
      ops.append(SubtaskOp(existing_id=current.id, title=ctx.title, description=ctx.description or current.description, order=index))
  return ops, [s.id for s in stale]


def _plan_tasks(
  existing: Sequence[TaskSnapshot],
  wanted: Sequence[TaskContext],
  options: ReconcileOptions,
) -> tuple[list[TaskOp], list[str], int]:
  matches, stale = match_siblings(existing, [t.title for t in wanted], lambda t: t.title)
  ops: list[TaskOp] = []
  deleted = sum(_task_weight(t) for t in stale)
  for index, (ctx, current) in enumerate(zip(wanted, matches)):
    position = ctx.position if ctx.position is not None else index
    subtask_ops, stale_subtasks = _plan_subtasks(current.subtasks if current else [], ctx.subtasks, options)
    deleted += len(stale_subtasks)
    if current is None:
      description = ctx.description or options.default_description
    else:
      description = ctx.description or current.description
    ops.append(
      TaskOp(
        existing_id=current.id if current else None,
        title=ctx.title,
        description=description,
        position=position,
        order=index,
        subtasks=subtask_ops,
        delete_subtask_ids=stale_subtasks,
      )
    )
  return ops, [t.id for t in stale], deleted


def plan_board_update(
  existing: Sequence[ColumnSnapshot],
  context: BoardContext,
  options: ReconcileOptions | None = None,
) -> BoardPlan:
  opts = options or ReconcileOptions()
  matches, stale = match_siblings(existing, [c.name for c in context.columns], lambda c: c.name)
  plan = BoardPlan(name=context.name or None, delete_column_ids=[c.id for c in stale])
  plan.deleted = sum(1 + sum(_task_weight(t) for t in c.tasks) for c in stale)
  for index, (ctx, current) in enumerate(zip(context.columns, matches)):
    task_ops, stale_tasks, deleted = _plan_tasks(current.tasks if current else [], ctx.tasks, opts)
    plan.deleted += deleted
    plan.columns.append(
      ColumnOp(
        existing_id=current.id if current else None,
        name=ctx.name,
        position=ctx.position if ctx.position is not None else index,
        order=index,
        tasks=task_ops,
        delete_task_ids=stale_tasks,
      )
    )
  return plan


def plan_board_create(context: BoardContext, options: ReconcileOptions | None = None) -> BoardPlan:
  opts = options or ReconcileOptions()
  plan = plan_board_update([], context, opts)
  plan.name = context.name or opts.default_board_name
  return plan
