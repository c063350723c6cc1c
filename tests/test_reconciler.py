from __future__ import annotations

import pytest
from sqlalchemy import select

from boardpilot.board_context.service import create_board_from_context, load_board_tree, update_board_from_context
from boardpilot.errors import InvalidContextError, NotFoundError
from boardpilot.models import AuditEvent, Board, ChatSession, Subtask, Task
from conftest import make_chat, make_user

CONTEXT = {
  "name": "Launch plan",
  "columns": [
    {"name": "Todo", "tasks": [{"title": "Draft post", "description": "blog", "subtasks": [{"title": "Outline"}, {"title": "Edit"}]}]},
    {"name": "Doing", "tasks": [{"title": "Build page"}]},
    {"name": "Done", "tasks": [{"title": "Pick date", "subtasks": [{"title": "Check calendar"}]}]},
  ],
}


def _shape(tree) -> list:
  return [
    (c.id, c.name, c.order, [(t.id, t.title, t.order, [(s.id, s.title, s.order) for s in t.subtasks]) for t in c.tasks])
    for c in tree.columns
  ]


@pytest.mark.anyio
async def test_create_builds_the_full_tree(db) -> None:
  user = await make_user(db)
  tree = await create_board_from_context(db, CONTEXT, user.id)
  await db.commit()

  assert tree.name == "Launch plan"
  assert tree.ownerId == user.id
  assert [c.name for c in tree.columns] == ["Todo", "Doing", "Done"]
  assert [c.order for c in tree.columns] == [0, 1, 2]
  draft = tree.columns[0].tasks[0]
  assert draft.status == "Todo"
  assert draft.description == "blog"
  assert [(s.title, s.completed) for s in draft.subtasks] == [("Outline", False), ("Edit", False)]
  assert tree.columns[1].tasks[0].description == ""

  reloaded = await load_board_tree(db, tree.id, owner_id=user.id)
  assert _shape(reloaded) == _shape(tree)


@pytest.mark.anyio
async def test_create_without_name_uses_default_and_links_chat(db) -> None:
  user = await make_user(db)
  chat = await make_chat(db, user)
  tree = await create_board_from_context(db, {"columns": [{"name": "Todo"}]}, user.id, chat_session_id=chat.id)
  await db.commit()

  assert tree.name == "New Board"
  linked = (await db.execute(select(ChatSession).where(ChatSession.id == chat.id))).scalar_one()
  assert linked.board_id == tree.id


@pytest.mark.anyio
async def test_invalid_context_creates_nothing(db) -> None:
  user = await make_user(db)
  with pytest.raises(InvalidContextError):
    await create_board_from_context(db, {"columns": [{"tasks": []}]}, user.id)
  assert (await db.execute(select(Board))).scalars().all() == []


@pytest.mark.anyio
async def test_reconciling_same_context_is_idempotent(db) -> None:
  user = await make_user(db)
  created = await create_board_from_context(db, CONTEXT, user.id)
  first = await update_board_from_context(db, created.id, CONTEXT, user.id)
  second = await update_board_from_context(db, created.id, CONTEXT, user.id)
  await db.commit()

  assert _shape(first) == _shape(created)
  assert _shape(second) == _shape(created)

  res = await db.execute(select(AuditEvent).where(AuditEvent.event_type == "board.reconciled"))
  for ev in res.scalars().all():
    assert ev.payload["created"] == 0
    assert ev.payload["deleted"] == 0


@pytest.mark.anyio
async def test_omitted_column_is_deleted_with_its_tasks_and_subtasks(db) -> None:
  user = await make_user(db)
  tree = await create_board_from_context(db, CONTEXT, user.id)
  done = tree.columns[2]
  done_task_ids = [t.id for t in done.tasks]

  trimmed = {"name": "Launch plan", "columns": CONTEXT["columns"][:2]}
  updated = await update_board_from_context(db, tree.id, trimmed, user.id)
  await db.commit()

  assert [c.name for c in updated.columns] == ["Todo", "Doing"]
  assert (await db.execute(select(Task).where(Task.column_id == done.id))).scalars().all() == []
  assert (await db.execute(select(Subtask).where(Subtask.task_id.in_(done_task_ids)))).scalars().all() == []


@pytest.mark.anyio
async def test_names_match_case_insensitively(db) -> None:
  user = await make_user(db)
  tree = await create_board_from_context(db, {"name": "B", "columns": [{"name": "todo", "tasks": [{"title": "draft post"}]}]}, user.id)

  updated = await update_board_from_context(
    db, tree.id, {"columns": [{"name": "TODO", "tasks": [{"title": "Draft Post", "description": "new"}]}]}, user.id
  )
  await db.commit()

  assert len(updated.columns) == 1
  col = updated.columns[0]
  assert col.id == tree.columns[0].id
  assert col.name == "todo"
  assert col.tasks[0].id == tree.columns[0].tasks[0].id
  assert col.tasks[0].title == "Draft Post"
  assert col.tasks[0].description == "new"
  # name omitted keeps the board name
  assert updated.name == "B"


@pytest.mark.anyio
async def test_update_keeps_description_and_completion_when_context_is_silent(db) -> None:
  user = await make_user(db)
  tree = await create_board_from_context(db, CONTEXT, user.id)
  outline_id = tree.columns[0].tasks[0].subtasks[0].id
  sub = (await db.execute(select(Subtask).where(Subtask.id == outline_id))).scalar_one()
  sub.completed = True
  await db.flush()

  ctx = {"columns": [{"name": "Todo", "tasks": [{"title": "Draft post", "subtasks": [{"title": "outline"}, {"title": "Edit"}]}]}]}
  updated = await update_board_from_context(db, tree.id, ctx, user.id)
  await db.commit()

  task = updated.columns[0].tasks[0]
  assert task.description == "blog"
  assert task.subtasks[0].id == outline_id
  assert task.subtasks[0].completed is True


@pytest.mark.anyio
async def test_reordering_follows_context_index(db) -> None:
  user = await make_user(db)
  tree = await create_board_from_context(db, CONTEXT, user.id)
  reordered = {"columns": [CONTEXT["columns"][2], CONTEXT["columns"][0], {"name": "Doing", "position": 9}]}

  updated = await update_board_from_context(db, tree.id, reordered, user.id)
  await db.commit()

  assert [(c.name, c.order, c.position) for c in updated.columns] == [("Done", 0, 0), ("Todo", 1, 1), ("Doing", 2, 9)]
  assert updated.columns[2].tasks == []


@pytest.mark.anyio
async def test_update_requires_ownership(db) -> None:
  owner = await make_user(db)
  other = await make_user(db, email="other@example.com", name="Other")
  tree = await create_board_from_context(db, CONTEXT, owner.id)

  with pytest.raises(NotFoundError):
    await update_board_from_context(db, tree.id, CONTEXT, other.id)
  with pytest.raises(NotFoundError):
    await update_board_from_context(db, "missing", CONTEXT, owner.id)
