from __future__ import annotations

import pytest

from boardpilot.chat.service import list_messages
from boardpilot.suggestions.batch import accept_batch
from boardpilot.suggestions.lifecycle import ACKNOWLEDGEMENTS
from boardpilot.suggestions.store import create_board_suggestion, create_task_breakdown_suggestion, get_suggestion
from conftest import make_chat, make_user


def _content(name: str) -> dict:
  return {"boardName": name, "columns": [{"name": "Todo", "tasks": [{"title": "First"}]}]}


def _ignore(session_id: str, event: str, payload: dict) -> None:
  return None


@pytest.mark.anyio
async def test_batch_keeps_going_past_a_bad_id(db) -> None:
  user = await make_user(db)
  chat = await make_chat(db, user)
  first = await create_board_suggestion(db, user.id, chat.id, _content("One"), "one")
  second = await create_board_suggestion(db, user.id, chat.id, _content("Two"), "two")
  ids = [first.id, "bogus", second.id]
  chat_id = chat.id
  await db.commit()

  result = await accept_batch(ids, message="ship them", notifier=_ignore)

  assert [s.id for s in result.succeeded] == [ids[0], ids[2]]
  assert [(f.id, f.error) for f in result.failed] == [("bogus", "Suggestion not found")]

  db.expire_all()
  assert (await get_suggestion(db, ids[0])).status == "accepted"
  assert (await get_suggestion(db, ids[2])).status == "accepted"
  msgs = await list_messages(db, chat_id)
  assert [m.content for m in msgs] == ["ship them", ACKNOWLEDGEMENTS["accepted"]]


@pytest.mark.anyio
async def test_batch_reports_materialization_failures_per_item(db) -> None:
  user = await make_user(db)
  chat = await make_chat(db, user)
  breakdown = await create_task_breakdown_suggestion(db, user.id, chat.id, {"taskTitle": "Orphan"}, "x")
  board = await create_board_suggestion(db, user.id, chat.id, _content("Only"), "y")
  ids = [breakdown.id, board.id]
  await db.commit()

  result = await accept_batch(ids, notifier=_ignore)

  # the breakdown runs first, before any board exists
  assert [f.id for f in result.failed] == [ids[0]]
  assert "No column available" in result.failed[0].error
  assert [s.id for s in result.succeeded] == [ids[1]]
  db.expire_all()
  assert (await get_suggestion(db, ids[0])).status == "pending"
  assert (await get_suggestion(db, ids[1])).status == "accepted"


@pytest.mark.anyio
async def test_batch_is_scoped_to_the_user(db) -> None:
  owner = await make_user(db)
  other = await make_user(db, email="other@example.com", name="Other")
  chat = await make_chat(db, owner)
  s = await create_board_suggestion(db, owner.id, chat.id, _content("Mine"), "mine")
  sid, other_id = s.id, other.id
  await db.commit()

  result = await accept_batch([sid], user_id=other_id, notifier=_ignore)

  assert result.succeeded == []
  assert [f.id for f in result.failed] == [sid]
  db.expire_all()
  assert (await get_suggestion(db, sid)).status == "pending"


@pytest.mark.anyio
async def test_repeated_id_fails_the_second_time(db) -> None:
  user = await make_user(db)
  chat = await make_chat(db, user)
  s = await create_board_suggestion(db, user.id, chat.id, _content("Once"), "once")
  sid = s.id
  await db.commit()

  result = await accept_batch([sid, sid], notifier=_ignore)

  assert [x.id for x in result.succeeded] == [sid]
  assert len(result.failed) == 1
  assert "already accepted" in result.failed[0].error
