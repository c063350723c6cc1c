from __future__ import annotations

import pytest

from conftest import auth, make_token, make_user

CONTEXT = {
  "name": "Sprint 12",
  "columns": [
    {"id": "llm-col-1", "name": "Todo", "tasks": [{"id": "llm-task-1", "title": "Fix login", "subtasks": [{"title": "Repro"}]}]},
    {"name": "Done"},
  ],
}


async def _login(db, email: str = "owner@example.com") -> dict[str, str]:
  user = await make_user(db, email=email, name=email.split("@")[0])
  token = await make_token(db, user)
  await db.commit()
  return auth(token)


async def _new_chat(client, headers) -> str:
  res = await client.post("/chat/sessions", json={"title": "Planning"}, headers=headers)
  assert res.status_code == 201, res.text
  return res.json()["id"]


@pytest.mark.anyio
async def test_requires_bearer_token(client, db) -> None:
  res = await client.get("/suggestions/user/all")
  assert res.status_code == 401
  res = await client.get("/suggestions/user/all", headers=auth("bp_not-a-token"))
  assert res.status_code == 401


@pytest.mark.anyio
async def test_board_context_create_update_and_read(client, db) -> None:
  headers = await _login(db)
  chat_id = await _new_chat(client, headers)

  res = await client.post("/board-context/create", json={"boardContext": CONTEXT, "chatId": chat_id}, headers=headers)
  assert res.status_code == 201, res.text
  tree = res.json()
  assert tree["name"] == "Sprint 12"
  assert [c["name"] for c in tree["columns"]] == ["Todo", "Done"]
  assert tree["columns"][0]["id"] != "llm-col-1"
  todo_id = tree["columns"][0]["id"]

  update = {"columns": [{"name": "TODO", "tasks": [{"title": "fix login", "description": "urgent"}]}, {"name": "Review"}]}
  res = await client.put(f"/board-context/update/{tree['id']}", json=update, headers=headers)
  assert res.status_code == 200, res.text
  updated = res.json()
  assert [c["name"] for c in updated["columns"]] == ["Todo", "Review"]
  assert updated["columns"][0]["id"] == todo_id
  assert updated["columns"][0]["tasks"][0]["description"] == "urgent"
  assert updated["columns"][0]["tasks"][0]["subtasks"] == []

  res = await client.get(f"/boards/{tree['id']}", headers=headers)
  assert res.status_code == 200
  assert res.json()["columns"] == updated["columns"]

  res = await client.get("/boards", headers=headers)
  assert [b["id"] for b in res.json()] == [tree["id"]]


@pytest.mark.anyio
async def test_board_context_errors(client, db) -> None:
  headers = await _login(db)
  other = await _login(db, email="other@example.com")

  res = await client.post("/board-context/create", json={"boardContext": None}, headers=headers)
  assert res.status_code == 400
  assert res.json()["detail"] == "Board context is undefined or null"

  res = await client.post("/board-context/create", json={"columns": [{"name": ""}]}, headers=headers)
  assert res.status_code == 400

  res = await client.post("/board-context/create", json=CONTEXT, headers=headers)
  board_id = res.json()["id"]
  res = await client.put(f"/board-context/update/{board_id}", json=CONTEXT, headers=other)
  assert res.status_code == 404
  res = await client.get(f"/boards/{board_id}", headers=other)
  assert res.status_code == 404


@pytest.mark.anyio
async def test_suggestion_http_lifecycle(client, db) -> None:
  headers = await _login(db)
  chat_id = await _new_chat(client, headers)
  body = {
    "sessionId": chat_id,
    "type": "board",
    "content": {"boardName": "Roadmap", "columns": [{"name": "Now", "tasks": [{"title": "Hire"}]}]},
    "originalMessage": "make me a roadmap",
  }

  res = await client.post("/suggestions", json=body, headers=headers)
  assert res.status_code == 201, res.text
  sid = res.json()["id"]
  assert res.json()["status"] == "pending"

  res = await client.get(f"/suggestions/session/{chat_id}", params={"pending": "true"}, headers=headers)
  assert [s["id"] for s in res.json()] == [sid]

  res = await client.put(f"/suggestions/{sid}", json={"content": {"boardName": "Roadmap 2027"}, "message": "rename"}, headers=headers)
  assert res.status_code == 200, res.text
  assert res.json()["status"] == "modified"

  res = await client.post(f"/suggestions/{sid}/accept", json={"message": "go"}, headers=headers)
  assert res.status_code == 200, res.text
  accepted = res.json()
  assert accepted["status"] == "accepted"
  board = await client.get(f"/boards/{accepted['metadata']['boardId']}", headers=headers)
  assert board.json()["name"] == "Roadmap 2027"

  res = await client.post(f"/suggestions/{sid}/reject", headers=headers)
  assert res.status_code == 409

  res = await client.get(f"/chat/sessions/{chat_id}/messages", headers=headers)
  assert [m["role"] for m in res.json()] == ["user", "system", "user", "system"]

  res = await client.get("/suggestions/user/all", headers=headers)
  assert [s["id"] for s in res.json()] == [sid]


@pytest.mark.anyio
async def test_suggestion_validation_and_scoping(client, db) -> None:
  headers = await _login(db)
  other = await _login(db, email="other@example.com")
  chat_id = await _new_chat(client, headers)

  res = await client.post(
    "/suggestions",
    json={"sessionId": chat_id, "type": "task-breakdown", "content": {"subtasks": []}, "originalMessage": "x"},
    headers=headers,
  )
  assert res.status_code == 422

  res = await client.post(
    "/suggestions",
    json={"sessionId": chat_id, "type": "task-improvement", "content": {"title": "Tighter"}, "originalMessage": "x"},
    headers=headers,
  )
  sid = res.json()["id"]
  assert (await client.get(f"/suggestions/{sid}", headers=other)).status_code == 404
  assert (await client.post(f"/suggestions/{sid}/accept", headers=other)).status_code == 404
  assert (await client.post(f"/suggestions/{sid}/reject", headers=headers)).json()["status"] == "rejected"


@pytest.mark.anyio
async def test_accept_batch_endpoint(client, db) -> None:
  headers = await _login(db)
  chat_id = await _new_chat(client, headers)
  res = await client.post(
    "/suggestions",
    json={"sessionId": chat_id, "type": "board", "content": {"boardName": "Batch"}, "originalMessage": "x"},
    headers=headers,
  )
  sid = res.json()["id"]

  res = await client.post("/suggestions/accept-batch", json={"suggestionIds": [sid, "missing"]}, headers=headers)
  assert res.status_code == 200, res.text
  out = res.json()
  assert [s["id"] for s in out["succeeded"]] == [sid]
  assert out["failed"] == [{"id": "missing", "error": "Suggestion not found"}]

  res = await client.post("/suggestions/accept-batch", json={"suggestionIds": []}, headers=headers)
  assert res.status_code == 422


@pytest.mark.anyio
async def test_chat_board_context_scratchpad(client, db) -> None:
  headers = await _login(db)
  chat_id = await _new_chat(client, headers)
  url = f"/chat/sessions/{chat_id}/board-context"

  assert (await client.get(url, headers=headers)).json() == {"name": "", "description": "", "columns": []}

  res = await client.put(url, json={"name": "Draft", "columns": [{"id": "x", "name": "Ideas"}]}, headers=headers)
  assert res.status_code == 200, res.text
  stored = (await client.get(url, headers=headers)).json()
  assert stored["name"] == "Draft"
  assert [c["name"] for c in stored["columns"]] == ["Ideas"]

  res = await client.delete(url, headers=headers)
  assert res.json() == {"name": "", "description": "", "columns": []}


@pytest.mark.anyio
async def test_health_version_and_metrics(client, db) -> None:
  assert (await client.get("/health")).json() == {"ok": True}
  assert "version" in (await client.get("/version")).json()
  snap = (await client.get("/metrics")).json()
  assert snap["requestCount24h"] >= 2
  assert "suggestionTransitions" in snap
