from __future__ import annotations

import asyncio

import pytest

from boardpilot.realtime import RealtimeHub
from boardpilot.routers.realtime import stream_session_events


@pytest.mark.anyio
async def test_emit_reaches_only_the_sessions_subscribers(anyio_backend) -> None:
  hub = RealtimeHub(queue_size=10)
  mine = hub.subscribe("chat-1")
  theirs = hub.subscribe("chat-2")

  hub.emit("chat-1", "suggestion_status_update", {"suggestionId": "s1", "status": "accepted"})

  assert mine.get_nowait() == {"event": "suggestion_status_update", "payload": {"suggestionId": "s1", "status": "accepted"}}
  assert theirs.empty()


@pytest.mark.anyio
async def test_full_queue_drops_instead_of_raising(anyio_backend) -> None:
  hub = RealtimeHub(queue_size=1)
  q = hub.subscribe("chat-1")

  hub.emit("chat-1", "a", {})
  hub.emit("chat-1", "b", {})

  assert q.qsize() == 1
  assert q.get_nowait()["event"] == "a"


@pytest.mark.anyio
async def test_emit_without_subscribers_and_unsubscribe(anyio_backend) -> None:
  hub = RealtimeHub()
  hub("nobody", "suggestion_modified", {"suggestionId": "s1"})

  q = hub.subscribe("chat-1")
  assert hub.subscriber_count("chat-1") == 1
  hub.unsubscribe("chat-1", q)
  hub.unsubscribe("chat-1", q)
  assert hub.subscriber_count("chat-1") == 0


class FakeSocket:
  def __init__(self) -> None:
    self.sent: list[dict] = []
    self.inbox: asyncio.Queue = asyncio.Queue()

  async def receive(self) -> dict:
    return await self.inbox.get()

  async def send_json(self, data: dict) -> None:
    self.sent.append(data)


async def _settle(check) -> None:
  for _ in range(100):
    if check():
      return
    await asyncio.sleep(0)


@pytest.mark.anyio
async def test_stream_forwards_events_and_unsubscribes_on_disconnect(anyio_backend) -> None:
  hub = RealtimeHub(queue_size=10)
  ws = FakeSocket()
  task = asyncio.ensure_future(stream_session_events(ws, "chat-1", hub))
  await _settle(lambda: hub.subscriber_count("chat-1") == 1)

  hub.emit("chat-1", "suggestion_modified", {"suggestionId": "s1"})
  await _settle(lambda: ws.sent)
  assert ws.sent == [{"event": "suggestion_modified", "payload": {"suggestionId": "s1"}}]

  # no further event is needed for the subscription to go away
  ws.inbox.put_nowait({"type": "websocket.disconnect", "code": 1000})
  await asyncio.wait_for(task, timeout=1)
  assert hub.subscriber_count("chat-1") == 0
