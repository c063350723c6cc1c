from __future__ import annotations

import asyncio
from typing import Any

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from fastapi.encoders import jsonable_encoder

from boardpilot.chat.service import get_session
from boardpilot.db import SessionLocal
from boardpilot.deps import user_for_token
from boardpilot.errors import NotFoundError
from boardpilot.realtime import RealtimeHub, hub

router = APIRouter(tags=["realtime"])


async def _until_disconnect(websocket: Any) -> None:
  # Client frames carry nothing we act on; only the disconnect matters.
  while True:
    message = await websocket.receive()
    if message.get("type") == "websocket.disconnect":
      return


async def stream_session_events(websocket: Any, session_id: str, events: RealtimeHub = hub) -> None:
  """Forward a chat's hub events to an accepted websocket until the client goes away."""
  q = events.subscribe(session_id)
  closed = asyncio.ensure_future(_until_disconnect(websocket))
  try:
    while True:
      nxt = asyncio.ensure_future(q.get())
      done, _ = await asyncio.wait({nxt, closed}, return_when=asyncio.FIRST_COMPLETED)
      if closed in done:
        nxt.cancel()
        return
      await websocket.send_json(jsonable_encoder(nxt.result()))
  except WebSocketDisconnect:
    pass
  finally:
    closed.cancel()
    events.unsubscribe(session_id, q)


@router.websocket("/ws/chat/{session_id}")
async def chat_events(websocket: WebSocket, session_id: str, token: str = Query(default="")) -> None:
  # Browsers can't set headers on websocket upgrades, so the API token rides in the query.
  async with SessionLocal() as db:
    try:
      user = await user_for_token(db, token)
      await get_session(db, session_id, user_id=user.id)
    except (HTTPException, NotFoundError):
      await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
      return

  await websocket.accept()
  await stream_session_events(websocket, session_id)
