from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from boardpilot.config import settings

logger = logging.getLogger(__name__)


class Notifier(Protocol):
  def __call__(self, session_id: str, event: str, payload: dict[str, Any]) -> None: ...


class RealtimeHub:
  """Fan-out of chat-session events to connected websocket subscribers.

  ``emit`` enqueues without awaiting delivery and never raises.
  """

  def __init__(self, queue_size: int | None = None) -> None:
    self._queue_size = queue_size if queue_size is not None else settings.realtime_queue_size
    self._subscribers: dict[str, set[asyncio.Queue]] = {}

  def subscribe(self, session_id: str) -> asyncio.Queue:
    q: asyncio.Queue = asyncio.Queue(maxsize=max(1, self._queue_size))
    self._subscribers.setdefault(session_id, set()).add(q)
    return q

  def unsubscribe(self, session_id: str, q: asyncio.Queue) -> None:
    subs = self._subscribers.get(session_id)
    if not subs:
      return
    subs.discard(q)
    if not subs:
      self._subscribers.pop(session_id, None)

  def subscriber_count(self, session_id: str) -> int:
    return len(self._subscribers.get(session_id, ()))

  def emit(self, session_id: str, event: str, payload: dict[str, Any]) -> None:
    try:
      message = {"event": event, "payload": payload}
      for q in list(self._subscribers.get(session_id, ())):
        try:
          q.put_nowait(message)
        except asyncio.QueueFull:
          logger.warning("dropping %s for chat %s: subscriber queue full", event, session_id)
    except Exception:
      logger.warning("realtime emit of %s for chat %s failed", event, session_id, exc_info=True)

  __call__ = emit


hub = RealtimeHub()
