from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession

from boardpilot.config import settings
from boardpilot.db import SessionLocal
from boardpilot.metrics import runtime_metrics
from boardpilot.models import Suggestion
from boardpilot.realtime import Notifier
from boardpilot.suggestions.lifecycle import accept_suggestion, narrate

logger = logging.getLogger(__name__)


@dataclass
class BatchFailure:
  id: str
  error: str


@dataclass
class BatchResult:
  succeeded: list[Suggestion] = field(default_factory=list)
  failed: list[BatchFailure] = field(default_factory=list)


async def accept_batch(
  suggestion_ids: Sequence[str],
  *,
  message: str | None = None,
  user_id: str | None = None,
  notifier: Notifier | None = None,
  session_factory: Callable[[], AsyncSession] | None = None,
  concurrency: int | None = None,
) -> BatchResult:
  """Accept each suggestion independently; one failure never aborts the others.

  Every id gets its own session and transaction. Results keep the input order.
  The optional message is written once per chat that had at least one success.
  """
  factory = session_factory or SessionLocal
  limit = asyncio.Semaphore(max(1, concurrency or settings.batch_concurrency))

  async def _accept_one(suggestion_id: str) -> Suggestion | BatchFailure:
    async with limit:
      async with factory() as db:
        try:
          return await accept_suggestion(db, suggestion_id, user_id=user_id, notifier=notifier)
        except Exception as exc:
          logger.warning("batch accept: suggestion %s failed: %s", suggestion_id, exc)
          runtime_metrics.observe_transition("batch", "failed")
          return BatchFailure(id=suggestion_id, error=str(exc) or exc.__class__.__name__)

  outcomes = await asyncio.gather(*(_accept_one(sid) for sid in suggestion_ids))
  result = BatchResult()
  for outcome in outcomes:
    if isinstance(outcome, BatchFailure):
      result.failed.append(outcome)
    else:
      result.succeeded.append(outcome)

  if message and result.succeeded:
    await _narrate_sessions(factory, [s.session_id for s in result.succeeded], message)
  logger.info("batch accept: %d succeeded, %d failed", len(result.succeeded), len(result.failed))
  return result


async def _narrate_sessions(factory: Callable[[], AsyncSession], session_ids: list[str], message: str) -> None:
  async with factory() as db:
    try:
      for session_id in dict.fromkeys(session_ids):
        await narrate(db, session_id, message, "accepted")
      await db.commit()
    except Exception:
      await db.rollback()
      logger.warning("batch accept: could not record chat messages", exc_info=True)
