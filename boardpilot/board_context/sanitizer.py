from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from boardpilot.errors import InvalidContextError
from boardpilot.schemas import BoardContext


def _is_identifier_key(key: str) -> bool:
  return key in ("id", "_id") or key.endswith("Id") or key.endswith("_id")


def _strip_identifiers(node: Any) -> Any:
  if isinstance(node, Mapping):
    return {k: _strip_identifiers(v) for k, v in node.items() if not _is_identifier_key(str(k))}
  if isinstance(node, list):
    return [_strip_identifiers(v) for v in node]
  return node


def describe_validation_error(exc: ValidationError) -> str:
  err = exc.errors()[0]
  loc = ".".join(str(p) for p in err.get("loc", ())) or "context"
  return f"{loc}: {err.get('msg', 'invalid value')}"


def sanitize(context: Any) -> BoardContext:
  """Drop producer-supplied identifiers and validate the board context shape.

  Ids inside a board context come from the content producer (usually an LLM) and are
  never real storage keys, so they are removed at every level before matching.
  The input is left untouched.
  """
  if context is None:
    raise InvalidContextError("Board context is undefined or null")
  if isinstance(context, BaseModel):
    context = context.model_dump()
  if not isinstance(context, Mapping):
    raise InvalidContextError("Board context must be an object")
  cleaned = _strip_identifiers(context)
  try:
    return BoardContext.model_validate(cleaned)
  except ValidationError as exc:
    raise InvalidContextError(f"Invalid board context ({describe_validation_error(exc)})") from exc
