from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ValidationError

from boardpilot.board_context.sanitizer import describe_validation_error
from boardpilot.errors import InvalidSuggestionContentError
from boardpilot.models import new_id
from boardpilot.schemas import BoardSuggestion, TaskBreakdownSuggestion, TaskImprovementSuggestion

CONTENT_MODELS: dict[str, type[BaseModel]] = {
  "board": BoardSuggestion,
  "task-breakdown": TaskBreakdownSuggestion,
  "task-improvement": TaskImprovementSuggestion,
}


def parse_content(suggestion_type: str, content: Any) -> BaseModel:
  model = CONTENT_MODELS.get(suggestion_type)
  if model is None:
    raise InvalidSuggestionContentError(f"Unknown suggestion type: {suggestion_type}")
  if not isinstance(content, Mapping):
    raise InvalidSuggestionContentError("Suggestion content must be an object")
  try:
    return model.model_validate(dict(content))
  except ValidationError as exc:
    raise InvalidSuggestionContentError(
      f"Invalid {suggestion_type} suggestion content ({describe_validation_error(exc)})"
    ) from exc


def assign_content_ids(content: BaseModel) -> BaseModel:
  """Give suggested tasks (board) and subtasks (breakdown) a stable id when missing.

  These ids only address items inside the suggestion document, e.g. for
  ``find_suggestion_by_task_id``; they never become storage keys.
  """
  if isinstance(content, BoardSuggestion):
    for column in content.columns:
      for task in column.tasks:
        if not task.id:
          task.id = new_id()
  elif isinstance(content, TaskBreakdownSuggestion):
    for subtask in content.subtasks:
      if not subtask.id:
        subtask.id = new_id()
  return content


def dump_content(content: BaseModel) -> dict[str, Any]:
  return content.model_dump(exclude_none=True)


def merge_content(suggestion_type: str, current: Mapping[str, Any], update: Mapping[str, Any]) -> BaseModel:
  # Shallow: top-level keys of the update replace the stored ones wholesale.
  merged = {**dict(current), **dict(update)}
  return assign_content_ids(parse_content(suggestion_type, merged))


def board_context_from_suggestion(content: BoardSuggestion) -> dict[str, Any]:
  return {
    "name": content.boardName,
    "columns": [
      {
        "name": column.name,
        "position": column.position,
        "tasks": [
          {
            "title": task.title,
            "description": task.description,
            "position": task.position,
            "subtasks": [{"title": s.title, "description": s.description} for s in task.subtasks],
          }
          for task in column.tasks
        ],
      }
      for column in content.columns
    ],
  }
