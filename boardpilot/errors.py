from __future__ import annotations


class BoardpilotError(Exception):
  status_code = 500

  def __init__(self, message: str) -> None:
    super().__init__(message)
    self.message = message


class InvalidContextError(BoardpilotError):
  """Board context is missing or malformed; raised before any mutation."""

  status_code = 400


class InvalidSuggestionContentError(BoardpilotError):
  status_code = 422


class NotFoundError(BoardpilotError):
  status_code = 404


class InvalidTransitionError(BoardpilotError):
  status_code = 409


class MaterializationError(BoardpilotError):
  """Applying an accepted suggestion to the board graph failed."""

  status_code = 500
