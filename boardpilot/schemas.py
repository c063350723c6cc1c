from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

SuggestionType = Literal["board", "task-breakdown", "task-improvement"]
SuggestionStatus = Literal["pending", "accepted", "rejected", "modified"]
TaskStatus = Literal["Todo", "Doing", "Done"]
MessageRole = Literal["user", "assistant", "system"]


def _none_to_list(v: object) -> object:
  return [] if v is None else v


# Board context: loosely-typed input describing a desired board layout.


class SubtaskContext(BaseModel):
  model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

  title: str = Field(min_length=1)
  description: str | None = None


class TaskContext(BaseModel):
  model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

  title: str = Field(min_length=1)
  description: str | None = None
  position: int | None = None
  subtasks: list[SubtaskContext] = []

  @field_validator("subtasks", mode="before")
  @classmethod
  def _subtasks_default(cls, v: object) -> object:
    return _none_to_list(v)


class ColumnContext(BaseModel):
  model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

  name: str = Field(min_length=1)
  position: int | None = None
  tasks: list[TaskContext] = []

  @field_validator("tasks", mode="before")
  @classmethod
  def _tasks_default(cls, v: object) -> object:
    return _none_to_list(v)


class BoardContext(BaseModel):
  model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

  name: str | None = None
  description: str | None = None
  columns: list[ColumnContext] = []

  @field_validator("columns", mode="before")
  @classmethod
  def _columns_default(cls, v: object) -> object:
    return _none_to_list(v)


# Populated board tree.


class SubtaskOut(BaseModel):
  id: str
  taskId: str
  title: str
  description: str
  completed: bool
  order: int


class TaskOut(BaseModel):
  id: str
  columnId: str
  title: str
  description: str
  status: TaskStatus
  position: int
  order: int
  subtasks: list[SubtaskOut] = []


class ColumnOut(BaseModel):
  id: str
  boardId: str
  name: str
  position: int
  order: int
  tasks: list[TaskOut] = []


class BoardTreeOut(BaseModel):
  id: str
  name: str
  ownerId: str
  createdAt: datetime
  updatedAt: datetime
  columns: list[ColumnOut] = []


class BoardOut(BaseModel):
  id: str
  name: str
  ownerId: str
  createdAt: datetime
  updatedAt: datetime


# Suggestion content variants. Which one applies is decided by Suggestion.type.


class SuggestedSubtask(BaseModel):
  model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

  id: str | None = None
  title: str = Field(min_length=1)
  description: str = ""
  completed: bool = False


class SuggestedTask(BaseModel):
  model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

  id: str | None = None
  title: str = Field(min_length=1)
  description: str = ""
  position: int | None = None
  subtasks: list[SuggestedSubtask] = []


class SuggestedColumn(BaseModel):
  model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

  name: str = Field(min_length=1)
  position: int | None = None
  tasks: list[SuggestedTask] = []


class BoardSuggestion(BaseModel):
  model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

  boardName: str = Field(min_length=1)
  columns: list[SuggestedColumn] = []


class TaskBreakdownSuggestion(BaseModel):
  model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

  taskTitle: str = Field(min_length=1)
  taskDescription: str = ""
  subtasks: list[SuggestedSubtask] = []


class TaskImprovementSuggestion(BaseModel):
  model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

  title: str = Field(min_length=1)
  description: str = ""


class SuggestionCreateIn(BaseModel):
  sessionId: str
  type: SuggestionType
  content: dict[str, Any]
  originalMessage: str = Field(min_length=1)
  metadata: dict[str, Any] | None = None
  relatedSuggestionId: str | None = None


class SuggestionOut(BaseModel):
  id: str
  userId: str
  sessionId: str
  type: SuggestionType
  status: SuggestionStatus
  content: dict[str, Any]
  originalMessage: str
  metadata: dict[str, Any] = {}
  relatedSuggestionId: str | None = None
  createdAt: datetime
  updatedAt: datetime


class SuggestionActionIn(BaseModel):
  message: str | None = None


class SuggestionModifyIn(BaseModel):
  content: dict[str, Any]
  message: str | None = None


class BatchAcceptIn(BaseModel):
  suggestionIds: list[str] = Field(min_length=1, max_length=200)
  message: str | None = None


class BatchFailureOut(BaseModel):
  id: str
  error: str


class BatchAcceptOut(BaseModel):
  succeeded: list[SuggestionOut] = []
  failed: list[BatchFailureOut] = []


# Chat collaborator.


class ChatSessionCreateIn(BaseModel):
  title: str = Field(default="New Conversation", min_length=1, max_length=200)


class ChatSessionOut(BaseModel):
  id: str
  userId: str
  title: str
  status: Literal["active", "archived"]
  boardId: str | None = None
  lastActive: datetime


class ChatMessageOut(BaseModel):
  id: str
  sessionId: str
  role: MessageRole
  content: str
  createdAt: datetime
