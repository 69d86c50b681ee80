from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from enum import Enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import re
import uuid

TITLE_PATTERN = r"^[a-zA-Z0-9\s_.,!?()-]+$"

_SCRIPT_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]*>")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def sanitize_text(value: Any) -> Any:
    """Drop script blocks and HTML tags, then trim. Non-strings pass through."""
    if not isinstance(value, str):
        return value
    value = _SCRIPT_RE.sub("", value)
    value = _TAG_RE.sub("", value)
    return value.strip()


class ApiModel(BaseModel):
    # snake_case in python, camelCase on the wire
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskStatus(str, Enum):
    todo = "TODO"
    in_progress = "IN_PROGRESS"
    done = "DONE"


class TaskPriority(str, Enum):
    low = "LOW"
    medium = "MEDIUM"
    high = "HIGH"


class TaskCreate(ApiModel):
    title: str = Field(min_length=3, max_length=200, pattern=TITLE_PATTERN)
    description: str = Field(min_length=10, max_length=1000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)

    @field_validator("due_date")
    @classmethod
    def _due_in_future(cls, v: Optional[datetime]) -> Optional[datetime]:
        v = ensure_utc(v)
        if v is not None and v <= utc_now():
            raise ValueError("Due date must be in the future")
        return v


class TaskUpdate(ApiModel):
    """
    Partial change set. Only fields the caller actually sent are in
    `model_fields_set`; `due_date=None` sent explicitly clears the deadline.
    """
    title: Optional[str] = Field(default=None, min_length=3, max_length=200, pattern=TITLE_PATTERN)
    description: Optional[str] = Field(default=None, min_length=10, max_length=1000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def _sanitize(cls, v):
        return sanitize_text(v)

    @field_validator("due_date")
    @classmethod
    def _due_in_future(cls, v: Optional[datetime]) -> Optional[datetime]:
        v = ensure_utc(v)
        if v is not None and v <= utc_now():
            raise ValueError("Due date must be in the future")
        return v

    @model_validator(mode="after")
    def _check_fields(self) -> "TaskUpdate":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided for update")
        for name in ("title", "description", "status", "priority"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} must not be null")
        return self

    def changes(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


class Task(ApiModel):
    id: str
    title: str
    description: str
    status: TaskStatus = TaskStatus.todo
    priority: TaskPriority = TaskPriority.medium
    due_date: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @field_validator("due_date", "created_at", "updated_at")
    @classmethod
    def _as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


def new_task_id() -> str:
    return str(uuid.uuid4())


def apply_update(task: Task, patch: TaskUpdate, now: datetime) -> Task:
    """Merge the fields present in `patch` into a copy of `task`."""
    changes = patch.changes()
    for key in ("title", "description"):
        if key in changes:
            changes[key] = changes[key].strip()
    if "due_date" in changes:
        changes["due_date"] = ensure_utc(changes["due_date"])
    changes["updated_at"] = max(now, task.created_at)
    return task.model_copy(update=changes)
