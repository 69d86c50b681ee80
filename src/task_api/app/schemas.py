from __future__ import annotations
from typing import List, Optional

from pydantic import BaseModel

from task_api.domain.task_models import Task
from task_api.domain.task_query import PageInfo


class TaskEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    data: Task


class TaskListEnvelope(BaseModel):
    success: bool = True
    data: List[Task]
    pagination: PageInfo


class CountEnvelope(BaseModel):
    success: bool = True
    message: str
    count: int


class ErrorEnvelope(BaseModel):
    success: bool = False
    error: str
    errors: Optional[List[str]] = None
