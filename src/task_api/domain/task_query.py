from __future__ import annotations
from enum import Enum
from typing import List, Optional

from pydantic import Field

from task_api.domain.task_models import ApiModel, Task, TaskPriority, TaskStatus


class SortField(str, Enum):
    created_at = "createdAt"
    due_date = "dueDate"
    priority = "priority"
    title = "title"


class SortOrder(str, Enum):
    asc = "asc"
    desc = "desc"


class TaskFilters(ApiModel):
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    # HIGH priority tasks due within the next 7 days
    high_priority_due_soon: bool = False


class Pagination(ApiModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)


class SortOptions(ApiModel):
    sort_by: SortField
    sort_order: SortOrder = SortOrder.asc


class PageInfo(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int


class TaskPage(ApiModel):
    data: List[Task]
    pagination: PageInfo
