from __future__ import annotations
import asyncio
import math
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import AsyncIterator, Callable, Dict, List, Optional

from task_api.domain.task_models import Task, TaskPriority, utc_now
from task_api.domain.task_query import (
    PageInfo,
    Pagination,
    SortField,
    SortOptions,
    SortOrder,
    TaskFilters,
    TaskPage,
)

DUE_SOON_WINDOW = timedelta(days=7)
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

PRIORITY_RANK = {
    TaskPriority.high: 3,
    TaskPriority.medium: 2,
    TaskPriority.low: 1,
}

_SORT_KEYS: Dict[SortField, Callable[[Task], object]] = {
    SortField.created_at: lambda t: t.created_at,
    SortField.due_date: lambda t: t.due_date or EPOCH,
    SortField.priority: lambda t: PRIORITY_RANK.get(t.priority, 0),
    SortField.title: lambda t: (t.title or "").lower(),
}


def _matches(task: Task, filters: TaskFilters) -> bool:
    if filters.status and task.status != filters.status:
        return False
    if filters.priority and task.priority != filters.priority:
        return False
    return True


class InMemoryTaskRepo:
    """
    Process-local task store. Insertion order is the natural order of
    listings; nothing survives a restart.

    Individual methods never suspend while touching the collection, so on a
    single event loop each one is atomic. Callers that read and then write
    must hold `exclusive()` across both steps.
    """
    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self._tasks: Dict[str, Task] = {}
        self._clock = clock
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[None]:
        async with self._lock:
            yield

    async def find_all(
        self,
        filters: Optional[TaskFilters] = None,
        pagination: Optional[Pagination] = None,
        sort: Optional[SortOptions] = None,
    ) -> TaskPage:
        tasks: List[Task] = list(self._tasks.values())

        if filters:
            tasks = [t for t in tasks if _matches(t, filters)]

            if filters.high_priority_due_soon:
                now = self._clock()
                horizon = now + DUE_SOON_WINDOW
                tasks = [
                    t for t in tasks
                    if t.priority == TaskPriority.high
                    and t.due_date is not None
                    and now <= t.due_date <= horizon
                ]

        if sort:
            # sorted() is stable in both directions
            tasks = sorted(
                tasks,
                key=_SORT_KEYS[sort.sort_by],
                reverse=sort.sort_order == SortOrder.desc,
            )

        total = len(tasks)

        if pagination:
            start = (pagination.page - 1) * pagination.limit
            return TaskPage(
                data=tasks[start:start + pagination.limit],
                pagination=PageInfo(
                    page=pagination.page,
                    limit=pagination.limit,
                    total=total,
                    total_pages=_total_pages(total, pagination.limit),
                ),
            )

        return TaskPage(
            data=tasks,
            pagination=PageInfo(
                page=1,
                limit=total,
                total=total,
                total_pages=_total_pages(total, total),
            ),
        )

    async def find_by_id(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    async def create(self, task: Task) -> Task:
        self._tasks[task.id] = task
        return task

    async def update(self, task_id: str, task: Task) -> Optional[Task]:
        if task_id not in self._tasks:
            return None
        # re-assigning an existing key keeps its position
        self._tasks[task_id] = task
        return task

    async def delete(self, task_id: str) -> Optional[Task]:
        return self._tasks.pop(task_id, None)

    async def delete_all(self) -> int:
        count = len(self._tasks)
        self._tasks.clear()
        return count

    async def exists(self, task_id: str) -> bool:
        return task_id in self._tasks

    async def count(self, filters: Optional[TaskFilters] = None) -> int:
        if not filters:
            return len(self._tasks)
        return sum(1 for t in self._tasks.values() if _matches(t, filters))


def _total_pages(total: int, limit: int) -> int:
    if limit <= 0:
        return 0
    return math.ceil(total / limit)
