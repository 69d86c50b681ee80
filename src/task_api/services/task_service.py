import logging
from datetime import datetime
from typing import Callable, Optional

from task_api.domain.errors import ForbiddenError, NotFoundError
from task_api.domain.task_models import (
    Task,
    TaskCreate,
    TaskPriority,
    TaskStatus,
    TaskUpdate,
    apply_update,
    new_task_id,
    utc_now,
)
from task_api.domain.task_query import Pagination, SortOptions, TaskFilters, TaskPage
from task_api.domain.user_models import UserRole
from task_api.infra.db.task_repo_memory import InMemoryTaskRepo

logger = logging.getLogger("task_api.tasks")

# Fields a USER may not touch once a task is DONE.
LOCKED_WHEN_DONE = frozenset({"status", "title", "description", "due_date"})

DONE_LOCKED_MESSAGE = (
    "Normal users cannot edit DONE tasks. Only priority can be updated. "
    "Contact an admin for other changes."
)


class TaskService:
    def __init__(self, repo: InMemoryTaskRepo, clock: Callable[[], datetime] = utc_now):
        self.repo = repo
        self.clock = clock

    async def create_task(self, data: TaskCreate) -> Task:
        task_id = new_task_id()
        while await self.repo.exists(task_id):
            task_id = new_task_id()

        now = self.clock()
        task = Task(
            id=task_id,
            title=data.title.strip(),
            description=data.description.strip(),
            status=data.status or TaskStatus.todo,
            priority=data.priority or TaskPriority.medium,
            due_date=data.due_date,
            created_at=now,
            updated_at=now,
        )
        logger.info(
            "task.create",
            extra={"category": "tasks", "event": "task.create", "task_id": task.id, "title": task.title},
        )
        return await self.repo.create(task)

    async def get_task(self, task_id: str) -> Task:
        task = await self.repo.find_by_id(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    async def get_all_tasks(
        self,
        filters: Optional[TaskFilters] = None,
        pagination: Optional[Pagination] = None,
        sort: Optional[SortOptions] = None,
    ) -> TaskPage:
        return await self.repo.find_all(filters, pagination, sort)

    async def update_task(
        self,
        task_id: str,
        patch: TaskUpdate,
        role: Optional[UserRole] = None,
        caller_id: Optional[str] = None,
    ) -> Task:
        """
        PUT. Fields left out of `patch` keep their stored value; nothing is
        cleared unless explicitly sent. Same behaviour as `patch_task`.
        """
        return await self._merge(task_id, patch, role, caller_id, event="task.update")

    async def patch_task(
        self,
        task_id: str,
        patch: TaskUpdate,
        role: Optional[UserRole] = None,
        caller_id: Optional[str] = None,
    ) -> Task:
        return await self._merge(task_id, patch, role, caller_id, event="task.patch")

    async def _merge(
        self,
        task_id: str,
        patch: TaskUpdate,
        role: Optional[UserRole],
        caller_id: Optional[str],
        event: str,
    ) -> Task:
        async with self.repo.exclusive():
            existing = await self.get_task(task_id)
            self._authorize(existing, patch, role, caller_id)

            updated = apply_update(existing, patch, self.clock())
            result = await self.repo.update(task_id, updated)
            if result is None:
                raise NotFoundError("Task", task_id)

        logger.info(
            event,
            extra={
                "category": "tasks",
                "event": event,
                "task_id": task_id,
                "fields": sorted(patch.model_fields_set),
                "role": role.value if role else None,
                "caller_id": caller_id,
            },
        )
        return result

    def _authorize(
        self,
        task: Task,
        patch: TaskUpdate,
        role: Optional[UserRole],
        caller_id: Optional[str] = None,
    ) -> None:
        # Only an explicit USER is restricted; ADMIN and no role pass.
        if task.status != TaskStatus.done or role != UserRole.user:
            return
        blocked = LOCKED_WHEN_DONE & patch.model_fields_set
        if blocked:
            logger.warning(
                "task.forbidden",
                extra={
                    "category": "tasks",
                    "event": "task.forbidden",
                    "task_id": task.id,
                    "fields": sorted(blocked),
                    "caller_id": caller_id,
                },
            )
            raise ForbiddenError(DONE_LOCKED_MESSAGE)

    async def delete_task(self, task_id: str) -> Task:
        task = await self.repo.delete(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        logger.info("task.delete", extra={"category": "tasks", "event": "task.delete", "task_id": task_id})
        return task

    async def delete_all_tasks(self) -> int:
        count = await self.repo.delete_all()
        logger.info("task.delete_all", extra={"category": "tasks", "event": "task.delete_all", "count": count})
        return count

    async def task_exists(self, task_id: str) -> bool:
        return await self.repo.exists(task_id)

    async def get_task_count(self, filters: Optional[TaskFilters] = None) -> int:
        return await self.repo.count(filters)
