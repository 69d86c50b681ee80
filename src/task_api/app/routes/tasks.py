from __future__ import annotations
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request

from task_api.app.middleware.auth import require_caller
from task_api.app.middleware.rate_limit import rate_limit
from task_api.app.schemas import CountEnvelope, ErrorEnvelope, TaskEnvelope, TaskListEnvelope
from task_api.domain.task_models import TaskCreate, TaskPriority, TaskStatus, TaskUpdate
from task_api.domain.task_query import Pagination, SortField, SortOptions, SortOrder, TaskFilters
from task_api.domain.user_models import Caller
from task_api.services.task_service import TaskService

router = APIRouter(
    prefix="/tasks",
    tags=["tasks"],
    dependencies=[Depends(rate_limit("api"))],
    responses={
        400: {"model": ErrorEnvelope},
        429: {"model": ErrorEnvelope},
    },
)

mutation_limit = Depends(rate_limit("mutation"))


def get_service(request: Request) -> TaskService:
    return request.app.state.task_service


@router.get("", response_model=TaskListEnvelope, response_model_exclude_none=True)
async def list_tasks(
    status: Optional[TaskStatus] = None,
    priority: Optional[TaskPriority] = None,
    high_priority_due_soon: Optional[bool] = Query(default=None, alias="highPriorityDueSoon"),
    sort_by: Optional[SortField] = Query(default=None, alias="sortBy"),
    sort_order: SortOrder = Query(default=SortOrder.asc, alias="sortOrder"),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    svc: TaskService = Depends(get_service),
):
    filters = TaskFilters(
        status=status,
        priority=priority,
        high_priority_due_soon=bool(high_priority_due_soon),
    )
    sort = SortOptions(sort_by=sort_by, sort_order=sort_order) if sort_by else None
    result = await svc.get_all_tasks(filters, Pagination(page=page, limit=limit), sort)
    return TaskListEnvelope(data=result.data, pagination=result.pagination)


@router.get("/{task_id}", response_model=TaskEnvelope, response_model_exclude_none=True,
            responses={404: {"model": ErrorEnvelope}})
async def get_task(task_id: UUID, svc: TaskService = Depends(get_service)):
    task = await svc.get_task(str(task_id))
    return TaskEnvelope(data=task)


@router.post("", status_code=201, response_model=TaskEnvelope, response_model_exclude_none=True,
             dependencies=[mutation_limit])
async def create_task(payload: TaskCreate, svc: TaskService = Depends(get_service)):
    task = await svc.create_task(payload)
    return TaskEnvelope(message="Task created successfully", data=task)


@router.put("/{task_id}", response_model=TaskEnvelope, response_model_exclude_none=True,
            dependencies=[mutation_limit],
            responses={401: {"model": ErrorEnvelope}, 403: {"model": ErrorEnvelope}, 404: {"model": ErrorEnvelope}})
async def update_task(
    task_id: UUID,
    payload: TaskUpdate,
    caller: Caller = Depends(require_caller),
    svc: TaskService = Depends(get_service),
):
    # Merges like PATCH: omitted fields are kept, not cleared.
    task = await svc.update_task(str(task_id), payload, caller.role, caller.id)
    return TaskEnvelope(message="Task updated successfully", data=task)


@router.patch("/{task_id}", response_model=TaskEnvelope, response_model_exclude_none=True,
              dependencies=[mutation_limit],
              responses={401: {"model": ErrorEnvelope}, 403: {"model": ErrorEnvelope}, 404: {"model": ErrorEnvelope}})
async def patch_task(
    task_id: UUID,
    payload: TaskUpdate,
    caller: Caller = Depends(require_caller),
    svc: TaskService = Depends(get_service),
):
    task = await svc.patch_task(str(task_id), payload, caller.role, caller.id)
    return TaskEnvelope(message="Task partially updated successfully", data=task)


@router.delete("/{task_id}", response_model=TaskEnvelope, response_model_exclude_none=True,
               dependencies=[mutation_limit, Depends(require_caller)],
               responses={401: {"model": ErrorEnvelope}, 404: {"model": ErrorEnvelope}})
async def delete_task(task_id: UUID, svc: TaskService = Depends(get_service)):
    task = await svc.delete_task(str(task_id))
    return TaskEnvelope(message="Task deleted successfully", data=task)


@router.delete("", response_model=CountEnvelope,
               dependencies=[Depends(rate_limit("critical")), Depends(require_caller)],
               responses={401: {"model": ErrorEnvelope}})
async def delete_all_tasks(svc: TaskService = Depends(get_service)):
    count = await svc.delete_all_tasks()
    return CountEnvelope(message=f"Deleted {count} task(s)", count=count)
