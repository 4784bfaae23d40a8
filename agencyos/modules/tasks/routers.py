# agencyos/modules/tasks/routers.py
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from agencyos.core.repository import utcnow
from agencyos.core.security import CurrentUser
from agencyos.models.api_common import UtcDatetime
from .models import TASK_STATUSES, TaskAPI, TaskCreateAPI, TaskUpdateAPI
from .services import TaskService, get_task_service

tasks_router = APIRouter()


@tasks_router.get("/", response_model=List[TaskAPI])
async def list_tasks(
    current_user: CurrentUser,
    project_id: Optional[str] = None,
    assignee_id: Optional[str] = None,
    status_filter: Optional[TASK_STATUSES] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(200, ge=1, le=1000),
    service: TaskService = Depends(get_task_service),
):
    tasks = await service.list(current_user.organization_id, project_id, assignee_id, status_filter, skip, limit)
    return [TaskAPI.model_validate(t) for t in tasks]


@tasks_router.get("/due", response_model=List[TaskAPI], summary="Open tasks with a deadline in the given window")
async def list_due_tasks(
    current_user: CurrentUser,
    start: Optional[UtcDatetime] = None,
    end: Optional[UtcDatetime] = None,
    service: TaskService = Depends(get_task_service),
):
    window_start: datetime = start or utcnow()
    window_end: datetime = end or window_start + timedelta(hours=24)
    tasks = await service.list_due_between(current_user.organization_id, window_start, window_end)
    return [TaskAPI.model_validate(t) for t in tasks]


@tasks_router.get("/{task_id}", response_model=TaskAPI)
async def get_task(task_id: str, current_user: CurrentUser, service: TaskService = Depends(get_task_service)):
    return TaskAPI.model_validate(await service.get(current_user.organization_id, task_id))


@tasks_router.post("/", response_model=TaskAPI, status_code=status.HTTP_201_CREATED)
async def create_task(task_in: TaskCreateAPI, current_user: CurrentUser, service: TaskService = Depends(get_task_service)):
    return TaskAPI.model_validate(await service.create(current_user.organization_id, task_in, current_user))


@tasks_router.patch("/{task_id}", response_model=TaskAPI)
async def update_task(
    task_id: str,
    task_in: TaskUpdateAPI,
    current_user: CurrentUser,
    service: TaskService = Depends(get_task_service),
):
    return TaskAPI.model_validate(await service.update(current_user.organization_id, task_id, task_in, current_user))


@tasks_router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: str, current_user: CurrentUser, service: TaskService = Depends(get_task_service)):
    await service.delete(current_user.organization_id, task_id)
