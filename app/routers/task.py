"""
Task router - API endpoints for tasks.
"""

from fastapi import APIRouter, Depends

from app.core.dependencies import get_calendar, get_store, require_session_if_enabled
from app.repositories.base import Store
from app.repositories.fields import with_camel_aliases
from app.schemas.task import TaskCreate, TaskUpdate
from app.services.calendar_sync import CalendarSync
from app.services.project_service import ProjectService
from app.services.task_service import TaskService

router = APIRouter(prefix="/api/tasks", tags=["tasks"], dependencies=[Depends(require_session_if_enabled)])


def get_task_service(store: Store = Depends(get_store), calendar=Depends(get_calendar)) -> TaskService:
    return TaskService(store, ProjectService(store), CalendarSync(store, calendar))


@router.get("")
async def list_tasks(service: TaskService = Depends(get_task_service)):
    """
    List all tasks.

    Ordered by due date (undated last), then newest first. Records carry
    camelCase aliases and the owning commerce's name.
    """
    return await service.list_tasks()


@router.get("/{task_id}")
async def get_task(task_id: str, service: TaskService = Depends(get_task_service)):
    """Get a task by ID."""
    return with_camel_aliases(await service.get_task(task_id))


@router.post("")
async def create_task(data: TaskCreate, service: TaskService = Depends(get_task_service)):
    """Create a new task (updates project progress and calendar events)."""
    return await service.create_task(data)


@router.patch("/{task_id}")
async def update_task(task_id: str, data: TaskUpdate, service: TaskService = Depends(get_task_service)):
    """Update a task (updates project progress and calendar events)."""
    return await service.update_task(task_id, data)


@router.delete("/{task_id}")
async def delete_task(task_id: str, service: TaskService = Depends(get_task_service)):
    """Delete a task and its sub-tasks."""
    await service.delete_task(task_id)
    return {"success": True}
