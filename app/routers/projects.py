"""
Projects router - API endpoints for projects and their task trees.
"""

from typing import List

from fastapi import APIRouter, Depends

from app.core.dependencies import get_store, require_session_if_enabled
from app.repositories.base import Store
from app.schemas.project import ProjectCreate, ProjectRead, ProjectUpdate
from app.services.project_service import ProjectService

router = APIRouter(prefix="/api/projects", tags=["projects"], dependencies=[Depends(require_session_if_enabled)])


def get_project_service(store: Store = Depends(get_store)) -> ProjectService:
    return ProjectService(store)


@router.get("", response_model=List[ProjectRead])
async def list_projects(service: ProjectService = Depends(get_project_service)):
    """List projects, newest first."""
    return await service.list_projects()


@router.get("/{project_id}", response_model=ProjectRead)
async def get_project(project_id: str, service: ProjectService = Depends(get_project_service)):
    """Get a project by ID."""
    return await service.get_project(project_id)


@router.get("/{project_id}/tasks")
async def get_project_tasks(project_id: str, service: ProjectService = Depends(get_project_service)):
    """
    The project's tasks as a forest.

    Each node carries its children under `subTasks`; tasks whose parent is
    outside the project are returned as roots.
    """
    return await service.task_tree(project_id)


@router.post("", response_model=ProjectRead)
async def create_project(data: ProjectCreate, service: ProjectService = Depends(get_project_service)):
    """Create a new project."""
    return await service.create_project(data)


@router.patch("/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: str,
    data: ProjectUpdate,
    service: ProjectService = Depends(get_project_service),
):
    """Update a project. Progress is derived from tasks and cannot be set."""
    return await service.update_project(project_id, data)


@router.post("/{project_id}/recompute", response_model=ProjectRead)
async def recompute_project(project_id: str, service: ProjectService = Depends(get_project_service)):
    """Recalculate progress from the current tasks."""
    await service.get_project(project_id)
    await service.recompute_progress(project_id)
    return await service.get_project(project_id)


@router.delete("/{project_id}")
async def delete_project(project_id: str, service: ProjectService = Depends(get_project_service)):
    """Delete a project; its tasks are kept and detached."""
    await service.delete_project(project_id)
    return {"success": True}
