"""
Project business logic: CRUD, derived progress and the task tree.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from app.core.statuses import ProjectStatus, TaskStatus
from app.errors import not_found
from app.repositories.base import Record, Store
from app.repositories.fields import normalize_project_fields, with_camel_aliases
from app.schemas.project import ProjectCreate, ProjectUpdate

logger = logging.getLogger(__name__)


def compute_progress(tasks: Iterable[Record]) -> int:
    """Percentage of Done tasks, rounded half up; 0 for an empty project."""
    total = 0
    done = 0
    for task in tasks:
        total += 1
        if TaskStatus.try_parse(task.get("status")) is TaskStatus.DONE:
            done += 1
    if total == 0:
        return 0
    return (200 * done + total) // (2 * total)


def build_task_tree(tasks: List[Record]) -> List[Dict[str, Any]]:
    """
    Nest a flat task list through parent_id.

    Tasks whose parent is not in the list become roots. Input order is kept
    at every level.
    """
    nodes = {task["id"]: {**with_camel_aliases(task), "subTasks": []} for task in tasks}
    roots = []
    for task in tasks:
        node = nodes[task["id"]]
        parent_id = task.get("parent_id")
        if parent_id and parent_id != task["id"] and parent_id in nodes:
            nodes[parent_id]["subTasks"].append(node)
        else:
            roots.append(node)
    return roots


class ProjectService:
    """Service for project business logic."""

    def __init__(self, store: Store):
        self.store = store

    async def list_projects(self) -> List[Record]:
        return await self.store.list_projects()

    async def get_project(self, project_id: str) -> Record:
        project = await self.store.get_project(project_id)
        if not project:
            raise not_found("Project")
        return project

    async def create_project(self, data: ProjectCreate) -> Record:
        fields = normalize_project_fields(data.to_fields())
        return await self.store.create_project(fields)

    async def update_project(self, project_id: str, data: ProjectUpdate) -> Record:
        await self.get_project(project_id)
        fields = normalize_project_fields(data.to_fields())
        fields.pop("progress", None)
        if not fields:
            return await self.get_project(project_id)
        updated = await self.store.update_project(project_id, fields)
        if not updated:
            raise not_found("Project")
        return updated

    async def delete_project(self, project_id: str) -> None:
        # Tasks keep existing with project_id cleared
        await self.store.delete_project(project_id)

    async def recompute_progress(self, project_id: Optional[str]) -> Optional[Record]:
        """Store the derived progress of a project; no-op for a missing project."""
        if not project_id:
            return None
        project = await self.store.get_project(project_id)
        if not project:
            return None
        tasks = await self.store.list_tasks_by_project(project_id)
        progress = compute_progress(tasks)
        if project.get("progress") == progress:
            return project
        logger.debug("Project %s progress %s -> %s", project_id, project.get("progress"), progress)
        return await self.store.update_project(project_id, {"progress": progress})

    async def recompute_many(self, project_ids: Iterable[Optional[str]]) -> None:
        for project_id in {pid for pid in project_ids if pid}:
            await self.recompute_progress(project_id)

    async def task_tree(self, project_id: str) -> List[Dict[str, Any]]:
        await self.get_project(project_id)
        tasks = await self.store.list_tasks_by_project(project_id)
        return build_task_tree(tasks)

    async def ensure_project(self, name: str, status: ProjectStatus, description: str) -> Optional[Record]:
        """Create a project called `name` unless one already exists."""
        if await self.store.find_project_by_name(name):
            return None
        project = await self.store.create_project(
            {"name": name, "status": status.value, "description": description}
        )
        logger.info("Automated project created: %s", name)
        return project
