"""
Task business logic service.

Every mutation runs the same steps in order, each committed on its own:
write the task, recompute the progress of the affected projects, then
mirror in-person tasks to the assignees' calendars.
"""

from typing import Any, Dict, List, Mapping, Optional, Set

from app.errors import AppError, not_found
from app.repositories.base import Record, Store
from app.repositories.fields import normalize_task_fields, with_camel_aliases
from app.schemas.task import TaskCreate, TaskUpdate
from app.services.calendar_sync import CalendarSync, touches_calendar
from app.services.project_service import ProjectService

PROGRESS_FIELDS = {"status", "project_id"}


def descendants_of(task_id: str, tasks: List[Record]) -> List[Record]:
    """All tasks below `task_id` in the parent_id tree."""
    children: Dict[str, List[Record]] = {}
    for task in tasks:
        parent_id = task.get("parent_id")
        if parent_id:
            children.setdefault(parent_id, []).append(task)

    found: List[Record] = []
    seen: Set[str] = {task_id}
    stack = [task_id]
    while stack:
        for child in children.get(stack.pop(), []):
            if child["id"] in seen:
                continue
            seen.add(child["id"])
            found.append(child)
            stack.append(child["id"])
    return found


class TaskService:
    """Service for task business logic."""

    def __init__(self, store: Store, projects: ProjectService, calendar_sync: CalendarSync):
        self.store = store
        self.projects = projects
        self.calendar_sync = calendar_sync

    async def list_tasks(self) -> List[Dict[str, Any]]:
        tasks = await self.store.list_tasks()
        return [with_camel_aliases(task) for task in tasks]

    async def get_task(self, task_id: str) -> Record:
        task = await self.store.get_task(task_id)
        if not task:
            raise not_found("Task")
        return task

    async def _check_references(self, fields: Mapping[str, Any], task_id: Optional[str] = None) -> None:
        project_id = fields.get("project_id")
        if project_id and not await self.store.get_project(project_id):
            raise AppError(400, "Project not found")
        commerce_id = fields.get("commerce_id")
        if commerce_id and not await self.store.get_commerce(commerce_id):
            raise AppError(400, "Commerce not found")
        parent_id = fields.get("parent_id")
        if not parent_id:
            return
        if not await self.store.get_task(parent_id):
            raise AppError(400, "Parent task not found")
        if task_id is not None:
            if parent_id == task_id:
                raise AppError(400, "A task cannot be its own parent")
            below = descendants_of(task_id, await self.store.list_tasks())
            if any(task["id"] == parent_id for task in below):
                raise AppError(400, "A task cannot be moved under one of its sub-tasks")

    async def create_task(self, data: TaskCreate) -> Dict[str, Any]:
        fields = normalize_task_fields(data.to_fields())
        await self._check_references(fields)
        task = await self.store.create_task(fields)
        await self.projects.recompute_progress(task.get("project_id"))
        task = await self.calendar_sync.reconcile(task)
        return with_camel_aliases(task)

    async def update_task(self, task_id: str, data: TaskUpdate) -> Dict[str, Any]:
        existing = await self.get_task(task_id)
        fields = normalize_task_fields(data.to_fields())
        if not fields:
            return with_camel_aliases(existing)
        await self._check_references(fields, task_id=task_id)

        task = await self.store.update_task(task_id, fields)
        if not task:
            raise not_found("Task")

        if not PROGRESS_FIELDS.isdisjoint(fields):
            await self.projects.recompute_many([existing.get("project_id"), task.get("project_id")])
        if touches_calendar(fields):
            task = await self.calendar_sync.reconcile(task, previous_assignee=existing.get("assignee"))
        return with_camel_aliases(task)

    async def delete_task(self, task_id: str) -> None:
        task = await self.get_task(task_id)
        removed = [task] + descendants_of(task_id, await self.store.list_tasks())

        await self.store.delete_task(task_id)

        await self.projects.recompute_many(t.get("project_id") for t in removed)
        await self.calendar_sync.remove_events(removed)
