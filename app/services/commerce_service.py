"""
Commerce (lead) business logic.

Moving a lead into an active status opens a project for it.
"""

from typing import List, Optional

from app.core.statuses import CommerceStatus, ProjectStatus
from app.errors import not_found
from app.repositories.base import Record, Store
from app.repositories.fields import normalize_commerce_fields, with_camel_aliases
from app.schemas.commerce import CommerceCreate, CommerceUpdate
from app.services.project_service import ProjectService


def project_name_for(commerce_name: str) -> str:
    return f"Projet - {commerce_name}"


class CommerceService:
    """Service for lead business logic."""

    def __init__(self, store: Store, projects: ProjectService):
        self.store = store
        self.projects = projects

    async def list_commerces(self) -> List[Record]:
        return await self.store.list_commerces()

    async def get_commerce(self, commerce_id: str) -> Record:
        commerce = await self.store.get_commerce(commerce_id)
        if not commerce:
            raise not_found("Commerce")
        return commerce

    async def create_commerce(self, data: CommerceCreate) -> Record:
        fields = normalize_commerce_fields(data.to_fields())
        commerce = await self.store.create_commerce(fields)
        await self._open_project_if_active(commerce, previous=None)
        return commerce

    async def update_commerce(self, commerce_id: str, data: CommerceUpdate) -> Record:
        existing = await self.get_commerce(commerce_id)
        fields = normalize_commerce_fields(data.to_fields())
        if not fields:
            return existing
        updated = await self.store.update_commerce(commerce_id, fields)
        if not updated:
            raise not_found("Commerce")
        if "status" in fields:
            await self._open_project_if_active(updated, previous=existing.get("status"))
        return updated

    async def delete_commerce(self, commerce_id: str) -> None:
        # Tasks keep existing with commerce_id cleared
        await self.store.delete_commerce(commerce_id)

    async def list_tasks(self, commerce_id: str) -> List[Record]:
        await self.get_commerce(commerce_id)
        tasks = await self.store.list_tasks_by_commerce(commerce_id)
        return [with_camel_aliases(task) for task in tasks]

    async def _open_project_if_active(self, commerce: Record, previous: Optional[str]) -> Optional[Record]:
        status = CommerceStatus.try_parse(commerce.get("status"))
        if status is None or not status.is_active:
            return None
        if previous is not None and CommerceStatus.try_parse(previous) is status:
            return None
        name = commerce.get("name") or "Nouveau Lead"
        project_status = ProjectStatus.IN_PROGRESS if status is CommerceStatus.WON else ProjectStatus.PLANNED
        return await self.projects.ensure_project(
            project_name_for(name),
            project_status,
            f"Projet généré automatiquement depuis le lead CRM: {name}",
        )
