"""
CRM router - API endpoints for commerces (leads).
"""

from typing import List

from fastapi import APIRouter, Depends

from app.core.dependencies import get_store, require_session_if_enabled
from app.repositories.base import Store
from app.schemas.commerce import CommerceCreate, CommerceRead, CommerceUpdate
from app.services.commerce_service import CommerceService
from app.services.project_service import ProjectService

router = APIRouter(prefix="/api/crm", tags=["crm"], dependencies=[Depends(require_session_if_enabled)])


def get_commerce_service(store: Store = Depends(get_store)) -> CommerceService:
    return CommerceService(store, ProjectService(store))


@router.get("", response_model=List[CommerceRead])
async def list_commerces(service: CommerceService = Depends(get_commerce_service)):
    """List leads, newest first."""
    return await service.list_commerces()


@router.get("/{commerce_id}", response_model=CommerceRead)
async def get_commerce(commerce_id: str, service: CommerceService = Depends(get_commerce_service)):
    """Get a lead by ID."""
    return await service.get_commerce(commerce_id)


@router.post("", response_model=CommerceRead)
async def create_commerce(data: CommerceCreate, service: CommerceService = Depends(get_commerce_service)):
    """
    Create a new lead.

    A lead created directly in an active status gets its project right away.
    """
    return await service.create_commerce(data)


@router.patch("/{commerce_id}", response_model=CommerceRead)
async def update_commerce(
    commerce_id: str,
    data: CommerceUpdate,
    service: CommerceService = Depends(get_commerce_service),
):
    """
    Update a lead.

    Moving it to "En cours" or "Gagné" creates "Projet - {name}" unless a
    project with that name already exists.
    """
    return await service.update_commerce(commerce_id, data)


@router.delete("/{commerce_id}")
async def delete_commerce(commerce_id: str, service: CommerceService = Depends(get_commerce_service)):
    """Delete a lead; its tasks are kept and detached."""
    await service.delete_commerce(commerce_id)
    return {"success": True}


@router.get("/{commerce_id}/tasks")
async def list_commerce_tasks(commerce_id: str, service: CommerceService = Depends(get_commerce_service)):
    """Tasks attached to a lead, oldest first."""
    return await service.list_tasks(commerce_id)
