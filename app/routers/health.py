"""Health check router."""

from fastapi import APIRouter, Depends

from app.core.dependencies import get_store
from app.repositories.base import Store

router = APIRouter()


@router.get("/health")
async def health_check(store: Store = Depends(get_store)):
    """Lightweight health endpoint with a store round-trip."""
    return {
        "api_ok": True,
        "store_ok": await store.ping(),
        "backend": store.backend,
    }
