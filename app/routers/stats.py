"""Dashboard stats router."""

from fastapi import APIRouter, Depends

from app.core.dependencies import get_store, require_session_if_enabled
from app.repositories.base import Store
from app.schemas.stats import StatsRead
from app.services.stats_service import StatsService

router = APIRouter(prefix="/api", tags=["stats"], dependencies=[Depends(require_session_if_enabled)])


@router.get("/stats", response_model=StatsRead)
async def get_stats(store: Store = Depends(get_store)):
    """Counts for the dashboard cards."""
    return await StatsService(store).get_stats()
