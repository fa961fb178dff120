"""Database backup download."""

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from app.core.dependencies import get_current_user, get_store
from app.errors import AppError
from app.repositories.base import Store
from app.utils.time import utc_now

router = APIRouter(prefix="/api", tags=["backup"])


@router.get("/backup")
async def download_backup(store: Store = Depends(get_store), _user: dict = Depends(get_current_user)):
    """
    Download the SQLite database file.

    Only available for a file-based SQLite store and to logged-in users.
    """
    path = getattr(store, "database_path", None)
    if path is None:
        raise AppError(400, "Backups are only available for the local SQLite database")
    if not path.exists():
        raise AppError(404, "Database file not found")
    filename = f"backup-{utc_now().strftime('%Y-%m-%d')}.db"
    return FileResponse(path, media_type="application/octet-stream", filename=filename)
