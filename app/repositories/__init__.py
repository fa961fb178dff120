"""
Persistence backends.

`build_store` picks the implementation named by settings.STORE_BACKEND.
"""

from app.core.config import Settings
from app.repositories.base import Record, Store, StoreError


def build_store(settings: Settings) -> Store:
    backend = settings.STORE_BACKEND.strip().lower()
    if backend == "sql":
        from app.repositories.sql_store import SqlStore

        return SqlStore(
            settings.DATABASE_URL,
            echo=settings.DEBUG,
            auto_create_tables=settings.AUTO_CREATE_TABLES,
        )
    if backend == "supabase":
        from app.repositories.supabase_store import SupabaseStore

        return SupabaseStore(settings.SUPABASE_URL or "", settings.SUPABASE_KEY or "")
    if backend == "notion":
        from app.repositories.notion_store import NotionStore

        return NotionStore(
            settings.NOTION_API_KEY or "",
            settings.NOTION_CRM_DB_ID or "",
            settings.NOTION_PROJECTS_DB_ID or "",
            settings.NOTION_TASKS_DB_ID or "",
            config_db_id=settings.NOTION_CONFIG_DB_ID,
        )
    raise StoreError(f"Unknown STORE_BACKEND: {settings.STORE_BACKEND!r}")


__all__ = ["Record", "Store", "StoreError", "build_store"]
