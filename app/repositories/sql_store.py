"""
SQLAlchemy implementation of the Store contract.

Works against the local SQLite file (aiosqlite) or any Postgres reachable
with asyncpg. Every call runs in its own session and transaction.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, List, Mapping, Optional, Type

from sqlalchemy import delete, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from app.db.base import Base
from app.db.session import build_engine, build_session_maker, create_tables, is_sqlite_url, session_scope
from app.models import Commerce, ConfigEntry, Project, Task
from app.repositories.base import Record, Store, StoreError
from app.repositories.fields import jsonable


def to_record(obj: Base) -> Record:
    return {column.key: jsonable(getattr(obj, column.key)) for column in obj.__table__.columns}


class SqlStore(Store):
    """Repository for all CRM tables backed by a SQLAlchemy async engine."""

    backend = "sql"

    def __init__(self, database_url: str, echo: bool = False, auto_create_tables: bool = True):
        self.database_url = database_url
        self.auto_create_tables = auto_create_tables
        self.engine: AsyncEngine = build_engine(database_url, echo=echo)
        self.session_maker = build_session_maker(self.engine)

    @property
    def database_path(self) -> Optional[Path]:
        """Path of the SQLite file, or None for server/in-memory databases."""
        if not is_sqlite_url(self.database_url):
            return None
        database = make_url(self.database_url).database
        if not database or database == ":memory:":
            return None
        return Path(database)

    @asynccontextmanager
    async def _session(self) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with session_scope(self.session_maker) as session:
                yield session
        except SQLAlchemyError as exc:
            raise StoreError(str(getattr(exc, "orig", None) or exc)) from exc

    async def startup(self) -> None:
        if self.auto_create_tables:
            try:
                await create_tables(self.engine)
            except SQLAlchemyError as exc:
                raise StoreError(str(exc)) from exc

    async def ping(self) -> bool:
        try:
            async with self._session() as session:
                await session.execute(select(1))
            return True
        except StoreError:
            return False

    async def close(self) -> None:
        await self.engine.dispose()

    # --- generic helpers ---

    async def _list(self, model: Type[Base], *order_by) -> List[Record]:
        async with self._session() as session:
            result = await session.execute(select(model).order_by(*order_by))
            return [to_record(obj) for obj in result.scalars().all()]

    async def _get(self, model: Type[Base], record_id: str) -> Optional[Record]:
        async with self._session() as session:
            obj = await session.get(model, record_id)
            return to_record(obj) if obj else None

    async def _create(self, model: Type[Base], fields: Mapping[str, Any]) -> Record:
        # None means "use the column default" on create
        values = {key: value for key, value in fields.items() if value is not None}
        async with self._session() as session:
            obj = model(**values)
            session.add(obj)
            await session.flush()
            await session.refresh(obj)
            return to_record(obj)

    async def _update(self, model: Type[Base], record_id: str, fields: Mapping[str, Any]) -> Optional[Record]:
        async with self._session() as session:
            obj = await session.get(model, record_id)
            if not obj:
                return None
            for field, value in fields.items():
                setattr(obj, field, value)
            await session.flush()
            await session.refresh(obj)
            return to_record(obj)

    async def _delete(self, model: Type[Base], record_id: str) -> None:
        # Core DELETE so the database applies ON DELETE CASCADE / SET NULL
        async with self._session() as session:
            await session.execute(delete(model).where(model.id == record_id))

    # --- Commerces ---

    async def list_commerces(self) -> List[Record]:
        return await self._list(Commerce, Commerce.created_at.desc())

    async def get_commerce(self, commerce_id: str) -> Optional[Record]:
        return await self._get(Commerce, commerce_id)

    async def create_commerce(self, fields: Mapping[str, Any]) -> Record:
        return await self._create(Commerce, fields)

    async def update_commerce(self, commerce_id: str, fields: Mapping[str, Any]) -> Optional[Record]:
        return await self._update(Commerce, commerce_id, fields)

    async def delete_commerce(self, commerce_id: str) -> None:
        await self._delete(Commerce, commerce_id)

    # --- Projects ---

    async def list_projects(self) -> List[Record]:
        return await self._list(Project, Project.created_at.desc())

    async def get_project(self, project_id: str) -> Optional[Record]:
        return await self._get(Project, project_id)

    async def find_project_by_name(self, name: str) -> Optional[Record]:
        async with self._session() as session:
            result = await session.execute(select(Project).where(Project.name == name).limit(1))
            obj = result.scalar_one_or_none()
            return to_record(obj) if obj else None

    async def create_project(self, fields: Mapping[str, Any]) -> Record:
        return await self._create(Project, fields)

    async def update_project(self, project_id: str, fields: Mapping[str, Any]) -> Optional[Record]:
        return await self._update(Project, project_id, fields)

    async def delete_project(self, project_id: str) -> None:
        await self._delete(Project, project_id)

    # --- Tasks ---

    async def list_tasks(self) -> List[Record]:
        query = (
            select(Task, Commerce.name.label("commerce_name"))
            .outerjoin(Commerce, Task.commerce_id == Commerce.id)
            .order_by(Task.due_date.is_(None), Task.due_date.asc(), Task.created_at.desc())
        )
        async with self._session() as session:
            result = await session.execute(query)
            records = []
            for task, commerce_name in result.all():
                record = to_record(task)
                record["commerce_name"] = commerce_name
                records.append(record)
            return records

    async def get_task(self, task_id: str) -> Optional[Record]:
        return await self._get(Task, task_id)

    async def list_tasks_by_project(self, project_id: str) -> List[Record]:
        async with self._session() as session:
            result = await session.execute(
                select(Task).where(Task.project_id == project_id).order_by(Task.created_at.asc())
            )
            return [to_record(obj) for obj in result.scalars().all()]

    async def list_tasks_by_commerce(self, commerce_id: str) -> List[Record]:
        async with self._session() as session:
            result = await session.execute(
                select(Task).where(Task.commerce_id == commerce_id).order_by(Task.created_at.asc())
            )
            return [to_record(obj) for obj in result.scalars().all()]

    async def create_task(self, fields: Mapping[str, Any]) -> Record:
        return await self._create(Task, fields)

    async def update_task(self, task_id: str, fields: Mapping[str, Any]) -> Optional[Record]:
        return await self._update(Task, task_id, fields)

    async def delete_task(self, task_id: str) -> None:
        await self._delete(Task, task_id)

    # --- Config ---

    async def get_config(self, key: str) -> Optional[str]:
        async with self._session() as session:
            entry = await session.get(ConfigEntry, key)
            return entry.value if entry else None

    async def list_config(self) -> Dict[str, str]:
        async with self._session() as session:
            result = await session.execute(select(ConfigEntry).order_by(ConfigEntry.key))
            return {entry.key: entry.value for entry in result.scalars().all()}

    async def set_config(self, key: str, value: str) -> None:
        async with self._session() as session:
            await session.merge(ConfigEntry(key=key, value=str(value)))

    async def delete_config(self, key: str) -> None:
        async with self._session() as session:
            await session.execute(delete(ConfigEntry).where(ConfigEntry.key == key))
