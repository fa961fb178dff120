"""
Persistence contract shared by the SQL, Supabase and Notion backends.

Records cross this boundary as plain dicts with snake_case keys; dates and
timestamps are ISO strings. Both backends fail fast: any driver or HTTP
failure becomes a StoreError carrying the original message.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

Record = Dict[str, Any]


class StoreError(Exception):
    """The underlying database or hosted API rejected an operation."""


class Store(ABC):
    """Functional interface over the commerces/projects/tasks/config tables."""

    backend: str = ""

    # --- Commerces ---

    @abstractmethod
    async def list_commerces(self) -> List[Record]:
        ...

    @abstractmethod
    async def get_commerce(self, commerce_id: str) -> Optional[Record]:
        ...

    @abstractmethod
    async def create_commerce(self, fields: Mapping[str, Any]) -> Record:
        ...

    @abstractmethod
    async def update_commerce(self, commerce_id: str, fields: Mapping[str, Any]) -> Optional[Record]:
        ...

    @abstractmethod
    async def delete_commerce(self, commerce_id: str) -> None:
        ...

    # --- Projects ---

    @abstractmethod
    async def list_projects(self) -> List[Record]:
        ...

    @abstractmethod
    async def get_project(self, project_id: str) -> Optional[Record]:
        ...

    @abstractmethod
    async def find_project_by_name(self, name: str) -> Optional[Record]:
        ...

    @abstractmethod
    async def create_project(self, fields: Mapping[str, Any]) -> Record:
        ...

    @abstractmethod
    async def update_project(self, project_id: str, fields: Mapping[str, Any]) -> Optional[Record]:
        ...

    @abstractmethod
    async def delete_project(self, project_id: str) -> None:
        ...

    # --- Tasks ---

    @abstractmethod
    async def list_tasks(self) -> List[Record]:
        """All tasks, due date ascending (nulls last) then newest first, with commerce_name."""

    @abstractmethod
    async def get_task(self, task_id: str) -> Optional[Record]:
        ...

    @abstractmethod
    async def list_tasks_by_project(self, project_id: str) -> List[Record]:
        ...

    @abstractmethod
    async def list_tasks_by_commerce(self, commerce_id: str) -> List[Record]:
        ...

    @abstractmethod
    async def create_task(self, fields: Mapping[str, Any]) -> Record:
        ...

    @abstractmethod
    async def update_task(self, task_id: str, fields: Mapping[str, Any]) -> Optional[Record]:
        ...

    @abstractmethod
    async def delete_task(self, task_id: str) -> None:
        """Delete a task; its descendants go with it."""

    async def set_google_event_id(self, task_id: str, event_id: Optional[str]) -> None:
        await self.update_task(task_id, {"google_event_id": event_id})

    # --- Config ---

    @abstractmethod
    async def get_config(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def set_config(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def delete_config(self, key: str) -> None:
        ...

    # --- Lifecycle ---

    async def startup(self) -> None:
        pass

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass
