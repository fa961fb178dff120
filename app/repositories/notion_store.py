"""
Notion implementation of the Store contract.

Each table is a Notion database and each record a page. Columns map to the
page properties below ('Business Name', 'Status', 'Assigned To', ...);
foreign keys are single-page relations. Deleting archives the page. Notion
has no cascades, so sub-tasks are archived and task links cleared here.

Configuration entries need their own database (a 'Key' title and a 'Value'
text property). Without NOTION_CONFIG_DB_ID nothing can be stored, which
only matters for Google Calendar tokens.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

import httpx
from notion_client import AsyncClient
from notion_client.errors import APIErrorCode, APIResponseError, HTTPResponseError, RequestTimeoutError
from notion_client.helpers import async_collect_paginated_api

from app.repositories.base import Record, Store, StoreError
from app.repositories.fields import COMMERCE_DEFAULTS, PROJECT_DEFAULTS, TASK_DEFAULTS, jsonable

logger = logging.getLogger(__name__)

# column -> (property name, property type)
COMMERCE_PROPERTIES = {
    "name": ("Business Name", "title"),
    "status": ("Status", "select"),
    "category": ("Category", "select"),
    "contact": ("Contact Person", "rich_text"),
    "email": ("Contact Email", "email"),
    "phone": ("Contact Phone", "phone_number"),
    "address": ("Address", "rich_text"),
    "notes": ("Notes", "rich_text"),
}

PROJECT_PROPERTIES = {
    "name": ("Project Name", "title"),
    "status": ("Status", "select"),
    "description": ("Description", "rich_text"),
    "progress": ("Progress", "number"),
}

TASK_PROPERTIES = {
    "name": ("Task Name", "title"),
    "category": ("Task Category", "select"),
    "status": ("Status", "select"),
    "assignee": ("Assigned To", "select"),
    "due_date": ("Due Date", "date"),
    "time_slot": ("Time Slot", "rich_text"),
    "is_in_person": ("In-person Visit?", "checkbox"),
    "notes": ("Notes", "rich_text"),
    "project_id": ("Project", "relation"),
    "commerce_id": ("Commerce", "relation"),
    "parent_id": ("Parent Task", "relation"),
    "google_event_id": ("Google Event ID", "rich_text"),
}

CONFIG_PROPERTIES = {
    "key": ("Key", "title"),
    "value": ("Value", "rich_text"),
}

UNTITLED = {"commerces": "Sans nom", "projects": "Projet sans nom", "tasks": "Sans nom"}

# Notion caps a single rich text object at 2000 characters
TEXT_CHUNK = 2000


def _compact(database_id: str) -> str:
    return database_id.replace("-", "")


def _rich_text(value: Any) -> List[Dict[str, Any]]:
    text = "" if value is None else str(value)
    return [{"type": "text", "text": {"content": text[i:i + TEXT_CHUNK]}} for i in range(0, len(text), TEXT_CHUNK)]


def encode_property(kind: str, value: Any) -> Dict[str, Any]:
    """Notion property value for a column value."""
    if kind in ("title", "rich_text"):
        return {kind: _rich_text(value)}
    if kind == "select":
        return {"select": {"name": str(value)} if value else None}
    if kind == "date":
        return {"date": {"start": jsonable(value)} if value else None}
    if kind == "checkbox":
        return {"checkbox": bool(value)}
    if kind == "relation":
        return {"relation": [{"id": value}] if value else []}
    # email, phone_number, number
    return {kind: value if value not in ("", None) else None}


def decode_property(prop: Optional[Mapping[str, Any]]) -> Any:
    """Plain value of a property as returned on a page."""
    if not prop:
        return None
    kind = prop.get("type")
    value = prop.get(kind)
    if kind in ("title", "rich_text"):
        text = "".join(part.get("plain_text") or part.get("text", {}).get("content", "") for part in value or [])
        return text or None
    if kind == "select":
        return value.get("name") if value else None
    if kind == "multi_select":
        return ", ".join(option["name"] for option in value or []) or None
    if kind == "date":
        return value["start"][:10] if value and value.get("start") else None
    if kind == "relation":
        return value[0]["id"] if value else None
    return value


class NotionStore(Store):
    """Repository for all CRM tables backed by Notion databases."""

    backend = "notion"

    def __init__(
        self,
        api_key: str,
        crm_db_id: str,
        projects_db_id: str,
        tasks_db_id: str,
        config_db_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key or not crm_db_id or not projects_db_id or not tasks_db_id:
            raise StoreError(
                "NOTION_API_KEY, NOTION_CRM_DB_ID, NOTION_PROJECTS_DB_ID and NOTION_TASKS_DB_ID "
                "are required for the notion backend"
            )
        http_client = httpx.AsyncClient(transport=transport) if transport is not None else None
        self.client = AsyncClient(auth=api_key, client=http_client)
        # table -> (database id, column mapping)
        self.tables: Dict[str, Tuple[str, Dict[str, Tuple[str, str]]]] = {
            "commerces": (crm_db_id, COMMERCE_PROPERTIES),
            "projects": (projects_db_id, PROJECT_PROPERTIES),
            "tasks": (tasks_db_id, TASK_PROPERTIES),
        }
        if config_db_id:
            self.tables["config"] = (config_db_id, CONFIG_PROPERTIES)

    async def _call(self, coro) -> Any:
        try:
            return await coro
        except (HTTPResponseError, RequestTimeoutError, httpx.HTTPError) as exc:
            raise StoreError(f"Notion request failed: {exc}") from exc

    async def ping(self) -> bool:
        try:
            await self._call(self.client.databases.retrieve(database_id=self.tables["commerces"][0]))
            return True
        except StoreError:
            return False

    async def close(self) -> None:
        await self.client.aclose()

    # --- page <-> record ---

    def _properties(self, table: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
        mapping = self.tables[table][1]
        if table == "tasks" and "," in str(fields.get("assignee") or ""):
            raise StoreError("Notion 'Assigned To' is a select property and takes one person per task")
        return {
            mapping[column][0]: encode_property(mapping[column][1], value)
            for column, value in fields.items()
            if column in mapping
        }

    def _record(self, table: str, page: Mapping[str, Any]) -> Record:
        properties = page.get("properties", {})
        record: Record = {"id": page["id"], "created_at": page.get("created_time")}
        for column, (name, _kind) in self.tables[table][1].items():
            record[column] = decode_property(properties.get(name))
        if table in UNTITLED and not record["name"]:
            record["name"] = UNTITLED[table]
        if table == "tasks":
            record["is_in_person"] = bool(record["is_in_person"])
            record["status"] = record["status"] or TASK_DEFAULTS["status"]
            record["assignee"] = record["assignee"] or TASK_DEFAULTS["assignee"]
        elif table == "projects":
            record["status"] = record["status"] or PROJECT_DEFAULTS["status"]
            record["progress"] = int(record["progress"] or 0)
        elif table == "commerces":
            record["status"] = record["status"] or COMMERCE_DEFAULTS["status"]
        return record

    # --- generic helpers ---

    async def _query(self, table: str, query_filter: Optional[Dict[str, Any]] = None) -> List[Record]:
        kwargs: Dict[str, Any] = {"database_id": self.tables[table][0]}
        if query_filter:
            kwargs["filter"] = query_filter
        pages = await self._call(async_collect_paginated_api(self.client.databases.query, **kwargs))
        return [self._record(table, page) for page in pages if not page.get("archived")]

    async def _page(self, table: str, page_id: str) -> Optional[Dict[str, Any]]:
        """The live page `page_id` of `table`, or None."""
        try:
            page = await self.client.pages.retrieve(page_id=page_id)
        except APIResponseError as exc:
            if exc.code in (APIErrorCode.ObjectNotFound, APIErrorCode.ValidationError):
                return None
            raise StoreError(f"Notion request failed: {exc}") from exc
        except (HTTPResponseError, RequestTimeoutError, httpx.HTTPError) as exc:
            raise StoreError(f"Notion request failed: {exc}") from exc
        parent = page.get("parent") or {}
        if page.get("archived") or _compact(parent.get("database_id") or "") != _compact(self.tables[table][0]):
            return None
        return page

    async def _get(self, table: str, record_id: str) -> Optional[Record]:
        page = await self._page(table, record_id)
        return self._record(table, page) if page else None

    async def _create(self, table: str, fields: Mapping[str, Any], defaults: Mapping[str, Any]) -> Record:
        values = dict(defaults)
        values.update({key: value for key, value in fields.items() if value is not None})
        page = await self._call(
            self.client.pages.create(
                parent={"database_id": self.tables[table][0]},
                properties=self._properties(table, values),
            )
        )
        return self._record(table, page)

    async def _update(self, table: str, record_id: str, fields: Mapping[str, Any]) -> Optional[Record]:
        page = await self._page(table, record_id)
        if not page:
            return None
        if not fields:
            return self._record(table, page)
        properties = self._properties(table, fields)
        page = await self._call(self.client.pages.update(page_id=record_id, properties=properties))
        return self._record(table, page)

    async def _archive(self, page_id: str) -> None:
        await self._call(self.client.pages.update(page_id=page_id, archived=True))

    async def _detach_tasks(self, column: str, record_id: str) -> None:
        for task in await self._tasks_linked(column, record_id):
            await self._call(
                self.client.pages.update(page_id=task["id"], properties=self._properties("tasks", {column: None}))
            )

    async def _tasks_linked(self, column: str, record_id: str) -> List[Record]:
        name = TASK_PROPERTIES[column][0]
        tasks = await self._query("tasks", {"property": name, "relation": {"contains": record_id}})
        return sorted(tasks, key=lambda t: t["created_at"] or "")

    # --- Commerces ---

    async def list_commerces(self) -> List[Record]:
        return sorted(await self._query("commerces"), key=lambda c: c["created_at"] or "", reverse=True)

    async def get_commerce(self, commerce_id: str) -> Optional[Record]:
        return await self._get("commerces", commerce_id)

    async def create_commerce(self, fields: Mapping[str, Any]) -> Record:
        return await self._create("commerces", fields, COMMERCE_DEFAULTS)

    async def update_commerce(self, commerce_id: str, fields: Mapping[str, Any]) -> Optional[Record]:
        return await self._update("commerces", commerce_id, fields)

    async def delete_commerce(self, commerce_id: str) -> None:
        if not await self._page("commerces", commerce_id):
            return
        await self._archive(commerce_id)
        await self._detach_tasks("commerce_id", commerce_id)

    # --- Projects ---

    async def list_projects(self) -> List[Record]:
        return sorted(await self._query("projects"), key=lambda p: p["created_at"] or "", reverse=True)

    async def get_project(self, project_id: str) -> Optional[Record]:
        return await self._get("projects", project_id)

    async def find_project_by_name(self, name: str) -> Optional[Record]:
        rows = await self._query("projects", {"property": "Project Name", "title": {"equals": name}})
        return rows[0] if rows else None

    async def create_project(self, fields: Mapping[str, Any]) -> Record:
        return await self._create("projects", fields, PROJECT_DEFAULTS)

    async def update_project(self, project_id: str, fields: Mapping[str, Any]) -> Optional[Record]:
        return await self._update("projects", project_id, fields)

    async def delete_project(self, project_id: str) -> None:
        if not await self._page("projects", project_id):
            return
        await self._archive(project_id)
        await self._detach_tasks("project_id", project_id)

    # --- Tasks ---

    async def list_tasks(self) -> List[Record]:
        tasks = await self._query("tasks")
        names = {c["id"]: c["name"] for c in await self._query("commerces")}
        for task in tasks:
            task["commerce_name"] = names.get(task.get("commerce_id"))
        # Newest first, then by due date with undated tasks last (sort is stable)
        tasks.sort(key=lambda t: t["created_at"] or "", reverse=True)
        tasks.sort(key=lambda t: (t["due_date"] is None, t["due_date"] or ""))
        return tasks

    async def get_task(self, task_id: str) -> Optional[Record]:
        return await self._get("tasks", task_id)

    async def list_tasks_by_project(self, project_id: str) -> List[Record]:
        return await self._tasks_linked("project_id", project_id)

    async def list_tasks_by_commerce(self, commerce_id: str) -> List[Record]:
        return await self._tasks_linked("commerce_id", commerce_id)

    async def create_task(self, fields: Mapping[str, Any]) -> Record:
        return await self._create("tasks", fields, TASK_DEFAULTS)

    async def update_task(self, task_id: str, fields: Mapping[str, Any]) -> Optional[Record]:
        return await self._update("tasks", task_id, fields)

    async def delete_task(self, task_id: str) -> None:
        if not await self._page("tasks", task_id):
            return
        children: Dict[str, List[str]] = {}
        for task in await self._query("tasks"):
            if task.get("parent_id"):
                children.setdefault(task["parent_id"], []).append(task["id"])

        doomed, stack = [], [task_id]
        while stack:
            current = stack.pop()
            if current in doomed:
                continue
            doomed.append(current)
            stack.extend(children.get(current, []))
        for page_id in doomed:
            await self._archive(page_id)
        logger.debug("Archived task %s and %d sub-tasks", task_id, len(doomed) - 1)

    # --- Config ---

    async def _config_page(self, key: str) -> Optional[Record]:
        if "config" not in self.tables:
            return None
        rows = await self._query("config", {"property": "Key", "title": {"equals": key}})
        return rows[0] if rows else None

    async def get_config(self, key: str) -> Optional[str]:
        row = await self._config_page(key)
        return row["value"] if row else None

    async def set_config(self, key: str, value: str) -> None:
        if "config" not in self.tables:
            raise StoreError("NOTION_CONFIG_DB_ID is required to store configuration")
        row = await self._config_page(key)
        if row:
            await self._call(
                self.client.pages.update(page_id=row["id"], properties=self._properties("config", {"value": value}))
            )
        else:
            await self._create("config", {"key": key, "value": str(value)}, {})

    async def delete_config(self, key: str) -> None:
        row = await self._config_page(key)
        if row:
            await self._archive(row["id"])
