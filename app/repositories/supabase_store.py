"""
Supabase implementation of the Store contract.

Talks to the project's PostgREST endpoint (`{SUPABASE_URL}/rest/v1`) with
httpx. The hosted tables are created by the same alembic migration as the
local database, so foreign-key cascades behave identically.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

import httpx

from app.repositories.base import Record, Store, StoreError
from app.repositories.fields import COMMERCE_DEFAULTS, PROJECT_DEFAULTS, TASK_DEFAULTS, jsonable
from app.models.base_model import new_id
from app.utils.time import utc_now_iso

logger = logging.getLogger(__name__)


def _eq(value: str) -> str:
    return f"eq.{value}"


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"Supabase error {response.status_code}: {response.text[:200]}"
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or str(body)
    return str(body)


class SupabaseStore(Store):
    """Repository for all CRM tables backed by Supabase's REST API."""

    backend = "supabase"

    def __init__(
        self,
        url: str,
        api_key: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not url or not api_key:
            raise StoreError("SUPABASE_URL and SUPABASE_KEY are required for the supabase backend")
        self.client = httpx.AsyncClient(
            base_url=url.rstrip("/") + "/rest/v1",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        table: str,
        params: Optional[Dict[str, str]] = None,
        json_body: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = await self.client.request(method, f"/{table}", params=params, json=json_body, headers=headers)
        except httpx.HTTPError as exc:
            raise StoreError(f"Supabase request failed: {exc}") from exc
        if response.status_code >= 400:
            raise StoreError(_error_message(response))
        if not response.content:
            return None
        return response.json()

    @staticmethod
    def _payload(fields: Mapping[str, Any]) -> Dict[str, Any]:
        return {key: jsonable(value) for key, value in fields.items()}

    async def ping(self) -> bool:
        try:
            await self._request("GET", "config", params={"select": "key", "limit": "1"})
            return True
        except StoreError:
            return False

    async def close(self) -> None:
        await self.client.aclose()

    # --- generic helpers ---

    async def _list(self, table: str, order: str, **filters: str) -> List[Record]:
        params = {"select": "*", "order": order}
        params.update({key: _eq(value) for key, value in filters.items()})
        return await self._request("GET", table, params=params) or []

    async def _get(self, table: str, record_id: str) -> Optional[Record]:
        rows = await self._request("GET", table, params={"select": "*", "id": _eq(record_id), "limit": "1"})
        return rows[0] if rows else None

    async def _create(self, table: str, fields: Mapping[str, Any], defaults: Mapping[str, Any]) -> Record:
        values = dict(defaults)
        values.update({key: value for key, value in fields.items() if value is not None})
        values["id"] = new_id()
        values["created_at"] = utc_now_iso()
        rows = await self._request("POST", table, json_body=self._payload(values), prefer="return=representation")
        if not rows:
            raise StoreError(f"Supabase returned no row for insert into {table}")
        return rows[0]

    async def _update(self, table: str, record_id: str, fields: Mapping[str, Any]) -> Optional[Record]:
        if not fields:
            return await self._get(table, record_id)
        rows = await self._request(
            "PATCH",
            table,
            params={"id": _eq(record_id)},
            json_body=self._payload(fields),
            prefer="return=representation",
        )
        return rows[0] if rows else None

    async def _delete(self, table: str, record_id: str) -> None:
        await self._request("DELETE", table, params={"id": _eq(record_id)})

    async def upsert(self, table: str, row: Mapping[str, Any]) -> None:
        """Insert `row` as given, or overwrite the row with the same primary key."""
        await self._request(
            "POST",
            table,
            json_body=self._payload(row),
            prefer="resolution=merge-duplicates,return=minimal",
        )

    # --- Commerces ---

    async def list_commerces(self) -> List[Record]:
        return await self._list("commerces", "created_at.desc")

    async def get_commerce(self, commerce_id: str) -> Optional[Record]:
        return await self._get("commerces", commerce_id)

    async def create_commerce(self, fields: Mapping[str, Any]) -> Record:
        return await self._create("commerces", fields, COMMERCE_DEFAULTS)

    async def update_commerce(self, commerce_id: str, fields: Mapping[str, Any]) -> Optional[Record]:
        return await self._update("commerces", commerce_id, fields)

    async def delete_commerce(self, commerce_id: str) -> None:
        await self._delete("commerces", commerce_id)

    # --- Projects ---

    async def list_projects(self) -> List[Record]:
        return await self._list("projects", "created_at.desc")

    async def get_project(self, project_id: str) -> Optional[Record]:
        return await self._get("projects", project_id)

    async def find_project_by_name(self, name: str) -> Optional[Record]:
        rows = await self._request("GET", "projects", params={"select": "*", "name": _eq(name), "limit": "1"})
        return rows[0] if rows else None

    async def create_project(self, fields: Mapping[str, Any]) -> Record:
        return await self._create("projects", fields, PROJECT_DEFAULTS)

    async def update_project(self, project_id: str, fields: Mapping[str, Any]) -> Optional[Record]:
        return await self._update("projects", project_id, fields)

    async def delete_project(self, project_id: str) -> None:
        await self._delete("projects", project_id)

    # --- Tasks ---

    async def list_tasks(self) -> List[Record]:
        rows = await self._request(
            "GET",
            "tasks",
            params={"select": "*,commerces(name)", "order": "due_date.asc.nullslast,created_at.desc"},
        ) or []
        records = []
        for row in rows:
            commerce = row.pop("commerces", None)
            row["commerce_name"] = commerce.get("name") if commerce else None
            records.append(row)
        return records

    async def get_task(self, task_id: str) -> Optional[Record]:
        return await self._get("tasks", task_id)

    async def list_tasks_by_project(self, project_id: str) -> List[Record]:
        return await self._list("tasks", "created_at.asc", project_id=project_id)

    async def list_tasks_by_commerce(self, commerce_id: str) -> List[Record]:
        return await self._list("tasks", "created_at.asc", commerce_id=commerce_id)

    async def create_task(self, fields: Mapping[str, Any]) -> Record:
        return await self._create("tasks", fields, TASK_DEFAULTS)

    async def update_task(self, task_id: str, fields: Mapping[str, Any]) -> Optional[Record]:
        return await self._update("tasks", task_id, fields)

    async def delete_task(self, task_id: str) -> None:
        await self._delete("tasks", task_id)

    # --- Config ---

    async def get_config(self, key: str) -> Optional[str]:
        rows = await self._request("GET", "config", params={"select": "value", "key": _eq(key), "limit": "1"})
        return rows[0].get("value") if rows else None

    async def set_config(self, key: str, value: str) -> None:
        await self.upsert("config", {"key": key, "value": str(value)})

    async def delete_config(self, key: str) -> None:
        await self._request("DELETE", "config", params={"key": _eq(key)})
