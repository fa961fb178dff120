"""
NotionStore against an in-memory Notion API served through
httpx.MockTransport, so requests go through the real notion-client SDK.
"""

import asyncio
import json
import uuid

import httpx
import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.repositories import StoreError, build_store
from app.repositories.notion_store import NotionStore, decode_property, encode_property
from tests.conftest import FakeCalendar, make_settings

pytestmark = pytest.mark.unit

DATABASES = {"crm": "crm-db", "projects": "projects-db", "tasks": "tasks-db", "config": "config-db"}


def _error(status, code, message):
    return httpx.Response(status, json={"object": "error", "status": status, "code": code, "message": message})


class FakeNotion:
    """Just enough of the Notion pages/databases API for the store."""

    def __init__(self):
        self.pages = {}
        self.requests = []
        self._clock = 0

    def _stored(self, properties):
        result = {}
        for name, value in properties.items():
            ((kind, content),) = value.items()
            if kind in ("title", "rich_text"):
                content = [dict(part, plain_text=part["text"]["content"]) for part in content]
            result[name] = {"type": kind, kind: content}
        return result

    def _created_time(self):
        self._clock += 1
        return f"2025-01-01T00:{self._clock // 60:02d}:{self._clock % 60:02d}.000Z"

    @staticmethod
    def _matches(page, query_filter):
        if not query_filter:
            return True
        prop = page["properties"].get(query_filter["property"]) or {}
        if "title" in query_filter:
            text = "".join(part["plain_text"] for part in prop.get("title", []))
            return text == query_filter["title"]["equals"]
        wanted = query_filter["relation"]["contains"]
        return any(link["id"] == wanted for link in prop.get("relation", []))

    def handler(self, request):
        body = (json.loads(request.content) if request.content else None) or {}
        parts = request.url.path.strip("/").split("/")[1:]
        self.requests.append((request.method, "/".join(parts), body))

        if parts[0] == "databases" and len(parts) == 3 and parts[2] == "query":
            results = [
                page
                for page in self.pages.values()
                if page["parent"]["database_id"] == parts[1]
                and not page["archived"]
                and self._matches(page, body.get("filter"))
            ]
            listing = {"object": "list", "results": results, "has_more": False, "next_cursor": None}
            return httpx.Response(200, json=listing)
        if parts[0] == "databases":
            return httpx.Response(200, json={"object": "database", "id": parts[1]})

        if request.method == "POST":
            page = {
                "object": "page",
                "id": str(uuid.uuid4()),
                "created_time": self._created_time(),
                "parent": {"type": "database_id", **body["parent"]},
                "archived": False,
                "properties": self._stored(body.get("properties", {})),
            }
            self.pages[page["id"]] = page
            return httpx.Response(200, json=page)

        page = self.pages.get(parts[1])
        if page is None:
            return _error(404, "object_not_found", f"Could not find page with ID: {parts[1]}.")
        if request.method == "PATCH":
            page["properties"].update(self._stored(body.get("properties", {})))
            if "archived" in body:
                page["archived"] = body["archived"]
        return httpx.Response(200, json=page)

    def sent(self, method, path_prefix):
        return [body for m, path, body in self.requests if m == method and path.startswith(path_prefix)]


def _store(notion, with_config=True):
    return NotionStore(
        "secret_test",
        DATABASES["crm"],
        DATABASES["projects"],
        DATABASES["tasks"],
        config_db_id=DATABASES["config"] if with_config else None,
        transport=httpx.MockTransport(notion.handler),
    )


def _run(store, scenario):
    async def main():
        try:
            return await scenario(store)
        finally:
            await store.close()

    return asyncio.run(main())


@pytest.fixture
def notion():
    return FakeNotion()


@pytest.fixture
def notion_client(tmp_path, notion):
    settings = make_settings(tmp_path, STORE_BACKEND="notion")
    with TestClient(create_app(settings, store=_store(notion), calendar=FakeCalendar(connected={"Ana"}))) as client:
        yield client


# ----- property mapping -----


def test_create_commerce_writes_crm_properties(notion):
    commerce = _run(_store(notion), lambda s: s.create_commerce({"name": "Chez Paul", "contact": "Paul"}))

    body = notion.sent("POST", "pages")[0]
    assert body["parent"] == {"database_id": "crm-db"}
    properties = body["properties"]
    assert properties["Business Name"]["title"][0]["text"]["content"] == "Chez Paul"
    assert properties["Status"] == {"select": {"name": "À démarcher"}}
    assert properties["Contact Person"]["rich_text"][0]["text"]["content"] == "Paul"
    assert commerce["name"] == "Chez Paul"
    assert commerce["status"] == "À démarcher"
    assert commerce["created_at"].startswith("2025-01-01T")


def test_create_task_writes_task_properties(notion):
    async def scenario(store):
        project = await store.create_project({"name": "Projet - Chez Paul"})
        task = await store.create_task(
            {
                "name": "Visite",
                "assignee": "Ana",
                "due_date": "2025-03-10",
                "is_in_person": True,
                "project_id": project["id"],
            }
        )
        return project, task

    project, task = _run(_store(notion), scenario)

    properties = notion.sent("POST", "pages")[1]["properties"]
    assert properties["Task Name"]["title"][0]["text"]["content"] == "Visite"
    assert properties["Assigned To"] == {"select": {"name": "Ana"}}
    assert properties["Due Date"] == {"date": {"start": "2025-03-10"}}
    assert properties["In-person Visit?"] == {"checkbox": True}
    assert properties["Project"] == {"relation": [{"id": project["id"]}]}
    assert properties["Status"] == {"select": {"name": "To do"}}
    assert task["due_date"] == "2025-03-10"
    assert task["project_id"] == project["id"]
    assert task["is_in_person"] is True


def test_requests_carry_the_integration_token(notion):
    seen = {}

    def handler(request):
        seen["headers"] = request.headers
        return notion.handler(request)

    store = NotionStore("secret_test", "crm-db", "projects-db", "tasks-db", transport=httpx.MockTransport(handler))
    assert _run(store, lambda s: s.ping()) is True
    assert seen["headers"]["authorization"] == "Bearer secret_test"
    assert "notion-version" in seen["headers"]


@pytest.mark.parametrize(
    "kind,value,expected",
    [
        ("select", None, {"select": None}),
        ("relation", None, {"relation": []}),
        ("date", None, {"date": None}),
        ("rich_text", None, {"rich_text": []}),
        ("email", "", {"email": None}),
        ("number", 40, {"number": 40}),
    ],
)
def test_encode_clears_empty_values(kind, value, expected):
    assert encode_property(kind, value) == expected


def test_long_text_is_split_into_chunks():
    encoded = encode_property("rich_text", "x" * 4500)
    assert [len(part["text"]["content"]) for part in encoded["rich_text"]] == [2000, 2000, 500]


def test_decode_reads_page_values():
    assert decode_property({"type": "multi_select", "multi_select": [{"name": "Ana"}, {"name": "Bob"}]}) == "Ana, Bob"
    assert decode_property({"type": "date", "date": {"start": "2025-03-10T09:00:00.000+01:00"}}) == "2025-03-10"
    assert decode_property({"type": "title", "title": []}) is None
    assert decode_property(None) is None


# ----- lookups and errors -----


def test_missing_or_foreign_pages_read_as_none(notion):
    async def scenario(store):
        commerce = await store.create_commerce({"name": "C"})
        return (
            await store.get_task(str(uuid.uuid4())),
            await store.get_task(commerce["id"]),
            await store.update_task(commerce["id"], {"name": "x"}),
        )

    assert _run(_store(notion), scenario) == (None, None, None)


def test_several_assignees_are_rejected(notion):
    with pytest.raises(StoreError, match="Assigned To"):
        _run(_store(notion), lambda s: s.create_task({"name": "t", "assignee": "Ana, Ludovic"}))


def test_server_errors_become_store_errors():
    def handler(request):
        return _error(503, "service_unavailable", "Notion is unavailable")

    store = NotionStore("k", "crm-db", "projects-db", "tasks-db", transport=httpx.MockTransport(handler))
    with pytest.raises(StoreError, match="unavailable"):
        _run(store, lambda s: s.list_commerces())


def test_config_upsert_and_delete(notion):
    async def scenario(store):
        await store.set_config("GOOGLE_REFRESH_TOKEN_Ana", "first")
        await store.set_config("GOOGLE_REFRESH_TOKEN_Ana", "second")
        value = await store.get_config("GOOGLE_REFRESH_TOKEN_Ana")
        await store.delete_config("GOOGLE_REFRESH_TOKEN_Ana")
        return value, await store.get_config("GOOGLE_REFRESH_TOKEN_Ana")

    assert _run(_store(notion), scenario) == ("second", None)
    assert len(notion.sent("POST", "pages")) == 1


def test_config_needs_its_database(notion):
    store = _store(notion, with_config=False)
    assert _run(store, lambda s: s.get_config("GOOGLE_REFRESH_TOKEN_Ana")) is None
    with pytest.raises(StoreError, match="NOTION_CONFIG_DB_ID"):
        _run(_store(notion, with_config=False), lambda s: s.set_config("GOOGLE_REFRESH_TOKEN_Ana", "x"))


def test_build_store_selects_notion(tmp_path):
    with pytest.raises(StoreError):
        build_store(make_settings(tmp_path, STORE_BACKEND="notion"))

    store = build_store(
        make_settings(
            tmp_path,
            STORE_BACKEND="notion",
            NOTION_API_KEY="secret_test",
            NOTION_CRM_DB_ID="crm-db",
            NOTION_PROJECTS_DB_ID="projects-db",
            NOTION_TASKS_DB_ID="tasks-db",
        )
    )
    assert isinstance(store, NotionStore)
    assert "config" not in store.tables
    asyncio.run(store.close())


# ----- the API on top of Notion -----


def test_crm_flow_opens_a_project(notion_client, notion):
    commerce = notion_client.post("/api/crm", json={"name": "Boulangerie Martin"}).json()
    notion_client.patch(f"/api/crm/{commerce['id']}", json={"status": "En cours"})
    notion_client.patch(f"/api/crm/{commerce['id']}", json={"status": "Gagné"})

    projects = [p for p in notion_client.get("/api/projects").json() if p["name"] == "Projet - Boulangerie Martin"]
    assert len(projects) == 1
    assert projects[0]["status"] == "📅 Planifié"
    assert notion_client.get(f"/api/crm/{commerce['id']}").json()["status"] == "Gagné"


def test_task_crud_progress_and_stats(notion_client):
    project = notion_client.post("/api/projects", json={"name": "Livraison"}).json()
    pid = project["id"]

    done = notion_client.post("/api/tasks", json={"name": "a", "projectId": pid, "status": "Done"}).json()
    notion_client.post("/api/tasks", json={"name": "b", "projectId": pid})
    assert notion_client.get(f"/api/projects/{pid}").json()["progress"] == 50

    notion_client.patch(f"/api/tasks/{done['id']}", json={"status": "To do"})
    assert notion_client.get(f"/api/projects/{pid}").json()["progress"] == 0

    notion_client.post("/api/tasks", json={"name": "loose", "dueDate": "2025-02-01"})
    notion_client.post("/api/crm", json={"name": "Lead"})

    assert notion_client.get("/api/stats").json() == {"leads": 1, "projects": 1, "tasks": 1}
    names = [t["name"] for t in notion_client.get("/api/tasks").json()]
    assert names[0] == "loose"


def test_delete_task_archives_the_subtree(notion_client, notion):
    root = notion_client.post("/api/tasks", json={"name": "root"}).json()
    child = notion_client.post("/api/tasks", json={"name": "child", "parentId": root["id"]}).json()
    grandchild = notion_client.post("/api/tasks", json={"name": "grandchild", "parentId": child["id"]}).json()
    other = notion_client.post("/api/tasks", json={"name": "other"}).json()

    assert notion_client.delete(f"/api/tasks/{root['id']}").json() == {"success": True}

    assert [t["id"] for t in notion_client.get("/api/tasks").json()] == [other["id"]]
    assert notion.pages[grandchild["id"]]["archived"] is True
    assert notion_client.get(f"/api/tasks/{child['id']}").status_code == 404


def test_delete_project_detaches_its_tasks(notion_client):
    project = notion_client.post("/api/projects", json={"name": "P"}).json()
    task = notion_client.post("/api/tasks", json={"name": "t", "projectId": project["id"]}).json()

    notion_client.delete(f"/api/projects/{project['id']}")

    assert notion_client.get(f"/api/projects/{project['id']}").status_code == 404
    assert notion_client.get(f"/api/tasks/{task['id']}").json()["project_id"] is None


def test_in_person_task_stores_the_event_id(notion_client):
    task = notion_client.post("/api/tasks", json={"name": "Visite", "assignee": "Ana", "isInPerson": True}).json()

    assert task["google_event_id"] == "evt-1"
    assert notion_client.get(f"/api/tasks/{task['id']}").json()["googleEventId"] == "evt-1"
