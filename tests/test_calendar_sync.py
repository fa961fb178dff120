"""
Reconciliation of in-person tasks with the assignees' calendars.

The app runs with FakeCalendar (tests/conftest.py), where only "Ana" has
connected a calendar.
"""

from datetime import date

import pytest

from app.services.calendar_sync import parse_assignees
from app.services.google_calendar import CalendarEvent, build_event_body
from app.utils.time import local_today


def _visit(client, **fields):
    body = {"name": "Call client", "assignee": "Ana", "isInPerson": True}
    body.update(fields)
    response = client.post("/api/tasks", json=body)
    assert response.status_code == 200, response.text
    return response.json()


def test_in_person_task_creates_one_timed_event(client, calendar):
    task = _visit(client, dueDate="2025-03-10", timeSlot="14:00")

    assert calendar.actions() == ["create"]
    _action, person, event = calendar.calls[0]
    assert person == "Ana"
    assert task["google_event_id"] == "evt-1"
    assert client.get(f"/api/tasks/{task['id']}").json()["googleEventId"] == "evt-1"

    body = build_event_body(event, "Europe/Paris")
    assert body["summary"] == "Call client"
    assert body["start"] == {"dateTime": "2025-03-10T14:00:00", "timeZone": "Europe/Paris"}
    assert body["end"] == {"dateTime": "2025-03-10T15:00:00", "timeZone": "Europe/Paris"}


def test_toggling_in_person_creates_deletes_then_creates(client, calendar):
    task = _visit(client, dueDate="2025-03-10")

    off = client.patch(f"/api/tasks/{task['id']}", json={"isInPerson": False}).json()
    assert off["google_event_id"] is None

    on = client.patch(f"/api/tasks/{task['id']}", json={"isInPerson": True}).json()

    assert calendar.actions() == ["create", "delete", "create"]
    assert calendar.calls[1][2] == "evt-1"
    assert on["google_event_id"] == "evt-2"


def test_unrelated_edit_updates_the_existing_event(client, calendar):
    task = _visit(client)

    client.patch(f"/api/tasks/{task['id']}", json={"notes": "Apporter le catalogue"})

    assert calendar.actions() == ["create", "update"]
    assert calendar.calls[1][2] == "evt-1"
    assert client.get(f"/api/tasks/{task['id']}").json()["google_event_id"] == "evt-1"


def test_status_only_change_does_not_touch_the_calendar(client, calendar):
    task = _visit(client)

    client.patch(f"/api/tasks/{task['id']}", json={"status": "To do"})
    client.patch(f"/api/tasks/{task['id']}", json={"status": "Done"})

    assert calendar.actions() == ["create"]


def test_assignee_without_credentials_is_skipped(client, calendar):
    task = _visit(client, assignee="Ludovic")

    assert calendar.calls == []
    assert task["google_event_id"] is None


def test_not_in_person_task_creates_nothing(client, calendar):
    _visit(client, isInPerson=False)
    assert calendar.calls == []


def test_calendar_failure_does_not_fail_the_request(client, calendar):
    calendar.fail = True

    task = _visit(client)

    assert calendar.actions() == ["create"]
    assert task["google_event_id"] is None
    assert client.get(f"/api/tasks/{task['id']}").status_code == 200


def test_several_connected_assignees_keep_the_last_event_id(client, calendar):
    calendar.connected.add("Ludovic")

    task = _visit(client, assignee="Ana, Ludovic, Unassigned")

    assert [(a, p) for a, p, _ in calendar.calls] == [("create", "Ana"), ("create", "Ludovic")]
    assert task["google_event_id"] == "evt-2"


def test_reassigning_a_visit_moves_the_event(client, calendar):
    calendar.connected.add("Ludovic")
    task = _visit(client)

    moved = client.patch(f"/api/tasks/{task['id']}", json={"assignee": "Ludovic"}).json()

    assert [(a, p) for a, p, _ in calendar.calls] == [
        ("create", "Ana"),
        ("create", "Ludovic"),
        ("delete", "Ana"),
    ]
    assert calendar.calls[2][2] == "evt-1"
    assert moved["google_event_id"] == "evt-2"


def test_reassigning_to_someone_without_calendar_clears_the_event(client, calendar):
    task = _visit(client)

    moved = client.patch(f"/api/tasks/{task['id']}", json={"assignee": "Ludovic"}).json()

    assert calendar.calls[1:] == [("delete", "Ana", "evt-1")]
    assert moved["google_event_id"] is None


def test_adding_an_assignee_keeps_the_shared_event(client, calendar):
    calendar.connected.add("Ludovic")
    task = _visit(client)

    both = client.patch(f"/api/tasks/{task['id']}", json={"assignee": "Ana, Ludovic"}).json()

    assert [(a, p) for a, p, _ in calendar.calls] == [
        ("create", "Ana"),
        ("update", "Ana"),
        ("create", "Ludovic"),
    ]
    assert both["google_event_id"] == "evt-2"


def test_deleting_a_visit_removes_its_event(client, calendar):
    parent = client.post("/api/tasks", json={"name": "Tournée"}).json()
    visit = _visit(client, parentId=parent["id"])

    client.delete(f"/api/tasks/{parent['id']}")

    assert calendar.actions() == ["create", "delete"]
    assert calendar.calls[1][2] == visit["google_event_id"]


@pytest.mark.unit
def test_parse_assignees():
    assert parse_assignees("Ana, Ludovic ,Ana,,Unassigned") == ["Ana", "Ludovic"]
    assert parse_assignees(None) == []
    assert parse_assignees("Unassigned") == []


@pytest.mark.unit
def test_all_day_event_ends_the_next_day():
    event = CalendarEvent(name="Visite", date="2025-03-31", assignee="Ana", notes="Code porte 1234")

    body = build_event_body(event, "Europe/Paris")

    assert body["start"] == {"date": "2025-03-31"}
    assert body["end"] == {"date": "2025-04-01"}
    assert body["description"] == "Assigné à: Ana\n\nCode porte 1234\nSync via Livrando App."


@pytest.mark.unit
def test_undated_event_falls_back_to_today():
    body = build_event_body(CalendarEvent(name="Visite", time="23:30"), "Europe/Paris", today=date(2025, 12, 31))

    assert body["start"]["dateTime"] == "2025-12-31T23:30:00"
    assert body["end"]["dateTime"] == "2026-01-01T00:30:00"


@pytest.mark.unit
def test_undated_all_day_event_uses_today_in_the_calendar_timezone():
    body = build_event_body(CalendarEvent(name="Visite"), "Europe/Paris")

    assert body["start"] == {"date": local_today("Europe/Paris").isoformat()}
