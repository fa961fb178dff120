"""
Reconciles in-person tasks with the assignees' calendars.

For every assignee who connected a calendar, the desired state is "an event
exists" exactly when the task is in-person:

    stored event id | in-person | action
    ----------------+-----------+--------------------------------
    none            | no        | nothing
    none            | yes       | create, store the returned id
    set             | yes       | update the event
    set             | no        | delete the event, clear the id

The task row holds a single google_event_id, so with several connected
assignees the id of the last successful create is the one kept. When the
assignee changes, dropped people have their event deleted and new people
get one created.

Sync runs after the task write has been committed. Calendar failures are
logged and never propagate to the caller.
"""

import logging
from typing import Iterable, List, Optional

from app.core.statuses import UNASSIGNED
from app.repositories.base import Record, Store, StoreError
from app.services.google_calendar import CalendarEvent, CalendarGateway

logger = logging.getLogger(__name__)

# Task columns whose change must be reflected on the remote event
SYNC_FIELDS = frozenset({"name", "assignee", "due_date", "time_slot", "is_in_person", "notes"})


def parse_assignees(value: Optional[str]) -> List[str]:
    """Split the comma-separated assignee column into people."""
    if not value:
        return []
    people = []
    for part in value.split(","):
        person = part.strip()
        if person and person != UNASSIGNED and person not in people:
            people.append(person)
    return people


def touches_calendar(fields: Iterable[str]) -> bool:
    return not SYNC_FIELDS.isdisjoint(fields)


class CalendarSync:
    def __init__(self, store: Store, calendar: CalendarGateway):
        self.store = store
        self.calendar = calendar

    async def _connected(self, people: Iterable[str]) -> List[str]:
        connected = []
        for person in people:
            try:
                if await self.calendar.has_credentials(person):
                    connected.append(person)
            except Exception:
                logger.exception("Could not load calendar credentials for %s", person)
        return connected

    async def reconcile(self, task: Record, previous_assignee: Optional[str] = None) -> Record:
        """
        Bring remote events in line with `task`; returns the task as stored afterwards.

        `previous_assignee` is the assignee column before an update. People
        dropped from it lose the event, people added to it get their own.
        """
        should_sync = bool(task.get("is_in_person"))
        existing = task.get("google_event_id")
        if not should_sync and not existing:
            return task

        current = parse_assignees(task.get("assignee"))
        previous = current if previous_assignee is None else parse_assignees(previous_assignee)
        people = await self._connected(current)
        dropped = await self._connected([p for p in previous if p not in current]) if existing else []
        if not people and not dropped:
            return task

        event = CalendarEvent.from_task(task)
        event_id = existing
        kept = False
        released = False
        for person in people:
            holds_event = bool(existing) and person in previous
            try:
                if should_sync and holds_event:
                    kept = True
                    await self.calendar.update_event(person, existing, event)
                elif should_sync:
                    created = await self.calendar.create_event(person, event)
                    if created:
                        event_id = created
                elif holds_event:
                    await self.calendar.delete_event(person, existing)
                    released = True
            except Exception:
                logger.exception("Calendar sync failed for task %s (%s)", task.get("id"), person)

        for person in dropped:
            try:
                await self.calendar.delete_event(person, existing)
                released = True
            except Exception:
                logger.exception("Could not delete calendar event %s for %s", existing, person)

        if event_id == existing and released and not kept:
            event_id = None
        if event_id == existing:
            return task

        try:
            await self.store.set_google_event_id(task["id"], event_id)
        except StoreError:
            logger.exception("Could not store google_event_id for task %s", task.get("id"))
            return task
        return {**task, "google_event_id": event_id}

    async def remove_events(self, tasks: Iterable[Record]) -> None:
        """Delete the remote events of tasks that are being removed."""
        for task in tasks:
            event_id = task.get("google_event_id")
            if not event_id:
                continue
            for person in await self._connected(parse_assignees(task.get("assignee"))):
                try:
                    await self.calendar.delete_event(person, event_id)
                except Exception:
                    logger.exception("Could not delete calendar event %s for %s", event_id, person)
