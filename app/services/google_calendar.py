"""
Google Calendar access, one OAuth identity per person.

Refresh tokens live in the `config` table under GOOGLE_REFRESH_TOKEN_{person};
calendar clients are built lazily and kept in a registry keyed by person.
The Google client library is blocking, so every remote call runs in the
threadpool. httplib2 connections are not thread-safe: each request executes
on its own authorized Http object.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, Optional

from fastapi.concurrency import run_in_threadpool
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from google_auth_oauthlib.flow import Flow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import build_http

from app.core.config import Settings
from app.repositories.base import Record, Store
from app.utils.time import local_today

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/calendar"]
AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"
TOKEN_KEY_PREFIX = "GOOGLE_REFRESH_TOKEN_"
EVENT_DURATION = timedelta(hours=1)


class CalendarError(Exception):
    """A Google Calendar call failed."""


def token_key(person: str) -> str:
    return f"{TOKEN_KEY_PREFIX}{person}"


@dataclass
class CalendarEvent:
    """The task fields mirrored to a calendar event."""

    name: str
    date: Optional[str] = None
    time: Optional[str] = None
    assignee: Optional[str] = None
    notes: Optional[str] = None

    @classmethod
    def from_task(cls, task: Record) -> "CalendarEvent":
        due = task.get("due_date")
        return cls(
            name=task.get("name") or "",
            date=str(due)[:10] if due else None,
            time=task.get("time_slot") or None,
            assignee=task.get("assignee"),
            notes=task.get("notes"),
        )


def build_event_body(event: CalendarEvent, timezone: str, today: Optional[date] = None) -> Dict[str, Any]:
    """
    Google event resource for `event`.

    With a time slot the event lasts one hour in `timezone`; without one it
    is an all-day event on the due date (today when there is none).
    """
    day = date.fromisoformat(event.date) if event.date else (today or local_today(timezone))
    if event.time:
        hours, minutes = (int(part) for part in event.time.split(":"))
        start = datetime(day.year, day.month, day.day, hours, minutes)
        end = start + EVENT_DURATION
        start_body = {"dateTime": start.isoformat(), "timeZone": timezone}
        end_body = {"dateTime": end.isoformat(), "timeZone": timezone}
    else:
        # All-day end dates are exclusive
        start_body = {"date": day.isoformat()}
        end_body = {"date": (day + timedelta(days=1)).isoformat()}

    description = f"Assigné à: {event.assignee or ''}"
    if event.notes:
        description = f"{description}\n\n{event.notes}"
    return {
        "summary": event.name,
        "description": f"{description}\nSync via Livrando App.",
        "start": start_body,
        "end": end_body,
    }


@dataclass
class CalendarClient:
    """A person's calendar v3 service and the credentials its requests run with."""

    service: Any
    credentials: Credentials

    def http(self) -> AuthorizedHttp:
        """Fresh authorized connection for a single request."""
        return AuthorizedHttp(self.credentials, http=build_http())


class CalendarGateway(ABC):
    """What task reconciliation needs from a calendar provider."""

    @abstractmethod
    async def has_credentials(self, person: str) -> bool:
        ...

    @abstractmethod
    async def create_event(self, person: str, event: CalendarEvent) -> Optional[str]:
        ...

    @abstractmethod
    async def update_event(self, person: str, event_id: str, event: CalendarEvent) -> None:
        ...

    @abstractmethod
    async def delete_event(self, person: str, event_id: str) -> None:
        ...


class GoogleCalendarService(CalendarGateway):
    """Calendar gateway backed by the Google Calendar v3 API."""

    def __init__(self, store: Store, settings: Settings):
        self.store = store
        self.client_id = settings.GOOGLE_CLIENT_ID
        self.client_secret = settings.GOOGLE_CLIENT_SECRET
        self.redirect_uri = settings.GOOGLE_REDIRECT_URI
        self.calendar_id = settings.GOOGLE_CALENDAR_ID
        self.timezone = settings.CALENDAR_TIMEZONE
        self.enabled = bool(settings.GOOGLE_CALENDAR_ENABLED and self.client_id and self.client_secret)
        self._clients: Dict[str, CalendarClient] = {}

    # ----- client registry -----

    def _credentials(self, refresh_token: str) -> Credentials:
        return Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri=TOKEN_URI,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=SCOPES,
        )

    def _build_service(self, creds: Credentials) -> Any:
        return build("calendar", "v3", credentials=creds, cache_discovery=False)

    async def _connect(self, creds: Credentials) -> CalendarClient:
        service = await run_in_threadpool(self._build_service, creds)
        return CalendarClient(service=service, credentials=creds)

    async def get_client(self, person: str) -> Optional[CalendarClient]:
        """Calendar client for `person`, or None when they never connected."""
        if not self.enabled or not person:
            return None
        client = self._clients.get(person)
        if client is not None:
            return client
        refresh_token = await self.store.get_config(token_key(person))
        if not refresh_token:
            return None
        client = await self._connect(self._credentials(refresh_token))
        self._clients[person] = client
        logger.info("Google Calendar client ready for %s", person)
        return client

    def reset(self, person: Optional[str] = None) -> None:
        """Drop cached clients so they are rebuilt from stored tokens."""
        if person is None:
            self._clients.clear()
        else:
            self._clients.pop(person, None)

    async def warm_up(self, people) -> None:
        for person in people:
            try:
                await self.get_client(person)
            except Exception:
                logger.exception("Could not initialise Google Calendar client for %s", person)

    async def has_credentials(self, person: str) -> bool:
        return await self.get_client(person) is not None

    # ----- OAuth -----

    def _flow(self) -> Flow:
        config = {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": [self.redirect_uri],
            }
        }
        # The callback builds a fresh Flow, so no PKCE verifier can be carried over
        return Flow.from_client_config(
            config,
            scopes=SCOPES,
            redirect_uri=self.redirect_uri,
            autogenerate_code_verifier=False,
        )

    def get_auth_url(self, person: str) -> Optional[str]:
        if not self.enabled:
            return None
        url, _state = self._flow().authorization_url(
            access_type="offline",
            prompt="consent",
            state=person,
        )
        return url

    async def handle_callback(self, code: str, person: str) -> bool:
        """Exchange the consent code and remember the person's refresh token."""
        if not self.enabled or not code or not person:
            return False
        flow = self._flow()
        try:
            await run_in_threadpool(flow.fetch_token, code=code)
        except Exception:
            logger.exception("Google OAuth code exchange failed for %s", person)
            return False

        creds = flow.credentials
        if creds.refresh_token:
            await self.store.set_config(token_key(person), creds.refresh_token)
        elif not await self.store.get_config(token_key(person)):
            logger.warning("Google returned no refresh token for %s", person)
            return False

        self._clients[person] = await self._connect(creds)
        logger.info("Google Calendar connected for %s", person)
        return True

    async def disconnect(self, person: str) -> None:
        await self.store.delete_config(token_key(person))
        self.reset(person)

    # ----- events -----

    async def _require_client(self, person: str) -> CalendarClient:
        client = await self.get_client(person)
        if client is None:
            raise CalendarError(f"No Google Calendar credentials for {person}")
        return client

    async def _execute(self, client: CalendarClient, request) -> Any:
        try:
            return await run_in_threadpool(request.execute, http=client.http())
        except HttpError as exc:
            raise CalendarError(str(exc)) from exc

    async def create_event(self, person: str, event: CalendarEvent) -> Optional[str]:
        client = await self._require_client(person)
        body = build_event_body(event, self.timezone)
        request = client.service.events().insert(calendarId=self.calendar_id, body=body)
        created = await self._execute(client, request)
        event_id = (created or {}).get("id")
        logger.info("Created Google event %s for %s", event_id, person)
        return event_id

    async def update_event(self, person: str, event_id: str, event: CalendarEvent) -> None:
        client = await self._require_client(person)
        body = build_event_body(event, self.timezone)
        request = client.service.events().patch(calendarId=self.calendar_id, eventId=event_id, body=body)
        await self._execute(client, request)
        logger.info("Updated Google event %s for %s", event_id, person)

    async def delete_event(self, person: str, event_id: str) -> None:
        client = await self._require_client(person)
        request = client.service.events().delete(calendarId=self.calendar_id, eventId=event_id)
        try:
            await run_in_threadpool(request.execute, http=client.http())
        except HttpError as exc:
            # Already gone on Google's side
            if getattr(exc, "resp", None) is not None and getattr(exc.resp, "status", None) in (404, 410):
                return
            raise CalendarError(str(exc)) from exc
        logger.info("Deleted Google event %s for %s", event_id, person)
