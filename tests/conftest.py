"""
Pytest configuration and shared fixtures.
"""

import json
import os

import pyotp
import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.security import generate_totp_secret, hash_password
from app.main import create_app
from app.services.google_calendar import CalendarError, CalendarGateway


# Test credentials - loaded into AUTH_USERS for every test app
TEST_ADMIN_EMAIL = "admin@test.com"
TEST_ADMIN_PASSWORD = "admin123"
TEST_ADMIN_NAME = "Ana"
TEST_TOTP_SECRET = generate_totp_secret()
TEST_PASSWORD_HASH = hash_password(TEST_ADMIN_PASSWORD)


def current_totp_code() -> str:
    return pyotp.TOTP(TEST_TOTP_SECRET).now()


class FakeCalendar(CalendarGateway):
    """Calendar gateway that records every call instead of talking to Google."""

    enabled = False

    def __init__(self, connected=()):
        self.connected = set(connected)
        self.calls = []
        self.fail = False
        self._created = 0

    def actions(self):
        return [call[0] for call in self.calls]

    async def has_credentials(self, person: str) -> bool:
        return person in self.connected

    async def create_event(self, person, event):
        self.calls.append(("create", person, event))
        if self.fail:
            raise CalendarError("calendar unavailable")
        self._created += 1
        return f"evt-{self._created}"

    async def update_event(self, person, event_id, event):
        self.calls.append(("update", person, event_id))
        if self.fail:
            raise CalendarError("calendar unavailable")

    async def delete_event(self, person, event_id):
        self.calls.append(("delete", person, event_id))
        if self.fail:
            raise CalendarError("calendar unavailable")


def make_settings(tmp_path, **overrides) -> Settings:
    values = {
        "DATABASE_URL": f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        "SECRET_KEY": "test-secret-key-with-enough-length-1234",
        "AUTH_USERS": json.dumps(
            [
                {
                    "email": TEST_ADMIN_EMAIL,
                    "name": TEST_ADMIN_NAME,
                    "password_hash": TEST_PASSWORD_HASH,
                    "totp_secret": TEST_TOTP_SECRET,
                }
            ]
        ),
        "GOOGLE_CALENDAR_ENABLED": False,
        "CALENDAR_USERS": [],
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def calendar():
    return FakeCalendar(connected={"Ana"})


@pytest.fixture
def client(settings, calendar):
    """TestClient with the lifespan running, so the store is open for the whole test."""
    with TestClient(create_app(settings, calendar=calendar)) as test_client:
        yield test_client


def login(client) -> str:
    """Run both login steps and return the session token."""
    response = client.post(
        "/api/auth/login",
        json={"email": TEST_ADMIN_EMAIL, "password": TEST_ADMIN_PASSWORD},
    )
    assert response.status_code == 200, response.text
    temp_token = response.json()["tempToken"]
    response = client.post(
        "/api/auth/verify-2fa",
        json={"tempToken": temp_token, "token": current_totp_code()},
    )
    assert response.status_code == 200, response.text
    return response.json()["token"]


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests, no external deps")
    config.addinivalue_line("markers", "db: requires database")
    config.addinivalue_line("markers", "server: requires running HTTP server")


def pytest_collection_modifyitems(config, items):
    run_db = os.environ.get("RUN_DB_TESTS") == "1"
    run_server = os.environ.get("RUN_SERVER_TESTS") == "1"

    skip_db = pytest.mark.skip(reason="db tests skipped by default; set RUN_DB_TESTS=1 to enable")
    skip_server = pytest.mark.skip(reason="server tests skipped by default; set RUN_SERVER_TESTS=1 to enable")

    for item in items:
        if "db" in item.keywords and not run_db:
            item.add_marker(skip_db)
        if "server" in item.keywords and not run_server:
            item.add_marker(skip_server)
