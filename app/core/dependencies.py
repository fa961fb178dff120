"""
FastAPI dependencies for the application.
"""

from typing import Optional

from fastapi import Depends, Request

from app.errors import AppError
from app.repositories.base import Store


def get_store(request: Request) -> Store:
    """The persistence backend selected at startup."""
    return request.app.state.store


def get_calendar(request: Request):
    """The calendar gateway (GoogleCalendarService in production)."""
    return request.app.state.calendar


def get_settings(request: Request):
    return request.app.state.settings


def get_session_manager(request: Request):
    return request.app.state.session_manager


def get_credential_store(request: Request):
    return request.app.state.credentials


def get_optional_user(request: Request) -> Optional[dict]:
    """Identity attached by the session middleware, or None."""
    return getattr(request.state, "user", None)


def get_current_user(user: Optional[dict] = Depends(get_optional_user)) -> dict:
    """
    Require a valid session.

    Raises:
        401: If no valid session cookie or bearer token was sent
    """
    if not user:
        raise AppError(401, "Not authenticated")
    return user


def require_session_if_enabled(request: Request, user: Optional[dict] = Depends(get_optional_user)) -> None:
    """Gate data routers behind a session when REQUIRE_AUTH is on."""
    if request.app.state.settings.REQUIRE_AUTH and not user:
        raise AppError(401, "Not authenticated")
