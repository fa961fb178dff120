"""
Main FastAPI application.

This is the entry point for the API server.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import Settings, settings as default_settings
from app.core.logging import configure_logging
from app.core.middleware import SessionMiddleware
from app.core.session import SessionManager
from app.errors import (
    AppError,
    app_error_handler,
    http_exception_handler,
    store_error_handler,
    unhandled_error_handler,
    validation_error_handler,
)
from app.repositories import Store, StoreError, build_store
from app.routers import auth, backup, crm, health, projects, stats, task
from app.services.auth_service import CredentialStore
from app.services.google_calendar import CalendarGateway, GoogleCalendarService

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[Store] = None,
    calendar: Optional[CalendarGateway] = None,
) -> FastAPI:
    """
    Build the API.

    `store` and `calendar` default to the backends named in settings; tests
    pass their own.
    """
    settings = settings or default_settings
    configure_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Lifespan context manager for the FastAPI app.

        - On startup: open the store (creating tables if configured) and the
          calendar gateway.
        - On shutdown: close the store's connections.
        """
        logger.info("Starting %s...", settings.APP_NAME)
        app.state.store = store or build_store(settings)
        await app.state.store.startup()

        if calendar is not None:
            app.state.calendar = calendar
        else:
            google = GoogleCalendarService(app.state.store, settings)
            if google.enabled:
                await google.warm_up(settings.CALENDAR_USERS)
            else:
                logger.info("Google Calendar sync disabled")
            app.state.calendar = google
        logger.info("Store backend: %s", app.state.store.backend)

        yield  # The server runs while we're "yielded" here

        logger.info("Shutting down %s...", settings.APP_NAME)
        await app.state.store.close()

    app = FastAPI(
        title=settings.APP_NAME,
        description="CRM, projects, tasks and visit scheduling API",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.session_manager = SessionManager.from_settings(settings)
    app.state.credentials = CredentialStore.from_settings(settings)
    if not len(app.state.credentials):
        logger.warning("AUTH_USERS is empty; nobody can log in")

    app.add_middleware(SessionMiddleware)

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Include routers (API endpoints)
    app.include_router(health.router, tags=["Health"])
    app.include_router(auth.router)
    app.include_router(crm.router)
    app.include_router(projects.router)
    app.include_router(task.router)
    app.include_router(stats.router)
    app.include_router(backup.router)

    return app


app = create_app()
