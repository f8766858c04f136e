from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from dealer_portal.core.config import settings
from dealer_portal.db.database import get_db
from dealer_portal.services.client_directory import ClientDirectory, DatabaseClientDirectory
from dealer_portal.services.impersonation import ImpersonationController
from dealer_portal.services.session_store import (
    CLIENT_SESSION_KEY,
    IMPERSONATION_MARKER_KEY,
    CookieStorage,
    SessionStore,
)

CONTROLLER_STATE_ATTR = "impersonation_controller"


def get_client_directory(db: AsyncSession = Depends(get_db)) -> ClientDirectory:
    return DatabaseClientDirectory(db)


def get_session_store(request: Request) -> SessionStore:
    cookie_names = {
        CLIENT_SESSION_KEY: settings.client_session_cookie_name,
        IMPERSONATION_MARKER_KEY: settings.impersonation_cookie_name,
    }
    return SessionStore(
        durable=CookieStorage(
            request,
            cookie_names,
            max_age=settings.client_session_max_age_seconds,
            secure=settings.cookie_secure,
        ),
        volatile=CookieStorage(request, cookie_names, max_age=None, secure=settings.cookie_secure),
    )


def get_impersonation_controller(
    request: Request,
    directory: ClientDirectory = Depends(get_client_directory),
    store: SessionStore = Depends(get_session_store),
) -> ImpersonationController:
    controller = ImpersonationController(directory, store, settings)
    # preview_navigation_middleware reads the guard from here
    setattr(request.state, CONTROLLER_STATE_ATTR, controller)
    return controller
