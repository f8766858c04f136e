"""
Portal HTTP middlewares: flush queued session cookies and keep preview
parameters on portal redirects.
"""
import logging

from fastapi import Request

from dealer_portal.core.config import settings
from dealer_portal.services.session_store import PENDING_COOKIES_ATTR
from dealer_portal.web.dependencies import CONTROLLER_STATE_ATTR

logger = logging.getLogger(__name__)


async def session_cookie_middleware(request: Request, call_next):
    """Write cookies queued by CookieStorage onto the outgoing response"""
    response = await call_next(request)
    pending = getattr(request.state, PENDING_COOKIES_ATTR, None)
    if not pending:
        return response

    for cookie in pending.values():
        if cookie.signed is None:
            response.delete_cookie(cookie.name, path="/", secure=cookie.secure, httponly=True, samesite="lax")
        else:
            response.set_cookie(
                cookie.name,
                cookie.signed,
                max_age=cookie.max_age,
                path="/",
                secure=cookie.secure,
                httponly=True,
                samesite="lax",
            )
    return response


async def preview_navigation_middleware(request: Request, call_next):
    """Redirects issued from inside a preview stay inside the preview"""
    response = await call_next(request)
    if not 300 <= response.status_code < 400:
        return response

    path = request.url.path
    if not (path.startswith(settings.portal_root) or path.startswith(settings.client_preview_path)):
        return response

    controller = getattr(request.state, CONTROLLER_STATE_ATTR, None)
    location = response.headers.get("location")
    if controller is None or not location:
        return response

    rewritten = controller.navigation_guard.rewrite(location)
    if rewritten != location:
        logger.debug("Preview redirect %s rewritten to %s", location, rewritten)
        response.headers["location"] = rewritten
    return response
