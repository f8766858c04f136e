"""
Client portal routes.

The same pages serve a logged-in client and staff previewing a client.
Which one is decided per request by the ImpersonationController.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from dealer_portal.api import deps
from dealer_portal.core.config import settings
from dealer_portal.core.exceptions import InvalidClientCredentialsError
from dealer_portal.core.permissions import Permission, has_permission
from dealer_portal.models.user import User
from dealer_portal.schemas.client import ClientIdentity, ClientLoginRequest, NavigationLink, PortalView
from dealer_portal.services.impersonation import ImpersonationController, RequestContext
from dealer_portal.web.dependencies import get_impersonation_controller

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Client Portal"])

DASHBOARD_PAGE = "dashboard"

# slug -> navigation label
PORTAL_PAGES = {
    "quotes": "Quotes",
    "deliveries": "Deliveries",
    "service": "Service",
    "documents": "Documents",
    "feedback": "Feedback",
    "account": "Account",
}


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url=url, status_code=status.HTTP_303_SEE_OTHER)


def _navigation(controller: ImpersonationController) -> List[NavigationLink]:
    root = settings.portal_root
    links = [("Dashboard", root)] + [(label, f"{root}/{slug}") for slug, label in PORTAL_PAGES.items()]
    guard = controller.navigation_guard
    return [NavigationLink(name=name, href=guard.rewrite(href)) for name, href in links]


def _portal_view(controller: ImpersonationController, identity: ClientIdentity, page: str) -> PortalView:
    return PortalView(
        identity=identity,
        is_preview=identity.is_preview,
        page=page,
        navigation=_navigation(controller),
        exit_preview_url=f"{settings.portal_root}/exit-preview" if identity.is_preview else None,
    )


def _portal_context(request: Request, staff_user: Optional[User]) -> RequestContext:
    """
    Preview parameters are honoured only for staff allowed to preview, and
    only within their dealership. Anyone else falls through to the marker
    or their own session.
    """
    if staff_user is not None and has_permission(staff_user.role, Permission.PREVIEW_CLIENT_PORTAL):
        return RequestContext.from_query_params(request.query_params, dealership_id=deps.dealership_scope(staff_user))

    context = RequestContext.from_query_params(request.query_params)
    if context.wants_preview:
        logger.warning("Ignoring preview parameters for client %s: no staff user with preview permission", context.client_id)
    return RequestContext()


async def _render(
    request: Request,
    staff_user: Optional[User],
    controller: ImpersonationController,
    page: str,
):
    identity = await controller.resolve_active_identity(_portal_context(request, staff_user))
    if identity is None:
        return _redirect(settings.portal_login_url)
    return _portal_view(controller, identity, page)


@router.get(settings.portal_root, response_model=PortalView)
async def portal_home(
    request: Request,
    staff_user: Optional[User] = Depends(deps.get_optional_staff_user),
    controller: ImpersonationController = Depends(get_impersonation_controller),
):
    """Client dashboard"""
    return await _render(request, staff_user, controller, DASHBOARD_PAGE)


@router.get(f"{settings.portal_root}/login")
async def portal_login_page():
    """Where anonymous visitors are sent. The form posts to the same URL."""
    return {"detail": "Client login required", "login_url": settings.portal_login_url}


@router.post(f"{settings.portal_root}/login", response_model=ClientIdentity)
async def portal_login(
    payload: ClientLoginRequest,
    controller: ImpersonationController = Depends(get_impersonation_controller),
):
    try:
        return await controller.login_client(payload.email, payload.password)
    except InvalidClientCredentialsError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))


@router.post(f"{settings.portal_root}/logout")
async def portal_logout(
    controller: ImpersonationController = Depends(get_impersonation_controller),
):
    controller.logout_client()
    return _redirect(settings.portal_login_url)


@router.post(f"{settings.portal_root}/exit-preview")
async def portal_exit_preview(
    staff_user: Optional[User] = Depends(deps.get_optional_staff_user),
    controller: ImpersonationController = Depends(get_impersonation_controller),
):
    """Leave the preview. Full navigation to the portal root so nothing stale survives."""
    controller.stop_impersonation(actor=staff_user.email if staff_user else None)
    return _redirect(settings.portal_root)


@router.get(f"{settings.portal_root}/dashboard")
async def portal_dashboard_alias(
    request: Request,
    staff_user: Optional[User] = Depends(deps.get_optional_staff_user),
    controller: ImpersonationController = Depends(get_impersonation_controller),
):
    # Resolve first so a preview redirect keeps its parameters
    await controller.resolve_active_identity(_portal_context(request, staff_user))
    return _redirect(settings.portal_root)


@router.get(f"{settings.portal_root}/{{page}}", response_model=PortalView)
async def portal_page(
    page: str,
    request: Request,
    staff_user: Optional[User] = Depends(deps.get_optional_staff_user),
    controller: ImpersonationController = Depends(get_impersonation_controller),
):
    if page not in PORTAL_PAGES:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found")
    return await _render(request, staff_user, controller, page)


@router.get(settings.client_preview_path, response_model=PortalView)
async def client_preview(
    request: Request,
    staff_user: Optional[User] = Depends(deps.get_optional_staff_user),
    controller: ImpersonationController = Depends(get_impersonation_controller),
):
    """
    Staff entrypoint for "view as client".
    Accepts ?impersonateClientId=X, ?preview=true&clientId=X, or an
    impersonation already running in this window.
    """
    if staff_user is None:
        return _redirect(settings.staff_login_url)
    if not has_permission(staff_user.role, Permission.PREVIEW_CLIENT_PORTAL):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to preview the client portal")

    context = RequestContext.from_query_params(request.query_params, dealership_id=deps.dealership_scope(staff_user))
    if not context.wants_preview and not controller.is_impersonating():
        return _redirect(settings.admin_client_list_url)

    identity = await controller.resolve_active_identity(context)
    if identity is None:
        return _redirect(settings.admin_client_list_url)
    return _portal_view(controller, identity, DASHBOARD_PAGE)
