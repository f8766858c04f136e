"""
Client Portal Admin Endpoints - client account list and "view as client"
"""
from math import ceil
from typing import Any, Optional
from urllib.parse import urlencode
from uuid import UUID
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from dealer_portal.api import deps
from dealer_portal.core.config import settings
from dealer_portal.core.exceptions import ClientNotFoundError
from dealer_portal.core.permissions import Permission, has_permission
from dealer_portal.db.database import get_db
from dealer_portal.models.user import User
from dealer_portal.schemas.client import (
    ClientAccountListResponse,
    ClientAccountResponse,
    ImpersonationResponse,
    ImpersonationStartRequest,
    ImpersonationStatus,
)
from dealer_portal.services.client_directory import ClientAccountService
from dealer_portal.services.impersonation import ImpersonationController
from dealer_portal.services.navigation import IMPERSONATE_CLIENT_ID_PARAM
from dealer_portal.web.dependencies import get_impersonation_controller

logger = logging.getLogger(__name__)

router = APIRouter()


def _account_scope(current_user: User, requested: Optional[UUID] = None) -> Optional[UUID]:
    """Dealership the user may list, None meaning all dealerships"""
    if has_permission(current_user.role, Permission.VIEW_ALL_CLIENT_ACCOUNTS):
        return requested
    if has_permission(current_user.role, Permission.VIEW_DEALERSHIP_CLIENT_ACCOUNTS):
        return current_user.dealership_id
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Not allowed to view client accounts",
    )


@router.get("/accounts", response_model=ClientAccountListResponse)
async def list_client_accounts(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    dealership_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user)
) -> Any:
    """List client portal accounts visible to the current user"""
    scope = _account_scope(current_user, dealership_id)
    items, total = await ClientAccountService.list_accounts(
        db, dealership_id=scope, search=search, page=page, page_size=page_size
    )
    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "pages": ceil(total / page_size) if total else 0,
    }


@router.get("/accounts/{client_id}", response_model=ClientAccountResponse)
async def get_client_account(
    client_id: str,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user)
) -> Any:
    scope = _account_scope(current_user)
    account = await ClientAccountService.get_account(db, client_id)
    if not account or (scope and account.dealership_id != scope):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")
    return account


@router.post("/impersonation", response_model=ImpersonationResponse)
async def start_client_impersonation(
    payload: ImpersonationStartRequest,
    current_user: User = Depends(deps.require_permission(Permission.PREVIEW_CLIENT_PORTAL)),
    controller: ImpersonationController = Depends(get_impersonation_controller),
) -> Any:
    """
    Start viewing the client portal as a client.
    Directory failures surface as 503 and can be retried.
    """
    try:
        identity = await controller.start_impersonation(
            payload.client_id,
            actor=current_user.email,
            dealership_id=deps.dealership_scope(current_user),
        )
    except ClientNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Client not found")

    preview_url = f"{settings.client_preview_path}?{urlencode({IMPERSONATE_CLIENT_ID_PARAM: identity.id})}"
    return {"identity": identity, "preview_url": preview_url}


@router.get("/impersonation", response_model=ImpersonationStatus)
async def get_client_impersonation(
    current_user: User = Depends(deps.get_current_active_user),
    controller: ImpersonationController = Depends(get_impersonation_controller),
) -> Any:
    client_id = controller.impersonated_client_id()
    return {"impersonating": client_id is not None, "client_id": client_id}


@router.delete("/impersonation", response_model=ImpersonationStatus)
async def stop_client_impersonation(
    current_user: User = Depends(deps.get_current_active_user),
    controller: ImpersonationController = Depends(get_impersonation_controller),
) -> Any:
    controller.stop_impersonation(actor=current_user.email)
    return {"impersonating": False, "client_id": None}
