"""
API Dependencies
"""
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dealer_portal.core.config import settings
from dealer_portal.core.permissions import Permission, has_permission, is_super_admin
from dealer_portal.core.security import verify_token
from dealer_portal.db.database import get_db
from dealer_portal.models.user import User

# Security scheme. auto_error is off so the browser preview entrypoint can
# fall back to the staff_token cookie instead of failing with 403.
security = HTTPBearer(auto_error=False)


async def _load_staff_user(db: AsyncSession, token: str) -> Optional[User]:
    user_id = verify_token(token, token_type="access")
    if not user_id:
        return None
    try:
        user_uuid = UUID(user_id)
    except ValueError:
        return None
    result = await db.execute(select(User).where(User.id == user_uuid))
    return result.scalar_one_or_none()


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Get the current authenticated staff user from the bearer token"""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await _load_staff_user(db, credentials.credentials)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Ensure user is active"""
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user",
        )
    return current_user


async def get_optional_staff_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """
    Staff user from the bearer token or the staff_token cookie, or None.
    Used by pages that redirect to the login page instead of answering 401.
    """
    token = credentials.credentials if credentials else request.cookies.get(settings.staff_token_cookie_name)
    if not token:
        return None
    user = await _load_staff_user(db, token)
    if not user or not user.is_active:
        return None
    return user


def require_permission(permission: Permission):
    """Dependency factory for permission checks"""
    async def permission_checker(
        current_user: User = Depends(get_current_active_user),
    ) -> User:
        if not has_permission(current_user.role, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {permission.value}",
            )
        return current_user
    return permission_checker


def dealership_scope(user: User) -> Optional[UUID]:
    """Dealership a staff user is confined to, None for super admins"""
    if is_super_admin(user.role):
        return None
    return user.dealership_id
