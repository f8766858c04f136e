"""
Staff Authentication Endpoints
"""
from datetime import timedelta
from typing import Any
import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from dealer_portal.api import deps
from dealer_portal.core.config import settings
from dealer_portal.core.security import create_access_token, verify_password
from dealer_portal.core.timezone import utc_now
from dealer_portal.db.database import get_db
from dealer_portal.models.user import User
from dealer_portal.schemas.auth import Token
from dealer_portal.schemas.user import UserResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=Token)
async def login(
    response: Response,
    db: AsyncSession = Depends(get_db),
    form_data: OAuth2PasswordRequestForm = Depends()
) -> Any:
    """
    OAuth2 compatible token login. The token is also set as the staff_token
    cookie so the client preview page opened in a new tab is authenticated.
    """
    # Case-insensitive email lookup
    result = await db.execute(
        select(User).where(func.lower(User.email) == form_data.username.strip().lower())
    )
    user = result.scalar_one_or_none()

    if not user or not verify_password(form_data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User account is inactive"
        )

    access_token_expires = timedelta(minutes=settings.access_token_expire_minutes)
    access_token = create_access_token(
        subject=str(user.id),
        expires_delta=access_token_expires,
        additional_claims={"role": user.role.value},
    )

    user.last_login_at = utc_now()
    await db.flush()
    await db.refresh(user)

    response.set_cookie(
        settings.staff_token_cookie_name,
        access_token,
        max_age=int(access_token_expires.total_seconds()),
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )
    logger.info(f"Staff user {user.full_name} ({user.email}) logged in")

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": user
    }


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(response: Response) -> None:
    response.delete_cookie(settings.staff_token_cookie_name)


@router.get("/me", response_model=UserResponse)
async def get_me(
    current_user: User = Depends(deps.get_current_active_user)
) -> Any:
    """Get current user info"""
    return current_user
