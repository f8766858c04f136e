"""
Schemas module initialization
"""
from dealer_portal.schemas.auth import Token
from dealer_portal.schemas.user import UserResponse
from dealer_portal.schemas.client import (
    ClientIdentity,
    ClientAccountResponse,
    ClientAccountListResponse,
    ClientLoginRequest,
    ImpersonationStartRequest,
    ImpersonationResponse,
    ImpersonationStatus,
    NavigationLink,
    PortalView,
)

__all__ = [
    "Token",
    "UserResponse",
    "ClientIdentity",
    "ClientAccountResponse",
    "ClientAccountListResponse",
    "ClientLoginRequest",
    "ImpersonationStartRequest",
    "ImpersonationResponse",
    "ImpersonationStatus",
    "NavigationLink",
    "PortalView",
]
